"""Prompt composition for the generation endpoint.

Renders a single instruction string from a ``SchemaModel`` using the Jinja2
template ``templates/prompt.j2``.  The prompt names the entity and its
fields, requests one block per ``Section`` introduced by that section's
marker line, and tells the model to emit code only.
"""

from __future__ import annotations

import re
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

from ..models import SchemaModel, Section

_DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"


class PromptComposer:
    """Builds the generation prompt for one entity.

    Rendering is pure: the same schema and base package always produce a
    byte-identical prompt.
    """

    template_name = "prompt.j2"

    def __init__(
        self,
        base_package: str = "com.example",
        template_dir: str | Path | None = None,
    ) -> None:
        self.base_package = base_package
        self.env = Environment(
            loader=FileSystemLoader(str(template_dir or _DEFAULT_TEMPLATE_DIR)),
            autoescape=select_autoescape([]),
            undefined=StrictUndefined,
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.filters["kebab_case"] = _kebab_case_filter

    def compose(self, schema: SchemaModel) -> str:
        """Render the prompt for *schema*."""
        template = self.env.get_template(self.template_name)
        return template.render(
            name=schema.name,
            fields=list(schema.fields),
            base_package=self.base_package,
            markers={section.value: section.marker for section in Section},
        )


# ---------------------------------------------------------------------------
# Jinja2 custom filters
# ---------------------------------------------------------------------------

def _kebab_case_filter(value: str) -> str:
    """Convert ``OrderLine`` or ``order_line`` to ``order-line``."""
    s1 = re.sub(r"(.)([A-Z][a-z]+)", r"\1-\2", value)
    s2 = re.sub(r"([a-z0-9])([A-Z])", r"\1-\2", s1)
    return re.sub(r"[_\s-]+", "-", s2).lower()
