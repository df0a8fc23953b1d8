"""Pydantic v2 models shared across the scaffold pipeline.

Defines the entity description fed into the pipeline, the request/response
pair exchanged with the generation endpoint, the parsed section set, the
fixed project file layout, and the final archive artifact.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .errors import TransportError, UpstreamProtocolError


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class Section(str, Enum):
    """Closed set of source sections the generator is asked to emit.

    Declaration order is the order sections are requested in the prompt.
    """
    MODEL = "MODEL"
    REPOSITORY = "REPOSITORY"
    SERVICE = "SERVICE"
    CONTROLLER = "CONTROLLER"
    APPLICATION = "APPLICATION"
    PROPERTIES = "PROPERTIES"
    POM = "POM"

    @property
    def marker(self) -> str:
        """The literal marker line that introduces this section."""
        return f"{MARKER_TOKEN}{self.value}---"


MARKER_TOKEN = "//---"


# ---------------------------------------------------------------------------
# Pipeline input
# ---------------------------------------------------------------------------

class SchemaModel(BaseModel):
    """Description of the entity to scaffold.

    Field descriptors are opaque text (``"title"``, ``"price:BigDecimal"``,
    ...) forwarded verbatim into the prompt.
    """
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, pattern=r"^[A-Za-z_][A-Za-z0-9_]*$")
    fields: tuple[str, ...] = Field(default_factory=tuple)


# ---------------------------------------------------------------------------
# Upstream exchange
# ---------------------------------------------------------------------------

class GenerationRequest(BaseModel):
    """One prompt bound for the generation endpoint."""
    prompt: str
    model: str = ""

    def envelope(self) -> dict:
        """Return the JSON body expected by ``generateContent``."""
        return {"contents": [{"parts": [{"text": self.prompt}]}]}


class GenerationResponse(BaseModel):
    """Outcome of a generation call: the raw text or an error indicator."""
    text: str = Field(default="", description="Raw generated text, unparsed")
    model: str = Field(default="", description="Model that produced the response")
    duration_ms: float = Field(default=0.0, description="Wall-clock duration of the call in ms")
    attempts: int = Field(default=1, description="Number of HTTP attempts made")
    success: bool = Field(default=True)
    error: Optional[str] = Field(default=None, description="Error message on failure")
    error_kind: Optional[Literal["transport", "protocol"]] = None
    status_code: Optional[int] = None

    def unwrap(self) -> str:
        """Return the generated text, raising the typed failure if the call failed."""
        if self.success:
            return self.text
        message = self.error or "generation failed"
        if self.error_kind == "transport":
            raise TransportError(message, attempts=self.attempts)
        raise UpstreamProtocolError(message, status_code=self.status_code)


# ---------------------------------------------------------------------------
# Parsed sections and project layout
# ---------------------------------------------------------------------------

class SectionSet(BaseModel):
    """Mapping from section to extracted content.

    Each section holds at most one value; ``put`` overwrites, so a repeated
    marker keeps the later occurrence.
    """
    sections: dict[Section, str] = Field(default_factory=dict)

    def put(self, section: Section, content: str) -> None:
        self.sections[section] = content

    def get(self, section: Section) -> Optional[str]:
        return self.sections.get(section)

    def items(self) -> list[tuple[Section, str]]:
        """Populated entries in ``Section`` declaration order."""
        return [(s, self.sections[s]) for s in Section if s in self.sections]

    def __contains__(self, section: object) -> bool:
        return section in self.sections

    def __len__(self) -> int:
        return len(self.sections)


_LAYOUT_TEMPLATES: dict[Section, str] = {
    Section.MODEL: "src/main/java/{package}/model/{name}.java",
    Section.REPOSITORY: "src/main/java/{package}/repository/{name}Repository.java",
    Section.SERVICE: "src/main/java/{package}/service/{name}Service.java",
    Section.CONTROLLER: "src/main/java/{package}/controller/{name}Controller.java",
    Section.APPLICATION: "src/main/java/{package}/Application.java",
    Section.PROPERTIES: "application.properties",
    Section.POM: "pom.xml",
}


class FileLayout(BaseModel):
    """Relative path for every section inside the generated project."""
    paths: dict[Section, str]

    @classmethod
    def for_entity(cls, name: str, base_package: str = "com.example") -> "FileLayout":
        package_dir = base_package.replace(".", "/")
        return cls(
            paths={
                section: template.format(package=package_dir, name=name)
                for section, template in _LAYOUT_TEMPLATES.items()
            }
        )

    def path_for(self, section: Section) -> str:
        return self.paths[section]


# ---------------------------------------------------------------------------
# Pipeline output
# ---------------------------------------------------------------------------

class Artifact(BaseModel):
    """The archive handed back to the caller."""
    path: Path = Field(..., description="Location of the archive on disk")
    filename: str = Field(..., description="Suggested download file name")
    job_id: str
    entries: list[str] = Field(default_factory=list, description="Archive entry names")

    def read_bytes(self) -> bytes:
        return self.path.read_bytes()
