"""crudgen scaffolder -- turns generated text into a packaged project.

Quick usage::

    from crudgen.scaffolder import PromptComposer, ResponseParser

    prompt = PromptComposer().compose(schema)
    sections = ResponseParser().parse(raw_text)
"""

from crudgen.scaffolder.archiver import Archiver
from crudgen.scaffolder.parser import ResponseParser, parse_sections, strip_code_fences
from crudgen.scaffolder.prompt import PromptComposer
from crudgen.scaffolder.workspace import Workspace, WorkspaceBuilder, cleanup

__all__ = [
    "Archiver",
    "PromptComposer",
    "ResponseParser",
    "Workspace",
    "WorkspaceBuilder",
    "cleanup",
    "parse_sections",
    "strip_code_fences",
]
