"""Response parser: raw generated text to a ``SectionSet``.

The upstream model is asked to introduce each file with a marker line such
as ``//---MODEL---``, but its output is untrusted.  Parsing therefore:

1. strips decorative Markdown code fences around the payload,
2. splits the text wherever a line begins with the marker token,
3. reads the section identifier from each fragment's first line,
4. drops fragments that name no known section,
5. keeps the last occurrence when a section repeats.

No recognized section at all is a ``ParseFailure``.
"""

from __future__ import annotations

import re

from ..errors import ParseFailure
from ..models import MARKER_TOKEN, Section, SectionSet


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# A marker line is the token at the start of a line followed by a name;
# decorative rules such as "//---------" stay part of the content.
_MARKER_SPLIT = re.compile(
    r"^[ \t]*" + re.escape(MARKER_TOKEN) + r"(?=-*[ \t]*[A-Za-z])", re.MULTILINE
)
_OPENING_FENCE = re.compile(r"\A\s*```[^\n`]*\n")
_CLOSING_FENCE = re.compile(r"\n?[ \t]*```[ \t]*\Z")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def strip_code_fences(text: str) -> str:
    """Remove a wrapping triple-backtick fence, if any.

    Tolerates no fence, an opening fence only, or both opening and closing
    fences.  Nested wrappers (```` ```\\n```java ````) are peeled repeatedly.
    """
    result = text.strip()
    while True:
        stripped = _OPENING_FENCE.sub("", result, count=1)
        stripped = _CLOSING_FENCE.sub("", stripped, count=1).strip()
        if stripped == result:
            return result
        result = stripped


def _identify(header: str) -> Section | None:
    """Match a fragment's first line against the known section identifiers.

    An exact name wins.  Otherwise, of the identifiers the header contains,
    the one starting furthest right is taken: in "APPLICATION_PROPERTIES"
    the trailing noun names the file kind.
    """
    name = header.strip().strip("-/ \t")
    for section in Section:
        if name == section.value:
            return section
    found = [(header.rfind(s.value), len(s.value), s) for s in Section if s.value in header]
    if not found:
        return None
    return max(found, key=lambda item: (item[0], item[1]))[2]


def _split_fragment(fragment: str) -> tuple[str, str]:
    header, _, body = fragment.partition("\n")
    return header, body


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

class ResponseParser:
    """Converts one raw generation payload into a ``SectionSet``."""

    def parse(self, payload: str) -> SectionSet:
        """Parse *payload* into sections.

        Raises:
            ParseFailure: If no recognized, non-empty section is found.
        """
        text = strip_code_fences(payload)
        fragments = _MARKER_SPLIT.split(text)
        result = SectionSet()

        for fragment in fragments:
            header, body = _split_fragment(fragment)
            # Text before the first marker is kept only if its first line names
            # a section; a one-line preamble has no body and is dropped below.
            section = _identify(header)
            if section is None:
                continue
            content = strip_code_fences(body)
            if not content:
                continue
            result.put(section, content)

        if not len(result):
            raise ParseFailure("no recognized sections")
        return result


def parse_sections(payload: str) -> SectionSet:
    """Convenience wrapper around ``ResponseParser().parse``."""
    return ResponseParser().parse(payload)
