"""Parse raw document text into title and body units."""

import enum
import logging
import re

from rsvp_pacer.constants import (
    PLAIN_TITLE_MAX_LEN,
    CAPS_TITLE_MIN_LEN,
    CAPS_TITLE_MAX_LEN,
)
from rsvp_pacer.errors import EmptyContent, UnsupportedFormat
from rsvp_pacer.models import Body, StructuralUnit, Title

logger = logging.getLogger(__name__)


class StructureMode(enum.Enum):
    MARKDOWN = "markdown"
    PLAIN_HEURISTIC = "plain"


# Format tags supplied by the extraction side → structuring mode
FORMAT_MODES = {
    "markdown": StructureMode.MARKDOWN,
    "plaintext": StructureMode.PLAIN_HEURISTIC,
    "opaque": StructureMode.PLAIN_HEURISTIC,
}

# Markdown markup patterns
_CODE_BLOCK_RE = re.compile(r"```.*?```", re.DOTALL)
_INLINE_CODE_RE = re.compile(r"`([^`]+)`")
_IMAGE_RE = re.compile(r"!\[[^\]]*\]\([^)]*\)")
_LINK_RE = re.compile(r"\[([^\]]+)\]\([^)]*\)")
_HEADING_RE = re.compile(r"^(#{1,6})\s+(.*)$")
_LIST_MARKER_RE = re.compile(r"^(?:[*+-]|\d+[.)])\s+")
_BLOCKQUOTE_RE = re.compile(r"^(?:>\s*)+")
_THEMATIC_BREAK_RE = re.compile(r"^([-*_])(?:\s*\1){2,}$")
_EMPHASIS_RE = re.compile(r"(?<!\w)(\*{1,3}|_{1,3})(?!\s)(.+?)(?<!\s)\1(?!\w)")

# Anything outside word characters, whitespace and basic punctuation
_DISALLOWED_RE = re.compile(r"""[^\w\s.,;:!?'"-]""")
_WHITESPACE_RE = re.compile(r"\s+")
_SENTENCE_PUNCT = (".", "!", "?")


def _strip_disallowed(text: str) -> str:
    text = _DISALLOWED_RE.sub("", text)
    return _WHITESPACE_RE.sub(" ", text).strip()


def _strip_inline_markup(text: str) -> str:
    """Remove inline markdown, keeping visible text."""
    text = _INLINE_CODE_RE.sub(r"\1", text)
    text = _IMAGE_RE.sub("", text)
    text = _LINK_RE.sub(r"\1", text)
    # Nested emphasis (***bold italic***, **_mixed_**) needs repeated passes
    previous = None
    while previous != text:
        previous = text
        text = _EMPHASIS_RE.sub(r"\2", text)
    return text


def clean_heading(text: str) -> str:
    """Clean ATX heading text. Trailing closing hashes are dropped."""
    text = re.sub(r"\s+#+\s*$", "", text)
    return _strip_disallowed(_strip_inline_markup(text))


def clean_markdown_line(line: str) -> str:
    """Strip block and inline markdown from a single non-heading line."""
    line = line.strip()
    if _THEMATIC_BREAK_RE.match(line):
        return ""
    line = _BLOCKQUOTE_RE.sub("", line)
    line = _LIST_MARKER_RE.sub("", line)
    return _strip_disallowed(_strip_inline_markup(line))


def _structure_markdown(text: str) -> list[StructuralUnit]:
    units: list[StructuralUnit] = []
    text = _CODE_BLOCK_RE.sub("", text)
    for raw in text.splitlines():
        line = raw.strip()
        if not line:
            continue
        heading = _HEADING_RE.match(line)
        if heading:
            title = clean_heading(heading.group(2))
            if title:
                units.append(Title(level=len(heading.group(1)), text=title))
            continue
        body = clean_markdown_line(line)
        if body:
            units.append(Body(text=body))
    return units


def classify_plain_line(line: str) -> StructuralUnit | None:
    """Classify one stripped plain-text line.

    Heuristics, first match wins:
      1. upper-case letters and spaces only, longer than 3 → level 1
      2. ends with ':' under 100 chars, no sentence punctuation → level 2
      3. no lowercase letters, 5 < length < 80 → level 3
      4. anything else → body
    False positives (short acronyms) are accepted.
    """
    letters = line.replace(" ", "")
    if len(line) > 3 and letters.isalpha() and letters.isupper():
        title = _strip_disallowed(line)
        return Title(level=1, text=title) if title else None

    if (
        line.endswith(":")
        and len(line) < PLAIN_TITLE_MAX_LEN
        and not any(p in line for p in _SENTENCE_PUNCT)
    ):
        title = _strip_disallowed(line[:-1])
        return Title(level=2, text=title) if title else None

    if (
        CAPS_TITLE_MIN_LEN < len(line) < CAPS_TITLE_MAX_LEN
        and not any(c.islower() for c in line)
    ):
        title = _strip_disallowed(line)
        return Title(level=3, text=title) if title else None

    body = _strip_disallowed(line)
    return Body(text=body) if body else None


def _structure_plain(text: str) -> list[StructuralUnit]:
    units: list[StructuralUnit] = []
    for raw in text.splitlines():
        line = raw.strip()
        if not line:
            continue
        unit = classify_plain_line(line)
        if unit is not None:
            units.append(unit)
    return units


def structure(text: str, mode: StructureMode) -> list[StructuralUnit]:
    """Parse raw text into an ordered list of Title and Body units.

    Never raises on malformed markup; whatever cannot be understood is dropped.
    """
    if mode is StructureMode.MARKDOWN:
        return _structure_markdown(text)
    if mode is StructureMode.PLAIN_HEURISTIC:
        return _structure_plain(text)
    raise UnsupportedFormat(str(mode))


def structure_source(text: str, format_tag: str, source: str = "") -> list[StructuralUnit]:
    """Structure text tagged by the extraction side.

    Raises UnsupportedFormat for unknown tags and EmptyContent when nothing
    readable remains.
    """
    mode = FORMAT_MODES.get(format_tag)
    if mode is None:
        raise UnsupportedFormat(format_tag)

    units = structure(text, mode)
    if not units:
        raise EmptyContent(source)

    titles = sum(1 for u in units if isinstance(u, Title))
    logger.debug("Structured %s: %d units (%d titles)", source or format_tag, len(units), titles)
    return units
