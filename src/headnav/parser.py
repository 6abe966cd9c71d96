"""Heading extraction for markdown documents.

Parses the buffer with markdown-it (CommonMark), so headings inside fenced
code, HTML blocks or indented code are never reported, while headings nested
in lists and blockquotes are. Both ATX (``## Title``) and Setext (underlined,
levels 1–2 only) headings are recognised.

Heading labels are rebuilt from the inline token stream: emphasis markers,
link targets, image targets and raw HTML are dropped; link labels, image alt
text and code span contents are kept. Emphasis follows CommonMark flanking
rules, so ``_italic_`` loses its underscores but ``snake_case`` keeps them.
"""

from __future__ import annotations

import re
from bisect import bisect_right
from typing import TYPE_CHECKING

import structlog
from markdown_it import MarkdownIt

from headnav.models.heading import HeadingItem
from headnav.slugs import allocate_anchor

if TYPE_CHECKING:
    from collections.abc import Iterable

    from markdown_it.token import Token

log = structlog.get_logger()

# text_join would fold escaped characters back into plain text tokens
_md = MarkdownIt("commonmark").disable("text_join", True)

_ATX_MARK_RE = re.compile(r"#{1,6}(?!#)")
_LINE_BREAK_RE = re.compile(r"\r\n?|\n")
_WHITESPACE_RE = re.compile(r"\s+")
# Reference-style links whose definitions are missing stay literal in
# CommonMark: "[Label][ref]" / "[Label][]"
_REFERENCE_LINK_RE = re.compile(r"\[([^\[\]]*)\]\[[^\[\]]*\]")
# markdown-it replaces NUL in its input, so it never occurs in token content
_LITERAL_SLOT_RE = re.compile(r"\x00(\d+)\x00")

_LITERAL_TOKENS = frozenset({"code_inline", "text_special"})
_BREAK_TOKENS = frozenset({"softbreak", "hardbreak"})


class LineIndex:
    """Offset ↔ line lookups for one text snapshot.

    Lines break on ``\\r\\n``, ``\\r`` or ``\\n``, matching markdown-it's own
    line numbering. Built in a single pass; ``line_of`` is a binary search
    over line starts.
    """

    def __init__(self, text: str) -> None:
        self._text = text
        self._starts = [0]
        self._ends: list[int] = []
        for match in _LINE_BREAK_RE.finditer(text):
            self._ends.append(match.start())
            self._starts.append(match.end())
        self._ends.append(len(text))

    @property
    def line_count(self) -> int:
        return len(self._starts)

    def line_of(self, offset: int) -> int:
        """Return the 0-based line containing ``offset``."""
        return bisect_right(self._starts, offset) - 1

    def line_start(self, line: int) -> int:
        return self._starts[line]

    def line_text(self, line: int) -> str:
        """Return the text of ``line`` without its line terminator."""
        return self._text[self._starts[line] : self._ends[line]]


def extract_headings(text: str) -> list[HeadingItem]:
    """Extract all headings from ``text`` in document order.

    Never raises: on any parser failure the error is logged and an empty list
    is returned.
    """
    try:
        return _extract(text)
    except Exception:
        log.error("heading_extraction_failed", text_length=len(text), exc_info=True)
        return []


def _extract(text: str) -> list[HeadingItem]:
    tokens = _md.parse(text)
    lines = LineIndex(text)
    anchor_counts: dict[str, int] = {}
    headings: list[HeadingItem] = []

    for index, token in enumerate(tokens):
        if token.type != "heading_open" or token.map is None:
            continue

        level = int(token.tag[1:])
        inline = tokens[index + 1]
        label = normalize_heading_text(inline.children or [])
        if not label:
            continue

        if token.markup.startswith("#"):
            start, end = _atx_span(lines, token.map)
        else:
            start, end = _setext_span(lines, token.map, inline.content)

        fallback = f"heading-{start}"
        headings.append(
            HeadingItem(
                id=fallback,
                text=label,
                level=level,
                start=start,
                end=end,
                line=lines.line_of(start),
                anchor=allocate_anchor(label, fallback, anchor_counts),
            )
        )

    return headings


def normalize_heading_text(children: Iterable[Token]) -> str:
    """Rebuild readable heading text from inline tokens.

    Walks the token tree with an explicit stack (image alt text is nested
    inside the image token) so pathological nesting cannot exhaust the
    Python stack.

    Unresolved reference links are unwrapped on the joined text, so a label
    split by emphasis or code spans still loses its brackets. Code spans and
    escaped characters sit in numbered slots meanwhile, which keeps an
    escaped ``\\[`` from ever being read as link syntax.
    """
    parts: list[str] = []
    literals: list[str] = []
    stack = list(reversed(list(children)))

    while stack:
        token = stack.pop()
        if token.type == "text":
            parts.append(token.content)
        elif token.type in _LITERAL_TOKENS:
            # Code spans verbatim; escapes and entities already resolved
            parts.append(f"\x00{len(literals)}\x00")
            literals.append(token.content)
        elif token.type in _BREAK_TOKENS:
            parts.append(" ")
        elif token.type == "image":
            # Alt text lives in the children, the target in attrs
            stack.extend(reversed(token.children or []))
        # html_inline, em/strong/link open+close: markup only

    joined = _REFERENCE_LINK_RE.sub(r"\1", "".join(parts))
    text = _LITERAL_SLOT_RE.sub(lambda match: literals[int(match.group(1))], joined)
    return _WHITESPACE_RE.sub(" ", text).strip()


def _atx_span(lines: LineIndex, line_map: list[int]) -> tuple[int, int]:
    line = line_map[0]
    line_text = lines.line_text(line)
    line_start = lines.line_start(line)

    # Container prefixes ("> ", "- ", "1. ") never contain "#"
    match = _ATX_MARK_RE.search(line_text)
    column = match.start() if match else len(line_text) - len(line_text.lstrip())
    start = line_start + column
    end = line_start + len(line_text.rstrip())
    return start, max(end, start + 1)


def _setext_span(lines: LineIndex, line_map: list[int], content: str) -> tuple[int, int]:
    first_line = line_map[0]
    line_text = lines.line_text(first_line)
    first_content = content.split("\n", 1)[0]

    column = line_text.find(first_content) if first_content else -1
    if column < 0:
        column = len(line_text) - len(line_text.lstrip())
    start = lines.line_start(first_line) + column

    underline = line_map[1] - 1
    end = lines.line_start(underline) + len(lines.line_text(underline).rstrip())
    return start, max(end, start + 1)


def format_outline(headings: Iterable[HeadingItem]) -> str:
    """Render a plain-text heading map.

    One line per heading in the format ``"<lineno>: <#...> <text>"`` with a
    1-based line number, joined by newlines. Returns an empty string if there
    are no headings.
    """
    return "\n".join(
        f"{heading.line + 1}: {'#' * heading.level} {heading.text}" for heading in headings
    )
