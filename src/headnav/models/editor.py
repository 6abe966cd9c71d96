from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class TextRange:
    """Half-open document range; a caret is ``start == end``."""

    start: int
    end: int

    @classmethod
    def caret(cls, position: int) -> TextRange:
        return cls(position, position)


@dataclass(frozen=True)
class Geometry:
    """One layout measurement of a target range.

    ``viewport_top`` is the scroller's current scroll offset and
    ``block_top_offset`` is the target block's top minus the viewport's top
    edge (negative when the block sits above the visible area).
    """

    viewport_top: float
    block_top_offset: float
