from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class HeadingItem(BaseModel):
    """Single heading produced by one extraction pass.

    ``start``/``end`` are the half-open character offsets of the whole heading
    construct in the source buffer (``end > start`` always). ``id`` is derived
    from ``start`` and is only stable for one document snapshot.
    """

    model_config = ConfigDict(frozen=True)

    id: str  # "heading-<start>"
    text: str  # Normalised label, inline markdown removed
    level: int  # 1–6
    start: int
    end: int
    line: int  # 0-based line of ``start``
    anchor: str  # URL-safe slug, unique within one extraction
