"""Panel dimension normalisation.

Width and max-height are validated independently: a missing or non-numeric
value falls back to its default, a numeric value is clamped into range.
Every normaliser returns ``(value, changed)`` so a settings host can write the
corrected value back when ``changed`` is true.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any

from headnav.models.panel import PanelDimensions

MIN_PANEL_WIDTH = 240
MAX_PANEL_WIDTH = 640
MIN_PANEL_HEIGHT_PERCENTAGE = 40
MAX_PANEL_HEIGHT_PERCENTAGE = 90

DEFAULT_PANEL_WIDTH = 320
DEFAULT_PANEL_HEIGHT_RATIO = 0.75
DEFAULT_PANEL_HEIGHT_PERCENTAGE = round(DEFAULT_PANEL_HEIGHT_RATIO * 100)

MIN_PANEL_HEIGHT_RATIO = MIN_PANEL_HEIGHT_PERCENTAGE / 100
MAX_PANEL_HEIGHT_RATIO = MAX_PANEL_HEIGHT_PERCENTAGE / 100


def clamp(value: float, minimum: float, maximum: float) -> float:
    return min(max(value, minimum), maximum)


def _as_number(raw: Any) -> float | None:
    # bool is an int subclass but never a valid dimension
    if isinstance(raw, bool) or not isinstance(raw, int | float):
        return None
    if math.isnan(raw) or math.isinf(raw):
        return None
    return raw


def normalize_panel_width(raw: Any) -> tuple[int, bool]:
    number = _as_number(raw)
    if number is None:
        return DEFAULT_PANEL_WIDTH, True
    clamped = int(clamp(round(number), MIN_PANEL_WIDTH, MAX_PANEL_WIDTH))
    return clamped, clamped != raw


def normalize_panel_height_percentage(raw: Any) -> tuple[int, bool]:
    number = _as_number(raw)
    if number is None:
        return DEFAULT_PANEL_HEIGHT_PERCENTAGE, True
    clamped = int(
        clamp(round(number), MIN_PANEL_HEIGHT_PERCENTAGE, MAX_PANEL_HEIGHT_PERCENTAGE)
    )
    return clamped, clamped != raw


def normalize_panel_height_ratio(raw: Any) -> tuple[float, bool]:
    number = _as_number(raw)
    if number is None:
        return DEFAULT_PANEL_HEIGHT_RATIO, True
    clamped = clamp(number, MIN_PANEL_HEIGHT_RATIO, MAX_PANEL_HEIGHT_RATIO)
    return clamped, clamped != raw


def normalize_panel_dimensions(
    dimensions: Mapping[str, Any] | PanelDimensions | None = None,
) -> PanelDimensions:
    """Return fully-populated, in-range panel dimensions.

    Accepts a partial mapping (``{"width": 900}``), an existing
    ``PanelDimensions`` or ``None``. Invalid or missing fields get defaults.
    """
    if isinstance(dimensions, PanelDimensions):
        dimensions = dimensions.model_dump()
    raw = dimensions or {}
    width, _ = normalize_panel_width(raw.get("width"))
    ratio, _ = normalize_panel_height_ratio(raw.get("max_height_ratio"))
    return PanelDimensions(width=width, max_height_ratio=ratio)
