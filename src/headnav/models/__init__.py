from __future__ import annotations

from headnav.models.editor import Geometry, TextRange
from headnav.models.heading import HeadingItem
from headnav.models.messages import CopyHeadingLinkMessage, Note
from headnav.models.panel import PanelDimensions

__all__ = [
    # headings
    "HeadingItem",
    # editor
    "TextRange",
    "Geometry",
    # panel
    "PanelDimensions",
    # messages
    "CopyHeadingLinkMessage",
    "Note",
]
