from __future__ import annotations

from pydantic import BaseModel


class PanelDimensions(BaseModel):
    """Size of the floating heading panel."""

    width: int = 320  # pixels
    max_height_ratio: float = 0.75  # fraction of the editor viewport height
