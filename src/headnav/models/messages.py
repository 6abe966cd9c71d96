from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CopyHeadingLinkMessage(BaseModel):
    """Editor → host request to copy a link to one heading.

    Serialised with camelCase keys on the wire:
    ``{"type": "copyHeadingLink", "noteId": ..., "headingText": ..., "headingAnchor": ...}``
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    type: Literal["copyHeadingLink"] = "copyHeadingLink"
    note_id: str = Field(min_length=1)
    heading_text: str
    heading_anchor: str = Field(min_length=1)


class Note(BaseModel):
    """Minimal view of a host note record."""

    id: str
    title: str = ""
