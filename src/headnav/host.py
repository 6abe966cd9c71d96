"""Host-side handler for messages sent by the in-editor navigator.

Receives raw message dicts, validates them, and performs the privileged work
(note lookup, clipboard write). Every failure is logged and dropped: a bad
request copies nothing and never raises back into the transport.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog
from pydantic import BaseModel, ValidationError

from headnav.errors import ErrorCode, HeadNavError
from headnav.links import format_heading_link
from headnav.models.messages import CopyHeadingLinkMessage

if TYPE_CHECKING:
    from headnav.protocols import ClipboardProtocol, NoteStoreProtocol

log = structlog.get_logger()

UNTITLED_NOTE = "Untitled"

_MESSAGE_MODELS: dict[str, type[BaseModel]] = {
    "copyHeadingLink": CopyHeadingLinkMessage,
}


def parse_message(raw: Any) -> BaseModel:
    """Validate a raw message dict into its typed model."""
    if not isinstance(raw, dict):
        raise HeadNavError(
            code=ErrorCode.INVALID_MESSAGE,
            message=f"Message must be an object, got {type(raw).__name__}.",
            suggestion="Send a JSON object with a 'type' field.",
        )

    model = _MESSAGE_MODELS.get(raw.get("type"))
    if model is None:
        raise HeadNavError(
            code=ErrorCode.INVALID_MESSAGE,
            message=f"Unsupported message type: {raw.get('type')!r}",
            suggestion=f"Use one of: {', '.join(sorted(_MESSAGE_MODELS))}.",
        )

    try:
        return model.model_validate(raw)
    except ValidationError as exc:
        raise HeadNavError(
            code=ErrorCode.INVALID_MESSAGE,
            message=str(exc),
            suggestion="Provide noteId, headingText and headingAnchor.",
        ) from exc


class HostService:
    """Privileged side of the copy-link feature."""

    def __init__(self, notes: NoteStoreProtocol, clipboard: ClipboardProtocol) -> None:
        self._notes = notes
        self._clipboard = clipboard

    async def handle_message(self, raw: Any) -> None:
        try:
            message = parse_message(raw)
            if isinstance(message, CopyHeadingLinkMessage):
                await self.copy_heading_link(message)
        except HeadNavError as exc:
            log.warning("host_message_rejected", code=exc.code, message=exc.message)
        except Exception:
            log.error("host_message_failed", exc_info=True)

    async def copy_heading_link(self, message: CopyHeadingLinkMessage) -> str:
        """Format the link for ``message`` and put it on the clipboard."""
        bound = log.bind(note_id=message.note_id, heading_anchor=message.heading_anchor)

        note = await self._notes.get_note(message.note_id)
        if note is None:
            raise HeadNavError(
                code=ErrorCode.NOTE_NOT_FOUND,
                message=f"Note '{message.note_id}' could not be resolved.",
                suggestion="The note may have been deleted; reopen it and retry.",
            )

        title = note.title or UNTITLED_NOTE
        link = format_heading_link(message.heading_text, title, message.note_id, message.heading_anchor)
        await self._clipboard.write_text(link)
        bound.info("heading_link_copied")
        return link
