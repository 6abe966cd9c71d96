from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    INVALID_MESSAGE = "INVALID_MESSAGE"
    NOTE_NOT_FOUND = "NOTE_NOT_FOUND"
    NOTE_ID_UNAVAILABLE = "NOTE_ID_UNAVAILABLE"
    HEADING_NOT_FOUND = "HEADING_NOT_FOUND"


class HeadNavError(Exception):
    """Raised by host-side handlers for all expected failure conditions.

    Caught at the dispatch boundary (``HostService.handle_message`` and the
    CLI), logged, and turned into a no-op. Nothing in this package lets it
    reach the editor: a failed copy request simply copies nothing.
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        suggestion: str,
        recoverable: bool = False,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.recoverable = recoverable

    def to_dict(self) -> dict:
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "suggestion": self.suggestion,
                "recoverable": self.recoverable,
            }
        }
