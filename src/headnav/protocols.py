"""Protocol interfaces for the external collaborators.

The navigator, list view and scroll controller reference these protocols,
not a concrete editor or host. This allows:
- Tests to drive everything with a lightweight in-memory editor
- Any editor toolkit to be plugged in by writing one adapter
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Literal, Protocol, TypeVar

if TYPE_CHECKING:
    from collections.abc import Callable

    from headnav.models.editor import Geometry, TextRange
    from headnav.models.messages import Note

M = TypeVar("M")

ScrollAlign = Literal["start", "center", "end", "nearest"]


class EditorViewProtocol(Protocol):
    """Interface for the live editor view hosting the panel."""

    @property
    def view_id(self) -> str:
        """Stable identity of this view; keys its scroll-verification session."""
        ...

    def get_document_text(self) -> str: ...

    def get_selection(self) -> TextRange: ...

    def set_selection(self, selection: TextRange) -> None: ...

    def scroll_into_view(self, target: TextRange, align: ScrollAlign = "start") -> None: ...

    def measure_geometry(self, target: TextRange) -> Geometry | None:
        """Measure ``target``'s block against the viewport; ``None`` when not laid out."""
        ...

    def schedule_measurement(
        self,
        read: Callable[[], M],
        write: Callable[[M], None],
    ) -> None:
        """Run ``read`` in the next layout-read phase, then ``write`` with its result."""
        ...

    def get_scroll_top(self) -> float: ...

    def set_scroll_top(self, value: float) -> None: ...

    def scroll_snapshot(self) -> Any:
        """Opaque value that ``restore_scroll`` can later re-apply."""
        ...

    def restore_scroll(self, snapshot: Any) -> None: ...

    def focus(self) -> None: ...


class NoteStoreProtocol(Protocol):
    """Host-side lookup of note records."""

    async def get_note(self, note_id: str) -> Note | None: ...


class ClipboardProtocol(Protocol):
    async def write_text(self, text: str) -> None: ...
