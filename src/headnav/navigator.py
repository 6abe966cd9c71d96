"""Heading navigator panel for one editor view.

Wires the extractor, NavigatorState, HeadingListView and the scroll
convergence controller to an editor adapter:

  document change → extract_headings → state.set_headings → view re-render
  list navigation → state selection → (debounced) preview → navigate + verify
  confirm         → navigate with focus → close panel

Panel interactions:
- Arrow keys / Tab: move between headings with live preview
- Enter or click: jump to the heading and close
- Escape: close and restore the original caret and scroll position
- Click outside: close and keep the current position
- Copy affordance: ask the host to copy a link to the heading
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

import structlog

from headnav.config import Settings
from headnav.dimensions import normalize_panel_dimensions
from headnav.errors import ErrorCode, HeadNavError
from headnav.models.editor import TextRange
from headnav.models.messages import CopyHeadingLinkMessage
from headnav.parser import extract_headings
from headnav.scroll import ScrollConvergenceController
from headnav.state import NavigatorState, find_active_heading_id
from headnav.view import CloseReason, HeadingListView

if TYPE_CHECKING:
    from collections.abc import Mapping

    from headnav.models.heading import HeadingItem
    from headnav.models.panel import PanelDimensions
    from headnav.protocols import EditorViewProtocol
    from headnav.scroll import ScrollVerificationSession

log = structlog.get_logger()

PostMessage = Callable[[dict[str, Any]], Awaitable[None]]


class HeadingNavigator:
    """Owns the panel lifecycle for a single editor view."""

    def __init__(
        self,
        view: EditorViewProtocol,
        *,
        settings: Settings | None = None,
        controller: ScrollConvergenceController | None = None,
        post_message: PostMessage | None = None,
        resolve_note_id: Callable[[], str | None] | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self.view = view
        self.controller = controller or ScrollConvergenceController(self.settings.scroll)
        self.dimensions: PanelDimensions = self.settings.panel.dimensions()
        self.headings: list[HeadingItem] = extract_headings(view.get_document_text())

        self._post_message = post_message
        self._resolve_note_id = resolve_note_id
        self._initial_selection: TextRange | None = None
        self._initial_scroll: Any = None
        self._copy_tasks: set[asyncio.Task[None]] = set()

        self.state: NavigatorState | None = None
        self.list_view: HeadingListView | None = None

    @property
    def is_open(self) -> bool:
        return self.list_view is not None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def open(self) -> None:
        self.headings = extract_headings(self.view.get_document_text())
        selection = self.view.get_selection()
        selected_id = find_active_heading_id(self.headings, selection.end)
        self._initial_selection = selection
        self._initial_scroll = self.view.scroll_snapshot()

        navigation = self.settings.navigation
        if self.state is None:
            self.state = NavigatorState(
                on_preview=self._handle_preview,
                on_select=self._handle_select,
                preview_debounce_ms=navigation.preview_debounce_ms,
            )
        if self.list_view is None:
            self.list_view = HeadingListView(
                self.state,
                on_close=self._handle_close,
                on_copy=self._handle_copy,
                filter_debounce_ms=navigation.filter_debounce_ms,
                copy_feedback_ms=navigation.copy_feedback_ms,
                dimensions=self.dimensions,
            )
        else:
            self.list_view.dimensions = self.dimensions

        self.list_view.reset_input()
        self.state.open(self.headings, selected_id)
        log.info("heading_panel_opened", view_id=self.view.view_id, headings=len(self.headings))

    def close(self, focus_editor: bool = False, restore_original_position: bool = False) -> None:
        if self.list_view is not None:
            self.list_view.destroy()
        if self.state is not None:
            self.state.cancel_preview()
        self.list_view = None
        self.state = None

        self.controller.cancel(self.view.view_id)

        if restore_original_position and self._initial_selection is not None:
            try:
                self.view.set_selection(self._initial_selection)
                self.view.restore_scroll(self._initial_scroll)
            except Exception:
                log.warning("editor_selection_restore_failed", view_id=self.view.view_id, exc_info=True)

        self._initial_selection = None
        self._initial_scroll = None

        if focus_editor:
            self.view.focus()

    def toggle(self, dimensions: Mapping[str, Any] | PanelDimensions | None = None) -> None:
        if dimensions is not None:
            self.dimensions = normalize_panel_dimensions(dimensions)

        if self.is_open:
            self.close(focus_editor=True)
        else:
            self.open()

    def handle_update(self, *, doc_changed: bool = False, selection_set: bool = False) -> None:
        """Editor update hook: keep headings and the active heading in sync."""
        if doc_changed:
            self.headings = extract_headings(self.view.get_document_text())
        if not (doc_changed or selection_set) or self.state is None:
            return

        caret = self.view.get_selection().end
        self.state.set_headings(self.headings, find_active_heading_id(self.headings, caret))

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def navigate_to_heading(
        self, heading: HeadingItem, *, focus_editor: bool
    ) -> ScrollVerificationSession | None:
        try:
            return self.controller.navigate(
                self.view,
                TextRange.caret(heading.start),
                focus_editor=focus_editor,
            )
        except Exception:
            log.error("editor_selection_failed", heading_id=heading.id, exc_info=True)
            return None

    def _handle_preview(self, heading: HeadingItem) -> None:
        self.navigate_to_heading(heading, focus_editor=False)

    def _handle_select(self, heading: HeadingItem) -> None:
        # Closing cancels in-flight sessions, so close before navigating
        self.close(focus_editor=True)
        self.navigate_to_heading(heading, focus_editor=True)

    def _handle_close(self, reason: CloseReason) -> None:
        self.close(focus_editor=True, restore_original_position=reason == "escape")

    # ------------------------------------------------------------------
    # Copy link
    # ------------------------------------------------------------------

    def _handle_copy(self, heading: HeadingItem) -> None:
        self.request_copy(heading)

    def request_copy(self, heading: HeadingItem) -> None:
        """Fire-and-forget copy request to the host."""
        task = asyncio.create_task(self.send_copy_request(heading))
        # The loop only holds weak references to tasks
        self._copy_tasks.add(task)
        task.add_done_callback(self._copy_tasks.discard)

    async def send_copy_request(self, heading: HeadingItem) -> None:
        try:
            message = self._build_copy_message(heading)
        except HeadNavError as exc:
            log.warning("heading_link_copy_skipped", heading_id=heading.id, code=exc.code)
            return

        try:
            await self._post_message(message.model_dump(by_alias=True))
        except Exception:
            log.error("heading_link_copy_request_failed", heading_id=heading.id, exc_info=True)

    def _build_copy_message(self, heading: HeadingItem) -> CopyHeadingLinkMessage:
        note_id: str | None = None
        if self._resolve_note_id is not None:
            try:
                note_id = self._resolve_note_id()
            except Exception:
                log.warning("note_id_resolution_failed", exc_info=True)
        if self._post_message is None or not note_id:
            raise HeadNavError(
                code=ErrorCode.NOTE_ID_UNAVAILABLE,
                message="The active note id is unavailable.",
                suggestion="Copy links only from an editor bound to a saved note.",
            )
        return CopyHeadingLinkMessage(
            note_id=note_id,
            heading_text=heading.text,
            heading_anchor=heading.anchor,
        )
