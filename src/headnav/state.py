"""Navigator state: heading list, filter and selection for one open panel.

NavigatorState is created when the panel opens and discarded when it closes.
It never touches the document; headings are pushed in from outside on every
document change. All mutation happens on the event loop thread, in the order
the triggering events arrive.

Selection invariant: when ``filtered`` is non-empty ``selected_id`` names one
of its members, otherwise ``selected_id`` is ``None``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from headnav.schedulers import Debouncer

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from headnav.models.heading import HeadingItem

log = structlog.get_logger()


def find_active_heading_id(headings: Sequence[HeadingItem], position: int) -> str | None:
    """Return the id of the heading the caret at ``position`` belongs to.

    That is the last heading starting at or before ``position``; the first
    heading when the caret precedes all of them; ``None`` for no headings.
    """
    if not headings:
        return None

    candidate: HeadingItem | None = None
    for heading in headings:
        if heading.start <= position:
            candidate = heading
        else:
            break

    return (candidate or headings[0]).id


def filter_headings(headings: Sequence[HeadingItem], filter_text: str) -> list[HeadingItem]:
    """Case-insensitive substring match against heading text (not anchors)."""
    needle = filter_text.strip().lower()
    if not needle:
        return list(headings)
    return [heading for heading in headings if needle in heading.text.lower()]


class NavigatorState:
    """Filterable, cyclically navigable heading list with debounced preview.

    ``on_preview`` fires ``preview_debounce_ms`` after the selection settles,
    never twice in a row for the same heading. ``on_select`` fires on
    ``confirm_selection``. ``on_change`` listeners run synchronously after
    every mutation so views can re-render.
    """

    def __init__(
        self,
        *,
        on_preview: Callable[[HeadingItem], None],
        on_select: Callable[[HeadingItem], None],
        preview_debounce_ms: float = 30,
    ) -> None:
        self._on_preview = on_preview
        self._on_select = on_select
        self._listeners: list[Callable[[], None]] = []
        self._preview_timer = Debouncer(preview_debounce_ms, self._emit_preview, name="preview")
        self._preview_target: str | None = None

        self.headings: list[HeadingItem] = []
        self.filter_text = ""
        self.filtered: list[HeadingItem] = []
        self.selected_id: str | None = None
        self.last_previewed_id: str | None = None

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def subscribe(self, listener: Callable[[], None]) -> None:
        self._listeners.append(listener)

    def _changed(self) -> None:
        for listener in list(self._listeners):
            listener()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def selected(self) -> HeadingItem | None:
        return self.find(self.selected_id)

    @property
    def selected_index(self) -> int:
        """Index of the selection within ``filtered``, or -1."""
        for index, heading in enumerate(self.filtered):
            if heading.id == self.selected_id:
                return index
        return -1

    @property
    def preview_pending(self) -> bool:
        return self._preview_timer.pending

    def find(self, heading_id: str | None) -> HeadingItem | None:
        if heading_id is None:
            return None
        for heading in self.headings:
            if heading.id == heading_id:
                return heading
        return None

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def open(self, headings: Sequence[HeadingItem], selected_id: str | None) -> None:
        """Reset for a freshly opened panel and preview the initial selection."""
        self.cancel_preview()
        self.filter_text = ""
        self.selected_id = selected_id
        self.last_previewed_id = None
        self.headings = list(headings)
        self._apply_filter()
        self._changed()
        self._notify_preview()

    def set_headings(
        self,
        headings: Sequence[HeadingItem],
        selected_id: str | None = None,
        *,
        emit_preview: bool = False,
    ) -> None:
        """Replace the working sequence, keeping the filter text.

        Without ``selected_id`` the previous selection survives when it is
        still in the filtered list; otherwise the first filtered item is
        selected. Document-driven updates pass ``emit_preview=False``: the
        caret is already at the selection, so it is only marked as previewed.
        """
        if selected_id is not None:
            self.selected_id = selected_id
        self.headings = list(headings)
        self._apply_filter()
        self._changed()
        if emit_preview:
            self._notify_preview()
        else:
            self._mark_previewed()

    def set_filter_text(self, text: str) -> None:
        self.filter_text = text
        self._apply_filter()
        self._changed()
        self._notify_preview()

    def move_selection(self, delta: int) -> None:
        """Move the selection ``delta`` rows with wraparound."""
        if not self.filtered:
            self.selected_id = None
            self._changed()
            return

        length = len(self.filtered)
        current = self.selected_index
        next_index = (current + delta + length) % length if current >= 0 else 0
        self.selected_id = self.filtered[next_index].id
        self._changed()
        self._notify_preview()

    def select(self, heading_id: str) -> None:
        """Select a specific heading (pointer gesture) without confirming it."""
        if not any(heading.id == heading_id for heading in self.filtered):
            return
        self.selected_id = heading_id
        self._changed()

    def confirm_selection(self) -> None:
        heading = self.selected
        if heading is None:
            return
        self.cancel_preview()
        self._on_select(heading)

    def cancel_preview(self) -> None:
        self._preview_timer.cancel()
        self._preview_target = None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _apply_filter(self) -> None:
        self.filtered = filter_headings(self.headings, self.filter_text)

        if not self.filtered:
            self.selected_id = None
        elif not any(heading.id == self.selected_id for heading in self.filtered):
            self.selected_id = self.filtered[0].id

    def _notify_preview(self) -> None:
        self.cancel_preview()

        if self.selected_id is None:
            self.last_previewed_id = None
            return

        if self.selected_id == self.last_previewed_id:
            return

        if self.find(self.selected_id) is None:
            self.last_previewed_id = None
            return

        self._preview_target = self.selected_id
        self._preview_timer.schedule()

    def _emit_preview(self) -> None:
        target = self._preview_target
        self._preview_target = None

        # Selection moved on while the timer was pending
        if target is None or self.selected_id != target:
            return

        heading = self.find(target)
        if heading is None:
            self.last_previewed_id = None
            return

        self.last_previewed_id = heading.id
        log.debug("heading_preview", heading_id=heading.id)
        self._on_preview(heading)

    def _mark_previewed(self) -> None:
        heading = self.selected
        self.last_previewed_id = heading.id if heading is not None else None
