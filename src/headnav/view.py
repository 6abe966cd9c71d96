"""List view projection of NavigatorState.

The view keeps a keyed list of item nodes and reconciles it against
``state.filtered`` on every state change: nodes are matched by heading id,
reused when the heading survives, created for new ids, dropped for vanished
ids and reordered to follow ``filtered``. A toolkit renders ``items`` (and
``empty_message`` when there are none); it never rebuilds the whole list.

Gestures are translated into NavigatorState operations or callbacks. The view
holds no business logic of its own.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

import structlog

from headnav.models.panel import PanelDimensions
from headnav.schedulers import Debouncer, KeyedTimers

if TYPE_CHECKING:
    from collections.abc import Callable

    from headnav.models.heading import HeadingItem
    from headnav.state import NavigatorState

log = structlog.get_logger()

INDENT_BASE_PX = 12
INDENT_PER_LEVEL_PX = 12
EMPTY_MESSAGE = "No headings found"

CloseReason = Literal["escape", "blur"]


def indent_for(level: int) -> int:
    return INDENT_BASE_PX + (level - 1) * INDENT_PER_LEVEL_PX


def level_label(heading: HeadingItem) -> str:
    return f"H{heading.level} · line {heading.line + 1}"


@dataclass(eq=False)
class ListItem:
    """One rendered row. Identity is preserved across reconciliations."""

    heading_id: str
    text: str
    level_label: str
    indent_px: int
    selected: bool = False
    copied: bool = False

    @classmethod
    def for_heading(cls, heading: HeadingItem) -> ListItem:
        return cls(
            heading_id=heading.id,
            text=heading.text,
            level_label=level_label(heading),
            indent_px=indent_for(heading.level),
        )

    def refresh(self, heading: HeadingItem) -> bool:
        """Bring the row up to date; True if anything changed."""
        changed = False
        label = level_label(heading)
        indent = indent_for(heading.level)
        if self.text != heading.text:
            self.text = heading.text
            changed = True
        if self.level_label != label:
            self.level_label = label
            changed = True
        if self.indent_px != indent:
            self.indent_px = indent
            changed = True
        return changed


class HeadingListView:
    def __init__(
        self,
        state: NavigatorState,
        *,
        on_close: Callable[[CloseReason], None],
        on_copy: Callable[[HeadingItem], None],
        filter_debounce_ms: float = 150,
        copy_feedback_ms: float = 600,
        dimensions: PanelDimensions | None = None,
    ) -> None:
        self.state = state
        self.dimensions = dimensions or PanelDimensions()
        self._on_close = on_close
        self._on_copy = on_copy
        self._pending_filter = ""
        self._filter_timer = Debouncer(filter_debounce_ms, self._apply_filter, name="filter")
        self._copy_feedback = KeyedTimers(copy_feedback_ms)
        self._destroyed = False

        self.items: list[ListItem] = []
        self.input_text = ""
        self.empty_message: str | None = None

        state.subscribe(self.render)
        self.render()

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def panel_size(self, viewport_height: float) -> tuple[int, int]:
        """Panel width and maximum height in pixels for an editor viewport."""
        return self.dimensions.width, int(viewport_height * self.dimensions.max_height_ratio)

    @property
    def selected_item(self) -> ListItem | None:
        for item in self.items:
            if item.selected:
                return item
        return None

    def render(self) -> None:
        if self._destroyed:
            return

        if not self.state.filtered:
            self._copy_feedback.clear_all()
            self.items = []
            self.empty_message = EMPTY_MESSAGE
            return

        self.empty_message = None
        self._reconcile()

    def _reconcile(self) -> None:
        existing = {item.heading_id: item for item in self.items}
        wanted = {heading.id for heading in self.state.filtered}

        for heading_id in existing.keys() - wanted:
            self._copy_feedback.clear(heading_id)
            del existing[heading_id]

        ordered: list[ListItem] = []
        for heading in self.state.filtered:
            item = existing.get(heading.id)
            if item is None:
                item = ListItem.for_heading(heading)
            else:
                item.refresh(heading)
            item.selected = heading.id == self.state.selected_id
            ordered.append(item)

        self.items = ordered

    # ------------------------------------------------------------------
    # Gestures
    # ------------------------------------------------------------------

    def handle_input(self, text: str) -> None:
        """Filter box edited; the filter itself runs after the debounce."""
        self.input_text = text
        self._pending_filter = text
        self._filter_timer.schedule()

    def handle_key(self, key: str, *, shift: bool = False) -> bool:
        """Handle a key press in the filter box; True if it was consumed."""
        if key == "ArrowDown":
            self.state.move_selection(1)
        elif key == "ArrowUp":
            self.state.move_selection(-1)
        elif key == "Tab":
            self.state.move_selection(-1 if shift else 1)
        elif key == "Enter":
            # Confirm against what the user typed, not a stale filter
            self._filter_timer.flush()
            self.state.confirm_selection()
        elif key == "Escape":
            self._on_close("escape")
        else:
            return False
        return True

    def handle_click(self, heading_id: str) -> None:
        if self.state.find(heading_id) is None:
            return
        self.state.select(heading_id)
        self.state.confirm_selection()

    def handle_copy_click(self, heading_id: str) -> None:
        heading = self.state.find(heading_id)
        if heading is None:
            return
        self._on_copy(heading)
        self._show_copy_feedback(heading_id)

    def handle_outside_pointer_down(self) -> None:
        self._on_close("blur")

    def _show_copy_feedback(self, heading_id: str) -> None:
        item = next((item for item in self.items if item.heading_id == heading_id), None)
        if item is None:
            return
        item.copied = True

        def _reset() -> None:
            item.copied = False

        self._copy_feedback.start(heading_id, _reset)

    def _apply_filter(self) -> None:
        self.state.set_filter_text(self._pending_filter)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def reset_input(self) -> None:
        self._filter_timer.cancel()
        self.input_text = ""
        self._pending_filter = ""

    def destroy(self) -> None:
        """Cancel every timer. Safe to call more than once."""
        self._filter_timer.cancel()
        self._copy_feedback.clear_all()
        self._destroyed = True
        self.items = []
        log.debug("heading_list_destroyed")
