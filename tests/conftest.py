"""Shared test fixtures for the headnav test suite."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

import pytest

from headnav.config import Settings
from headnav.models.editor import Geometry, TextRange
from headnav.parser import extract_headings

if TYPE_CHECKING:
    from collections.abc import Callable

    from headnav.models.heading import HeadingItem


SAMPLE_DOCUMENT = "\n".join(
    [
        "# Guide",  # line 0
        "",
        "Intro text.",
        "",
        "## Installation",  # line 4
        "",
        "Run the installer.",
        "",
        "## Usage",  # line 8
        "",
        "### Advanced usage",  # line 10
        "",
        "## FAQ",  # line 12
    ]
)


class FakeEditorView:
    """In-memory editor implementing EditorViewProtocol.

    Measurements run in two loop turns (read, then write) like a real
    layout-measure cycle. ``geometry_script`` feeds successive
    ``measure_geometry`` results: a float is a block offset, ``None`` means
    unmeasurable. When the script is empty the block is reported aligned.
    """

    def __init__(self, text: str = SAMPLE_DOCUMENT, view_id: str = "view-1") -> None:
        self._view_id = view_id
        self.text = text
        self.selection = TextRange.caret(0)
        self.scroll_top = 0.0
        self.geometry_script: list[float | None] = []
        self.between_phases: Callable[[], None] | None = None
        self.measure_count = 0
        self.calls: list[tuple[Any, ...]] = []

    @property
    def view_id(self) -> str:
        return self._view_id

    def get_document_text(self) -> str:
        return self.text

    def get_selection(self) -> TextRange:
        return self.selection

    def set_selection(self, selection: TextRange) -> None:
        self.selection = selection
        self.calls.append(("set_selection", selection))

    def scroll_into_view(self, target: TextRange, align: str = "start") -> None:
        self.calls.append(("scroll_into_view", target, align))

    def measure_geometry(self, target: TextRange) -> Geometry | None:
        self.measure_count += 1
        offset = self.geometry_script.pop(0) if self.geometry_script else 0.0
        if offset is None:
            return None
        return Geometry(viewport_top=self.scroll_top, block_top_offset=offset)

    def schedule_measurement(self, read: Callable[[], Any], write: Callable[[Any], None]) -> None:
        loop = asyncio.get_running_loop()

        def _read_phase() -> None:
            measurement = read()
            if self.between_phases is not None:
                self.between_phases()
            loop.call_soon(write, measurement)

        loop.call_soon(_read_phase)

    def get_scroll_top(self) -> float:
        return self.scroll_top

    def set_scroll_top(self, value: float) -> None:
        self.scroll_top = value
        self.calls.append(("set_scroll_top", value))

    def scroll_snapshot(self) -> Any:
        return ("snapshot", self.scroll_top)

    def restore_scroll(self, snapshot: Any) -> None:
        self.scroll_top = snapshot[1]
        self.calls.append(("restore_scroll", snapshot))

    def focus(self) -> None:
        self.calls.append(("focus",))

    def count(self, name: str) -> int:
        return sum(1 for call in self.calls if call[0] == name)


async def settle(seconds: float = 0.02) -> None:
    """Let zero-delay timers and measurement phases run."""
    await asyncio.sleep(seconds)


@pytest.fixture()
def fast_settings() -> Settings:
    """Settings with every timer at zero so tests only wait a loop turn."""
    return Settings(
        navigation={"filter_debounce_ms": 0, "preview_debounce_ms": 0, "copy_feedback_ms": 0},
        scroll={"first_delay_ms": 0, "retry_delay_ms": 0},
    )


@pytest.fixture()
def editor() -> FakeEditorView:
    return FakeEditorView()


@pytest.fixture()
def sample_headings() -> list[HeadingItem]:
    return extract_headings(SAMPLE_DOCUMENT)


@pytest.fixture()
def make_editor() -> type[FakeEditorView]:
    return FakeEditorView


@pytest.fixture()
def wait() -> Callable[..., Any]:
    return settle
