"""Integration test fixtures.

Provides a HeadingNavigator wired to the in-memory editor from
tests/conftest.py, with zero timer delays and a recording host transport.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from unittest.mock import AsyncMock

import pytest

from headnav.navigator import HeadingNavigator

if TYPE_CHECKING:
    from headnav.config import Settings


@pytest.fixture()
def post_message() -> AsyncMock:
    return AsyncMock()


@pytest.fixture()
def navigator(editor, fast_settings: Settings, post_message: AsyncMock) -> HeadingNavigator:
    nav = HeadingNavigator(
        editor,
        settings=fast_settings,
        post_message=post_message,
        resolve_note_id=lambda: "note-1",
    )
    yield nav
    nav.close()
    nav.controller.cancel_all()
