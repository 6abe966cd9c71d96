"""End-to-end tests: editor ↔ navigator ↔ list view ↔ scroll controller ↔ host."""

from __future__ import annotations

from unittest.mock import AsyncMock

from structlog.testing import capture_logs

from headnav.config import Settings
from headnav.host import HostService
from headnav.models.editor import TextRange
from headnav.models.messages import Note
from headnav.navigator import HeadingNavigator
from headnav.parser import extract_headings

# Offset inside the "## Installation" section of SAMPLE_DOCUMENT
INSTALLATION_CARET = 30


def _texts(navigator: HeadingNavigator) -> list[str]:
    assert navigator.list_view is not None
    return [item.text for item in navigator.list_view.items]


class TestOpen:
    async def test_selects_heading_under_caret(self, navigator, editor, wait) -> None:
        editor.selection = TextRange.caret(INSTALLATION_CARET)
        navigator.open()

        assert navigator.is_open
        assert navigator.state is not None
        assert navigator.state.selected is not None
        assert navigator.state.selected.text == "Installation"
        assert navigator.list_view.selected_item.text == "Installation"
        await wait()

    async def test_initial_preview_jumps_without_focus(self, navigator, editor, wait) -> None:
        editor.selection = TextRange.caret(INSTALLATION_CARET)
        navigator.open()
        await wait()

        installation = navigator.headings[1]
        assert editor.selection == TextRange.caret(installation.start)
        assert ("scroll_into_view", TextRange.caret(installation.start), "start") in editor.calls
        assert editor.count("focus") == 0

    async def test_empty_document(self, navigator, editor, wait) -> None:
        editor.text = "no headings here"
        navigator.open()
        await wait()

        assert navigator.list_view.items == []
        assert navigator.list_view.empty_message == "No headings found"
        assert editor.count("scroll_into_view") == 0

    async def test_reopen_resets_filter(self, navigator, editor, wait) -> None:
        navigator.open()
        navigator.list_view.handle_input("faq")
        await wait()
        assert _texts(navigator) == ["FAQ"]

        navigator.close()
        navigator.open()

        assert navigator.list_view.input_text == ""
        assert len(_texts(navigator)) == 5
        await wait()


class TestKeyboardNavigation:
    async def test_arrow_previews_next_heading(self, navigator, editor, wait) -> None:
        navigator.open()
        await wait()
        navigator.list_view.handle_key("ArrowDown")
        await wait()

        assert navigator.is_open
        assert editor.selection == TextRange.caret(navigator.headings[1].start)
        assert editor.count("focus") == 0

    async def test_enter_jumps_focuses_and_closes(self, navigator, editor, wait) -> None:
        navigator.open()
        await wait()
        navigator.list_view.handle_key("ArrowUp")
        navigator.list_view.handle_key("Enter")

        assert not navigator.is_open
        faq = navigator.headings[-1]
        assert editor.selection == TextRange.caret(faq.start)
        assert editor.count("focus") >= 1
        await wait()

    async def test_filter_then_enter(self, navigator, editor, wait) -> None:
        navigator.open()
        navigator.list_view.handle_input("advanced")
        navigator.list_view.handle_key("Enter")

        assert not navigator.is_open
        assert editor.selection == TextRange.caret(navigator.headings[3].start)
        await wait()

    async def test_escape_restores_original_position(self, navigator, editor, wait) -> None:
        editor.selection = TextRange.caret(INSTALLATION_CARET)
        editor.scroll_top = 50.0
        navigator.open()
        navigator.list_view.handle_key("ArrowDown")
        navigator.list_view.handle_key("ArrowDown")
        await wait()
        assert editor.selection != TextRange.caret(INSTALLATION_CARET)

        navigator.list_view.handle_key("Escape")

        assert not navigator.is_open
        assert editor.selection == TextRange.caret(INSTALLATION_CARET)
        assert editor.scroll_top == 50.0
        assert editor.calls[-1] == ("focus",)

    async def test_blur_keeps_previewed_position(self, navigator, editor, wait) -> None:
        navigator.open()
        navigator.list_view.handle_key("ArrowDown")
        await wait()

        navigator.list_view.handle_outside_pointer_down()

        assert not navigator.is_open
        assert editor.selection == TextRange.caret(navigator.headings[1].start)
        assert editor.count("restore_scroll") == 0

    async def test_click_jumps_to_heading(self, navigator, editor, wait) -> None:
        navigator.open()
        target = navigator.headings[2]
        navigator.list_view.handle_click(target.id)

        assert not navigator.is_open
        assert editor.selection == TextRange.caret(target.start)
        await wait()


class TestLifecycle:
    async def test_toggle(self, navigator, editor, wait) -> None:
        navigator.toggle()
        assert navigator.is_open
        navigator.toggle()
        assert not navigator.is_open
        assert editor.count("focus") == 1
        await wait()

    async def test_toggle_normalises_dimensions(self, navigator, wait) -> None:
        navigator.toggle({"width": 5000, "max_height_ratio": "tall"})
        assert navigator.dimensions.width == 640
        assert navigator.dimensions.max_height_ratio == 0.75
        assert navigator.list_view.dimensions == navigator.dimensions
        assert navigator.list_view.panel_size(800) == (640, 600)
        await wait()

    async def test_reopen_applies_new_dimensions(self, navigator, wait) -> None:
        navigator.toggle()
        navigator.toggle()
        navigator.toggle({"width": 100, "max_height_ratio": 0.5})
        assert navigator.list_view.panel_size(1000) == (240, 500)
        await wait()

    async def test_close_cancels_scroll_verification(self, editor, wait) -> None:
        settings = Settings(
            navigation={"filter_debounce_ms": 0, "preview_debounce_ms": 0},
            scroll={"first_delay_ms": 50},
        )
        navigator = HeadingNavigator(editor, settings=settings)
        navigator.open()
        await wait()
        assert navigator.controller.session_for(editor.view_id) is not None

        navigator.close()

        assert navigator.controller.session_for(editor.view_id) is None
        await wait(0.1)
        assert editor.measure_count == 0

    async def test_close_twice_is_harmless(self, navigator, wait) -> None:
        navigator.open()
        navigator.close()
        navigator.close()
        assert not navigator.is_open
        await wait()


class TestDocumentUpdates:
    async def test_edit_refreshes_open_panel(self, navigator, editor, wait) -> None:
        navigator.open()
        await wait()
        scrolls_before = editor.count("scroll_into_view")

        editor.text = editor.text + "\n\n## Changelog"
        navigator.handle_update(doc_changed=True)

        assert _texts(navigator)[-1] == "Changelog"
        await wait()
        # Document-driven refreshes never move the caret
        assert editor.count("scroll_into_view") == scrolls_before

    async def test_caret_move_updates_selection(self, navigator, editor, wait) -> None:
        navigator.open()
        await wait()

        editor.selection = TextRange.caret(navigator.headings[-1].start + 2)
        navigator.handle_update(selection_set=True)

        assert navigator.state.selected.text == "FAQ"

    async def test_edit_while_closed_only_reextracts(self, navigator, editor) -> None:
        editor.text = "# Only"
        navigator.handle_update(doc_changed=True)
        assert navigator.headings == extract_headings("# Only")
        assert not navigator.is_open


class TestCopyLink:
    async def test_copy_posts_camel_case_message(
        self, navigator, post_message: AsyncMock, wait
    ) -> None:
        navigator.open()
        usage = navigator.headings[2]
        navigator.list_view.handle_copy_click(usage.id)
        await wait()

        post_message.assert_awaited_once_with(
            {
                "type": "copyHeadingLink",
                "noteId": "note-1",
                "headingText": "Usage",
                "headingAnchor": "usage",
            }
        )
        assert navigator.is_open

    async def test_copy_task_held_until_done(
        self, navigator, post_message: AsyncMock, wait
    ) -> None:
        navigator.request_copy(navigator.headings[0])
        assert len(navigator._copy_tasks) == 1
        await wait()
        post_message.assert_awaited_once()
        assert navigator._copy_tasks == set()

    async def test_missing_note_id_skips_request(self, editor, fast_settings, wait) -> None:
        post_message = AsyncMock()
        navigator = HeadingNavigator(
            editor, settings=fast_settings, post_message=post_message, resolve_note_id=lambda: None
        )
        navigator.open()
        with capture_logs() as logs:
            await navigator.send_copy_request(navigator.headings[0])

        post_message.assert_not_awaited()
        assert logs[0]["event"] == "heading_link_copy_skipped"
        navigator.close()
        await wait()

    async def test_transport_failure_is_logged(self, navigator, post_message: AsyncMock) -> None:
        post_message.side_effect = ConnectionError("host gone")
        with capture_logs() as logs:
            await navigator.send_copy_request(navigator.headings[0])
        assert logs[0]["event"] == "heading_link_copy_request_failed"

    async def test_copy_reaches_clipboard_through_host(self, editor, fast_settings, wait) -> None:
        notes = AsyncMock()
        notes.get_note.return_value = Note(id="note-1", title="Handbook")
        clipboard = AsyncMock()
        host = HostService(notes, clipboard)
        navigator = HeadingNavigator(
            editor,
            settings=fast_settings,
            post_message=host.handle_message,
            resolve_note_id=lambda: "note-1",
        )

        await navigator.send_copy_request(navigator.headings[3])

        clipboard.write_text.assert_awaited_once_with(
            "[Advanced usage @ Handbook](:/note-1#advanced-usage)"
        )
        await wait()
