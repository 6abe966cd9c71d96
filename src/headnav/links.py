"""Markdown links to headings inside notes.

Links use the internal note-link form ``[label](:/<noteId>#<anchor>)`` where
the label is ``"<heading> @ <note title>"``.
"""

from __future__ import annotations


def escape_link_text(text: str) -> str:
    """Backslash-escape backslashes and square brackets for a link label."""
    return text.replace("\\", "\\\\").replace("[", "\\[").replace("]", "\\]")


def format_heading_link(heading_text: str, note_title: str, note_id: str, anchor: str) -> str:
    label = f"{escape_link_text(heading_text)} @ {escape_link_text(note_title)}"
    return f"[{label}](:/{note_id}#{anchor})"
