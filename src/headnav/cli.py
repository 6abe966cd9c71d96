"""Command-line entrypoint.

Responsibilities (and nothing more):
- Configure structlog
- Read a markdown document from a file or stdin
- Print its heading outline, or a link to one of its headings
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

import structlog

from headnav import __version__
from headnav.config import Settings
from headnav.errors import ErrorCode, HeadNavError
from headnav.links import format_heading_link
from headnav.parser import extract_headings, format_outline

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(settings: Settings) -> None:
    """Configure structlog. Called once at startup before any log statements."""
    log_level = logging.getLevelNamesMapping()[settings.logging.level]

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if settings.logging.format == "json":
        processors = [*shared_processors, structlog.processors.JSONRenderer()]
    else:
        processors = [*shared_processors, structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        # Logs go to stderr; stdout carries the command output
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def _read_document(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    return Path(path).read_text(encoding="utf-8")


def _cmd_outline(args: argparse.Namespace) -> int:
    headings = extract_headings(_read_document(args.path))
    if args.json:
        print(json.dumps([heading.model_dump() for heading in headings], indent=2))
    elif headings:
        print(format_outline(headings))
    return 0


def _cmd_link(args: argparse.Namespace) -> int:
    headings = extract_headings(_read_document(args.path))
    heading = next((h for h in headings if h.anchor == args.anchor), None)
    if heading is None:
        raise HeadNavError(
            code=ErrorCode.HEADING_NOT_FOUND,
            message=f"No heading with anchor '{args.anchor}'.",
            suggestion="Run 'headnav outline --json' to list the available anchors.",
        )
    print(format_heading_link(heading.text, args.title or "Untitled", args.note_id, heading.anchor))
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="headnav", description="Markdown heading navigation tools.")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    commands = parser.add_subparsers(dest="command", required=True)

    outline = commands.add_parser("outline", help="Print the heading outline of a document.")
    outline.add_argument("path", help="Markdown file, or '-' for stdin.")
    outline.add_argument("--json", action="store_true", help="Emit heading records as JSON.")
    outline.set_defaults(handler=_cmd_outline)

    link = commands.add_parser("link", help="Print a note link to one heading.")
    link.add_argument("path", help="Markdown file, or '-' for stdin.")
    link.add_argument("anchor", help="Anchor of the target heading.")
    link.add_argument("--note-id", required=True, help="Id of the note holding the document.")
    link.add_argument("--title", default="", help="Note title used in the link label.")
    link.set_defaults(handler=_cmd_link)

    return parser


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> int:
    settings = Settings()
    _setup_logging(settings)

    args = _build_parser().parse_args(argv)
    try:
        return args.handler(args)
    except OSError as exc:
        log.error("document_read_failed", path=args.path, error=str(exc))
        return 1
    except HeadNavError as exc:
        print(json.dumps(exc.to_dict()), file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
