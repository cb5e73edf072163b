"""CLI entry point for exporting Joplin notebooks to Markdown."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

import httpx
from pydantic import ValidationError

from .errors import ExportError, JoplinApiError, NoteNotFoundError
from .exporter import MarkdownExporter
from .joplin_client import JoplinClient
from .joplin_source import JoplinNoteSource, JoplinResourceExporter
from .orchestrator import ExportOrchestrator, ExportReport, PresetPrompt
from .settings import Settings


class ConsoleNotifier:
    async def info(self, message: str, detail: str) -> None:
        print(f"{message}\n  {detail}")

    async def error(self, message: str, detail: str) -> None:
        print(f"Error: {message}: {detail}", file=sys.stderr)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="joplin-markdown-export",
        description="Export Joplin notebooks and notes to a tree of Markdown files",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging (very verbose)",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    all_cmd = commands.add_parser("all", help="Export every notebook")
    all_cmd.add_argument("destination", help="Output directory")

    book_cmd = commands.add_parser(
        "notebook", help="Export one notebook directly into the output directory"
    )
    book_cmd.add_argument("notebook_id", help="Joplin folder id")
    book_cmd.add_argument("destination", help="Output directory")

    note_cmd = commands.add_parser("note", help="Export a single note")
    note_cmd.add_argument("note_id", help="Joplin note id")
    note_cmd.add_argument("destination", help="Output .md file or existing directory")

    notes_cmd = commands.add_parser("notes", help="Export several notes into one directory")
    notes_cmd.add_argument("destination", help="Output directory")
    notes_cmd.add_argument("note_ids", nargs="+", help="Joplin note ids")

    return parser


async def run(args: argparse.Namespace, settings: Settings) -> ExportReport | None:
    async with JoplinClient(
        base_url=str(settings.joplin_base_url),
        token=settings.joplin_token,
        timeout_seconds=settings.http_timeout_seconds,
    ) as client:
        source = JoplinNoteSource(client, uri_scheme=settings.export_uri_scheme)
        exporter = MarkdownExporter(
            source,
            JoplinResourceExporter(client),
            uri_scheme=settings.export_uri_scheme,
            images_dir_name=settings.export_images_dir,
            filename_replacement=settings.export_filename_replacement,
        )
        orchestrator = ExportOrchestrator(
            source, exporter, PresetPrompt(args.destination), ConsoleNotifier()
        )

        if args.command == "all":
            return await orchestrator.export_all()
        if args.command == "notebook":
            return await orchestrator.export_notebook(args.notebook_id)
        if args.command == "note":
            note = await source.load_note(args.note_id)
            if note is None:
                raise NoteNotFoundError(args.note_id)
            return await orchestrator.export_note(note)
        return await orchestrator.export_notes(args.note_ids)


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the joplin-markdown-export CLI."""
    args = build_parser().parse_args(argv)

    # Configure logging
    if args.debug:
        log_level = logging.DEBUG
    elif args.verbose:
        log_level = logging.INFO
    else:
        log_level = logging.WARNING

    logging.basicConfig(
        level=log_level,
        format="%(levelname)s: %(message)s",
    )

    try:
        settings = Settings()
    except ValidationError as e:
        print(f"Error: invalid configuration:\n{e}", file=sys.stderr)
        return 1

    try:
        report = asyncio.run(run(args, settings))
    except (ExportError, JoplinApiError, httpx.HTTPError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if report is None:
        return 1
    print(f"Files written: {report.files_written}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
