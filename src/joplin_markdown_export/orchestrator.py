"""Top-level export entry points.

Each entry point asks the user for a destination, runs the export strictly in
sequence and reports a single success or failure. A cancelled prompt ends the
invocation silently.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from .errors import NotebookNotFoundError
from .exporter import MarkdownExporter, NoteSource, find_notebook
from .models import ExportTarget, Note

logger = logging.getLogger(__name__)


class DestinationPrompt(Protocol):
    async def choose_directory(self, title: str) -> str | None: ...

    async def choose_save_path(self, title: str, default_name: str) -> str | None: ...


class Notifier(Protocol):
    async def info(self, message: str, detail: str) -> None: ...

    async def error(self, message: str, detail: str) -> None: ...


class PresetPrompt:
    """Answers every prompt with a path chosen up front."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self._path = os.fspath(path)

    async def choose_directory(self, title: str) -> str | None:
        return self._path

    async def choose_save_path(self, title: str, default_name: str) -> str | None:
        if os.path.isdir(self._path):
            return os.path.join(self._path, default_name)
        return self._path


@dataclass(frozen=True, slots=True)
class ExportReport:
    directory: Path
    files_written: int


class ExportOrchestrator:
    def __init__(
        self,
        source: NoteSource,
        exporter: MarkdownExporter,
        prompt: DestinationPrompt,
        notifier: Notifier,
    ) -> None:
        self._source = source
        self._exporter = exporter
        self._prompt = prompt
        self._notifier = notifier

    async def _report_failure(self, exc: Exception) -> None:
        logger.exception("Failed to export")
        await self._notifier.error("Failed to export", str(exc))

    async def export_all(self) -> ExportReport | None:
        dest = await self._prompt.choose_directory("Select a directory to export all notes")
        if not dest:
            return None
        directory = Path(dest)
        try:
            written = 0
            for notebook in await self._source.notebook_tree():
                written += await self._exporter.export_notebook(notebook, ExportTarget(directory))
        except Exception as exc:
            await self._report_failure(exc)
            return None

        logger.info("Finished exporting all notes")
        await self._notifier.info("Finished exporting all notes", f"Directory: {directory}")
        return ExportReport(directory, written)

    async def export_notebook(self, notebook_id: str) -> ExportReport | None:
        try:
            tree = await self._source.notebook_tree()
        except Exception as exc:
            await self._report_failure(exc)
            return None
        notebook = find_notebook(notebook_id, tree)
        if notebook is None:
            raise NotebookNotFoundError(notebook_id)

        dest = await self._prompt.choose_directory(
            f'Select a directory to export a notebook "{notebook.title}"'
        )
        if not dest:
            return None
        directory = Path(dest)
        try:
            written = await self._exporter.export_notebook(
                notebook, ExportTarget(directory, create_subdirectory=False)
            )
        except Exception as exc:
            await self._report_failure(exc)
            return None

        message = f'Finished exporting notes in "{notebook.title}"'
        logger.info(message)
        await self._notifier.info(message, f"Directory: {directory}")
        return ExportReport(directory, written)

    async def export_note(self, note: Note) -> ExportReport | None:
        dest = await self._prompt.choose_save_path(
            "Save Markdown File", self._exporter.note_filename(note)
        )
        if not dest:
            return None
        directory = Path(os.path.dirname(dest) or ".")
        try:
            path = await self._exporter.export_note(note, directory, os.path.basename(dest))
        except Exception as exc:
            await self._report_failure(exc)
            return None

        message = f'Finished exporting "{note.title}"'
        logger.info(message)
        await self._notifier.info(message, f"File: {dest}")
        return ExportReport(directory, 0 if path is None else 1)

    async def export_notes(self, note_ids: Iterable[str]) -> ExportReport | None:
        dest = await self._prompt.choose_directory("Select Destination Directory")
        if not dest:
            return None
        directory = Path(dest)
        try:
            written = 0
            for note_id in note_ids:
                note = await self._source.load_note(note_id)
                if note is None:
                    continue
                if await self._exporter.export_note(note, directory) is not None:
                    written += 1
        except Exception as exc:
            await self._report_failure(exc)
            return None

        message = f"Finished exporting {written} notes"
        logger.info(message)
        await self._notifier.info(message, f"Directory: {directory}")
        return ExportReport(directory, written)
