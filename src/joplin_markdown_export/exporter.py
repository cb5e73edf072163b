"""Write notes and notebook trees to disk as Markdown files."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Protocol

from .images import ImageExporter, SizeProbe, read_image_size, rewrite_images
from .models import ExportTarget, Note, Notebook
from .sanitize import sanitize_filename

logger = logging.getLogger(__name__)


class NoteSource(Protocol):
    async def notebook_tree(self) -> list[Notebook]: ...

    async def notes_in_notebook(self, notebook_id: str) -> list[Note]: ...

    async def load_note(self, note_id: str) -> Note | None: ...


def add_title_to_markdown(body: str, title: str | None) -> str:
    return f"# {title or ''}\n\n{body}"


def find_notebook(notebook_id: str, tree: list[Notebook]) -> Notebook | None:
    """Depth-first search; the first match wins."""
    for notebook in tree:
        if notebook.id == notebook_id:
            return notebook
        found = find_notebook(notebook_id, notebook.children)
        if found is not None:
            return found
    return None


def _note_timestamp(note: Note) -> float | None:
    millis = note.updated_time if note.updated_time is not None else note.created_time
    if millis is None:
        return None
    return millis / 1000


class MarkdownExporter:
    """Exports single notes and whole notebook trees.

    Every step runs to completion before the next one starts, so notes that
    sanitize to the same filename overwrite each other in export order.
    """

    def __init__(
        self,
        source: NoteSource,
        export_image: ImageExporter,
        *,
        uri_scheme: str = "joplin",
        images_dir_name: str = "images",
        filename_replacement: str = "-",
        probe: SizeProbe = read_image_size,
    ) -> None:
        self._source = source
        self._export_image = export_image
        self._uri_scheme = uri_scheme
        self._images_dir_name = images_dir_name
        self._replacement = filename_replacement
        self._probe = probe

    def note_filename(self, note: Note) -> str:
        return sanitize_filename(note.title, self._replacement) + ".md"

    async def export_note(
        self,
        note: Note,
        dest_dir: Path | str,
        filename: str | None = None,
    ) -> Path | None:
        """Write ``note`` into ``dest_dir``; notes without a body are skipped."""
        if not note.body:
            logger.debug("Skipping note %s: empty body", note.id)
            return None

        dest_dir = Path(dest_dir)
        file_path = dest_dir / (filename or self.note_filename(note))
        body = add_title_to_markdown(note.body, note.title)
        body = await rewrite_images(
            body,
            dest_dir,
            dest_dir,
            export_image=self._export_image,
            uri_scheme=self._uri_scheme,
            images_dir_name=self._images_dir_name,
            probe=self._probe,
        )

        file_path.write_text(body, encoding="utf-8")
        timestamp = _note_timestamp(note)
        if timestamp is not None:
            os.utime(file_path, (timestamp, timestamp))
        logger.debug("Exported note %s to %s", note.id, file_path)
        return file_path

    async def export_notebook(self, notebook: Notebook, target: ExportTarget) -> int:
        """Export ``notebook`` and its descendants; returns the files written."""
        return await self._export_notebook(notebook, target, set())

    async def _export_notebook(
        self, notebook: Notebook, target: ExportTarget, visited: set[str]
    ) -> int:
        if notebook.id in visited:
            logger.warning("Notebook %s reached twice; skipping", notebook.id)
            return 0
        visited.add(notebook.id)

        directory = Path(target.directory)
        if target.create_subdirectory:
            directory = directory / sanitize_filename(notebook.title, self._replacement)
        directory.mkdir(parents=True, exist_ok=True)

        written = 0
        for note in await self._source.notes_in_notebook(notebook.id):
            if await self.export_note(note, directory) is not None:
                written += 1

        for child in notebook.children:
            written += await self._export_notebook(child, ExportTarget(directory), visited)
        return written
