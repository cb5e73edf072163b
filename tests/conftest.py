from __future__ import annotations

from pathlib import Path

import pytest
from PIL import Image

from joplin_markdown_export.exporter import MarkdownExporter
from joplin_markdown_export.models import Note, Notebook


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


def make_png(path: Path, width: int, height: int = 10) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGB", (width, height), color=(255, 0, 0)).save(path, format="PNG")
    return path


def note(
    note_id: str,
    title: str | None,
    body: str | None = "text",
    updated: int = 1_600_000_000_000,
) -> Note:
    return Note(
        id=note_id,
        title=title,
        body=body,
        created_time=updated - 86_400_000,
        updated_time=updated,
    )


class FakeSource:
    """In-memory notebook tree that records the order of queries."""

    def __init__(self, tree: list[Notebook], notes: dict[str, list[Note]] | None = None) -> None:
        self.tree = tree
        self.notes = notes or {}
        self.queried: list[str] = []

    async def notebook_tree(self) -> list[Notebook]:
        return self.tree

    async def notes_in_notebook(self, notebook_id: str) -> list[Note]:
        self.queried.append(notebook_id)
        return list(self.notes.get(notebook_id, []))

    async def load_note(self, note_id: str) -> Note | None:
        for notes in self.notes.values():
            for n in notes:
                if n.id == note_id:
                    return n
        return None


class FakeImageExporter:
    """Writes a PNG per known token; unknown tokens cannot be extracted."""

    def __init__(self, widths: dict[str, int] | None = None) -> None:
        self.widths = widths or {}
        self.calls: list[tuple[str, Path]] = []

    async def __call__(self, uri: str, dest_dir: Path) -> str | None:
        self.calls.append((uri, dest_dir))
        token = uri.partition("file:")[2]
        if token not in self.widths:
            return None
        return str(make_png(Path(dest_dir) / f"{token}.png", self.widths[token]))


class RecordingNotifier:
    def __init__(self) -> None:
        self.infos: list[tuple[str, str]] = []
        self.errors: list[tuple[str, str]] = []

    async def info(self, message: str, detail: str) -> None:
        self.infos.append((message, detail))

    async def error(self, message: str, detail: str) -> None:
        self.errors.append((message, detail))


class CancelledPrompt:
    def __init__(self) -> None:
        self.asked = 0

    async def choose_directory(self, title: str) -> str | None:
        self.asked += 1
        return None

    async def choose_save_path(self, title: str, default_name: str) -> str | None:
        self.asked += 1
        return None


def make_exporter(
    source: FakeSource, image_exporter: FakeImageExporter | None = None
) -> MarkdownExporter:
    return MarkdownExporter(source, image_exporter or FakeImageExporter())


def list_tree(root: Path) -> list[str]:
    return sorted(p.relative_to(root).as_posix() for p in root.rglob("*"))
