from __future__ import annotations

import os
from pathlib import Path

import pytest

from conftest import FakeImageExporter, FakeSource, list_tree, make_exporter, note
from joplin_markdown_export.exporter import add_title_to_markdown, find_notebook
from joplin_markdown_export.models import ExportTarget, Notebook

pytestmark = pytest.mark.anyio


def _tree() -> list[Notebook]:
    return [
        Notebook(
            id="work",
            title="Work",
            children=[
                Notebook(id="proj", title="Projects/2024", children=[Notebook(id="deep", title="Deep")]),
                Notebook(id="misc", title="Misc"),
            ],
        ),
        Notebook(id="home", title="Home"),
    ]


def test_add_title_to_markdown() -> None:
    assert add_title_to_markdown("body", "Title") == "# Title\n\nbody"


def test_find_notebook_depth_first() -> None:
    tree = _tree()
    assert find_notebook("deep", tree).title == "Deep"
    assert find_notebook("home", tree).title == "Home"
    assert find_notebook("nope", tree) is None


def test_find_notebook_first_match_wins() -> None:
    tree = [
        Notebook(id="a", title="A", children=[Notebook(id="dup", title="first")]),
        Notebook(id="dup", title="second"),
    ]
    assert find_notebook("dup", tree).title == "first"


async def test_note_without_body_is_skipped(tmp_path: Path) -> None:
    exporter = make_exporter(FakeSource([]))

    assert await exporter.export_note(note("n1", "Empty", body=""), tmp_path) is None
    assert await exporter.export_note(note("n2", "None", body=None), tmp_path) is None
    assert list(tmp_path.iterdir()) == []


async def test_note_is_written_with_title_and_timestamps(tmp_path: Path) -> None:
    exporter = make_exporter(FakeSource([]))
    n = note("n1", "Hello", body="<p>world</p>", updated=1_650_000_000_500)

    path = await exporter.export_note(n, tmp_path)

    assert path == tmp_path / "Hello.md"
    st = os.stat(path)
    assert st.st_mtime == pytest.approx(1_650_000_000.5, abs=1)
    assert st.st_atime == pytest.approx(1_650_000_000.5, abs=1)
    assert path.read_text(encoding="utf-8") == "# Hello\n\nworld"


async def test_explicit_filename_is_used(tmp_path: Path) -> None:
    exporter = make_exporter(FakeSource([]))

    path = await exporter.export_note(note("n1", "Hello"), tmp_path, "custom name.md")

    assert path == tmp_path / "custom name.md"


async def test_title_is_sanitized(tmp_path: Path) -> None:
    exporter = make_exporter(FakeSource([]))

    path = await exporter.export_note(note("n1", "Weekly/Report?"), tmp_path)

    assert path.parent == tmp_path
    assert path.is_file()
    assert "/" not in path.name and "?" not in path.name
    assert path.read_text(encoding="utf-8").startswith("# Weekly/Report?\n\n")


async def test_images_are_extracted_next_to_note(tmp_path: Path) -> None:
    images = FakeImageExporter({"img1": 300})
    exporter = make_exporter(FakeSource([]), images)
    n = note("n1", "Pics", body='<img src="joplin://file:img1" alt="a" width="600">')

    path = await exporter.export_note(n, tmp_path)

    assert path.read_text(encoding="utf-8") == "# Pics\n\n![a|600](images/img1.png)"
    assert (tmp_path / "images" / "img1.png").is_file()
    assert n.body == '<img src="joplin://file:img1" alt="a" width="600">'


async def test_colliding_titles_last_writer_wins(tmp_path: Path) -> None:
    exporter = make_exporter(FakeSource([]))

    await exporter.export_note(note("n1", "Same", body="first"), tmp_path)
    await exporter.export_note(note("n2", "Same", body="second"), tmp_path)

    assert [p.name for p in tmp_path.iterdir()] == ["Same.md"]
    assert (tmp_path / "Same.md").read_text(encoding="utf-8") == "# Same\n\nsecond"


async def test_tree_is_mirrored_in_order(tmp_path: Path) -> None:
    source = FakeSource(
        _tree(),
        {
            "work": [note("w1", "Plan")],
            "proj": [note("p1", "Spec"), note("p2", "Blank", body="")],
            "deep": [note("d1", "Bottom")],
            "home": [note("h1", "Groceries")],
        },
    )
    exporter = make_exporter(source)

    written = 0
    for notebook in source.tree:
        written += await exporter.export_notebook(notebook, ExportTarget(tmp_path))

    assert written == 4
    assert source.queried == ["work", "proj", "deep", "misc", "home"]
    assert list_tree(tmp_path) == [
        "Home",
        "Home/Groceries.md",
        "Work",
        "Work/Misc",
        "Work/Plan.md",
        "Work/Projects-2024",
        "Work/Projects-2024/Deep",
        "Work/Projects-2024/Deep/Bottom.md",
        "Work/Projects-2024/Spec.md",
    ]


async def test_notebook_without_subdirectory(tmp_path: Path) -> None:
    source = FakeSource(_tree(), {"work": [note("w1", "Plan")], "misc": [note("m1", "Odds")]})
    exporter = make_exporter(source)

    await exporter.export_notebook(source.tree[0], ExportTarget(tmp_path, create_subdirectory=False))

    assert (tmp_path / "Plan.md").is_file()
    assert (tmp_path / "Misc" / "Odds.md").is_file()
    assert not (tmp_path / "Work").exists()


async def test_export_is_idempotent(tmp_path: Path) -> None:
    source = FakeSource(
        _tree(),
        {"work": [note("w1", "Plan", body="![x](joplin://file:img1)\n<img src=\"joplin://file:img1\" width=\"10\">")]},
    )
    exporter = make_exporter(source, FakeImageExporter({"img1": 300}))

    await exporter.export_notebook(source.tree[0], ExportTarget(tmp_path))
    first = (tmp_path / "Work" / "Plan.md").read_bytes()
    await exporter.export_notebook(source.tree[0], ExportTarget(tmp_path))

    assert (tmp_path / "Work" / "Plan.md").read_bytes() == first
    assert first == b"# Plan\n\n![x](images/img1.png)\n![IMAGE|10](images/img1.png)"


async def test_cyclic_notebook_is_visited_once(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    loop = Notebook(id="loop", title="Loop")
    loop.children.append(loop)
    source = FakeSource([loop], {"loop": [note("l1", "Once")]})

    written = await make_exporter(source).export_notebook(loop, ExportTarget(tmp_path))

    assert written == 1
    assert source.queried == ["loop"]
    assert "reached twice" in caplog.text
