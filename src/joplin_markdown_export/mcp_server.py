"""FastMCP server definition (export tools + notebook browsing)."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

from mcp.server.fastmcp import Context, FastMCP
from pydantic import BaseModel, Field

from .errors import NoteNotFoundError
from .exporter import MarkdownExporter
from .joplin_client import JoplinClient
from .joplin_source import JoplinNoteSource, JoplinResourceExporter
from .models import Note, Notebook, PagedResult
from .orchestrator import DestinationPrompt, ExportOrchestrator, ExportReport, PresetPrompt
from .settings import Settings


@dataclass(slots=True)
class AppContext:
    settings: Settings
    joplin: JoplinClient
    source: JoplinNoteSource
    exporter: MarkdownExporter


class DestinationChoice(BaseModel):
    path: str = Field(description="Path on the server's filesystem")


class ElicitPrompt:
    """Asks the MCP client's user for a destination path."""

    def __init__(self, ctx: Context) -> None:
        self._ctx = ctx

    async def _ask(self, message: str) -> str | None:
        result = await self._ctx.elicit(message=message, schema=DestinationChoice)
        if result.action != "accept":
            return None
        return result.data.path.strip() or None

    async def choose_directory(self, title: str) -> str | None:
        return await self._ask(title)

    async def choose_save_path(self, title: str, default_name: str) -> str | None:
        path = await self._ask(f"{title} (file name defaults to {default_name})")
        if path is None:
            return None
        return await PresetPrompt(path).choose_save_path(title, default_name)


class ContextNotifier:
    """Reports export results as MCP log messages."""

    def __init__(self, ctx: Context) -> None:
        self._ctx = ctx

    async def info(self, message: str, detail: str) -> None:
        await self._ctx.info(f"{message} ({detail})")

    async def error(self, message: str, detail: str) -> None:
        await self._ctx.error(f"{message}: {detail}")


def _paged_result(raw: dict[str, Any], *, page: int, limit: int) -> PagedResult:
    items = list(raw.get("items") or [])
    has_more = bool(raw.get("has_more"))
    return PagedResult(
        items=items,
        page=page,
        limit=limit,
        has_more=has_more,
        next_page=(page + 1 if has_more else None),
    )


def _outcome(report: ExportReport | None) -> dict[str, Any]:
    if report is None:
        return {"exported": False}
    return {
        "exported": True,
        "directory": str(report.directory),
        "files_written": report.files_written,
    }


def build_orchestrator(
    app: AppContext, ctx: Context, destination: str | None
) -> ExportOrchestrator:
    prompt: DestinationPrompt = PresetPrompt(destination) if destination else ElicitPrompt(ctx)
    return ExportOrchestrator(app.source, app.exporter, prompt, ContextNotifier(ctx))


async def require_note(app: AppContext, note_id: str) -> Note:
    note = await app.source.load_note(note_id)
    if note is None:
        raise NoteNotFoundError(note_id)
    return note


def create_mcp_server(settings: Settings) -> FastMCP:
    @asynccontextmanager
    async def lifespan(_: FastMCP) -> AsyncIterator[AppContext]:
        joplin = JoplinClient(
            base_url=str(settings.joplin_base_url),
            token=settings.joplin_token,
            timeout_seconds=settings.http_timeout_seconds,
        )
        source = JoplinNoteSource(joplin, uri_scheme=settings.export_uri_scheme)
        exporter = MarkdownExporter(
            source,
            JoplinResourceExporter(joplin),
            uri_scheme=settings.export_uri_scheme,
            images_dir_name=settings.export_images_dir,
            filename_replacement=settings.export_filename_replacement,
        )
        try:
            yield AppContext(settings=settings, joplin=joplin, source=source, exporter=exporter)
        finally:
            await joplin.aclose()

    mcp = FastMCP(
        "Joplin Markdown Export",
        instructions=(
            "Export Joplin notebooks and notes to a directory tree of Markdown files on the "
            "server's filesystem. Browse notebooks first to find ids. Export tools ask for a "
            "destination unless one is passed."
        ),
        lifespan=lifespan,
        # Configure Streamable HTTP behavior (FastMCP.streamable_http_app() no longer accepts these
        # as parameters in newer mcp versions).
        stateless_http=True,
        json_response=True,
    )

    def orchestrator(ctx: Context, destination: str | None) -> ExportOrchestrator:
        return build_orchestrator(ctx.request_context.lifespan_context, ctx, destination)

    @mcp.tool()
    async def notebooks_tree(ctx: Context) -> list[Notebook]:
        """Return the notebook tree."""
        app: AppContext = ctx.request_context.lifespan_context
        return await app.source.notebook_tree()

    @mcp.tool()
    async def notes_list(
        ctx: Context,
        notebook_id: str | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> PagedResult:
        """List notes (optionally within a notebook)."""
        app: AppContext = ctx.request_context.lifespan_context
        path = f"/folders/{notebook_id}/notes" if notebook_id else "/notes"
        raw = await app.joplin.get_paged(
            path, page=page, limit=limit, params={"fields": "id,title,parent_id,updated_time"}
        )
        return _paged_result(raw, page=page, limit=limit)

    @mcp.tool()
    async def export_all(ctx: Context, destination: str | None = None) -> dict[str, Any]:
        """Export every notebook, one subdirectory per notebook."""
        return _outcome(await orchestrator(ctx, destination).export_all())

    @mcp.tool()
    async def export_notebook(
        notebook_id: str, ctx: Context, destination: str | None = None
    ) -> dict[str, Any]:
        """Export one notebook and its sub-notebooks directly into the destination."""
        return _outcome(await orchestrator(ctx, destination).export_notebook(notebook_id))

    @mcp.tool()
    async def export_note(
        note_id: str, ctx: Context, destination: str | None = None
    ) -> dict[str, Any]:
        """Export a single note to a Markdown file (destination may be a directory)."""
        note = await require_note(ctx.request_context.lifespan_context, note_id)
        return _outcome(await orchestrator(ctx, destination).export_note(note))

    @mcp.tool()
    async def export_notes(
        note_ids: list[str], ctx: Context, destination: str | None = None
    ) -> dict[str, Any]:
        """Export the given notes into one directory; unknown ids are skipped."""
        return _outcome(await orchestrator(ctx, destination).export_notes(note_ids))

    return mcp
