"""Joplin-backed data source and image extractor."""

from __future__ import annotations

import logging
import mimetypes
import re
from pathlib import Path
from typing import Any

import httpx

from .errors import JoplinApiError
from .joplin_client import JoplinClient
from .models import Note, Notebook, Resource

logger = logging.getLogger(__name__)

NOTE_FIELDS = "id,title,body,parent_id,created_time,updated_time"
FOLDER_FIELDS = "id,title,parent_id"
RESOURCE_FIELDS = "id,title,mime,filename,file_extension,size,created_time,updated_time"

# Joplin links resources and notes alike as ``:/<32 hex chars>``; only image
# embeds are taken to be resources.
_NATIVE_ID = r":/([0-9a-fA-F]{32})(?![0-9a-fA-F])"
MARKDOWN_IMAGE_RE = re.compile(r"(!\[[^\]]*\]\(\s*<?)" + _NATIVE_ID)
HTML_IMAGE_RE = re.compile(r"(<img\b[^>]*?\bsrc\s*=\s*[\"']?)" + _NATIVE_ID, re.IGNORECASE)


def build_notebook_tree(folders: list[dict[str, Any]]) -> list[Notebook]:
    known = {str(f.get("id")) for f in folders}
    by_parent: dict[str | None, list[dict[str, Any]]] = {}
    for f in folders:
        # Root folders come back with an empty parent_id.
        parent_id = f.get("parent_id") or None
        if parent_id is not None and parent_id not in known:
            logger.warning(
                "Folder %s has unknown parent %s; exporting it as a root", f.get("id"), parent_id
            )
            parent_id = None
        by_parent.setdefault(parent_id, []).append(f)

    def build(parent_id: str | None) -> list[Notebook]:
        children = []
        siblings = sorted(
            by_parent.get(parent_id, []),
            key=lambda x: (x.get("title") or "", str(x.get("id"))),
        )
        for f in siblings:
            node = Notebook(
                id=str(f.get("id")),
                title=f.get("title"),
                parent_id=parent_id,
                children=build(str(f.get("id"))),
            )
            children.append(node)
        return children

    return build(None)


def to_internal_references(body: str | None, uri_scheme: str) -> str | None:
    """Present embedded Joplin images in the exporter's internal URI scheme.

    Plain links such as ``[other note](:/id)`` are left as they are.
    """
    if not body:
        return body

    def internal(m: re.Match[str]) -> str:
        return f"{m.group(1)}{uri_scheme}://file:{m.group(2)}"

    body = MARKDOWN_IMAGE_RE.sub(internal, body)
    return HTML_IMAGE_RE.sub(internal, body)


class JoplinNoteSource:
    """Read-only queries against the Joplin Data API."""

    def __init__(self, client: JoplinClient, *, uri_scheme: str = "joplin") -> None:
        self._client = client
        self._uri_scheme = uri_scheme

    def _note(self, raw: dict[str, Any]) -> Note:
        note = Note.model_validate(raw)
        return note.model_copy(update={"body": to_internal_references(note.body, self._uri_scheme)})

    async def notebook_tree(self) -> list[Notebook]:
        folders = await self._client.get_all("/folders", params={"fields": FOLDER_FIELDS})
        return build_notebook_tree(folders)

    async def notes_in_notebook(self, notebook_id: str) -> list[Note]:
        raw = await self._client.get_all(
            f"/folders/{notebook_id}/notes", params={"fields": NOTE_FIELDS}
        )
        return [self._note(item) for item in raw]

    async def load_note(self, note_id: str) -> Note | None:
        try:
            raw = await self._client.request_json(
                f"/notes/{note_id}", params={"fields": NOTE_FIELDS}
            )
        except JoplinApiError as exc:
            if exc.status_code == 404:
                return None
            raise
        return self._note(raw)


def resource_extension(resource: Resource) -> str:
    if resource.file_extension:
        return resource.file_extension.lstrip(".")
    if resource.mime:
        guessed = mimetypes.guess_extension(resource.mime)
        if guessed:
            return guessed.lstrip(".")
    return ""


class JoplinResourceExporter:
    """Writes the resource behind ``<scheme>://file:<id>`` into a directory."""

    def __init__(self, client: JoplinClient) -> None:
        self._client = client

    async def __call__(self, uri: str, dest_dir: Path) -> str | None:
        _, _, resource_id = uri.partition("file:")
        if not resource_id:
            return None
        try:
            meta = Resource.model_validate(
                await self._client.request_json(
                    f"/resources/{resource_id}", params={"fields": RESOURCE_FIELDS}
                )
            )
            data, _headers = await self._client.request_bytes(f"/resources/{resource_id}/file")
        except (JoplinApiError, httpx.HTTPError) as exc:
            logger.warning("Could not export image %s: %s", uri, exc)
            return None

        ext = resource_extension(meta)
        path = Path(dest_dir) / (f"{meta.id}.{ext}" if ext else meta.id)
        path.write_bytes(data)
        return str(path)
