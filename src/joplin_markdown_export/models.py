"""Notes, notebooks and export value types."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field


class PagedResult(BaseModel):
    items: list[dict[str, Any]]
    page: int = Field(ge=1)
    limit: int = Field(ge=1, le=100)
    has_more: bool
    next_page: int | None


class Note(BaseModel):
    id: str
    title: str | None = None
    body: str | None = None
    parent_id: str | None = None
    created_time: int | None = None
    updated_time: int | None = None


class Resource(BaseModel):
    id: str
    title: str | None = None
    mime: str | None = None
    filename: str | None = None
    file_extension: str | None = None
    size: int | None = None
    created_time: int | None = None
    updated_time: int | None = None


class Notebook(BaseModel):
    """A Joplin folder together with its nested child folders."""

    id: str
    title: str | None = None
    parent_id: str | None = None
    children: list[Notebook] = Field(default_factory=list)


@dataclass(frozen=True, slots=True)
class ExportTarget:
    """Where a notebook is written.

    With ``create_subdirectory`` disabled the notebook's notes land directly
    in ``directory`` instead of a folder named after the notebook.
    """

    directory: Path
    create_subdirectory: bool = True


@dataclass(frozen=True, slots=True)
class ImageReference:
    """One image occurrence located in a note body."""

    raw: str
    src: str
    alt: str = "IMAGE"
    width: str | None = None
