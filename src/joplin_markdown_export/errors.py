"""Domain errors."""

from __future__ import annotations

from dataclasses import dataclass


# Must stay mutable: __traceback__ is assigned on re-raise.
@dataclass(eq=False)
class JoplinApiError(RuntimeError):
    """Raised when the Joplin Data API returns a non-success response."""

    status_code: int
    method: str
    url: str
    response_text: str

    def __str__(self) -> str:  # pragma: no cover
        return (
            f"Joplin API error {self.status_code} for {self.method} {self.url}: "
            f"{self.response_text}"
        )


class ExportError(RuntimeError):
    """Base class for failures raised by the exporter itself."""


class NotebookNotFoundError(ExportError):
    def __init__(self, notebook_id: str) -> None:
        super().__init__(f"Notebook not found: {notebook_id}")
        self.notebook_id = notebook_id


class NoteNotFoundError(ExportError):
    def __init__(self, note_id: str) -> None:
        super().__init__(f"Note not found: {note_id}")
        self.note_id = note_id
