"""Photo upload domain models."""

from __future__ import annotations

import mimetypes
from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class PhotoStatus(str, Enum):
    """Upload state of a photo."""

    PENDING = "pending"
    UPLOADING = "uploading"
    DONE = "done"
    ERROR = "error"


@dataclass(frozen=True)
class PhotoFile:
    """Raw photo payload as picked by the user."""

    filename: str
    content: bytes
    content_type: str = "image/jpeg"

    @property
    def size(self) -> int:
        return len(self.content)

    @classmethod
    def from_path(cls, path: Path | str) -> PhotoFile:
        """Read a photo from disk, guessing its MIME type from the name."""
        path = Path(path)
        content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        return cls(filename=path.name, content=path.read_bytes(), content_type=content_type)

    def as_upload(self) -> tuple[str, bytes, str]:
        """Return the (filename, content, content_type) tuple httpx expects."""
        return (self.filename, self.content, self.content_type)


@dataclass
class PhotoItem:
    """A photo in an upload session.

    `file` is held until the upload succeeds; `preview` stays usable after
    that. `server_path` is only set once the backend stored the photo.
    """

    id: str
    file: PhotoFile | None
    preview: str
    filename: str
    progress: int = 0
    status: PhotoStatus = PhotoStatus.PENDING
    server_path: str | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "filename": self.filename,
            "progress": self.progress,
            "status": self.status.value,
            "serverPath": self.server_path,
            "error": self.error,
        }
