from __future__ import annotations

import mimetypes
import re
from dataclasses import dataclass
from pathlib import Path

from ..errors import ReadError

"""InputFile domain model.

An InputFile is one spreadsheet handed to the pipeline: its name, declared
media type, byte size and raw content. Content is either held in memory
(``content``) or read on demand from ``path``; it is never modified.
"""

__all__ = [
    "InputFile",
    "strip_extension",
]

DEFAULT_MEDIA_TYPE = "application/octet-stream"

_EXTENSION_RE = re.compile(r"\.[^/.]+$")


@dataclass(frozen=True)
class InputFile:
    name: str  # file name including extension
    media_type: str  # declared MIME type (may be empty / generic)
    size: int  # byte size as declared by the caller or the file system
    content: bytes | None = None  # in-memory bytes
    path: Path | None = None  # on-disk source when content is None

    @classmethod
    def from_bytes(cls, name: str, content: bytes, media_type: str | None = None) -> InputFile:
        return cls(
            name=name,
            media_type=media_type if media_type is not None else _guess_media_type(name),
            size=len(content),
            content=content,
        )

    @classmethod
    def from_path(cls, path: Path, media_type: str | None = None) -> InputFile:
        """Describe an on-disk file without reading it.

        Raises:
            ReadError: If the file cannot be stat'ed.
        """
        try:
            size = path.stat().st_size
        except OSError as e:
            raise ReadError(f"Failed to read file ({e.strerror or e})", file_name=path.name) from e
        return cls(
            name=path.name,
            media_type=media_type if media_type is not None else _guess_media_type(path.name),
            size=size,
            path=path,
        )

    @property
    def base_name(self) -> str:
        """File name with its final extension stripped."""
        return strip_extension(self.name)

    @property
    def extension(self) -> str:
        """Lower-cased final extension including the dot ("" if none)."""
        return Path(self.name).suffix.lower()

    def read_bytes(self) -> bytes:
        """Return the full binary content.

        Raises:
            ReadError: If the underlying byte stream cannot be read.
        """
        if self.content is not None:
            return self.content
        if self.path is None:
            raise ReadError("Failed to read file (no content)", file_name=self.name)
        try:
            return self.path.read_bytes()
        except OSError as e:
            raise ReadError(f"Failed to read file ({e.strerror or e})", file_name=self.name) from e


def strip_extension(file_name: str) -> str:
    """Strip the final ``.ext`` from a file name ("a.b.xlsx" -> "a.b")."""
    return _EXTENSION_RE.sub("", file_name)


def _guess_media_type(name: str) -> str:
    guessed, _ = mimetypes.guess_type(name)
    return guessed or DEFAULT_MEDIA_TYPE
