from __future__ import annotations

import logging
import zipfile
from collections.abc import Sequence
from io import BytesIO

from ..errors import ArchiveError
from ..models.artifacts import Archive, ArchiveEntry, DownloadArtifact, GeneratedDocument
from ..models.input_file import strip_extension

"""Archiver: package generated documents into one zip download."""

__all__ = [
    "COMPRESSION_METHODS",
    "split_archive_name",
    "build_archive",
    "package_archive",
]

logger = logging.getLogger(__name__)

COMPRESSION_METHODS = {
    "deflated": zipfile.ZIP_DEFLATED,
    "stored": zipfile.ZIP_STORED,
}


def split_archive_name(original_file_name: str) -> str:
    return f"{strip_extension(original_file_name)}_split_PDFs.zip"


def build_archive(documents: Sequence[GeneratedDocument]) -> Archive:
    """One entry per document, keyed by its sanitized entry name.

    Raises:
        ArchiveError: Two documents map to the same entry name.
    """
    archive = Archive()
    seen: set[str] = set()
    for doc in documents:
        if doc.entry_name in seen:
            raise ArchiveError(f"duplicate archive entry: {doc.entry_name} (sheet '{doc.sheet_name}')")
        seen.add(doc.entry_name)
        archive.entries.append(ArchiveEntry(name=doc.entry_name, content=doc.content))
    return archive


def package_archive(
    archive: Archive, original_file_name: str, *, compression: str = "deflated"
) -> DownloadArtifact:
    """Serialize ``archive`` as ``<base>_split_PDFs.zip``.

    Raises:
        ArchiveError: The zip container could not be written.
    """
    file_name = split_archive_name(original_file_name)
    buffer = BytesIO()
    try:
        with zipfile.ZipFile(buffer, "w", compression=COMPRESSION_METHODS[compression]) as zf:
            for entry in archive.entries:
                zf.writestr(entry.name, entry.content)
    except (KeyError, OSError, ValueError) as e:
        raise ArchiveError(f"{file_name}: failed to write archive ({e})", file_name=file_name) from e

    content = buffer.getvalue()
    logger.info(f"packaged {file_name} entries={len(archive)} bytes={len(content)}")
    return DownloadArtifact(content=content, file_name=file_name, size=len(content))
