from __future__ import annotations

from dataclasses import dataclass, field

"""Output artifact models: encoded workbook, rendered documents, archive."""

__all__ = [
    "EncodedWorkbook",
    "GeneratedDocument",
    "ArchiveEntry",
    "Archive",
    "DownloadArtifact",
]

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
ZIP_MEDIA_TYPE = "application/zip"


@dataclass(frozen=True)
class EncodedWorkbook:
    content: bytes
    file_name: str  # <base>_combined.xlsx
    size: int
    sheet_count: int
    media_type: str = XLSX_MEDIA_TYPE


@dataclass(frozen=True)
class GeneratedDocument:
    sheet_name: str
    entry_name: str  # sanitized sheet name + ".pdf"
    content: bytes
    page_count: int = 1


@dataclass(frozen=True)
class ArchiveEntry:
    name: str
    content: bytes


@dataclass
class Archive:
    entries: list[ArchiveEntry] = field(default_factory=list)

    @property
    def names(self) -> list[str]:
        return [e.name for e in self.entries]

    def __len__(self) -> int:
        return len(self.entries)


@dataclass(frozen=True)
class DownloadArtifact:
    content: bytes
    file_name: str  # <base>_split_PDFs.zip
    size: int
    media_type: str = ZIP_MEDIA_TYPE
