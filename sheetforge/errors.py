from __future__ import annotations

from collections.abc import Sequence
from typing import Any

"""Error hierarchy for the workbook pipeline.

Every failure carries a human readable message naming the offending file and
the violated constraint (format, size, corruption). Batch operations attach
extra context:

- ValidationFailedError.failures: every (file name, error) pair of a batch
- PipelineError.completed: analyses finished before a fail-fast batch aborted
"""

__all__ = [
    "PipelineError",
    "InvalidFormatError",
    "FileTooLargeError",
    "ValidationFailedError",
    "CorruptWorkbookError",
    "ReadError",
    "EncodeError",
    "RenderError",
    "ArchiveError",
]


class PipelineError(Exception):
    """Base exception for pipeline failures."""

    def __init__(
        self,
        message: str,
        *,
        file_name: str | None = None,
        completed: Sequence[Any] = (),
    ) -> None:
        super().__init__(message)
        self.message = message
        self.file_name = file_name
        self.completed = tuple(completed)


class InvalidFormatError(PipelineError):
    """Raised when a file is neither a recognised spreadsheet type nor extension."""


class FileTooLargeError(PipelineError):
    """Raised when a file exceeds the configured size ceiling."""


class ValidationFailedError(PipelineError):
    """Aggregate of every per-file validation failure in a batch."""

    def __init__(self, failures: Sequence[tuple[str, PipelineError]]) -> None:
        self.failures = list(failures)
        lines = [f"{name}: {err.message}" for name, err in self.failures]
        message = f"Validation failed for {len(self.failures)} file(s):\n" + "\n".join(lines)
        super().__init__(message)

    @property
    def file_names(self) -> list[str]:
        return [name for name, _ in self.failures]


class CorruptWorkbookError(PipelineError):
    """Raised when a spreadsheet container cannot be decoded."""


class ReadError(PipelineError):
    """Raised when the raw bytes of a file cannot be read."""


class EncodeError(PipelineError):
    """Raised when the combined workbook cannot be serialized."""


class RenderError(PipelineError):
    """Raised when a worksheet cannot be rendered to a paginated document."""


class ArchiveError(PipelineError):
    """Raised when documents cannot be packaged (e.g. duplicate entry names)."""
