from __future__ import annotations

import logging
from collections.abc import Sequence

from ..errors import FileTooLargeError, InvalidFormatError, PipelineError, ValidationFailedError
from ..models.input_file import InputFile

"""Input validation: media type / extension and size ceiling.

A file is accepted when its media type is a recognised spreadsheet type OR
its extension is .xlsx/.xls; either condition suffices. Batch validation
collects every failure and raises once, listing all offending files.
"""

__all__ = [
    "VALID_MEDIA_TYPES",
    "VALID_EXTENSIONS",
    "DEFAULT_MAX_FILE_SIZE",
    "validate_file",
    "validate_files",
]

logger = logging.getLogger(__name__)

VALID_MEDIA_TYPES = frozenset({
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.ms-excel",
})
VALID_EXTENSIONS = frozenset({".xlsx", ".xls"})
DEFAULT_MAX_FILE_SIZE = 50 * 1024 * 1024


def validate_file(file: InputFile, *, max_size_bytes: int = DEFAULT_MAX_FILE_SIZE) -> None:
    """Check one file's type and size.

    Raises:
        InvalidFormatError: Neither media type nor extension is recognised.
        FileTooLargeError: File is larger than ``max_size_bytes``.
    """
    if file.media_type not in VALID_MEDIA_TYPES and file.extension not in VALID_EXTENSIONS:
        raise InvalidFormatError(
            "Please upload a valid Excel file (.xlsx or .xls)", file_name=file.name
        )
    if file.size > max_size_bytes:
        limit_mb = max_size_bytes / (1024 * 1024)
        raise FileTooLargeError(
            f"File size must be less than {limit_mb:g}MB", file_name=file.name
        )


def validate_files(
    files: Sequence[InputFile], *, max_size_bytes: int = DEFAULT_MAX_FILE_SIZE
) -> None:
    """Validate every file; fail atomically if any one failed.

    Raises:
        ValidationFailedError: Enumerates each failing file and its reason.
    """
    failures: list[tuple[str, PipelineError]] = []
    for f in files:
        try:
            validate_file(f, max_size_bytes=max_size_bytes)
        except (InvalidFormatError, FileTooLargeError) as e:
            logger.debug(f"validation failed file={f.name} reason={e.message}")
            failures.append((f.name, e))

    if failures:
        raise ValidationFailedError(failures)
    logger.info(f"validated {len(files)} file(s)")
