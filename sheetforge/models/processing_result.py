from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

"""Run-level result used for the SUMMARY output line."""

__all__ = [
    "PipelineResult",
    "format_file_size",
]


@dataclass(frozen=True)
class PipelineResult:
    mode: str  # combine | split
    files: int  # input files processed
    sheets: int  # worksheets placed / rendered
    output_name: str
    output_bytes: int
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float


def format_file_size(size: int) -> str:
    """Human readable size: whole KB below 1 MiB, one decimal MB above.

    Halves round up (512 B -> "1KB", 1.25 MiB -> "1.3MB").
    """
    kb = Decimal(size) / 1024
    if kb < 1024:
        return f"{kb.quantize(Decimal('1'), rounding=ROUND_HALF_UP)}KB"
    mb = kb / 1024
    return f"{mb.quantize(Decimal('0.1'), rounding=ROUND_HALF_UP)}MB"
