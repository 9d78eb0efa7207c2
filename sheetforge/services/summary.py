from __future__ import annotations

from ..models.processing_result import PipelineResult

"""SUMMARY line rendering.

Format:
SUMMARY mode={combine|split} files={n} sheets={n} output={name}
bytes={n} elapsed_sec={seconds}
"""

__all__ = [
    "format_seconds",
    "render_summary_line",
]


def format_seconds(seconds: float) -> str:
    """Integers without decimals, tiny values without scientific notation."""
    if seconds == 0:
        return "0"
    if seconds == int(seconds):
        return str(int(seconds))
    if seconds < 0.01:
        return f"{seconds:.6f}".rstrip("0").rstrip(".")
    return str(round(seconds, 3))


def render_summary_line(result: PipelineResult) -> str:
    """Render a SUMMARY line from a PipelineResult.

    Examples:
        >>> from datetime import datetime, timezone
        >>> t = datetime(2024, 1, 1, tzinfo=timezone.utc)
        >>> r = PipelineResult(mode="combine", files=2, sheets=5, output_name="a_combined.xlsx",
        ...                    output_bytes=2048, start_time=t, end_time=t, elapsed_seconds=2.0)
        >>> render_summary_line(r)
        'SUMMARY mode=combine files=2 sheets=5 output=a_combined.xlsx bytes=2048 elapsed_sec=2'
    """
    return (
        f"SUMMARY mode={result.mode} "
        f"files={result.files} "
        f"sheets={result.sheets} "
        f"output={result.output_name} "
        f"bytes={result.output_bytes} "
        f"elapsed_sec={format_seconds(result.elapsed_seconds)}"
    )
