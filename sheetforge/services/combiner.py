from __future__ import annotations

import logging
import re
from collections.abc import Callable, Sequence

from ..models.combined_workbook import SHEET_NAME_LIMIT, CombinedSheet, CombinedWorkbook
from ..models.input_file import strip_extension
from ..models.workbook_analysis import WorkbookAnalysis, WorksheetMeta

"""Combiner: merge every worksheet of N analyses into one CombinedWorkbook.

Order is analyses in input order, then worksheets by original index. Each
sheet is named ``<fileBaseName>_<sheetName>``:

- over 31 characters: the file-name prefix is truncated, never the sheet name
- on collision: ``_1``, ``_2``, ... is appended, the base re-truncated so the
  suffix always fits within 31 characters

Progress is reported after every appended sheet as
round-half-up(processed / total * 100).
"""

__all__ = [
    "ProgressCallback",
    "build_sheet_name",
    "resolve_collision",
    "progress_percent",
    "combine_sheets",
    "current_sheet_for",
]

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]

# Characters the xlsx container rejects in sheet titles
_INVALID_TITLE_CHARS = re.compile(r"[\\/?*\[\]:]")


def build_sheet_name(file_base_name: str, sheet_name: str) -> str:
    """Candidate combined name, truncating the file prefix to fit 31 chars."""
    prefix = _INVALID_TITLE_CHARS.sub("_", file_base_name)
    candidate = f"{prefix}_{sheet_name}"
    if len(candidate) <= SHEET_NAME_LIMIT:
        return candidate
    max_prefix = SHEET_NAME_LIMIT - len(sheet_name) - 1
    if max_prefix < 0:
        # no room for any prefix or separator
        return sheet_name[:SHEET_NAME_LIMIT]
    return f"{prefix[:max_prefix]}_{sheet_name}"


def resolve_collision(candidate: str, combined: CombinedWorkbook) -> str:
    """First of candidate, candidate_1, candidate_2, ... not yet taken."""
    final = candidate
    counter = 1
    while combined.contains(final):
        suffix = f"_{counter}"
        final = candidate[: SHEET_NAME_LIMIT - len(suffix)] + suffix
        counter += 1
    return final


def progress_percent(processed: int, total: int) -> int:
    """round(processed / total * 100) with halves rounded up."""
    if total <= 0:
        return 100
    return (processed * 200 + total) // (2 * total)


def combine_sheets(
    analyses: Sequence[WorkbookAnalysis],
    on_progress: ProgressCallback | None = None,
) -> CombinedWorkbook:
    """Place every worksheet of ``analyses`` into a new CombinedWorkbook."""
    combined = CombinedWorkbook()
    total_sheets = sum(len(a.worksheets) for a in analyses)
    processed = 0

    logger.info(f"combining {total_sheets} worksheet(s) from {len(analyses)} file(s)")
    for analysis in analyses:
        file_base_name = strip_extension(analysis.file_name)
        for meta in sorted(analysis.worksheets, key=lambda m: m.index):
            candidate = build_sheet_name(file_base_name, meta.name)
            final_name = resolve_collision(candidate, combined)
            combined.append(
                CombinedSheet(
                    final_name=final_name,
                    source=analysis.workbook[meta.name],
                    analysis_id=analysis.analysis_id,
                    source_file=analysis.file_name,
                    original_name=meta.name,
                )
            )
            processed += 1
            logger.debug(f"placed {analysis.file_name}:{meta.name} as '{final_name}'")
            if on_progress is not None:
                on_progress(progress_percent(processed, total_sheets))

    return combined


def current_sheet_for(
    analyses: Sequence[WorkbookAnalysis], percent: int
) -> tuple[WorkbookAnalysis, WorksheetMeta] | None:
    """Worksheet being processed at ``percent`` (None once complete).

    Mirrors the combine order: index floor(percent / 100 * total).
    """
    total = sum(len(a.worksheets) for a in analyses)
    if percent >= 100 or total == 0:
        return None
    target = (max(percent, 0) * total) // 100
    running = 0
    for analysis in analyses:
        for meta in sorted(analysis.worksheets, key=lambda m: m.index):
            if running == target:
                return analysis, meta
            running += 1
    return None
