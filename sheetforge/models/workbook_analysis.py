from __future__ import annotations

import dataclasses
import itertools
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

"""Workbook analysis models.

WorksheetMeta describes one sheet's extent; WorkbookAnalysis bundles the
metadata of every sheet with the parsed workbook it was derived from.
AnalysisSession is the caller-held collection that allocates identifiers
from a monotonic counter, so identifiers stay unique across repeated calls
without relying on wall-clock time.
"""

__all__ = [
    "AnalysisStatus",
    "WorksheetMeta",
    "WorkbookAnalysis",
    "AnalysisSession",
]


class AnalysisStatus(Enum):
    ANALYZED = "analyzed"


@dataclass(frozen=True)
class WorksheetMeta:
    name: str  # unique within the owning workbook
    index: int  # zero-based position in the owning workbook
    row_count: int
    column_count: int
    has_data: bool  # False -> no populated cell (row/column count default to 1)


@dataclass(frozen=True, eq=False)
class WorkbookAnalysis:
    """Result of analyzing one input file.

    ``workbook`` keeps formulas and styles and is what gets combined;
    ``values_workbook`` holds the cached cell values used for rendering.
    For legacy .xls input both refer to the same object.
    """
    analysis_id: int
    file_name: str
    file_size: int
    uploaded_at: datetime
    worksheets: tuple[WorksheetMeta, ...]
    workbook: Any  # openpyxl.Workbook
    values_workbook: Any  # openpyxl.Workbook (data_only)
    status: AnalysisStatus = AnalysisStatus.ANALYZED

    @property
    def sheet_names(self) -> list[str]:
        return [ws.name for ws in self.worksheets]

    def worksheet(self, name: str) -> WorksheetMeta:
        for meta in self.worksheets:
            if meta.name == name:
                return meta
        raise KeyError(f"worksheet '{name}' not found in {self.file_name}")

    def with_id(self, analysis_id: int) -> WorkbookAnalysis:
        return dataclasses.replace(self, analysis_id=analysis_id)


class AnalysisSession:
    """Ordered analyses accumulated by one caller, plus the id allocator."""

    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self._analyses: list[WorkbookAnalysis] = []

    def next_id(self) -> int:
        return next(self._ids)

    def extend(self, analyses: Iterable[WorkbookAnalysis]) -> list[WorkbookAnalysis]:
        """Append analyses, reassigning any identifier already in use.

        Returns:
            The analyses as stored (possibly with new identifiers).
        """
        taken = {a.analysis_id for a in self._analyses}
        added: list[WorkbookAnalysis] = []
        for analysis in analyses:
            if analysis.analysis_id in taken:
                analysis = analysis.with_id(self._fresh_id(taken))
            taken.add(analysis.analysis_id)
            added.append(analysis)
        self._analyses.extend(added)
        return added

    def remove(self, analysis_id: int) -> WorkbookAnalysis:
        for i, analysis in enumerate(self._analyses):
            if analysis.analysis_id == analysis_id:
                return self._analyses.pop(i)
        raise KeyError(f"no analysis with id {analysis_id}")

    @property
    def analyses(self) -> tuple[WorkbookAnalysis, ...]:
        return tuple(self._analyses)

    @property
    def total_worksheets(self) -> int:
        return sum(len(a.worksheets) for a in self._analyses)

    def __len__(self) -> int:
        return len(self._analyses)

    def __iter__(self) -> Iterator[WorkbookAnalysis]:
        return iter(tuple(self._analyses))

    def _fresh_id(self, taken: set[int]) -> int:
        candidate = self.next_id()
        while candidate in taken:
            candidate = self.next_id()
        return candidate
