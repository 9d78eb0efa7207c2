from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

"""CombinedWorkbook model.

An ordered list of (final sheet name, source worksheet reference) entries
built incrementally by the combiner. Source worksheets are referenced, never
copied; the encoder materializes them when serializing.

Name lookups are case-insensitive because the target container treats
``Sheet1`` and ``SHEET1`` as the same sheet.
"""

__all__ = [
    "SHEET_NAME_LIMIT",
    "CombinedSheet",
    "CombinedWorkbook",
]

# Maximum sheet title length of the xlsx container
SHEET_NAME_LIMIT = 31


@dataclass(frozen=True)
class CombinedSheet:
    final_name: str
    source: Any  # openpyxl Worksheet in the originating analysis' workbook
    analysis_id: int
    source_file: str
    original_name: str


@dataclass
class CombinedWorkbook:
    sheets: list[CombinedSheet] = field(default_factory=list)
    _taken: set[str] = field(default_factory=set, repr=False)

    def contains(self, name: str) -> bool:
        return name.casefold() in self._taken

    def append(self, sheet: CombinedSheet) -> None:
        if len(sheet.final_name) > SHEET_NAME_LIMIT:
            raise ValueError(f"sheet name exceeds {SHEET_NAME_LIMIT} characters: {sheet.final_name!r}")
        if self.contains(sheet.final_name):
            raise ValueError(f"duplicate sheet name: {sheet.final_name!r}")
        self._taken.add(sheet.final_name.casefold())
        self.sheets.append(sheet)

    @property
    def sheet_names(self) -> list[str]:
        return [s.final_name for s in self.sheets]

    def __len__(self) -> int:
        return len(self.sheets)

    def __iter__(self) -> Iterator[CombinedSheet]:
        return iter(self.sheets)
