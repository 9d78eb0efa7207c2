from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import UTC, datetime
from io import BytesIO
from typing import Any

import pandas as pd
from openpyxl import Workbook, load_workbook

from ..errors import CorruptWorkbookError, ReadError
from ..models.input_file import InputFile
from ..models.workbook_analysis import AnalysisSession, WorkbookAnalysis, WorksheetMeta

"""Workbook analyzer.

Decodes each input container into openpyxl workbooks and derives per-sheet
extent metadata:

- .xlsx (zip container): openpyxl, loaded twice (formulas kept / cached values)
- .xls (OLE2 container): pandas + xlrd, materialized into an openpyxl Workbook

A sheet without any populated cell reports row_count=1, column_count=1,
has_data=False.
"""

__all__ = [
    "CORRUPT_MESSAGE",
    "decode_workbook",
    "describe_sheet",
    "analyze_workbook",
    "analyze_workbooks",
]

logger = logging.getLogger(__name__)

CORRUPT_MESSAGE = "Failed to read Excel file. Please ensure it is not corrupted."

ZIP_SIGNATURE = b"PK\x03\x04"
OLE2_SIGNATURE = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"


def _load_legacy_workbook(data: bytes) -> Workbook:
    """Read every sheet of a legacy .xls container into a fresh Workbook."""
    frames: dict[Any, pd.DataFrame] = pd.read_excel(
        BytesIO(data), sheet_name=None, header=None, engine="xlrd", dtype=object
    )
    wb = Workbook()
    wb.remove(wb.active)
    for sheet_name, df in frames.items():
        ws = wb.create_sheet(title=str(sheet_name))
        for r, row in enumerate(df.itertuples(index=False, name=None), start=1):
            for c, value in enumerate(row, start=1):
                if pd.isna(value):
                    continue
                ws.cell(row=r, column=c, value=value)
    return wb


def decode_workbook(data: bytes, file_name: str) -> tuple[Workbook, Workbook]:
    """Decode container bytes into (formula workbook, cached-values workbook).

    Raises:
        CorruptWorkbookError: If the container cannot be decoded.
    """
    try:
        if data.startswith(OLE2_SIGNATURE):
            wb = _load_legacy_workbook(data)
            return wb, wb
        workbook = load_workbook(BytesIO(data))
        values_workbook = load_workbook(BytesIO(data), data_only=True)
    except Exception as e:
        # openpyxl/xlrd raise a wide range of types (BadZipFile, KeyError,
        # XML parse errors, InvalidFileException) for damaged containers
        logger.debug(f"decode failed file={file_name} err={e!r}")
        raise CorruptWorkbookError(CORRUPT_MESSAGE, file_name=file_name) from e
    return workbook, values_workbook


def _has_populated_cell(ws: Any) -> bool:
    if ws.max_row > 1 or ws.max_column > 1:
        return True
    return ws.cell(row=1, column=1).value is not None


def describe_sheet(ws: Any, index: int) -> WorksheetMeta:
    """Derive WorksheetMeta from a sheet's used range."""
    if not _has_populated_cell(ws):
        return WorksheetMeta(name=ws.title, index=index, row_count=1, column_count=1, has_data=False)
    return WorksheetMeta(
        name=ws.title,
        index=index,
        row_count=ws.max_row,
        column_count=ws.max_column,
        has_data=True,
    )


def analyze_workbook(file: InputFile, session: AnalysisSession) -> WorkbookAnalysis:
    """Parse one file and describe its sheets in declared order.

    Raises:
        ReadError: The file's bytes could not be read.
        CorruptWorkbookError: The container could not be decoded.
    """
    data = file.read_bytes()
    workbook, values_workbook = decode_workbook(data, file.name)

    worksheets = tuple(
        describe_sheet(ws, index) for index, ws in enumerate(values_workbook.worksheets)
    )
    analysis = WorkbookAnalysis(
        analysis_id=session.next_id(),
        file_name=file.name,
        file_size=file.size,
        uploaded_at=datetime.now(UTC),
        worksheets=worksheets,
        workbook=workbook,
        values_workbook=values_workbook,
    )
    logger.debug(
        f"analyzed file={file.name} id={analysis.analysis_id} sheets={analysis.sheet_names}"
    )
    return analysis


def analyze_workbooks(files: Sequence[InputFile], session: AnalysisSession) -> list[WorkbookAnalysis]:
    """Analyze files strictly in order; the first failure aborts the batch.

    The session is extended only when every file succeeds. A failure is
    re-raised as the same error kind with the file name prefixed and the
    analyses completed so far attached as ``completed``.
    """
    results: list[WorkbookAnalysis] = []
    for f in files:
        try:
            results.append(analyze_workbook(f, session))
        except (ReadError, CorruptWorkbookError) as e:
            logger.error(f"analysis aborted at {f.name}: {e.message}")
            raise type(e)(
                f"Failed to analyze {f.name}: {e.message}",
                file_name=f.name,
                completed=results,
            ) from e

    stored = session.extend(results)
    total = sum(len(a.worksheets) for a in stored)
    logger.info(f"analyzed {len(stored)} file(s), {total} worksheet(s)")
    return stored
