# Shared pytest fixtures
from __future__ import annotations

from collections.abc import Callable
from io import BytesIO
from pathlib import Path

import pandas as pd
import pytest
from openpyxl import Workbook

from sheetforge.logging.init import reset_logging
from sheetforge.models.input_file import InputFile
from sheetforge.models.workbook_analysis import AnalysisSession

Rows = list[list[object]]


def make_xlsx(sheets: dict[str, Rows]) -> bytes:
    """Build a real xlsx container in memory, one DataFrame per sheet."""
    buffer = BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        for sheet_name, rows in sheets.items():
            pd.DataFrame(rows).to_excel(writer, sheet_name=sheet_name, header=False, index=False)
    return buffer.getvalue()


def make_openpyxl_xlsx(build: Callable[[Workbook], None]) -> bytes:
    """Build an xlsx container by hand (styles, formulas, empty sheets)."""
    wb = Workbook()
    wb.remove(wb.active)
    build(wb)
    buffer = BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


@pytest.fixture()
def temp_workdir(monkeypatch, tmp_path: Path) -> Path:
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture()
def session() -> AnalysisSession:
    return AnalysisSession()


@pytest.fixture()
def xlsx_input() -> Callable[[str, dict[str, Rows]], InputFile]:
    def _make(name: str, sheets: dict[str, Rows]) -> InputFile:
        return InputFile.from_bytes(name, make_xlsx(sheets))
    return _make


@pytest.fixture()
def two_workbooks(xlsx_input) -> list[InputFile]:
    """sales.xlsx (3 sheets) + stock.xlsx (2 sheets) = 5 worksheets."""
    return [
        xlsx_input("sales.xlsx", {
            "Sheet1": [["region", "amount"], ["north", 100], ["south", 250]],
            "Q2": [["region", "amount"], ["east", 75]],
            "Notes": [["checked by", "ops"]],
        }),
        xlsx_input("stock.xlsx", {
            "Sheet1": [["sku", "qty"], ["A-1", 4], ["B-2", 9]],
            "Archive": [["sku"], ["Z-9"]],
        }),
    ]


@pytest.fixture(autouse=True)
def _reset_logger():
    yield
    reset_logging()


@pytest.fixture()
def build_xlsx() -> Callable[[Callable[[Workbook], None]], bytes]:
    return make_openpyxl_xlsx
