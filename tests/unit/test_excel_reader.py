from __future__ import annotations

import zipfile
from io import BytesIO
from pathlib import Path
from unittest.mock import patch

import pandas as pd
import pytest

from sheetforge.errors import CorruptWorkbookError, ReadError
from sheetforge.excel.reader import (
    CORRUPT_MESSAGE,
    OLE2_SIGNATURE,
    analyze_workbook,
    analyze_workbooks,
    decode_workbook,
)
from sheetforge.models.input_file import InputFile


def test_analyze_workbook_describes_sheets_in_order(xlsx_input, session):
    f = xlsx_input("sales.xlsx", {
        "Summary": [["a", "b", "c"], [1, 2, 3]],
        "Detail": [["x"], ["y"], ["z"], ["w"]],
    })
    analysis = analyze_workbook(f, session)

    assert analysis.file_name == "sales.xlsx"
    assert analysis.file_size == f.size
    assert analysis.analysis_id == 1
    assert [(m.name, m.index, m.row_count, m.column_count, m.has_data) for m in analysis.worksheets] == [
        ("Summary", 0, 2, 3, True),
        ("Detail", 1, 4, 1, True),
    ]
    assert analysis.workbook.sheetnames == ["Summary", "Detail"]


def test_analyze_workbook_empty_sheet_defaults(build_xlsx, session):
    def build(wb):
        wb.create_sheet("Empty")
        wb.create_sheet("Data")["B3"] = "value"

    analysis = analyze_workbook(InputFile.from_bytes("e.xlsx", build_xlsx(build)), session)
    empty, data = analysis.worksheets
    assert (empty.row_count, empty.column_count, empty.has_data) == (1, 1, False)
    assert (data.row_count, data.column_count, data.has_data) == (3, 2, True)


def test_analyze_workbook_keeps_formulas_and_cached_view(build_xlsx, session):
    def build(wb):
        ws = wb.create_sheet("Calc")
        ws["A1"] = 1
        ws["A2"] = 2
        ws["A3"] = "=SUM(A1:A2)"

    analysis = analyze_workbook(InputFile.from_bytes("calc.xlsx", build_xlsx(build)), session)
    assert analysis.workbook["Calc"]["A3"].value == "=SUM(A1:A2)"
    assert analysis.values_workbook is not analysis.workbook
    assert analysis.values_workbook["Calc"]["A1"].value == 1


@pytest.mark.parametrize(
    "payload",
    [
        b"not a workbook at all",
        b"",
    ],
)
def test_analyze_workbook_corrupt_container(payload: bytes, session):
    with pytest.raises(CorruptWorkbookError) as e:
        analyze_workbook(InputFile.from_bytes("bad.xlsx", payload), session)
    assert e.value.message == CORRUPT_MESSAGE
    assert e.value.file_name == "bad.xlsx"


def test_analyze_workbook_zip_without_workbook_parts(session):
    buffer = BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        zf.writestr("hello.txt", "not a spreadsheet")
    with pytest.raises(CorruptWorkbookError):
        analyze_workbook(InputFile.from_bytes("fake.xlsx", buffer.getvalue()), session)


def test_analyze_workbook_read_error(tmp_path: Path, session):
    f = InputFile(name="vanished.xlsx", media_type="", size=10, path=tmp_path / "vanished.xlsx")
    with pytest.raises(ReadError) as e:
        analyze_workbook(f, session)
    assert e.value.file_name == "vanished.xlsx"


def test_decode_legacy_xls_through_pandas():
    frames = {"Legacy": pd.DataFrame([[1, None], ["a", "b"]], dtype=object)}
    with patch("sheetforge.excel.reader.pd.read_excel", return_value=frames) as read_excel:
        workbook, values = decode_workbook(OLE2_SIGNATURE + b"\x00" * 64, "old.xls")

    assert read_excel.call_args.kwargs["engine"] == "xlrd"
    assert workbook is values
    ws = workbook["Legacy"]
    assert ws["A1"].value == 1
    assert ws["B1"].value is None
    assert ws["B2"].value == "b"


def test_decode_legacy_xls_failure_is_corrupt():
    with patch("sheetforge.excel.reader.pd.read_excel", side_effect=ValueError("bad BIFF")):
        with pytest.raises(CorruptWorkbookError):
            decode_workbook(OLE2_SIGNATURE, "old.xls")


def test_analyze_workbooks_extends_session_with_unique_ids(two_workbooks, session):
    first = analyze_workbooks(two_workbooks, session)
    second = analyze_workbooks(two_workbooks[:1], session)

    ids = [a.analysis_id for a in session.analyses]
    assert len(ids) == 3
    assert len(set(ids)) == 3
    assert [a.file_name for a in first] == ["sales.xlsx", "stock.xlsx"]
    assert second[0].analysis_id not in {a.analysis_id for a in first}
    assert session.total_worksheets == 8


def test_analyze_workbooks_fails_fast_naming_the_file(xlsx_input, session):
    good = xlsx_input("A.xlsx", {"Sheet1": [[1]]})
    bad = InputFile.from_bytes("B.xlsx", b"garbage")
    never = xlsx_input("C.xlsx", {"Sheet1": [[1]]})

    with patch("sheetforge.excel.reader.analyze_workbook", wraps=analyze_workbook) as spy:
        with pytest.raises(CorruptWorkbookError) as e:
            analyze_workbooks([good, bad, never], session)

    err = e.value
    assert err.file_name == "B.xlsx"
    assert "Failed to analyze B.xlsx" in str(err)
    assert [a.file_name for a in err.completed] == ["A.xlsx"]
    assert spy.call_count == 2
    # all-or-nothing: the session did not keep the partial batch
    assert len(session) == 0
