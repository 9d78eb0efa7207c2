from __future__ import annotations

from datetime import date, datetime
from unittest.mock import patch

import pytest

from sheetforge.config.loader import RenderConfig
from sheetforge.errors import RenderError
from sheetforge.excel.reader import analyze_workbook
from sheetforge.models.input_file import InputFile
from sheetforge.services.renderer import (
    document_entry_name,
    draw_pdf,
    extract_rows,
    format_cell,
    layout_pages,
    render_worksheet,
    render_worksheets,
    truncate_cell,
)

LAYOUT = RenderConfig()
A4_USABLE_WIDTH_MM = 210 - 2 * 10


def _wide_rows(n_rows: int = 3, n_cols: int = 10) -> list[list[object]]:
    return [[f"c{c}" for c in range(n_cols)] for _ in range(n_rows)]


@pytest.mark.parametrize(
    "value,expected",
    [
        (None, ""),
        ("text", "text"),
        (42, "42"),
        (1500.0, "1500"),
        (2.5, "2.5"),
        (float("nan"), ""),
        (True, "TRUE"),
        (False, "FALSE"),
        (datetime(2024, 3, 1), "2024-03-01"),
        (datetime(2024, 3, 1, 14, 30), "2024-03-01 14:30:00"),
        (date(2024, 3, 1), "2024-03-01"),
    ],
)
def test_format_cell(value, expected):
    assert format_cell(value) == expected


def test_truncate_cell():
    assert truncate_cell("short") == "short"
    assert truncate_cell("x" * 15) == "x" * 15
    assert truncate_cell("abcdefghijklmnopq") == "abcdefghijklmno..."


@pytest.mark.parametrize(
    "sheet_name,expected",
    [
        ("Sales", "Sales.pdf"),
        ('a/b\\c:d*e?f"g<h>i|j', "a_b_c_d_e_f_g_h_i_j.pdf"),
    ],
)
def test_document_entry_name(sheet_name: str, expected: str):
    assert document_entry_name(sheet_name) == expected


def test_extract_rows_caps_columns(xlsx_input, session):
    analysis = analyze_workbook(xlsx_input("w.xlsx", {"Wide": _wide_rows()}), session)
    rows = extract_rows(analysis.values_workbook["Wide"], max_columns=8)
    assert len(rows) == 3
    assert rows[0] == [f"c{c}" for c in range(8)]
    # source grid untouched
    assert analysis.values_workbook["Wide"].max_column == 10


def test_extract_rows_blank_cells_become_empty_strings(build_xlsx, session):
    def build(wb):
        ws = wb.create_sheet("Gaps")
        ws["A1"] = "a"
        ws["C1"] = 3
        ws["B2"] = 1.0

    analysis = analyze_workbook(InputFile.from_bytes("g.xlsx", build_xlsx(build)), session)
    assert extract_rows(analysis.values_workbook["Gaps"]) == [["a", "", "3"], ["", "1", ""]]


def test_layout_pages_title_and_column_spacing():
    pages = layout_pages("Wide", _wide_rows(1, 10), LAYOUT)
    assert len(pages) == 1
    title, *cells = pages[0]
    assert (title.text, title.x, title.y, title.font_size) == ("Wide", 10, 20, 16)
    assert [op.text for op in cells] == [f"c{c}" for c in range(8)]
    assert all(op.y == 32 for op in cells)
    step = A4_USABLE_WIDTH_MM / 8
    assert cells[1].x - cells[0].x == pytest.approx(step)


def test_layout_pages_narrow_row_spacing_and_truncation():
    pages = layout_pages("T", [["a", "a very long cell value", "c"]], LAYOUT)
    _, first, second, third = pages[0]
    assert second.text == "a very long cel..."
    assert third.x - first.x == pytest.approx(2 * A4_USABLE_WIDTH_MM / 3)


def test_layout_pages_paginates():
    rows = [[str(i)] for i in range(100)]
    pages = layout_pages("Long", rows, LAYOUT)

    assert len(pages) == 3
    assert len(pages[0]) == 1 + 42  # title + rows at y = 32 .. 278
    assert len(pages[1]) == 44  # y = 20 .. 278
    assert len(pages[2]) == 14
    assert pages[1][0].y == 20
    assert [op.text for page in pages for op in page][1:] == [str(i) for i in range(100)]


def test_layout_pages_no_rows_is_title_only():
    pages = layout_pages("Empty", [], LAYOUT)
    assert [[op.text for op in page] for page in pages] == [["Empty"]]


def test_draw_pdf_produces_pdf_bytes():
    content = draw_pdf(layout_pages("T", [["a", "b"]], LAYOUT), LAYOUT, title="T")
    assert content.startswith(b"%PDF")


def test_render_worksheet_drops_columns_beyond_eighth(xlsx_input, session):
    analysis = analyze_workbook(xlsx_input("w.xlsx", {"Wide": _wide_rows()}), session)
    with patch("sheetforge.services.renderer.draw_pdf", return_value=b"%PDF-fake") as draw:
        doc = render_worksheet(analysis, "Wide")

    pages = draw.call_args.args[0]
    texts = {op.text for page in pages for op in page}
    assert "c7" in texts
    assert "c8" not in texts and "c9" not in texts
    assert doc.content == b"%PDF-fake"
    assert doc.entry_name == "Wide.pdf"
    assert doc.page_count == 1


def test_render_worksheet_real_pdf(xlsx_input, session):
    analysis = analyze_workbook(xlsx_input("r.xlsx", {"Sales": [["a", 1], ["b", 2]]}), session)
    doc = render_worksheet(analysis, "Sales")
    assert doc.sheet_name == "Sales"
    assert doc.content.startswith(b"%PDF")


def test_render_worksheet_empty_sheet(build_xlsx, session):
    analysis = analyze_workbook(
        InputFile.from_bytes("e.xlsx", build_xlsx(lambda wb: wb.create_sheet("Blank"))), session
    )
    doc = render_worksheet(analysis, "Blank")
    assert doc.page_count == 1


def test_render_worksheet_unknown_sheet(xlsx_input, session):
    analysis = analyze_workbook(xlsx_input("r.xlsx", {"Sales": [[1]]}), session)
    with pytest.raises(RenderError) as e:
        render_worksheet(analysis, "Missing")
    assert e.value.file_name == "r.xlsx"


def test_render_worksheet_pdf_failure_is_render_error(xlsx_input, session):
    analysis = analyze_workbook(xlsx_input("r.xlsx", {"Sales": [[1]]}), session)
    with patch("sheetforge.services.renderer.draw_pdf", side_effect=ValueError("font")):
        with pytest.raises(RenderError):
            render_worksheet(analysis, "Sales")


@pytest.mark.parametrize("max_workers", [None, 3])
def test_render_worksheets_order_and_progress(two_workbooks, session, max_workers):
    analysis = analyze_workbook(two_workbooks[0], session)
    seen: list[int] = []
    docs = render_worksheets(analysis, None, seen.append, max_workers=max_workers)

    assert [d.sheet_name for d in docs] == ["Sheet1", "Q2", "Notes"]
    assert seen == [33, 67, 100]


def test_render_worksheets_selected_subset(two_workbooks, session):
    analysis = analyze_workbook(two_workbooks[0], session)
    docs = render_worksheets(analysis, ["Notes", "Sheet1"])
    assert [d.entry_name for d in docs] == ["Notes.pdf", "Sheet1.pdf"]
