from __future__ import annotations

import logging
import math
import re
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import date, datetime, time
from io import BytesIO
from typing import Any

import pandas as pd
from reportlab.lib.pagesizes import A4, LETTER
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas

from ..config.loader import RenderConfig
from ..errors import RenderError
from ..models.artifacts import GeneratedDocument
from ..models.workbook_analysis import WorkbookAnalysis
from .combiner import ProgressCallback, progress_percent

"""Sheet renderer: one worksheet -> one paginated PDF document.

Layout (portrait, lengths in mm measured from the top-left corner):
- title line with the worksheet name at margin + 10, then two line heights
- one line per data row, at most ``max_columns`` cells spaced evenly across
  the page width divided by min(columns in row, max_columns)
- each cell truncated to ``cell_text_limit`` characters plus "..."
- a new page starts when the next baseline would pass
  page height - margin - line height
"""

__all__ = [
    "PAGE_SIZES",
    "TextOp",
    "format_cell",
    "truncate_cell",
    "extract_rows",
    "layout_pages",
    "document_entry_name",
    "draw_pdf",
    "render_worksheet",
    "render_worksheets",
]

logger = logging.getLogger(__name__)

PAGE_SIZES = {
    "A4": A4,
    "LETTER": LETTER,
}

_PATH_HAZARDS = re.compile(r'[/\\:*?"<>|]')

DOCUMENT_EXTENSION = ".pdf"
TITLE_OFFSET_MM = 10


@dataclass(frozen=True)
class TextOp:
    x: float  # mm from left edge
    y: float  # mm from top edge (baseline)
    text: str
    font_size: float


def format_cell(value: Any) -> str:
    """String-coerce a cached cell value; blank -> ""."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
        return str(value)
    if isinstance(value, datetime):
        if value.time() == time(0, 0):
            return value.date().isoformat()
        return value.isoformat(sep=" ")
    if isinstance(value, (date, time)):
        return value.isoformat()
    return str(value)


def truncate_cell(text: str, limit: int = 15) -> str:
    if len(text) > limit:
        return text[:limit] + "..."
    return text


def extract_rows(ws: Any, max_columns: int | None = None) -> list[list[str]]:
    """Cell grid of the sheet's used range as rows of strings.

    Row order and column order are preserved; columns past ``max_columns``
    are dropped from the result (the worksheet itself is untouched).
    """
    raw = list(
        ws.iter_rows(
            min_row=ws.min_row,
            max_row=ws.max_row,
            min_col=ws.min_column,
            max_col=ws.max_column,
            values_only=True,
        )
    )
    if not raw:
        return []
    df = pd.DataFrame(raw, dtype=object)
    if max_columns is not None:
        df = df.iloc[:, :max_columns]
    return [list(row) for row in df.map(format_cell).itertuples(index=False, name=None)]


def _page_size_mm(layout: RenderConfig) -> tuple[float, float]:
    width, height = PAGE_SIZES[layout.page_size]
    return width / mm, height / mm


def layout_pages(title: str, rows: Sequence[Sequence[str]], layout: RenderConfig) -> list[list[TextOp]]:
    """Place the title and every row; returns one list of text ops per page."""
    page_width, page_height = _page_size_mm(layout)
    margin = layout.margin_mm
    line_height = layout.line_height_mm
    usable_width = page_width - 2 * margin

    pages: list[list[TextOp]] = [[]]
    y = margin + TITLE_OFFSET_MM
    pages[-1].append(TextOp(margin, y, title, layout.title_font_size))
    y += line_height * 2

    for row in rows:
        if y > page_height - margin - line_height:
            pages.append([])
            y = margin + TITLE_OFFSET_MM

        cells = row[: layout.max_columns]
        if cells:
            column_width = usable_width / min(len(row), layout.max_columns)
            x = margin
            for text in cells:
                if text:
                    pages[-1].append(
                        TextOp(x, y, truncate_cell(text, layout.cell_text_limit), layout.body_font_size)
                    )
                x += column_width
        y += line_height

    return pages


def document_entry_name(sheet_name: str) -> str:
    """Sheet name with path-hazard characters replaced, plus ".pdf"."""
    return _PATH_HAZARDS.sub("_", sheet_name) + DOCUMENT_EXTENSION


def draw_pdf(pages: Sequence[Sequence[TextOp]], layout: RenderConfig, title: str = "") -> bytes:
    page_size = PAGE_SIZES[layout.page_size]
    buffer = BytesIO()
    c = canvas.Canvas(buffer, pagesize=page_size)
    if title:
        c.setTitle(title)
    for number, ops in enumerate(pages):
        if number:
            c.showPage()
        for op in ops:
            c.setFont(layout.font_name, op.font_size)
            c.drawString(op.x * mm, page_size[1] - op.y * mm, op.text)
    c.save()
    return buffer.getvalue()


def render_worksheet(
    analysis: WorkbookAnalysis, sheet_name: str, layout: RenderConfig | None = None
) -> GeneratedDocument:
    """Render one worksheet of ``analysis`` into a PDF document.

    Raises:
        RenderError: Unknown worksheet or PDF generation failure.
    """
    layout = layout or RenderConfig()
    try:
        meta = analysis.worksheet(sheet_name)
    except KeyError as e:
        raise RenderError(
            f"{analysis.file_name}: worksheet '{sheet_name}' not found", file_name=analysis.file_name
        ) from e

    try:
        rows = extract_rows(analysis.values_workbook[sheet_name], layout.max_columns) if meta.has_data else []
        pages = layout_pages(sheet_name, rows, layout)
        content = draw_pdf(pages, layout, title=sheet_name)
    except Exception as e:
        raise RenderError(
            f"{analysis.file_name}: failed to render worksheet '{sheet_name}' ({e})",
            file_name=analysis.file_name,
        ) from e

    logger.debug(f"rendered sheet={sheet_name} rows={len(rows)} pages={len(pages)}")
    return GeneratedDocument(
        sheet_name=sheet_name,
        entry_name=document_entry_name(sheet_name),
        content=content,
        page_count=len(pages),
    )


def render_worksheets(
    analysis: WorkbookAnalysis,
    sheet_names: Sequence[str] | None = None,
    on_progress: ProgressCallback | None = None,
    layout: RenderConfig | None = None,
    *,
    max_workers: int | None = None,
) -> list[GeneratedDocument]:
    """Render the selected worksheets (all, in index order, when None).

    With ``max_workers`` > 1 documents are rendered concurrently; results and
    progress are still delivered in selection order.
    """
    if sheet_names is None:
        sheet_names = [m.name for m in sorted(analysis.worksheets, key=lambda m: m.index)]
    total = len(sheet_names)
    logger.info(f"rendering {total} worksheet(s) from {analysis.file_name}")

    documents: list[GeneratedDocument] = []
    if max_workers is None or max_workers <= 1:
        for i, name in enumerate(sheet_names, start=1):
            documents.append(render_worksheet(analysis, name, layout))
            if on_progress is not None:
                on_progress(progress_percent(i, total))
        return documents

    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        futures = [pool.submit(render_worksheet, analysis, name, layout) for name in sheet_names]
        for i, fut in enumerate(futures, start=1):
            documents.append(fut.result())
            if on_progress is not None:
                on_progress(progress_percent(i, total))
    return documents
