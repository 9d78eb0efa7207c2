from __future__ import annotations

import logging
from copy import copy
from io import BytesIO
from typing import Any

from openpyxl import Workbook
from openpyxl.cell.cell import MergedCell

from ..errors import EncodeError
from ..models.artifacts import EncodedWorkbook
from ..models.combined_workbook import CombinedWorkbook

"""Workbook encoder: serialize a CombinedWorkbook to an xlsx container.

openpyxl worksheets cannot move between workbooks, so each referenced
source sheet is materialized into the target workbook here, in combined
order: cell values (formulas kept verbatim), number formats, fonts, fills,
borders, alignment, protection, hyperlinks, comments, merged ranges,
conditional formats, data validations, column widths, row heights,
freeze panes and tab colour.
"""

__all__ = [
    "combined_file_name",
    "copy_worksheet",
    "encode_workbook",
]

logger = logging.getLogger(__name__)


def combined_file_name(base_file_name: str) -> str:
    return f"{base_file_name}_combined.xlsx"


def copy_worksheet(source: Any, target: Any) -> None:
    """Copy content and layout of ``source`` into the empty sheet ``target``."""
    for row in source.iter_rows():
        for cell in row:
            if isinstance(cell, MergedCell):
                continue
            new = target.cell(row=cell.row, column=cell.column, value=cell.value)
            if cell.data_type == "s":
                # text starting with "=" must not turn into a formula
                new.data_type = "s"
            if cell.has_style:
                new.font = copy(cell.font)
                new.fill = copy(cell.fill)
                new.border = copy(cell.border)
                new.alignment = copy(cell.alignment)
                new.protection = copy(cell.protection)
                new.number_format = cell.number_format
            if cell.hyperlink is not None:
                new.hyperlink = copy(cell.hyperlink)
            if cell.comment is not None:
                new.comment = cell.comment  # setter copies bound comments

    for merged in source.merged_cells.ranges:
        target.merge_cells(merged.coord)

    for cf in source.conditional_formatting:
        for rule in cf.rules:
            target.conditional_formatting.add(str(cf.sqref), copy(rule))
    for dv in source.data_validations.dataValidation:
        target.add_data_validation(copy(dv))

    for key, dim in source.column_dimensions.items():
        target_dim = target.column_dimensions[key]
        target_dim.width = dim.width
        target_dim.hidden = dim.hidden
    for idx, dim in source.row_dimensions.items():
        target_dim = target.row_dimensions[idx]
        target_dim.height = dim.height
        target_dim.hidden = dim.hidden

    target.freeze_panes = source.freeze_panes
    target.sheet_properties.tabColor = copy(source.sheet_properties.tabColor)


def encode_workbook(combined: CombinedWorkbook, base_file_name: str) -> EncodedWorkbook:
    """Serialize ``combined`` preserving its sheet order.

    Raises:
        EncodeError: The workbook is empty or could not be written.
    """
    file_name = combined_file_name(base_file_name)
    if len(combined) == 0:
        raise EncodeError(f"{file_name}: cannot encode a workbook without worksheets", file_name=file_name)

    try:
        wb = Workbook()
        wb.remove(wb.active)
        for entry in combined:
            target = wb.create_sheet(title=entry.final_name)
            copy_worksheet(entry.source, target)
        buffer = BytesIO()
        wb.save(buffer)
    except Exception as e:
        raise EncodeError(f"{file_name}: failed to write combined workbook ({e})", file_name=file_name) from e

    content = buffer.getvalue()
    logger.info(f"encoded {file_name} sheets={len(combined)} bytes={len(content)}")
    return EncodedWorkbook(
        content=content,
        file_name=file_name,
        size=len(content),
        sheet_count=len(combined),
    )
