# Overview: Spreadsheet writer; renders report sheets into an .xlsx workbook.

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from io import BytesIO
from typing import Iterable

import openpyxl
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from ..engine.reports import Sheet


XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

MONEY_FORMAT = "#,##0.00"
DATE_FORMAT = "DD/MM/YYYY"

# Excel caps sheet titles at 31 characters
MAX_TITLE_LENGTH = 31

_HEADER_FONT = Font(bold=True, color="FFFFFF")
_HEADER_FILL = PatternFill(start_color="366092", end_color="366092", fill_type="solid")
_THIN = Side(style="thin")
_BORDER = Border(left=_THIN, right=_THIN, top=_THIN, bottom=_THIN)


def _column_width(values: Iterable) -> int:
    longest = max((len(str(v)) for v in values if v is not None), default=0)
    return min(max(longest + 2, 12), 60)


def sheets_to_xlsx(
    sheets: list[Sheet],
    *,
    title: str | None = None,
    right_to_left: bool = False,
) -> bytes:
    """
    Render sheets into an .xlsx workbook and return its bytes.

    Decimal cells get a 2-place number format and date cells a DD/MM/YYYY
    format; everything else is written as-is.
    """
    wb = openpyxl.Workbook()
    wb.remove(wb.active)
    if title:
        wb.properties.title = title

    for sheet in sheets:
        ws = wb.create_sheet(title=sheet.name[:MAX_TITLE_LENGTH])
        ws.sheet_view.rightToLeft = right_to_left

        for col_idx, name in enumerate(sheet.header, 1):
            cell = ws.cell(row=1, column=col_idx, value=name)
            cell.font = _HEADER_FONT
            cell.fill = _HEADER_FILL
            cell.alignment = Alignment(horizontal="center", vertical="center")
            cell.border = _BORDER

        for row_idx, row in enumerate(sheet.rows, 2):
            for col_idx, value in enumerate(row, 1):
                if isinstance(value, Decimal):
                    cell = ws.cell(row=row_idx, column=col_idx, value=float(value))
                    cell.number_format = MONEY_FORMAT
                elif isinstance(value, date) and not isinstance(value, datetime):
                    cell = ws.cell(row=row_idx, column=col_idx, value=value)
                    cell.number_format = DATE_FORMAT
                else:
                    cell = ws.cell(row=row_idx, column=col_idx, value=value)
                cell.border = _BORDER

        for col_idx, name in enumerate(sheet.header, 1):
            column = [name] + [row[col_idx - 1] if col_idx - 1 < len(row) else None for row in sheet.rows]
            ws.column_dimensions[get_column_letter(col_idx)].width = _column_width(column)

        ws.freeze_panes = "A2"

    if not wb.worksheets:
        wb.create_sheet(title="Report")

    buffer = BytesIO()
    wb.save(buffer)
    return buffer.getvalue()
