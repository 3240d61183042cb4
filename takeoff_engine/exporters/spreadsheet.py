"""Spreadsheet renderers (CSV and XLSX) for takeoff export rows."""

from __future__ import annotations

import csv
import io
from typing import Any, List, Sequence

import xlsxwriter

from .rows import COLUMNS, DIVISION, GRAND_TOTAL, HEADER, MONEY_COLUMNS, SPACER, ExportRow


def render_csv(rows: Sequence[ExportRow], **_: Any) -> str:
    """Return the CSV representation of the export rows as a string."""

    buffer = io.StringIO()
    writer = csv.writer(buffer)
    for row in rows:
        writer.writerow(_text_cells(row))
    return buffer.getvalue()


def _format_cell(value: object, *, money: bool = False) -> object:
    if value is None:
        return ""
    if isinstance(value, float):
        return f"{value:.2f}" if money else round(value, 4)
    return value


def _text_cells(row: ExportRow) -> List[object]:
    if row.kind == SPACER:
        return []
    cells = row.cells()
    if row.kind == HEADER:
        return cells
    return [
        _format_cell(cell, money=index in MONEY_COLUMNS)
        for index, cell in enumerate(cells)
    ]


def render_xlsx(rows: Sequence[ExportRow], *, title: str = "Takeoff") -> bytes:
    """Render the export rows into a single-sheet XLSX workbook."""

    buffer = io.BytesIO()
    workbook = xlsxwriter.Workbook(buffer, {"in_memory": True})
    try:
        header_fmt = workbook.add_format({"bold": True, "bg_color": "#14141E", "font_color": "#FFFFFF", "border": 1})
        division_fmt = workbook.add_format({"bold": True, "bg_color": "#E2E8F0", "border": 1})
        division_money = workbook.add_format({"bold": True, "bg_color": "#E2E8F0", "border": 1, "num_format": "#,##0.00"})
        total_fmt = workbook.add_format({"bold": True, "bg_color": "#002147", "font_color": "#FFFFFF", "border": 1})
        total_money = workbook.add_format(
            {"bold": True, "bg_color": "#002147", "font_color": "#FFFFFF", "border": 1, "num_format": "#,##0.00"}
        )
        normal = workbook.add_format({"border": 1})
        qty_fmt = workbook.add_format({"border": 1, "num_format": "#,##0.00"})
        money = workbook.add_format({"border": 1, "num_format": "#,##0.00"})
        title_fmt = workbook.add_format({"bold": True, "font_size": 14})

        sheet = workbook.add_worksheet("Takeoff")
        sheet.set_column(0, 0, 28)
        sheet.set_column(1, 2, 24)
        sheet.set_column(3, 9, 14)
        sheet.set_column(10, 10, 48)
        sheet.set_column(11, 12, 18)
        sheet.write(0, 0, title, title_fmt)

        row_index = 2
        for row in rows:
            if row.kind == SPACER:
                row_index += 1
                continue
            if row.kind == HEADER:
                sheet.write_row(row_index, 0, list(COLUMNS), header_fmt)
            else:
                if row.kind == DIVISION:
                    text_fmt, number_fmt, price_fmt = division_fmt, division_money, division_money
                elif row.kind == GRAND_TOTAL:
                    text_fmt, number_fmt, price_fmt = total_fmt, total_money, total_money
                else:
                    text_fmt, number_fmt, price_fmt = normal, qty_fmt, money
                for column, cell in enumerate(row.cells()):
                    if cell is None or cell == "":
                        sheet.write_blank(row_index, column, None, text_fmt)
                    elif isinstance(cell, (int, float)):
                        sheet.write_number(
                            row_index, column, cell, price_fmt if column in MONEY_COLUMNS else number_fmt
                        )
                    else:
                        sheet.write_string(row_index, column, str(cell), text_fmt)
            row_index += 1
    finally:
        workbook.close()
    return buffer.getvalue()
