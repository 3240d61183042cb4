"""Printable PDF renderer for takeoff export rows."""

from __future__ import annotations

import io
import logging
from datetime import date
from typing import List, Optional, Sequence

from reportlab.lib import colors
from reportlab.lib.pagesizes import landscape, letter
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from .rows import COLUMNS, DIVISION, GRAND_TOTAL, HEADER, MONEY_COLUMNS, SPACER, ExportRow

logger = logging.getLogger(__name__)

_COLUMN_WIDTHS = [1.0, 0.9, 1.1, 0.45, 0.6, 0.5, 0.7, 0.8, 0.7, 0.75, 1.2, 0.6, 0.7]


def _money(value: Optional[float]) -> str:
    return "" if value is None else f"${value:,.2f}"


def _cells(row: ExportRow) -> List[str]:
    if row.kind == HEADER:
        return list(COLUMNS)
    if row.kind == SPACER:
        return [""] * len(COLUMNS)
    return [
        row.division,
        row.subcategory,
        row.label,
        row.type,
        "" if row.value is None else f"{row.value:,.2f}",
        row.unit,
        row.layer,
        row.material_type,
        _money(row.unit_price),
        _money(row.cost),
        row.description,
        row.plan,
        row.created_date,
    ]


def render_pdf(rows: Sequence[ExportRow], *, title: str = "Takeoff Report", on: Optional[date] = None) -> bytes:
    """Lay the export rows out as a single landscape table."""

    buffer = io.BytesIO()
    document = SimpleDocTemplate(
        buffer,
        pagesize=landscape(letter),
        leftMargin=0.5 * inch,
        rightMargin=0.5 * inch,
        topMargin=0.5 * inch,
        bottomMargin=0.5 * inch,
        title=title,
    )
    styles = getSampleStyleSheet()
    generated = (on or date.today()).isoformat()

    data = [_cells(row) for row in rows]
    table = Table(data, colWidths=[width * inch for width in _COLUMN_WIDTHS], repeatRows=1)
    commands = [
        ("FONT", (0, 0), (-1, -1), "Helvetica", 7),
        ("ALIGN", (4, 0), (4, -1), "RIGHT"),
        ("ALIGN", (MONEY_COLUMNS[0], 0), (MONEY_COLUMNS[-1], -1), "RIGHT"),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
    ]
    for index, row in enumerate(rows):
        if row.kind == HEADER:
            commands += [
                ("BACKGROUND", (0, index), (-1, index), colors.HexColor("#428BCA")),
                ("TEXTCOLOR", (0, index), (-1, index), colors.white),
                ("FONT", (0, index), (-1, index), "Helvetica-Bold", 7),
            ]
        elif row.kind == DIVISION:
            commands += [
                ("BACKGROUND", (0, index), (-1, index), colors.HexColor("#DCDCDC")),
                ("FONT", (0, index), (-1, index), "Helvetica-Bold", 7),
            ]
        elif row.kind == GRAND_TOTAL:
            commands += [
                ("LINEABOVE", (0, index), (-1, index), 1, colors.black),
                ("FONT", (0, index), (-1, index), "Helvetica-Bold", 9),
            ]
    table.setStyle(TableStyle(commands))

    story = [
        Paragraph(title, styles["Title"]),
        Paragraph(f"Generated {generated}", styles["Normal"]),
        Spacer(1, 0.2 * inch),
        table,
    ]
    document.build(story)
    payload = buffer.getvalue()
    logger.debug("Rendered takeoff PDF with %d rows (%d bytes)", len(rows), len(payload))
    return payload
