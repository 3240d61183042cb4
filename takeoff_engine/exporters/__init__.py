"""Export format registry."""

from __future__ import annotations

import re
from urllib.parse import quote
from dataclasses import dataclass
from datetime import date
from typing import Callable, Dict, Optional, Sequence, Union

from .pdf import render_pdf
from .rows import COLUMNS, ExportRow, build_export_rows
from .spreadsheet import render_csv, render_xlsx


@dataclass(frozen=True)
class ExportFormat:
    name: str
    extension: str
    content_type: str
    renderer: Callable[..., Union[str, bytes]]

    def render(self, rows: Sequence[ExportRow], *, title: str) -> bytes:
        payload = self.renderer(rows, title=title)
        if isinstance(payload, str):
            return payload.encode("utf-8")
        return payload


EXPORT_FORMATS: Dict[str, ExportFormat] = {
    "csv": ExportFormat("csv", "csv", "text/csv", render_csv),
    "excel": ExportFormat(
        "excel",
        "xlsx",
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        render_xlsx,
    ),
    "pdf": ExportFormat("pdf", "pdf", "application/pdf", render_pdf),
}


def get_format(name: str) -> ExportFormat:
    key = (name or "").lower()
    if key not in EXPORT_FORMATS:
        available = ", ".join(sorted(EXPORT_FORMATS))
        raise ValueError(f"Unsupported export format '{name}'. Available formats: {available}")
    return EXPORT_FORMATS[key]


def export_filename(project_name: str, fmt: str, on: Optional[date] = None) -> str:
    """Build ``takeoff-{projectName}-{isoDate}.{ext}``."""

    export_format = get_format(fmt)
    # Keep the name usable inside a Content-Disposition header.
    name = re.sub(r'[\\/:*?"<>|\r\n]+', "-", project_name).strip() or "project"
    return f"takeoff-{name}-{(on or date.today()).isoformat()}.{export_format.extension}"


def content_disposition(filename: str) -> str:
    """Attachment header with an ASCII fallback and an RFC 5987 UTF-8 name."""

    fallback = filename.encode("ascii", "ignore").decode("ascii").replace('"', "").replace("\\", "")
    return f'attachment; filename="{fallback}"; filename*=UTF-8\'\'{quote(filename, safe="")}'


__all__ = [
    "COLUMNS",
    "EXPORT_FORMATS",
    "ExportFormat",
    "ExportRow",
    "build_export_rows",
    "content_disposition",
    "export_filename",
    "get_format",
    "render_csv",
    "render_pdf",
    "render_xlsx",
]
