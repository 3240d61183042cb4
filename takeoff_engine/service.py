"""High-level helpers for costing and exporting takeoffs programmatically."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Iterable, List, Mapping, Optional

from .costing import TakeoffSummary, aggregate
from .exporters import build_export_rows, export_filename, get_format
from .exporters.rows import ExportRow
from .human_review import ReviewChecklist
from .measurements import Measurement
from .taxonomy import DEFAULT_TAXONOMY, DivisionTaxonomy

logger = logging.getLogger(__name__)


@dataclass
class ExportArtifact:
    """Rendered export ready to hand to a download or a file."""

    filename: str
    content_type: str
    payload: bytes
    summary: TakeoffSummary
    rows: List[ExportRow]
    review: ReviewChecklist


def export_takeoff(
    measurements: Iterable[Measurement],
    export_format: str,
    project_name: str,
    *,
    taxonomy: DivisionTaxonomy = DEFAULT_TAXONOMY,
    review: ReviewChecklist | None = None,
    plan_titles: Optional[Mapping[str, str]] = None,
    on: Optional[date] = None,
) -> ExportArtifact:
    """Cost the measurements and render them in ``export_format``.

    ``plan_titles`` maps plan ids to the titles shown in the Plan column.
    """

    fmt = get_format(export_format)
    if review is None:
        review = ReviewChecklist()
    measurements = list(measurements)
    if not measurements:
        review.add(f"No measurements found for project '{project_name}'.", severity="warning")

    summary = aggregate(measurements, taxonomy, review=review)
    rows = build_export_rows(summary, plan_titles=plan_titles)
    payload = fmt.render(rows, title=f"Takeoff Report - {project_name}")
    filename = export_filename(project_name, fmt.name, on)

    logger.info(
        "Exported %d measurements across %d divisions to %s (grand total %.2f)",
        summary.item_count,
        len(summary.divisions),
        filename,
        summary.grand_total,
    )
    return ExportArtifact(
        filename=filename,
        content_type=fmt.content_type,
        payload=payload,
        summary=summary,
        rows=rows,
        review=review,
    )


def summary_to_dict(summary: TakeoffSummary) -> dict:
    """JSON-friendly view of a costing summary."""

    return {
        "grandTotal": summary.grand_total,
        "itemCount": summary.item_count,
        "totals": summary.totals.as_dict(),
        "divisions": [
            {
                "code": rollup.code,
                "name": rollup.name,
                "label": rollup.label,
                "cost": rollup.cost,
                "totals": rollup.totals.as_dict(),
                "subcategories": [
                    {
                        "name": group.name,
                        "cost": group.cost,
                        "totals": group.totals.as_dict(),
                        "measurementIds": [item.measurement.id for item in group.items],
                    }
                    for group in rollup.subcategories
                ],
            }
            for rollup in summary.divisions
        ],
    }
