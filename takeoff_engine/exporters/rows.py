"""Format-agnostic report rows built from a costed takeoff summary.

Renderers (CSV, XLSX, PDF) consume the same row sequence and never repeat
any geometry, calibration or cost arithmetic.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Mapping, Optional

from ..costing import DivisionRollup, TakeoffSummary, TypeTotals

COLUMNS = (
    "Division",
    "Subcategory",
    "Label",
    "Type",
    "Value",
    "Unit",
    "Layer",
    "Material Type",
    "Price Per Unit",
    "Total Price",
    "Description",
    "Plan",
    "Created Date",
)

# Column positions rendered as currency.
MONEY_COLUMNS = (COLUMNS.index("Price Per Unit"), COLUMNS.index("Total Price"))

HEADER = "header"
DIVISION = "division"
ITEM = "item"
GENERAL = "general"
SPACER = "spacer"
GRAND_TOTAL = "grand_total"


@dataclass(frozen=True)
class ExportRow:
    """One fixed-shape report row."""

    kind: str
    division: str = ""
    subcategory: str = ""
    label: str = ""
    type: str = ""
    value: Optional[float] = None
    unit: str = ""
    layer: str = ""
    material_type: str = ""
    unit_price: Optional[float] = None
    cost: Optional[float] = None
    description: str = ""
    plan: str = ""
    created_date: str = ""

    def cells(self) -> List[object]:
        """Row values in :data:`COLUMNS` order; headers render the column names."""

        if self.kind == HEADER:
            return list(COLUMNS)
        return [
            self.division,
            self.subcategory,
            self.label,
            self.type,
            self.value,
            self.unit,
            self.layer,
            self.material_type,
            self.unit_price,
            self.cost,
            self.description,
            self.plan,
            self.created_date,
        ]


_TOTAL_LABELS = (("line", "Linear"), ("area", "Area"), ("count", "Count"))


def describe_totals(totals: TypeTotals) -> str:
    parts = []
    for kind, caption in _TOTAL_LABELS:
        for unit in totals.units(kind):
            amount = totals.total(kind, unit)
            if not amount:
                continue
            if kind == "count":
                parts.append(f"{caption}: {amount:g} ea")
            else:
                parts.append(f"{caption}: {amount:.2f} {unit}")
    if totals.text:
        parts.append(f"Notes: {totals.text}")
    return "; ".join(parts)


def _division_rows(rollup: DivisionRollup, plan_titles: Mapping[str, str]) -> List[ExportRow]:
    rows = [
        ExportRow(
            kind=DIVISION,
            division=rollup.code,
            label=rollup.label,
            cost=rollup.cost,
            description=describe_totals(rollup.totals) or "DIVISION TOTAL",
        )
    ]

    if not rollup.has_subcategories:
        rows.append(
            ExportRow(
                kind=GENERAL,
                division=rollup.code,
                subcategory="General",
                label="General",
                cost=rollup.cost,
            )
        )
        return rows

    for group in rollup.subcategories:
        for item in group.items:
            measurement = item.measurement
            rows.append(
                ExportRow(
                    kind=ITEM,
                    division=rollup.code,
                    subcategory=group.name,
                    label=measurement.label,
                    type=measurement.kind,
                    value=measurement.value,
                    unit=measurement.unit,
                    layer=measurement.layer,
                    material_type=measurement.material_type,
                    unit_price=item.unit_price,
                    cost=item.cost,
                    description=measurement.notes,
                    plan=plan_titles.get(measurement.plan_id, measurement.plan_id),
                    created_date=measurement.created_at.date().isoformat(),
                )
            )
    return rows


def build_export_rows(
    summary: TakeoffSummary, *, plan_titles: Optional[Mapping[str, str]] = None
) -> List[ExportRow]:
    """Lay out header, per-division blocks and the grand total.

    ``plan_titles`` maps plan ids to the titles shown in the Plan column;
    plans without a title are shown by id.
    """

    plan_titles = plan_titles or {}
    rows: List[ExportRow] = [ExportRow(kind=HEADER)]
    for rollup in summary.divisions:
        rows.extend(_division_rows(rollup, plan_titles))
        rows.append(ExportRow(kind=SPACER))
    rows.append(ExportRow(kind=GRAND_TOTAL, label="GRAND TOTAL", cost=summary.grand_total))
    return rows
