"""Costing and division rollups for takeoff measurements."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from .human_review import ReviewChecklist
from .measurements import Measurement
from .taxonomy import DEFAULT_TAXONOMY, DivisionTaxonomy

logger = logging.getLogger(__name__)


QUANTITY_KINDS = ("line", "area", "count")


@dataclass
class TypeTotals:
    """Quantities summed per measurement type and unit.

    Types are never mixed, and neither are units: ten feet and three metres
    stay two separate line totals.
    """

    quantities: Dict[Tuple[str, str], float] = field(default_factory=dict)
    text: int = 0

    def add(self, measurement: Measurement) -> None:
        if measurement.kind == "text":
            self.text += 1
            return
        key = (measurement.kind, measurement.unit)
        self.quantities[key] = self.quantities.get(key, 0.0) + measurement.value

    def units(self, kind: str) -> List[str]:
        return [unit for (k, unit) in self.quantities if k == kind]

    def total(self, kind: str, unit: str) -> float:
        return self.quantities.get((kind, unit), 0.0)

    def mixed_kinds(self) -> List[str]:
        return [kind for kind in QUANTITY_KINDS if len(self.units(kind)) > 1]

    def as_dict(self) -> Dict[str, object]:
        data: Dict[str, object] = {
            kind: {unit: self.total(kind, unit) for unit in self.units(kind)} for kind in QUANTITY_KINDS
        }
        data["text"] = self.text
        return data


@dataclass
class CostedItem:
    """A measurement paired with its extended cost."""

    measurement: Measurement

    @property
    def unit_price(self) -> float:
        return self.measurement.price_per_unit or 0.0

    @property
    def cost(self) -> float:
        return self.measurement.value * self.unit_price


@dataclass
class SubcategoryGroup:
    name: str
    items: List[CostedItem] = field(default_factory=list)
    totals: TypeTotals = field(default_factory=TypeTotals)
    cost: float = 0.0

    def add(self, item: CostedItem) -> None:
        self.items.append(item)
        self.totals.add(item.measurement)
        self.cost += item.cost


@dataclass
class DivisionRollup:
    """All measurements classified under one division code."""

    code: str
    name: str
    known: bool = True
    subcategories: List[SubcategoryGroup] = field(default_factory=list)
    items: List[CostedItem] = field(default_factory=list)
    totals: TypeTotals = field(default_factory=TypeTotals)
    cost: float = 0.0

    @property
    def label(self) -> str:
        if self.known:
            return f"{self.code} - {self.name}"
        return self.code

    @property
    def has_subcategories(self) -> bool:
        return any(group.name for group in self.subcategories)

    def add(self, item: CostedItem) -> None:
        name = item.measurement.subcategory
        group = next((g for g in self.subcategories if g.name == name), None)
        if group is None:
            group = SubcategoryGroup(name=name)
            self.subcategories.append(group)
        group.add(item)
        self.items.append(item)
        self.totals.add(item.measurement)
        self.cost += item.cost


@dataclass
class TakeoffSummary:
    """Complete costing result for a set of measurements."""

    divisions: List[DivisionRollup]
    totals: TypeTotals
    grand_total: float
    item_count: int

    def division(self, code: str) -> DivisionRollup:
        for rollup in self.divisions:
            if rollup.code == code:
                return rollup
        raise KeyError(code)


def aggregate(
    measurements: Iterable[Measurement],
    taxonomy: DivisionTaxonomy = DEFAULT_TAXONOMY,
    *,
    review: Optional[ReviewChecklist] = None,
) -> TakeoffSummary:
    """Group measurements by division and subcategory and roll up costs.

    Divisions come out in ascending code order; subcategories keep the order
    in which they first appear within their division. Unknown division codes
    are reported through ``review`` and shown with their raw code.
    """

    rollups: Dict[str, DivisionRollup] = {}
    totals = TypeTotals()
    item_count = 0

    for measurement in measurements:
        code = measurement.division
        rollup = rollups.get(code)
        if rollup is None:
            known = taxonomy.is_known(code)
            rollup = DivisionRollup(code=code, name=taxonomy.name_for(code), known=known)
            rollups[code] = rollup
            if not known:
                logger.warning("Unknown division code %r; reporting under the raw code", code)
                if review is not None:
                    review.add(
                        f"Division '{code}' is not in the division list; shown under its raw code.",
                        severity="warning",
                    )

        item = CostedItem(measurement)
        rollup.add(item)
        totals.add(measurement)
        item_count += 1

        if review is not None and measurement.kind != "text" and not measurement.price_per_unit:
            review.add(
                f"Measurement '{measurement.label or measurement.id}' has no unit price; costed at $0.",
                severity="info",
                measurement_id=measurement.id,
            )

    divisions = [rollups[code] for code in sorted(rollups)]
    for rollup in divisions:
        for kind in rollup.totals.mixed_kinds():
            units = ", ".join(rollup.totals.units(kind))
            logger.warning("Division %s mixes %s units: %s", rollup.code, kind, units)
            if review is not None:
                review.add(
                    f"Division '{rollup.code}' mixes {kind} units ({units}); totals are reported per unit.",
                    severity="warning",
                )

    grand_total = sum(rollup.cost for rollup in divisions)
    return TakeoffSummary(divisions=divisions, totals=totals, grand_total=grand_total, item_count=item_count)


def filter_measurements(
    measurements: Iterable[Measurement],
    *,
    division: Optional[str] = None,
    kind: Optional[str] = None,
    layer: Optional[str] = None,
) -> List[Measurement]:
    """Select measurements by division, type and layer; ``None`` matches all."""

    return [
        m
        for m in measurements
        if (division is None or m.division == division)
        and (kind is None or m.kind == kind)
        and (layer is None or m.layer == layer)
    ]
