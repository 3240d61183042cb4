"""Tagged measurement records traced over a plan.

Each record keeps the raw pixel-space ``points`` it was drawn with. ``value``
and ``unit`` are derived from those points and the plan calibration and are
only ever written by :class:`~takeoff_engine.store.MeasurementStore`.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, ClassVar, Dict, Iterable, Optional, Tuple, Type

from .calibration import Calibration
from .errors import InvalidMeasurement
from .geometry import line_length, polygon_area

TOOL_COLORS = {
    "line": "#2563EB",
    "area": "#22C55E",
    "count": "#F59E0B",
    "text": "#8B5CF6",
}

# Wire keys (camelCase JSON) for the shared metadata fields.
_WIRE_KEYS = {
    "label": "label",
    "division": "division",
    "subcategory": "subcategory",
    "layer": "layer",
    "material_type": "materialType",
    "price_per_unit": "pricePerUnit",
    "notes": "notes",
    "color": "color",
}

EDITABLE_FIELDS = frozenset(_WIRE_KEYS) | {"points"}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def coerce_points(points: Iterable[Any]) -> Tuple[float, ...]:
    """Normalise a flat coordinate sequence, rejecting non-numeric entries."""

    try:
        coerced = tuple(float(value) for value in points)
    except (TypeError, ValueError) as exc:
        raise InvalidMeasurement(f"Points must be numeric: {exc}") from exc
    if any(not math.isfinite(value) for value in coerced):
        raise InvalidMeasurement("Points must be finite numbers")
    if len(coerced) % 2:
        raise InvalidMeasurement(f"Points must contain x/y pairs, got {len(coerced)} numbers")
    return coerced


@dataclass(frozen=True)
class Measurement:
    """Fields shared by every measurement variant."""

    kind: ClassVar[str] = ""
    min_numbers: ClassVar[int] = 2
    max_numbers: ClassVar[Optional[int]] = None

    id: str
    points: Tuple[float, ...]
    label: str = ""
    division: str = ""
    subcategory: str = ""
    layer: str = "General"
    material_type: str = ""
    price_per_unit: float = 0.0
    notes: str = ""
    color: str = ""
    plan_id: str = ""
    created_at: datetime = field(default_factory=_utcnow)
    value: float = 0.0
    unit: str = ""

    def __post_init__(self) -> None:
        points = coerce_points(self.points)
        object.__setattr__(self, "points", points)

        if len(points) < self.min_numbers:
            raise InvalidMeasurement(
                f"A {self.kind} measurement needs at least {self.min_numbers // 2} points, got {len(points) // 2}"
            )
        if self.max_numbers is not None and len(points) > self.max_numbers:
            raise InvalidMeasurement(
                f"A {self.kind} measurement takes exactly {self.max_numbers // 2} anchor point"
            )

        price = self.price_per_unit
        try:
            price = float(price) if price is not None else 0.0
        except (TypeError, ValueError) as exc:
            raise InvalidMeasurement(f"Price per unit must be numeric, got {self.price_per_unit!r}") from exc
        if not math.isfinite(price) or price < 0:
            raise InvalidMeasurement(f"Price per unit must be a non-negative number, got {price}")
        object.__setattr__(self, "price_per_unit", price)

        if not self.color:
            object.__setattr__(self, "color", TOOL_COLORS.get(self.kind, ""))

    def measure(self, calibration: Calibration) -> Tuple[float, str]:
        """Derive ``(value, unit)`` from the raw points under ``calibration``."""

        raise NotImplementedError

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "type": self.kind,
            "points": list(self.points),
            "value": self.value,
            "unit": self.unit,
            "createdAt": self.created_at.isoformat(),
            "planId": self.plan_id,
        }
        for attr, key in _WIRE_KEYS.items():
            data[key] = getattr(self, attr)
        return data


@dataclass(frozen=True)
class LineMeasurement(Measurement):
    kind: ClassVar[str] = "line"
    min_numbers: ClassVar[int] = 4

    def measure(self, calibration: Calibration) -> Tuple[float, str]:
        return calibration.length(line_length(self.points)), calibration.unit


@dataclass(frozen=True)
class AreaMeasurement(Measurement):
    kind: ClassVar[str] = "area"
    min_numbers: ClassVar[int] = 6

    def measure(self, calibration: Calibration) -> Tuple[float, str]:
        return calibration.area(polygon_area(self.points)), calibration.area_unit


@dataclass(frozen=True)
class CountMeasurement(Measurement):
    kind: ClassVar[str] = "count"
    max_numbers: ClassVar[Optional[int]] = 2

    quantity: int = 1

    def __post_init__(self) -> None:
        super().__post_init__()
        quantity = self.quantity
        if isinstance(quantity, bool) or not isinstance(quantity, (int, float)) or not float(quantity).is_integer():
            raise InvalidMeasurement(f"Count quantity must be a whole number, got {quantity!r}")
        if quantity < 1:
            raise InvalidMeasurement(f"Count quantity must be at least 1, got {quantity}")
        object.__setattr__(self, "quantity", int(quantity))

    def measure(self, calibration: Calibration) -> Tuple[float, str]:
        # Counts are unit-less and unaffected by calibration.
        return float(self.quantity), "count"

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["quantity"] = self.quantity
        return data


@dataclass(frozen=True)
class TextMeasurement(Measurement):
    kind: ClassVar[str] = "text"
    max_numbers: ClassVar[Optional[int]] = 2

    def measure(self, calibration: Calibration) -> Tuple[float, str]:
        return 1.0, "text"


MEASUREMENT_TYPES: Dict[str, Type[Measurement]] = {
    cls.kind: cls for cls in (LineMeasurement, AreaMeasurement, CountMeasurement, TextMeasurement)
}


def measurement_class(kind: str) -> Type[Measurement]:
    try:
        return MEASUREMENT_TYPES[kind]
    except KeyError:
        available = ", ".join(sorted(MEASUREMENT_TYPES))
        raise InvalidMeasurement(f"Unsupported measurement type '{kind}'. Available types: {available}") from None


def patchable_fields(kind: str) -> frozenset:
    if kind == CountMeasurement.kind:
        return EDITABLE_FIELDS | {"quantity"}
    return EDITABLE_FIELDS


def measurement_from_dict(data: Dict[str, Any]) -> Measurement:
    """Rebuild a record from its wire form.

    ``value`` and ``unit`` on the wire are ignored; the store re-derives them.
    """

    cls = measurement_class(str(data.get("type", "")))
    if "id" not in data or "points" not in data:
        raise InvalidMeasurement(f"Measurement record missing id or points: {data!r}")

    kwargs: Dict[str, Any] = {"id": str(data["id"]), "points": data["points"]}
    for attr, key in _WIRE_KEYS.items():
        if data.get(key) is not None:
            kwargs[attr] = data[key]
    for attr in ("label", "division", "subcategory", "layer", "material_type", "notes", "color"):
        if attr in kwargs:
            kwargs[attr] = str(kwargs[attr])

    created = data.get("createdAt")
    if created:
        try:
            created_at = datetime.fromisoformat(str(created).replace("Z", "+00:00"))
        except ValueError as exc:
            raise InvalidMeasurement(f"Invalid createdAt timestamp {created!r}") from exc
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        kwargs["created_at"] = created_at

    if data.get("planId"):
        kwargs["plan_id"] = str(data["planId"])

    if cls is CountMeasurement and data.get("quantity") is not None:
        kwargs["quantity"] = data["quantity"]

    return cls(**kwargs)
