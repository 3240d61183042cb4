"""Conversion between pixel-space drawing units and real-world units."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict

from .errors import InvalidCalibration

logger = logging.getLogger(__name__)

# Below this the reference segment is effectively a single click and the
# derived scale would blow up.
MIN_PIXEL_DISTANCE = 1e-6

DEFAULT_UNIT = "ft"


def derive_scale(pixel_distance: float, real_distance: float) -> float:
    """Return the real-world length represented by one pixel."""

    for name, amount in (("pixel distance", pixel_distance), ("real distance", real_distance)):
        if not isinstance(amount, (int, float)) or isinstance(amount, bool) or not math.isfinite(amount):
            raise InvalidCalibration(f"Calibration {name} must be a finite number, got {amount!r}")
        if amount <= 0:
            raise InvalidCalibration(f"Calibration {name} must be greater than zero, got {amount}")

    if pixel_distance < MIN_PIXEL_DISTANCE:
        raise InvalidCalibration(
            f"Calibration pixel distance {pixel_distance} is too small to derive a scale"
        )

    return real_distance / pixel_distance


def to_real_length(pixel_length: float, scale: float) -> float:
    return pixel_length * scale


def to_real_area(pixel_area: float, scale: float) -> float:
    # Areas scale with the square of the linear factor.
    return pixel_area * scale * scale


@dataclass(frozen=True)
class Calibration:
    """User-established mapping between on-screen and physical distance."""

    pixel_distance: float
    real_distance: float
    unit: str = DEFAULT_UNIT

    def __post_init__(self) -> None:
        derive_scale(self.pixel_distance, self.real_distance)

    @classmethod
    def identity(cls, unit: str = DEFAULT_UNIT) -> "Calibration":
        """Uncalibrated default: one pixel reads as one unit."""

        return cls(pixel_distance=1.0, real_distance=1.0, unit=unit)

    @property
    def scale(self) -> float:
        return self.real_distance / self.pixel_distance

    @property
    def area_unit(self) -> str:
        return f"sq {self.unit}"

    def length(self, pixel_length: float) -> float:
        return to_real_length(pixel_length, self.scale)

    def area(self, pixel_area: float) -> float:
        return to_real_area(pixel_area, self.scale)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pixelDistance": self.pixel_distance,
            "realDistance": self.real_distance,
            "unit": self.unit,
            "scale": self.scale,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Calibration":
        try:
            pixel_distance = float(data["pixelDistance"])
            real_distance = float(data["realDistance"])
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidCalibration(f"Malformed calibration record: {data!r}") from exc
        return calibrate(pixel_distance, real_distance, str(data.get("unit") or DEFAULT_UNIT))


def calibrate(pixel_distance: float, real_distance: float, unit: str = DEFAULT_UNIT) -> Calibration:
    """Validate user input and build a :class:`Calibration`."""

    scale = derive_scale(pixel_distance, real_distance)
    if not unit or not unit.strip():
        raise InvalidCalibration("Calibration unit must not be blank")

    logger.debug("Derived scale %.6f %s/px from %s px = %s %s", scale, unit, pixel_distance, real_distance, unit)
    return Calibration(pixel_distance=pixel_distance, real_distance=real_distance, unit=unit.strip())
