"""Exception types raised by the takeoff engine."""

from __future__ import annotations


class TakeoffError(Exception):
    """Base class for all takeoff engine failures."""


class InvalidMeasurement(TakeoffError, ValueError):
    """A measurement or gesture does not carry enough valid geometry."""


class InvalidCalibration(TakeoffError, ValueError):
    """Calibration inputs are zero, negative, or otherwise unusable."""


class NotFound(TakeoffError, KeyError):
    """The requested measurement does not exist in the store."""

    def __init__(self, measurement_id: str) -> None:
        super().__init__(measurement_id)
        self.measurement_id = measurement_id

    def __str__(self) -> str:
        return f"Measurement '{self.measurement_id}' not found"


class PersistenceError(TakeoffError):
    """The persistence collaborator failed to read or write a record."""
