"""Takeoff measurement and costing engine."""

from .calibration import Calibration, calibrate, derive_scale, to_real_area, to_real_length
from .costing import TakeoffSummary, aggregate
from .errors import InvalidCalibration, InvalidMeasurement, NotFound, PersistenceError, TakeoffError
from .geometry import line_length, polygon_area
from .interaction import DrawingState, DrawingStateMachine, Tool
from .service import ExportArtifact, export_takeoff
from .store import MeasurementStore

__all__ = [
    "Calibration",
    "DrawingState",
    "DrawingStateMachine",
    "ExportArtifact",
    "InvalidCalibration",
    "InvalidMeasurement",
    "MeasurementStore",
    "NotFound",
    "PersistenceError",
    "TakeoffError",
    "TakeoffSummary",
    "Tool",
    "aggregate",
    "calibrate",
    "derive_scale",
    "export_takeoff",
    "line_length",
    "polygon_area",
    "to_real_area",
    "to_real_length",
]
