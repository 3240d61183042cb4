"""Headless drawing state machine for tracing measurements over a plan.

The machine is driven by toolkit-independent pointer events
(``pointer_down``/``pointer_move``/``pointer_up``/``double_click``) in
pixel-space canvas coordinates. Completed gestures are written straight to a
:class:`~takeoff_engine.store.MeasurementStore`.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .calibration import Calibration
from .errors import InvalidCalibration, InvalidMeasurement
from .geometry import distance, is_near_point, line_length, polygon_area, shape_hit, to_shape
from .measurements import Measurement
from .store import MeasurementStore

logger = logging.getLogger(__name__)

CLOSE_THRESHOLD_PX = 10.0
HIT_TOLERANCE_PX = 6.0


class Tool(str, enum.Enum):
    SELECT = "select"
    LINE = "line"
    AREA = "area"
    COUNT = "count"
    TEXT = "text"
    CALIBRATE = "calibrate"
    ERASE = "erase"


class DrawingState(str, enum.Enum):
    IDLE = "idle"
    DRAWING_LINE = "drawing_line"
    DRAWING_POLYGON = "drawing_polygon"
    ERASE = "erase"
    PLACING_TEXT = "placing_text"
    CALIBRATING = "calibrating"


@dataclass
class DrawingDefaults:
    """Classification applied to shapes as they are drawn."""

    division: str = "03"
    subcategory: str = "Foundation"
    layer: str = "General"
    note_division: str = "00"
    note_subcategory: str = "Notes"


def hit_test(
    measurements: List[Measurement], x: float, y: float, tolerance: float = HIT_TOLERANCE_PX
) -> Optional[Measurement]:
    """Return the topmost measurement under ``(x, y)``, if any."""

    for measurement in reversed(measurements):
        shape = to_shape(measurement.points, closed=measurement.kind == "area")
        if shape_hit(shape, x, y, tolerance):
            return measurement
    return None


class DrawingStateMachine:
    """Tool modes and point collection feeding the measurement store."""

    def __init__(
        self,
        store: MeasurementStore,
        *,
        defaults: Optional[DrawingDefaults] = None,
        close_threshold: float = CLOSE_THRESHOLD_PX,
        hit_tolerance: float = HIT_TOLERANCE_PX,
    ) -> None:
        self.store = store
        self.defaults = defaults or DrawingDefaults()
        self.close_threshold = close_threshold
        self.hit_tolerance = hit_tolerance

        self.tool = Tool.SELECT
        self.state = DrawingState.IDLE
        self.selected_id: Optional[str] = None
        self._points: List[float] = []
        self._hover: Optional[Tuple[float, float]] = None
        self._pixel_distance: Optional[float] = None

    # --- Commands ------------------------------------------------------------

    def set_tool(self, tool: Tool | str) -> None:
        """Switch tools, discarding any in-progress shape."""

        self.tool = Tool(tool)
        self._reset()
        logger.debug("Tool switched to %s", self.tool.value)

    def cancel(self) -> None:
        self._reset()

    @property
    def points(self) -> List[float]:
        return list(self._points)

    @property
    def pending_pixel_distance(self) -> Optional[float]:
        return self._pixel_distance

    # --- Pointer events ------------------------------------------------------

    def pointer_down(self, x: float, y: float) -> Optional[Measurement]:
        if self.state is DrawingState.DRAWING_POLYGON:
            return self._add_vertex(x, y)

        if self.state is DrawingState.ERASE:
            target = self._hit(x, y)
            if target is not None:
                self.store.delete(target.id)
                if self.selected_id == target.id:
                    self.selected_id = None
            return None

        if self.state is DrawingState.CALIBRATING:
            if not self._points:
                self._points = [x, y]
            elif self._pixel_distance is None:
                self._pixel_distance = distance(self._points[0], self._points[1], x, y)
                self._points.extend((x, y))
            else:
                # Start a fresh reference segment.
                self._points = [x, y]
                self._pixel_distance = None
            return None

        if self.state is DrawingState.PLACING_TEXT:
            # A new click moves the pending note anchor.
            self._points = [x, y]
            return None

        target = self._hit(x, y)
        if target is not None:
            self.selected_id = target.id
            return None

        if self.tool is Tool.SELECT:
            self.selected_id = None
        elif self.tool is Tool.LINE:
            self.state = DrawingState.DRAWING_LINE
            self._points = [x, y]
        elif self.tool is Tool.AREA:
            self.state = DrawingState.DRAWING_POLYGON
            self._points = [x, y]
        elif self.tool is Tool.COUNT:
            return self._emit_count(x, y)
        elif self.tool is Tool.TEXT:
            self.state = DrawingState.PLACING_TEXT
            self._points = [x, y]
        return None

    def pointer_move(self, x: float, y: float) -> None:
        self._hover = (x, y)
        if self.state is DrawingState.DRAWING_LINE:
            self._append(x, y)

    def pointer_up(self, x: float, y: float) -> Optional[Measurement]:
        if self.state is not DrawingState.DRAWING_LINE:
            return None

        self._append(x, y)
        points = self._points
        self._reset()
        if len(points) < 4:
            logger.debug("Discarded line gesture with a single point")
            return None

        return self.store.create(
            "line",
            points,
            label=f"Line {self.store.count_of('line') + 1}",
            division=self.defaults.division,
            subcategory=self.defaults.subcategory,
            layer=self.defaults.layer,
        )

    def double_click(self, x: float, y: float) -> Optional[Measurement]:
        if self.state is not DrawingState.DRAWING_POLYGON:
            return None
        if len(self._points) < 6:
            return None
        return self._close_polygon()

    # --- Text and calibration ------------------------------------------------

    def commit_text(self, text: str) -> Measurement:
        if self.state is not DrawingState.PLACING_TEXT or len(self._points) != 2:
            raise InvalidMeasurement("No note anchor has been placed")
        if not text or not text.strip():
            raise InvalidMeasurement("Note text must not be blank")

        anchor = self._points
        self._reset()
        return self.store.create(
            "text",
            anchor,
            label=text.strip(),
            division=self.defaults.note_division,
            subcategory=self.defaults.note_subcategory,
            layer=self.defaults.layer,
        )

    def complete_calibration(self, real_distance: float, unit: Optional[str] = None) -> Calibration:
        """Apply the pending reference segment as the plan calibration.

        Invalid input raises :class:`InvalidCalibration` and leaves the store,
        and the pending segment, untouched so the user can correct the entry.
        """

        if self.state is not DrawingState.CALIBRATING or self._pixel_distance is None:
            raise InvalidCalibration("Pick two points on the plan before entering a distance")

        calibration = self.store.calibrate(self._pixel_distance, real_distance, unit)
        self._reset()
        return calibration

    # --- Live readout --------------------------------------------------------

    def preview(self) -> Optional[Tuple[float, str]]:
        """Real-world value of the shape being drawn, including the hover point."""

        calibration = self.store.calibration
        points = list(self._points)
        if self.state is DrawingState.DRAWING_LINE:
            if self._hover is not None:
                points.extend(self._hover)
            return calibration.length(line_length(points)), calibration.unit
        if self.state is DrawingState.DRAWING_POLYGON:
            if self._hover is not None:
                points.extend(self._hover)
            return calibration.area(polygon_area(points)), calibration.area_unit
        if self.state is DrawingState.CALIBRATING and self._pixel_distance is not None:
            return self._pixel_distance, "px"
        return None

    # --- Helpers -------------------------------------------------------------

    def _hit(self, x: float, y: float) -> Optional[Measurement]:
        return hit_test(self.store.list(), x, y, self.hit_tolerance)

    def _append(self, x: float, y: float) -> None:
        if len(self._points) >= 2 and self._points[-2] == x and self._points[-1] == y:
            return
        self._points.extend((x, y))

    def _add_vertex(self, x: float, y: float) -> Optional[Measurement]:
        first_x, first_y = self._points[0], self._points[1]
        if is_near_point(x, y, first_x, first_y, self.close_threshold):
            if len(self._points) >= 6:
                return self._close_polygon()
            # Too few vertices to close; the gesture is ignored.
            return None
        self._append(x, y)
        return None

    def _close_polygon(self) -> Measurement:
        points = self._points
        self._reset()
        return self.store.create(
            "area",
            points,
            label=f"Area {self.store.count_of('area') + 1}",
            division=self.defaults.division,
            subcategory=self.defaults.subcategory,
            layer=self.defaults.layer,
        )

    def _emit_count(self, x: float, y: float) -> Measurement:
        return self.store.create(
            "count",
            [x, y],
            label=f"Count {self.store.count_of('count') + 1}",
            division=self.defaults.division,
            subcategory=self.defaults.subcategory,
            layer=self.defaults.layer,
        )

    def _reset(self) -> None:
        self._points = []
        self._hover = None
        self._pixel_distance = None
        self.state = self._resting_state()

    def _resting_state(self) -> DrawingState:
        if self.tool is Tool.ERASE:
            return DrawingState.ERASE
        if self.tool is Tool.CALIBRATE:
            return DrawingState.CALIBRATING
        return DrawingState.IDLE
