"""Utilities for loading plan takeoff exports from disk."""

from __future__ import annotations

import json
import pathlib
import zipfile
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from .calibration import Calibration
from .store import MeasurementStore


@dataclass
class Plan:
    """Reference to a plan sheet that measurements are traced over."""

    id: str
    title: str = ""
    image_url: Optional[str] = None


@dataclass
class PlanTakeoff:
    """A plan together with its calibration and raw measurement records."""

    plan: Plan
    calibration: Optional[Calibration]
    measurements: List[Dict[str, Any]] = field(default_factory=list)
    source: str = ""

    def open_store(self) -> MeasurementStore:
        store = MeasurementStore(self.plan.id, calibration=self.calibration)
        try:
            store.restore(self.measurements)
        except ValueError as exc:
            raise ValueError(f"Invalid measurement in {self.source}: {exc}") from exc
        return store


class PlanLoader:
    """Load plan takeoff JSON exports from a file, a directory, or a zip archive.

    Each document looks like::

        {"plan": {"id": "A1.1", "title": "Level 1", "imageUrl": "..."},
         "calibration": {"pixelDistance": 200, "realDistance": 20, "unit": "ft"},
         "measurements": [{"id": "...", "type": "line", "points": [...], ...}]}

    A document may also hold several plans under a top-level ``"plans"`` list.
    """

    def __init__(self, input_path: pathlib.Path) -> None:
        self.input_path = input_path

    def load(self) -> Iterable[PlanTakeoff]:
        if self.input_path.is_dir():
            yield from self._load_from_directory(self.input_path)
        elif zipfile.is_zipfile(self.input_path):
            yield from self._load_from_zip(self.input_path)
        elif self.input_path.suffix.lower() == ".json":
            yield from self._load_json(self.input_path.read_text(), source=str(self.input_path))
        else:
            raise ValueError(
                f"Unsupported takeoff input: {self.input_path}. Expected a JSON file, directory, or zip archive."
            )

    def _load_from_directory(self, directory: pathlib.Path) -> Iterable[PlanTakeoff]:
        for json_path in sorted(directory.glob("*.json")):
            yield from self._load_json(json_path.read_text(), source=str(json_path))

    def _load_from_zip(self, archive_path: pathlib.Path) -> Iterable[PlanTakeoff]:
        with zipfile.ZipFile(archive_path) as archive:
            for name in sorted(archive.namelist()):
                if not name.lower().endswith(".json"):
                    continue
                with archive.open(name) as fh:
                    payload = fh.read().decode("utf-8")
                yield from self._load_json(payload, source=f"{archive_path}:{name}")

    def _load_json(self, payload: str, *, source: str) -> Iterable[PlanTakeoff]:
        try:
            data = json.loads(payload)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Failed to parse takeoff JSON from {source}: {exc}") from exc

        documents = data.get("plans") if isinstance(data, dict) and "plans" in data else [data]
        for index, document in enumerate(documents, start=1):
            if not isinstance(document, dict):
                raise ValueError(f"Plan entry {index} in {source} must be an object")
            yield self._parse_plan(document, source=source, index=index)

    def _parse_plan(self, document: Dict[str, Any], *, source: str, index: int) -> PlanTakeoff:
        plan_info = document.get("plan") or {}
        plan_id = str(plan_info.get("id") or f"{pathlib.Path(source.split(':')[-1]).stem}-{index}")
        plan = Plan(
            id=plan_id,
            title=str(plan_info.get("title", plan_id)),
            image_url=plan_info.get("imageUrl"),
        )

        calibration_data = document.get("calibration")
        calibration = Calibration.from_dict(calibration_data) if calibration_data else None

        measurements = document.get("measurements", [])
        if not isinstance(measurements, list):
            raise ValueError(f"Measurements for plan {plan_id} in {source} must be a list")

        return PlanTakeoff(plan=plan, calibration=calibration, measurements=measurements, source=source)
