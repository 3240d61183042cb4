"""Measurement store for a single plan and its persistence collaborators."""

from __future__ import annotations

import hashlib
import json
import logging
import pathlib
import re
import uuid
from dataclasses import replace
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence

from .calibration import Calibration, calibrate
from .errors import InvalidMeasurement, NotFound, PersistenceError
from .measurements import (
    Measurement,
    measurement_class,
    measurement_from_dict,
    patchable_fields,
)

logger = logging.getLogger(__name__)


class MeasurementRepository:
    """Persistence interface for measurement and calibration records.

    Records are exchanged in their JSON wire form and scoped by plan id.
    Implementations raise :class:`PersistenceError` on I/O failures.
    """

    def load_measurements(self, plan_id: str) -> List[Dict[str, Any]]:
        raise NotImplementedError

    def save_measurement(self, plan_id: str, record: Dict[str, Any]) -> None:
        raise NotImplementedError

    def delete_measurement(self, plan_id: str, measurement_id: str) -> None:
        raise NotImplementedError

    def load_calibration(self, plan_id: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def save_calibration(self, plan_id: str, record: Dict[str, Any]) -> None:
        raise NotImplementedError


class InMemoryRepository(MeasurementRepository):
    """Repository that keeps wire records in process memory."""

    def __init__(self) -> None:
        self._measurements: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._calibrations: Dict[str, Dict[str, Any]] = {}

    def load_measurements(self, plan_id: str) -> List[Dict[str, Any]]:
        return [dict(record) for record in self._measurements.get(plan_id, {}).values()]

    def save_measurement(self, plan_id: str, record: Dict[str, Any]) -> None:
        self._measurements.setdefault(plan_id, {})[record["id"]] = dict(record)

    def delete_measurement(self, plan_id: str, measurement_id: str) -> None:
        self._measurements.get(plan_id, {}).pop(measurement_id, None)

    def load_calibration(self, plan_id: str) -> Optional[Dict[str, Any]]:
        record = self._calibrations.get(plan_id)
        return dict(record) if record is not None else None

    def save_calibration(self, plan_id: str, record: Dict[str, Any]) -> None:
        self._calibrations[plan_id] = dict(record)


class JsonFileRepository(MeasurementRepository):
    """Repository storing one JSON document per plan inside ``directory``."""

    def __init__(self, directory: pathlib.Path) -> None:
        self.directory = directory

    def path_for(self, plan_id: str) -> pathlib.Path:
        # Readable stem plus a digest of the raw id, so ids that sanitise alike
        # still get their own file.
        safe = re.sub(r"[^A-Za-z0-9_.-]+", "-", plan_id).strip("-.") or "plan"
        digest = hashlib.sha1(plan_id.encode("utf-8")).hexdigest()[:10]
        return self.directory / f"{safe}-{digest}.json"

    def load_measurements(self, plan_id: str) -> List[Dict[str, Any]]:
        return list(self._read(plan_id)["measurements"])

    def save_measurement(self, plan_id: str, record: Dict[str, Any]) -> None:
        document = self._read(plan_id)
        measurements = document["measurements"]
        for index, existing in enumerate(measurements):
            if existing.get("id") == record["id"]:
                measurements[index] = record
                break
        else:
            measurements.append(record)
        self._write(plan_id, document)

    def delete_measurement(self, plan_id: str, measurement_id: str) -> None:
        document = self._read(plan_id)
        document["measurements"] = [m for m in document["measurements"] if m.get("id") != measurement_id]
        self._write(plan_id, document)

    def load_calibration(self, plan_id: str) -> Optional[Dict[str, Any]]:
        return self._read(plan_id).get("calibration")

    def save_calibration(self, plan_id: str, record: Dict[str, Any]) -> None:
        document = self._read(plan_id)
        document["calibration"] = record
        self._write(plan_id, document)

    def _read(self, plan_id: str) -> Dict[str, Any]:
        path = self.path_for(plan_id)
        if not path.exists():
            return {"plan": {"id": plan_id}, "calibration": None, "measurements": []}
        try:
            document = json.loads(path.read_text())
        except (OSError, json.JSONDecodeError) as exc:
            raise PersistenceError(f"Failed to read takeoff data from {path}: {exc}") from exc
        if not isinstance(document, dict):
            raise PersistenceError(f"Takeoff data in {path} must be a JSON object")
        plan = document.get("plan")
        stored_id = plan.get("id") if isinstance(plan, dict) else None
        if stored_id != plan_id:
            raise PersistenceError(f"Takeoff data in {path} belongs to plan {stored_id!r}, not {plan_id!r}")
        document.setdefault("measurements", [])
        return document

    def _write(self, plan_id: str, document: Dict[str, Any]) -> None:
        path = self.path_for(plan_id)
        temp_path = path.with_suffix(path.suffix + ".tmp")
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            temp_path.write_text(json.dumps(document, indent=2))
            temp_path.replace(path)
        except OSError as exc:
            raise PersistenceError(f"Failed to write takeoff data to {path}: {exc}") from exc


def _new_id() -> str:
    return uuid.uuid4().hex


_RESERVED_FIELDS = {"id", "kind", "type", "plan_id", "created_at", "value", "unit"}


class MeasurementStore:
    """Owns the measurements of one plan and keeps derived values current.

    Records are immutable; every mutation builds a replacement record and swaps
    it in only after the repository accepted it, so readers never observe a
    half-applied change. The store assumes a single writer.
    """

    def __init__(
        self,
        plan_id: str,
        *,
        repository: Optional[MeasurementRepository] = None,
        calibration: Optional[Calibration] = None,
        id_factory: Callable[[], str] = _new_id,
    ) -> None:
        self.plan_id = plan_id
        self.repository = repository or InMemoryRepository()
        self._calibration = calibration or Calibration.identity()
        self._id_factory = id_factory
        self._records: Dict[str, Measurement] = {}

    @classmethod
    def open(cls, plan_id: str, repository: MeasurementRepository) -> "MeasurementStore":
        """Load a plan's calibration and measurements from ``repository``."""

        calibration_data = repository.load_calibration(plan_id)
        calibration = Calibration.from_dict(calibration_data) if calibration_data else None
        store = cls(plan_id, repository=repository, calibration=calibration)
        store.restore(repository.load_measurements(plan_id))
        return store

    def restore(self, records: List[Dict[str, Any]]) -> None:
        """Populate the store from wire records without persisting them again."""

        for data in records:
            measurement = replace(measurement_from_dict(data), plan_id=self.plan_id)
            self._records[measurement.id] = self._with_value(measurement)
        logger.debug("Restored %d measurements for plan %s", len(records), self.plan_id)

    # --- Reads ---------------------------------------------------------------

    @property
    def calibration(self) -> Calibration:
        return self._calibration

    def get(self, measurement_id: str) -> Measurement:
        try:
            return self._records[measurement_id]
        except KeyError:
            raise NotFound(measurement_id) from None

    def list(self) -> List[Measurement]:
        return list(self._records.values())

    def count_of(self, kind: str) -> int:
        return sum(1 for record in self._records.values() if record.kind == kind)

    def __iter__(self) -> Iterator[Measurement]:
        return iter(self.list())

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, measurement_id: object) -> bool:
        return measurement_id in self._records

    # --- Mutations -----------------------------------------------------------

    def create(self, kind: str, points: Sequence[float], **metadata: Any) -> Measurement:
        """Create a measurement, assigning its id and deriving its value."""

        reserved = _RESERVED_FIELDS.intersection(metadata)
        if reserved:
            raise InvalidMeasurement(f"Fields {sorted(reserved)} are assigned by the store")

        cls = measurement_class(kind)
        try:
            measurement = cls(id=self._id_factory(), points=points, plan_id=self.plan_id, **metadata)
        except TypeError as exc:
            raise InvalidMeasurement(f"Invalid fields for a {kind} measurement: {exc}") from exc

        measurement = self._with_value(measurement)
        self._persist(measurement)
        self._records[measurement.id] = measurement
        logger.info(
            "Created %s measurement %s on plan %s: %.4f %s",
            measurement.kind,
            measurement.id,
            self.plan_id,
            measurement.value,
            measurement.unit,
        )
        return measurement

    def update(self, measurement_id: str, **patch: Any) -> Measurement:
        """Apply a metadata and/or points patch to an existing measurement."""

        current = self.get(measurement_id)
        allowed = patchable_fields(current.kind)
        rejected = set(patch) - allowed
        if rejected:
            raise InvalidMeasurement(
                f"Cannot update fields {sorted(rejected)} on a {current.kind} measurement"
            )
        if not patch:
            return current

        updated = self._with_value(replace(current, **patch))
        self._persist(updated)
        self._records[measurement_id] = updated
        logger.info("Updated measurement %s fields %s", measurement_id, sorted(patch))
        return updated

    def delete(self, measurement_id: str) -> Measurement:
        current = self.get(measurement_id)
        try:
            self.repository.delete_measurement(self.plan_id, measurement_id)
        except OSError as exc:
            raise PersistenceError(f"Failed to delete measurement {measurement_id}: {exc}") from exc
        del self._records[measurement_id]
        logger.info("Deleted measurement %s from plan %s", measurement_id, self.plan_id)
        return current

    def recompute_all(self, calibration: Calibration) -> None:
        """Re-derive every value under ``calibration``; stored points are untouched."""

        recomputed = {
            measurement_id: self._with_value(record, calibration)
            for measurement_id, record in self._records.items()
        }
        self._calibration = calibration
        self._records = recomputed
        logger.info(
            "Recomputed %d measurements on plan %s at %.6f %s/px",
            len(recomputed),
            self.plan_id,
            calibration.scale,
            calibration.unit,
        )

    def calibrate(self, pixel_distance: float, real_distance: float, unit: Optional[str] = None) -> Calibration:
        """Validate, persist and apply a new calibration."""

        calibration = calibrate(pixel_distance, real_distance, unit or self._calibration.unit)
        try:
            self.repository.save_calibration(self.plan_id, calibration.to_dict())
        except OSError as exc:
            raise PersistenceError(f"Failed to save calibration for plan {self.plan_id}: {exc}") from exc
        self.recompute_all(calibration)
        return calibration

    # --- Helpers -------------------------------------------------------------

    def _with_value(self, measurement: Measurement, calibration: Optional[Calibration] = None) -> Measurement:
        value, unit = measurement.measure(calibration or self._calibration)
        return replace(measurement, value=value, unit=unit)

    def _persist(self, measurement: Measurement) -> None:
        try:
            self.repository.save_measurement(self.plan_id, measurement.to_dict())
        except OSError as exc:
            raise PersistenceError(f"Failed to save measurement {measurement.id}: {exc}") from exc
