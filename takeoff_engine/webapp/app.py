"""FastAPI application exposing takeoff measurements, costing and exports."""

from __future__ import annotations

import os
import pathlib
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Response
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, Field

from ..costing import aggregate
from ..errors import NotFound, PersistenceError
from ..exporters import EXPORT_FORMATS, content_disposition
from ..human_review import ReviewChecklist
from ..service import export_takeoff, summary_to_dict
from ..store import InMemoryRepository, JsonFileRepository, MeasurementRepository, MeasurementStore
from ..taxonomy import DEFAULT_TAXONOMY, DivisionTaxonomy


@dataclass
class AppSettings:
    host: str = "0.0.0.0"
    port: int = 8000
    data_dir: Optional[pathlib.Path] = None

    @classmethod
    def from_env(cls) -> "AppSettings":
        data_dir = os.environ.get("TAKEOFF_DATA_DIR")
        return cls(
            host=os.environ.get("TAKEOFF_HOST", "0.0.0.0"),
            port=int(os.environ.get("TAKEOFF_PORT", "8000")),
            data_dir=pathlib.Path(data_dir).expanduser() if data_dir else None,
        )


class MeasurementIn(BaseModel):
    type: str
    points: List[float]
    label: str = ""
    division: str = ""
    subcategory: str = ""
    layer: str = "General"
    materialType: str = ""
    pricePerUnit: Optional[float] = None
    notes: str = ""
    color: str = ""
    quantity: Optional[int] = None


class MeasurementPatch(BaseModel):
    points: Optional[List[float]] = None
    label: Optional[str] = None
    division: Optional[str] = None
    subcategory: Optional[str] = None
    layer: Optional[str] = None
    materialType: Optional[str] = None
    pricePerUnit: Optional[float] = None
    notes: Optional[str] = None
    color: Optional[str] = None
    quantity: Optional[int] = None


class CalibrationIn(BaseModel):
    pixelDistance: float
    realDistance: float
    unit: str = "ft"


class ExportRequest(BaseModel):
    projectName: str
    format: str = "pdf"
    planIds: List[str] = Field(default_factory=list)


_FIELD_NAMES = {
    "materialType": "material_type",
    "pricePerUnit": "price_per_unit",
}


def _to_fields(payload: Dict[str, Any]) -> Dict[str, Any]:
    return {_FIELD_NAMES.get(key, key): value for key, value in payload.items()}


class StoreRegistry:
    """Lazily opened measurement stores, one per plan id."""

    def __init__(self, repository: MeasurementRepository) -> None:
        self.repository = repository
        self._stores: Dict[str, MeasurementStore] = {}

    def get(self, plan_id: str) -> MeasurementStore:
        store = self._stores.get(plan_id)
        if store is None:
            store = MeasurementStore.open(plan_id, self.repository)
            self._stores[plan_id] = store
        return store


def create_app(
    settings: Optional[AppSettings] = None,
    *,
    repository: Optional[MeasurementRepository] = None,
    taxonomy: DivisionTaxonomy = DEFAULT_TAXONOMY,
) -> FastAPI:
    """Create and configure the FastAPI application."""

    settings = settings or AppSettings.from_env()
    if repository is None:
        repository = JsonFileRepository(settings.data_dir) if settings.data_dir else InMemoryRepository()

    app = FastAPI(title="Takeoff Measurement Engine", version="0.3.0")
    stores = StoreRegistry(repository)
    app.state.stores = stores

    def open_store(plan_id: str) -> MeasurementStore:
        try:
            return stores.get(plan_id)
        except PersistenceError as exc:
            raise HTTPException(status_code=503, detail=str(exc)) from exc
        except ValueError as exc:
            raise HTTPException(status_code=500, detail=f"Stored takeoff data is invalid: {exc}") from exc

    def call(fn, *args: Any, **kwargs: Any) -> Any:
        try:
            return fn(*args, **kwargs)
        except NotFound as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except PersistenceError as exc:
            raise HTTPException(status_code=503, detail=str(exc)) from exc

    @app.get("/api/health")
    async def healthcheck() -> Dict[str, str]:
        return {"status": "ok"}

    @app.get("/api/divisions")
    async def list_divisions() -> Dict[str, Any]:
        return {"divisions": taxonomy.as_dict()}

    @app.get("/api/export-formats")
    async def list_formats() -> Dict[str, List[str]]:
        return {"formats": sorted(EXPORT_FORMATS)}

    @app.get("/api/plans/{plan_id}/measurements")
    async def list_measurements(plan_id: str) -> Dict[str, Any]:
        store = open_store(plan_id)
        return {"measurements": [m.to_dict() for m in store]}

    @app.post("/api/plans/{plan_id}/measurements", status_code=201)
    async def create_measurement(plan_id: str, body: MeasurementIn) -> Dict[str, Any]:
        store = open_store(plan_id)
        fields = _to_fields(body.model_dump(exclude_none=True))
        kind = fields.pop("type")
        points = fields.pop("points")
        measurement = call(store.create, kind, points, **fields)
        return measurement.to_dict()

    @app.patch("/api/plans/{plan_id}/measurements/{measurement_id}")
    async def update_measurement(plan_id: str, measurement_id: str, body: MeasurementPatch) -> Dict[str, Any]:
        store = open_store(plan_id)
        patch = {
            key: value
            for key, value in _to_fields(body.model_dump(exclude_unset=True)).items()
            if value is not None or key == "price_per_unit"
        }
        measurement = call(store.update, measurement_id, **patch)
        return measurement.to_dict()

    @app.delete("/api/plans/{plan_id}/measurements/{measurement_id}", status_code=204)
    async def delete_measurement(plan_id: str, measurement_id: str) -> Response:
        store = open_store(plan_id)
        call(store.delete, measurement_id)
        return Response(status_code=204)

    @app.get("/api/plans/{plan_id}/calibration")
    async def get_calibration(plan_id: str) -> Dict[str, Any]:
        return open_store(plan_id).calibration.to_dict()

    @app.put("/api/plans/{plan_id}/calibration")
    async def put_calibration(plan_id: str, body: CalibrationIn) -> Dict[str, Any]:
        store = open_store(plan_id)
        calibration = call(store.calibrate, body.pixelDistance, body.realDistance, body.unit)
        return calibration.to_dict()

    @app.get("/api/plans/{plan_id}/summary")
    async def plan_summary(plan_id: str) -> Dict[str, Any]:
        store = open_store(plan_id)
        review = ReviewChecklist()
        summary = aggregate(store, taxonomy, review=review)
        response = summary_to_dict(summary)
        response["review"] = [
            {"message": item.message, "severity": item.severity, "measurementId": item.measurement_id}
            for item in review.items
        ]
        return response

    @app.post("/api/projects/export")
    async def export_project(body: ExportRequest) -> Response:
        measurements = []
        for plan_id in body.planIds:
            measurements.extend(open_store(plan_id).list())

        artifact = await run_in_threadpool(
            call, export_takeoff, measurements, body.format, body.projectName, taxonomy=taxonomy
        )
        return Response(
            content=artifact.payload,
            media_type=artifact.content_type,
            headers={"Content-Disposition": content_disposition(artifact.filename)},
        )

    return app
