"""Shared fixtures for the takeoff engine tests."""

import itertools

import pytest

from takeoff_engine.calibration import Calibration
from takeoff_engine.store import InMemoryRepository, MeasurementStore


@pytest.fixture
def repository():
    return InMemoryRepository()


@pytest.fixture
def id_factory():
    counter = itertools.count(1)
    return lambda: f"m{next(counter)}"


@pytest.fixture
def store(repository, id_factory):
    """An uncalibrated store on plan ``A1`` with predictable ids."""
    return MeasurementStore("A1", repository=repository, id_factory=id_factory)


@pytest.fixture
def tenth_foot_store(repository, id_factory):
    """A store calibrated at 0.1 ft per pixel."""
    return MeasurementStore(
        "A1",
        repository=repository,
        calibration=Calibration(pixel_distance=200, real_distance=20, unit="ft"),
        id_factory=id_factory,
    )


class FailingRepository(InMemoryRepository):
    """Repository whose writes fail once ``broken`` is set."""

    def __init__(self):
        super().__init__()
        self.broken = False

    def save_measurement(self, plan_id, record):
        if self.broken:
            raise OSError("disk full")
        super().save_measurement(plan_id, record)

    def delete_measurement(self, plan_id, measurement_id):
        if self.broken:
            raise OSError("disk full")
        super().delete_measurement(plan_id, measurement_id)

    def save_calibration(self, plan_id, record):
        if self.broken:
            raise OSError("disk full")
        super().save_calibration(plan_id, record)


@pytest.fixture
def failing_repository():
    return FailingRepository()
