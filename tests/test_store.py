"""Tests for the per-plan measurement store."""

import json

import pytest

from takeoff_engine.calibration import Calibration
from takeoff_engine.errors import InvalidCalibration, InvalidMeasurement, NotFound, PersistenceError
from takeoff_engine.store import JsonFileRepository, MeasurementStore


class TestCreate:
    def test_assigns_id_and_value(self, tenth_foot_store):
        measurement = tenth_foot_store.create("line", [0, 0, 100, 0], label="Footing")
        assert measurement.id == "m1"
        assert measurement.value == pytest.approx(10.0)
        assert measurement.unit == "ft"
        assert tenth_foot_store.get("m1") is measurement

    def test_persists_wire_record(self, tenth_foot_store, repository):
        tenth_foot_store.create("area", [0, 0, 200, 0, 200, 200, 0, 200], price_per_unit=2.5)
        records = repository.load_measurements("A1")
        assert len(records) == 1
        assert records[0]["type"] == "area"
        assert records[0]["value"] == pytest.approx(400.0)
        assert records[0]["pricePerUnit"] == 2.5

    def test_records_carry_the_plan_id(self, store, repository):
        measurement = store.create("count", [1, 1])
        assert measurement.plan_id == "A1"
        assert repository.load_measurements("A1")[0]["planId"] == "A1"

    def test_restore_stamps_the_opening_plan(self, repository):
        repository.save_measurement("B2", {"id": "x", "type": "count", "points": [1, 1], "planId": "A1"})
        assert MeasurementStore.open("B2", repository).get("x").plan_id == "B2"

    def test_uncalibrated_values_are_pixels(self, store):
        measurement = store.create("line", [0, 0, 3, 4])
        assert measurement.value == pytest.approx(5.0)
        assert measurement.unit == "ft"

    @pytest.mark.parametrize("field", ["id", "plan_id", "value", "unit", "created_at"])
    def test_reserved_fields_rejected(self, store, field):
        with pytest.raises(InvalidMeasurement):
            store.create("line", [0, 0, 1, 1], **{field: "x"})
        assert len(store) == 0

    def test_unknown_field_rejected(self, store):
        with pytest.raises(InvalidMeasurement):
            store.create("line", [0, 0, 1, 1], colour="red")

    def test_invalid_geometry_leaves_store_empty(self, store, repository):
        with pytest.raises(InvalidMeasurement):
            store.create("area", [0, 0, 1, 1])
        assert len(store) == 0
        assert repository.load_measurements("A1") == []


class TestReadsAndDelete:
    def test_get_unknown_id(self, store):
        with pytest.raises(NotFound) as excinfo:
            store.get("missing")
        assert "missing" in str(excinfo.value)

    def test_list_keeps_creation_order(self, store):
        store.create("count", [1, 1])
        store.create("line", [0, 0, 1, 1])
        store.create("count", [2, 2])
        assert [m.id for m in store.list()] == ["m1", "m2", "m3"]
        assert store.count_of("count") == 2
        assert "m2" in store

    def test_delete(self, store, repository):
        store.create("count", [1, 1])
        removed = store.delete("m1")
        assert removed.id == "m1"
        assert "m1" not in store
        assert repository.load_measurements("A1") == []

    def test_delete_unknown(self, store):
        with pytest.raises(NotFound):
            store.delete("nope")


class TestUpdate:
    def test_points_patch_recomputes_value(self, tenth_foot_store):
        tenth_foot_store.create("line", [0, 0, 100, 0])
        updated = tenth_foot_store.update("m1", points=[0, 0, 300, 0])
        assert updated.value == pytest.approx(30.0)
        assert tenth_foot_store.get("m1").value == pytest.approx(30.0)

    def test_metadata_patch_keeps_id_and_created_at(self, store):
        original = store.create("line", [0, 0, 1, 1], label="A")
        updated = store.update("m1", label="B", price_per_unit=3)
        assert updated.label == "B"
        assert updated.price_per_unit == 3.0
        assert updated.id == original.id
        assert updated.created_at == original.created_at

    def test_value_is_not_patchable(self, store):
        store.create("line", [0, 0, 1, 1])
        with pytest.raises(InvalidMeasurement):
            store.update("m1", value=100)

    def test_quantity_patch_on_count(self, store):
        store.create("count", [1, 1])
        assert store.update("m1", quantity=5).value == 5.0

    def test_invalid_patch_leaves_record(self, store):
        original = store.create("area", [0, 0, 10, 0, 10, 10])
        with pytest.raises(InvalidMeasurement):
            store.update("m1", points=[0, 0, 10, 0])
        assert store.get("m1") is original

    def test_update_unknown(self, store):
        with pytest.raises(NotFound):
            store.update("missing", label="x")


class TestCalibrate:
    def test_recalibration_updates_values_not_points(self, store):
        line = store.create("line", [0, 0, 100, 0])
        area = store.create("area", [0, 0, 200, 0, 200, 200, 0, 200])

        store.calibrate(200, 20, "ft")

        assert store.get(line.id).points == line.points
        assert store.get(area.id).points == area.points
        assert store.get(line.id).value == pytest.approx(10.0)
        assert store.get(area.id).value == pytest.approx(400.0)
        assert store.get(area.id).unit == "sq ft"

    def test_unit_defaults_to_current(self, store):
        assert store.calibrate(10, 1).unit == "ft"

    def test_invalid_calibration_keeps_previous(self, tenth_foot_store):
        tenth_foot_store.create("line", [0, 0, 100, 0])
        with pytest.raises(InvalidCalibration):
            tenth_foot_store.calibrate(0, 10)
        assert tenth_foot_store.calibration.scale == pytest.approx(0.1)
        assert tenth_foot_store.get("m1").value == pytest.approx(10.0)

    def test_calibration_is_persisted(self, store, repository):
        store.calibrate(50, 5, "m")
        assert repository.load_calibration("A1")["unit"] == "m"


class TestPersistenceFailures:
    def test_failed_create_is_not_visible(self, failing_repository, id_factory):
        store = MeasurementStore("A1", repository=failing_repository, id_factory=id_factory)
        failing_repository.broken = True
        with pytest.raises(PersistenceError):
            store.create("line", [0, 0, 1, 1])
        assert len(store) == 0

    def test_failed_update_keeps_old_record(self, failing_repository, id_factory):
        store = MeasurementStore("A1", repository=failing_repository, id_factory=id_factory)
        original = store.create("line", [0, 0, 1, 1], label="Before")
        failing_repository.broken = True
        with pytest.raises(PersistenceError):
            store.update("m1", label="After")
        assert store.get("m1") is original

    def test_failed_delete_keeps_record(self, failing_repository, id_factory):
        store = MeasurementStore("A1", repository=failing_repository, id_factory=id_factory)
        store.create("count", [1, 1])
        failing_repository.broken = True
        with pytest.raises(PersistenceError):
            store.delete("m1")
        assert "m1" in store

    def test_failed_calibration_keeps_values(self, failing_repository, id_factory):
        store = MeasurementStore("A1", repository=failing_repository, id_factory=id_factory)
        store.create("line", [0, 0, 100, 0])
        failing_repository.broken = True
        with pytest.raises(PersistenceError):
            store.calibrate(200, 20)
        assert store.calibration == Calibration.identity()
        assert store.get("m1").value == pytest.approx(100.0)


class TestJsonFileRepository:
    def test_reopen_restores_measurements_and_calibration(self, tmp_path):
        repository = JsonFileRepository(tmp_path)
        store = MeasurementStore("Sheet A1.1", repository=repository)
        store.calibrate(200, 20, "ft")
        line = store.create("line", [0, 0, 100, 0], label="Wall")
        store.create("count", [5, 5], quantity=2)

        reopened = MeasurementStore.open("Sheet A1.1", repository)
        assert len(reopened) == 2
        assert reopened.calibration.scale == pytest.approx(0.1)
        assert reopened.get(line.id).value == pytest.approx(10.0)
        assert reopened.get(line.id).label == "Wall"

    def test_plan_id_is_sanitised(self, tmp_path):
        repository = JsonFileRepository(tmp_path)
        assert repository.path_for("../A1/B").parent == tmp_path

    def test_document_layout(self, tmp_path):
        repository = JsonFileRepository(tmp_path)
        MeasurementStore("A1", repository=repository).create("text", [1, 2], label="Verify")
        document = json.loads(repository.path_for("A1").read_text())
        assert document["plan"] == {"id": "A1"}
        assert document["measurements"][0]["label"] == "Verify"

    def test_corrupt_document(self, tmp_path):
        repository = JsonFileRepository(tmp_path)
        repository.path_for("A1").write_text("{not json")
        with pytest.raises(PersistenceError):
            MeasurementStore.open("A1", repository)

    def test_similar_plan_ids_do_not_share_a_file(self, tmp_path):
        repository = JsonFileRepository(tmp_path)
        MeasurementStore("A 1", repository=repository).create("count", [1, 1], label="first plan")
        MeasurementStore("A-1", repository=repository).calibrate(10, 1, "m")

        assert repository.path_for("A 1") != repository.path_for("A-1")
        other = MeasurementStore.open("A-1", repository)
        assert len(other) == 0
        first = MeasurementStore.open("A 1", repository)
        assert [m.label for m in first] == ["first plan"]
        assert first.calibration == Calibration.identity()

    def test_document_for_another_plan_is_refused(self, tmp_path):
        repository = JsonFileRepository(tmp_path)
        MeasurementStore("A1", repository=repository).create("count", [1, 1])
        repository.path_for("B2").write_text(repository.path_for("A1").read_text())
        with pytest.raises(PersistenceError):
            MeasurementStore.open("B2", repository)

    @pytest.mark.parametrize("payload", ["null", "[]", '"plan"'])
    def test_non_object_document(self, tmp_path, payload):
        repository = JsonFileRepository(tmp_path)
        repository.path_for("A1").write_text(payload)
        with pytest.raises(PersistenceError):
            MeasurementStore.open("A1", repository)
