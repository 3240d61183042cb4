"""Tests for loading takeoff files and the offline export pipeline."""

import csv
import io
import json
import zipfile
from datetime import date

import pytest

from takeoff_engine.cli import main
from takeoff_engine.drawings import PlanLoader
from takeoff_engine.project import TakeoffConfig, TakeoffProject
from takeoff_engine.service import export_takeoff, summary_to_dict


def _plan_document(plan_id="A1.1", calibration=True):
    document = {
        "plan": {"id": plan_id, "title": "Level 1 Foundation", "imageUrl": "plans/a11.png"},
        "measurements": [
            {
                "id": "line-1",
                "type": "line",
                "points": [0, 0, 100, 0],
                "label": "Footing",
                "division": "03",
                "subcategory": "Foundation",
                "pricePerUnit": 5,
            },
            {
                "id": "count-1",
                "type": "count",
                "points": [10, 10],
                "label": "Fixtures",
                "division": "09",
                "subcategory": "Painting",
                "pricePerUnit": 50,
                "quantity": 4,
                "value": 12345,
            },
        ],
    }
    if calibration:
        document["calibration"] = {"pixelDistance": 200, "realDistance": 20, "unit": "ft"}
    return document


@pytest.fixture
def takeoff_file(tmp_path):
    path = tmp_path / "maple.json"
    path.write_text(json.dumps(_plan_document()))
    return path


class TestPlanLoader:
    def test_single_file(self, takeoff_file):
        (takeoff,) = list(PlanLoader(takeoff_file).load())
        assert takeoff.plan.id == "A1.1"
        assert takeoff.plan.image_url == "plans/a11.png"
        store = takeoff.open_store()
        assert store.get("line-1").value == pytest.approx(10.0)
        assert store.get("count-1").value == 4.0

    def test_directory(self, tmp_path):
        (tmp_path / "a.json").write_text(json.dumps(_plan_document("A1")))
        (tmp_path / "b.json").write_text(json.dumps(_plan_document("A2")))
        (tmp_path / "notes.txt").write_text("ignored")
        assert [t.plan.id for t in PlanLoader(tmp_path).load()] == ["A1", "A2"]

    def test_zip_archive(self, tmp_path):
        archive = tmp_path / "plans.zip"
        with zipfile.ZipFile(archive, "w") as zf:
            zf.writestr("sheets/a.json", json.dumps(_plan_document("A1")))
            zf.writestr("readme.md", "ignored")
        assert [t.plan.id for t in PlanLoader(archive).load()] == ["A1"]

    def test_plans_list(self, tmp_path):
        path = tmp_path / "project.json"
        path.write_text(json.dumps({"plans": [_plan_document("A1"), _plan_document("A2", calibration=False)]}))
        takeoffs = list(PlanLoader(path).load())
        assert [t.plan.id for t in takeoffs] == ["A1", "A2"]
        assert takeoffs[1].calibration is None

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{")
        with pytest.raises(ValueError):
            list(PlanLoader(path).load())

    def test_unsupported_input(self, tmp_path):
        path = tmp_path / "plan.pdf"
        path.write_bytes(b"%PDF-1.4")
        with pytest.raises(ValueError):
            list(PlanLoader(path).load())

    def test_invalid_measurement_names_source(self, tmp_path):
        document = _plan_document()
        document["measurements"][0]["points"] = [0, 0]
        path = tmp_path / "bad.json"
        path.write_text(json.dumps(document))
        (takeoff,) = list(PlanLoader(path).load())
        with pytest.raises(ValueError, match="bad.json"):
            takeoff.open_store()


class TestExportTakeoff:
    def test_artifact(self, takeoff_file):
        (takeoff,) = list(PlanLoader(takeoff_file).load())
        artifact = export_takeoff(takeoff.open_store(), "csv", "Maple", on=date(2024, 5, 1))
        assert artifact.filename == "takeoff-Maple-2024-05-01.csv"
        assert artifact.content_type == "text/csv"
        assert artifact.summary.grand_total == pytest.approx(250.0)
        assert b"GRAND TOTAL" in artifact.payload

    def test_empty_takeoff_is_flagged(self):
        artifact = export_takeoff([], "pdf", "Empty")
        assert artifact.payload.startswith(b"%PDF")
        assert artifact.review.warnings()

    def test_summary_to_dict(self, takeoff_file):
        (takeoff,) = list(PlanLoader(takeoff_file).load())
        data = summary_to_dict(export_takeoff(takeoff.open_store(), "csv", "Maple").summary)
        assert data["grandTotal"] == pytest.approx(250.0)
        assert [d["code"] for d in data["divisions"]] == ["03", "09"]
        assert data["divisions"][0]["subcategories"][0]["measurementIds"] == ["line-1"]


class TestProject:
    def test_run_writes_export(self, takeoff_file, tmp_path, capsys):
        config = TakeoffConfig(input_path=takeoff_file, output_dir=tmp_path / "out", export_format="csv")
        artifact = TakeoffProject(config).run()
        target = tmp_path / "out" / artifact.filename
        assert target.exists()
        assert artifact.filename.startswith("takeoff-maple-")
        assert "Grand total: $250.00" in capsys.readouterr().out

    def test_division_filter(self, takeoff_file, tmp_path):
        config = TakeoffConfig(input_path=takeoff_file, output_dir=tmp_path, division="09")
        assert [m.id for m in TakeoffProject(config).collect_measurements()] == ["count-1"]

    def test_uncalibrated_plan_is_flagged(self, tmp_path):
        path = tmp_path / "raw.json"
        path.write_text(json.dumps(_plan_document(calibration=False)))
        project = TakeoffProject(TakeoffConfig(input_path=path, output_dir=tmp_path))
        project.collect_measurements()
        assert any("no calibration" in item.message for item in project.review.warnings())


class TestCli:
    def test_main(self, takeoff_file, tmp_path):
        out = tmp_path / "exports"
        main(["--input", str(takeoff_file), "--output", str(out), "--project-name", "Maple St"])
        (export,) = list(out.glob("takeoff-Maple St-*.csv"))
        parsed = list(csv.reader(io.StringIO(export.read_text())))
        assert parsed[-1][9] == "250.00"
        assert parsed[2][11] == "Level 1 Foundation"

    def test_bad_input_exits(self, tmp_path, capsys):
        path = tmp_path / "plan.txt"
        path.write_text("nothing")
        with pytest.raises(SystemExit):
            main(["--input", str(path), "--output", str(tmp_path)])
        assert "Unsupported takeoff input" in capsys.readouterr().err

    def test_unknown_format_rejected(self, takeoff_file, tmp_path):
        with pytest.raises(SystemExit):
            main(["--input", str(takeoff_file), "--output", str(tmp_path), "--format", "docx"])


def test_empty_project_reports_into_its_checklist(tmp_path):
    path = tmp_path / "empty.json"
    path.write_text(json.dumps({"plan": {"id": "A1"}, "measurements": []}))
    project = TakeoffProject(TakeoffConfig(input_path=path, output_dir=tmp_path / "out"))
    artifact = project.run()
    assert artifact.review is project.review
    assert any("No measurements" in item.message for item in project.review.warnings())
