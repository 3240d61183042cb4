"""Project orchestration for offline takeoff exports."""

from __future__ import annotations

import logging
import pathlib
from dataclasses import dataclass
from typing import Dict, List, Optional

from .drawings import PlanLoader
from .human_review import ReviewChecklist
from .measurements import Measurement
from .service import ExportArtifact, export_takeoff
from .taxonomy import DEFAULT_TAXONOMY, DivisionTaxonomy

logger = logging.getLogger(__name__)


@dataclass
class TakeoffConfig:
    input_path: pathlib.Path
    output_dir: pathlib.Path
    export_format: str = "csv"
    project_name: Optional[str] = None
    division: Optional[str] = None

    @property
    def resolved_project_name(self) -> str:
        return self.project_name or self.input_path.stem


class TakeoffProject:
    """High-level interface for exporting every plan in a takeoff data set."""

    def __init__(self, config: TakeoffConfig, *, taxonomy: DivisionTaxonomy = DEFAULT_TAXONOMY) -> None:
        self.config = config
        self.taxonomy = taxonomy
        self.review = ReviewChecklist()
        self.plan_titles: Dict[str, str] = {}

    def collect_measurements(self) -> List[Measurement]:
        measurements: List[Measurement] = []
        for takeoff in PlanLoader(self.config.input_path).load():
            store = takeoff.open_store()
            self.plan_titles[takeoff.plan.id] = takeoff.plan.title
            logger.info(
                "Loaded %d measurements from plan %s (%s)", len(store), takeoff.plan.id, takeoff.source
            )
            if takeoff.calibration is None and len(store):
                self.review.add(
                    f"Plan '{takeoff.plan.title}' has no calibration; values are in pixels.",
                    severity="warning",
                )
            measurements.extend(store)

        if self.config.division is not None:
            measurements = [m for m in measurements if m.division == self.config.division]
        return measurements

    def run(self) -> ExportArtifact:
        artifact = export_takeoff(
            self.collect_measurements(),
            self.config.export_format,
            self.config.resolved_project_name,
            taxonomy=self.taxonomy,
            review=self.review,
            plan_titles=self.plan_titles,
        )

        self.config.output_dir.mkdir(parents=True, exist_ok=True)
        target = self.config.output_dir / artifact.filename
        target.write_bytes(artifact.payload)

        print(self.review.summarize())
        print(f"Grand total: ${artifact.summary.grand_total:,.2f}")
        print(f"Takeoff exported to {target}")
        return artifact
