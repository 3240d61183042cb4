"""Human-in-the-loop review notes raised while costing a takeoff."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional


@dataclass
class ReviewItem:
    """A classification or pricing gap that should be confirmed by a human."""

    message: str
    severity: str = "info"  # Could be "info", "warning", or "critical".
    measurement_id: Optional[str] = None


class ReviewChecklist:
    """Container used to accumulate review items during aggregation."""

    def __init__(self) -> None:
        self._items: List[ReviewItem] = []

    def add(self, message: str, severity: str = "info", *, measurement_id: Optional[str] = None) -> None:
        self._items.append(ReviewItem(message=message, severity=severity, measurement_id=measurement_id))

    @property
    def items(self) -> List[ReviewItem]:
        return list(self._items)

    def warnings(self) -> List[ReviewItem]:
        return [item for item in self._items if item.severity != "info"]

    def __len__(self) -> int:
        return len(self._items)

    def summarize(self) -> str:
        if not self._items:
            return "No human review items."

        lines = ["Human review required for the following items:"]
        for idx, item in enumerate(self._items, start=1):
            lines.append(f"  {idx}. [{item.severity.upper()}] {item.message}")
        return "\n".join(lines)
