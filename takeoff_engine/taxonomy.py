"""Construction division taxonomy used to classify takeoff measurements."""

from __future__ import annotations

from typing import Dict, Iterable, List, Mapping, Sequence, Tuple


_DIVISIONS: Dict[str, Tuple[str, List[str]]] = {
    "00": ("Project Soft Costs", [
        "Permits", "Architectural Fees", "Engineering", "Staking", "Designer Fees", "Interest",
        "Workmans Comp",
    ]),
    "01": ("General Requirements", [
        "Supervision", "Overhead", "General Labor", "Liability Insurance", "Equipment",
        "General Condition and Misc", "Building Final Clean", "Winter Heating", "Radon",
    ]),
    "02": ("Site Construction", ["Excavation", "Water and Sewer", "Site Required", "Landscape"]),
    "03": ("Concrete", ["Foundation", "Sidewalks", "Site Concrete", "Patio"]),
    "04": ("Masonry", ["Stone", "Brick", "Block", "Masonry Accessories"]),
    "05": ("Metals", ["Steel", "Decorative Brackets", "Structural Steel", "Metal Fabrications"]),
    "06": ("Wood, Plastics, and Composites", [
        "Framing", "Lumber Package", "Truss Package", "Cedar Decorative Truss", "Cedar Window",
        "Misc (hold downs, Bolts, Etc..)", "Trim", "Trim Install", "House Wrap",
        "Misc (House Wrap, Rough Timber, etc.)",
    ]),
    "07": ("Thermal and Moisture Protection", ["Roofing", "Waterproofing", "Insulation", "Air Barriers"]),
    "08": ("Openings", ["Doors", "Windows", "Glazing", "Hardware"]),
    "09": ("Finishes", ["Drywall", "Painting", "Flooring", "Ceilings", "Wall Coverings"]),
    "10": ("Specialties", ["Cabinets", "Countertops", "Appliances", "Specialty Items"]),
    "11": ("Equipment", ["Kitchen Equipment", "HVAC Equipment", "Plumbing Equipment", "Electrical Equipment"]),
    "12": ("Furnishings", ["Furniture", "Window Treatments", "Accessories"]),
    "13": ("Special Construction", ["Specialty Systems", "Specialty Structures"]),
    "14": ("Conveying Equipment", ["Elevators", "Escalators", "Moving Walks"]),
    "15": ("HVAC and Plumbing", ["HVAC Systems", "Plumbing Systems", "Mechanical Equipment", "Piping"]),
    "16": ("Electrical", ["Electrical Systems", "Lighting", "Power Distribution", "Communications"]),
    "17": ("Allowances", ["Contingency", "Owner Allowances", "Design Allowances"]),
    "21": ("Fire Suppression", ["Sprinkler Systems", "Fire Alarms", "Fire Protection"]),
    "22": ("Plumbing", ["Plumbing Fixtures", "Plumbing Systems", "Water Systems"]),
    "23": ("Heating, Ventilating, and Air Conditioning", ["HVAC Equipment", "Ductwork", "Controls", "Ventilation"]),
    "26": ("Electrical", ["Electrical Systems", "Lighting", "Power Distribution", "Communications"]),
    "27": ("Communications", ["Telecommunications", "Data Systems", "Audio/Video"]),
    "28": ("Electronic Safety and Security", ["Security Systems", "Access Control", "Surveillance"]),
    "31": ("Earthwork", ["Excavation", "Grading", "Drainage", "Site Preparation"]),
    "32": ("Exterior Improvements", ["Paving", "Landscaping", "Site Furnishings", "Exterior Lighting"]),
    "33": ("Utilities", ["Water Utilities", "Sewer Utilities", "Electrical Utilities", "Gas Utilities"]),
}


class DivisionTaxonomy:
    """Read-only lookup of division code to name and allowed subcategories.

    Unknown codes never raise: names fall back to the raw code and the
    subcategory list is empty.
    """

    def __init__(self, divisions: Mapping[str, Tuple[str, Sequence[str]]]) -> None:
        self._names: Dict[str, str] = {code: name for code, (name, _) in divisions.items()}
        self._subcategories: Dict[str, Tuple[str, ...]] = {
            code: tuple(subcategories) for code, (_, subcategories) in divisions.items()
        }

    def __contains__(self, code: object) -> bool:
        return code in self._names

    def __iter__(self):
        return iter(sorted(self._names))

    def codes(self) -> List[str]:
        return sorted(self._names)

    def is_known(self, code: str) -> bool:
        return code in self._names

    def name_for(self, code: str) -> str:
        return self._names.get(code, code)

    def label_for(self, code: str) -> str:
        if code in self._names:
            return f"{code} - {self._names[code]}"
        return code

    def subcategories_for(self, code: str) -> List[str]:
        return list(self._subcategories.get(code, ()))

    def as_dict(self) -> List[Dict[str, object]]:
        return [
            {"code": code, "name": self._names[code], "subcategories": list(self._subcategories[code])}
            for code in self.codes()
        ]

    @classmethod
    def from_entries(cls, entries: Iterable[Mapping[str, object]]) -> "DivisionTaxonomy":
        divisions: Dict[str, Tuple[str, Sequence[str]]] = {}
        for entry in entries:
            code = str(entry["code"])
            divisions[code] = (str(entry.get("name", code)), [str(s) for s in entry.get("subcategories", [])])  # type: ignore[union-attr]
        return cls(divisions)


DEFAULT_TAXONOMY = DivisionTaxonomy(_DIVISIONS)
