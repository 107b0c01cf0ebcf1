"""
Region records for the regional metrics engine.

A Region is an immutable snapshot of one geographic unit (a zip code) with
its statistical sections. Composite regions built by the aggregation engine
share the same shape and carry the "Multiple" sentinel identity.
"""

import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

COMPOSITE_CODE = "Multiple"
COMPOSITE_GROUP_NAME = "Multiple Regions"


@dataclass(frozen=True)
class CategoryShare:
    """One (label, value) entry of a categorical breakdown."""

    name: str
    value: float


Breakdown = Tuple[CategoryShare, ...]


def breakdown(pairs: Iterable[Tuple[str, float]]) -> Breakdown:
    """Build a breakdown from (label, value) pairs."""
    return tuple(CategoryShare(str(name), float(value)) for name, value in pairs)


def breakdown_value(items: Optional[Breakdown], label: str) -> Optional[float]:
    """Value reported for ``label``, or None when the label (or breakdown) is absent."""
    if not items:
        return None
    for item in items:
        if item.name == label:
            return item.value
    return None


@dataclass(frozen=True)
class Demographics:
    population: float = 0.0
    population_growth: Optional[float] = None
    median_age: Optional[float] = None
    gender_distribution: Breakdown = ()
    age_distribution: Breakdown = ()
    race_ethnicity: Breakdown = ()
    foreign_born_share: Optional[float] = None


@dataclass(frozen=True)
class Education:
    hs_graduation_rate: Optional[float] = None
    college_graduation_rate: Optional[float] = None
    # Absolute enrollment counts by level, not percentages
    school_enrollment: Breakdown = ()


@dataclass(frozen=True)
class Economics:
    median_household_income: Optional[float] = None
    per_capita_income: Optional[float] = None
    poverty_rate: Optional[float] = None


@dataclass(frozen=True)
class LaborForce:
    labor_force_participation_rate: Optional[float] = None
    unemployment_rate: Optional[float] = None
    occupation_mix: Breakdown = ()


@dataclass(frozen=True)
class Housing:
    median_home_value: Optional[float] = None
    owner_occupied_rate: Optional[float] = None
    median_gross_rent: Optional[float] = None
    rent_cost_burden_rate: Optional[float] = None
    price_to_income_ratio: Optional[float] = None
    year_structure_built: Breakdown = ()


@dataclass(frozen=True)
class Commuting:
    mean_travel_time_to_work: Optional[float] = None
    mode_share: Breakdown = ()


SECTION_TYPES = {
    "demographics": Demographics,
    "education": Education,
    "economics": Economics,
    "labor_force": LaborForce,
    "housing": Housing,
    "commuting": Commuting,
}


@dataclass(frozen=True)
class Region:
    """
    Statistical snapshot of one region.

    Scalar fields are Optional[float] (None when not reported); breakdowns are
    tuples of CategoryShare. Population must be non-negative.
    """

    code: str
    group_name: str
    demographics: Demographics = field(default_factory=Demographics)
    education: Education = field(default_factory=Education)
    economics: Economics = field(default_factory=Economics)
    labor_force: LaborForce = field(default_factory=LaborForce)
    employment_by_industry: Breakdown = ()
    housing: Housing = field(default_factory=Housing)
    commuting: Commuting = field(default_factory=Commuting)

    def __post_init__(self) -> None:
        population = self.demographics.population
        if population is None or math.isnan(population) or population < 0:
            raise ValueError(f"Region {self.code}: population must be >= 0, got {population}")

    @property
    def population(self) -> float:
        return self.demographics.population

    @property
    def is_composite(self) -> bool:
        return self.code == COMPOSITE_CODE

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Region":
        """
        Build a Region from a nested mapping.

        Keys may be snake_case or camelCase (the JSON interchange format of
        the web client); breakdowns are lists of ``{"name", "value"}`` objects.
        """
        normalized = _normalize_keys(data)
        code = normalized.get("code", normalized.get("zip"))
        if code is None or str(code).strip() == "":
            raise ValueError("Region mapping is missing 'code'/'zip'")
        group_name = normalized.get("group_name", normalized.get("city", "N/A"))

        sections: Dict[str, Any] = {}
        for section_name, section_type in SECTION_TYPES.items():
            raw = normalized.get(section_name) or {}
            if not isinstance(raw, Mapping):
                raise ValueError(f"Expected mapping for '{section_name}'")
            kwargs = {}
            for name in section_type.__dataclass_fields__:
                if name not in raw:
                    continue
                kwargs[name] = _coerce_field(raw[name], f"{section_name}.{name}")
            sections[section_name] = section_type(**kwargs)

        return cls(
            code=str(code).strip(),
            group_name=str(group_name),
            employment_by_industry=_coerce_breakdown(
                normalized.get("employment_by_industry") or [], "employment_by_industry"
            ),
            **sections,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Plain nested dict (snake_case) suitable for JSON export."""
        out: Dict[str, Any] = {"code": self.code, "group_name": self.group_name}
        for section_name in SECTION_TYPES:
            section = getattr(self, section_name)
            out[section_name] = {
                name: _export_value(getattr(section, name))
                for name in section.__dataclass_fields__
            }
        out["employment_by_industry"] = _export_value(self.employment_by_industry)
        return out


def _snake(key: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", key).lower()


def _normalize_keys(data: Mapping[str, Any]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, Mapping):
            value = _normalize_keys(value)
        out[_snake(str(key))] = value
    return out


def _coerce_breakdown(value: Any, field_name: str) -> Breakdown:
    if not isinstance(value, (list, tuple)):
        raise ValueError(f"Expected list for '{field_name}'")
    items: List[CategoryShare] = []
    for item in value:
        if isinstance(item, CategoryShare):
            items.append(item)
        elif isinstance(item, Mapping) and "name" in item:
            items.append(CategoryShare(str(item["name"]), _coerce_number(item.get("value"), 0.0)))
        elif isinstance(item, (list, tuple)) and len(item) == 2:
            items.append(CategoryShare(str(item[0]), _coerce_number(item[1], 0.0)))
        else:
            raise ValueError(f"Invalid breakdown entry in '{field_name}': {item!r}")
    return tuple(items)


def _coerce_number(value: Any, default: Optional[float] = None) -> Optional[float]:
    if value is None:
        return default
    if isinstance(value, bool):
        raise ValueError(f"Expected number, got bool: {value!r}")
    return float(value)


def _coerce_field(value: Any, field_name: str) -> Any:
    if isinstance(value, (list, tuple)):
        return _coerce_breakdown(value, field_name)
    if field_name == "demographics.population":
        return _coerce_number(value, 0.0)
    return _coerce_number(value)


def _export_value(value: Any) -> Any:
    if isinstance(value, tuple):
        return [{"name": item.name, "value": item.value} for item in value]
    return value
