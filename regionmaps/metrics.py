"""
Metric Catalog for the Regional Metrics Engine

This module provides the declarative table of plottable metrics. Each metric
pairs display metadata with a pure extraction function Region -> number|None.
The catalog is built once at import and never mutated; parameterized families
(one metric per employment industry) are generated from a fixed label list so
their ids are stable across runs.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from loguru import logger

from .models import Region, breakdown_value

Extractor = Callable[[Region], Optional[float]]

INDUSTRY_FAMILY = "employment_by_industry"
INDUSTRY_LIST: Tuple[str, ...] = (
    "Agri/Mining",
    "Construction",
    "Manufacturing",
    "Wholesale Trade",
    "Retail Trade",
    "Transport/Warehouse",
    "Information",
    "Finance/Ins/RE",
    "Prof/Sci/Mgmt",
    "Edu/Health/Social",
    "Arts/Ent/Food",
    "Other Services",
    "Public Admin",
)


class MetricGroup(str, Enum):
    """Metric picker groups, in display order."""

    DEMOGRAPHICS = "Demographics"
    ECONOMICS_LABOR = "Economics & Labor"
    HOUSING_COMMUTING = "Housing & Commuting"
    EDUCATION = "Education"


class MetricFormat(str, Enum):
    CURRENCY = "currency"
    PERCENT = "percent"
    COUNT = "count"


class UnknownMetricError(KeyError):
    """Raised when a metric id is not registered in the catalog."""

    def __init__(self, metric_id: str):
        super().__init__(metric_id)
        self.metric_id = metric_id

    def __str__(self) -> str:
        return f"Metric '{self.metric_id}' not found in catalog"


@dataclass(frozen=True)
class MetricDescriptor:
    """Definition of a plottable metric with its extraction function."""

    id: str
    label: str
    group: MetricGroup
    format: MetricFormat
    extract: Extractor
    description: Optional[str] = None
    family: Optional[str] = None

    @property
    def units(self) -> str:
        return {
            MetricFormat.CURRENCY: "US dollars",
            MetricFormat.PERCENT: "percent",
            MetricFormat.COUNT: "count",
        }[self.format]


def family_metric_id(family: str, label: str) -> str:
    """Deterministic id for one member of a parameterized metric family."""
    return f"{family}:{label}"


class MetricCatalog:
    """
    Ordered, read-only registry of metric descriptors.

    Lookup of an unregistered id is a configuration error and raises
    UnknownMetricError instead of degrading silently.
    """

    def __init__(self, descriptors: Sequence[MetricDescriptor]):
        self._metrics: Dict[str, MetricDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.id in self._metrics:
                raise ValueError(f"Duplicate metric id: {descriptor.id}")
            self._metrics[descriptor.id] = descriptor
        self._ordered: Tuple[MetricDescriptor, ...] = tuple(self._metrics.values())
        logger.debug(f"Registered {len(self._ordered)} metrics")

    def describe(self, metric_id: str) -> MetricDescriptor:
        try:
            return self._metrics[metric_id]
        except KeyError:
            raise UnknownMetricError(metric_id) from None

    def all(self) -> Tuple[MetricDescriptor, ...]:
        return self._ordered

    def ids(self) -> List[str]:
        return [m.id for m in self._ordered]

    def __iter__(self) -> Iterator[MetricDescriptor]:
        return iter(self._ordered)

    def __len__(self) -> int:
        return len(self._ordered)

    def __contains__(self, metric_id: object) -> bool:
        return metric_id in self._metrics

    def by_group(self) -> Dict[MetricGroup, List[MetricDescriptor]]:
        """Descriptors grouped for a metric picker, groups in display order."""
        groups: Dict[MetricGroup, List[MetricDescriptor]] = {g: [] for g in MetricGroup}
        for descriptor in self._ordered:
            groups[descriptor.group].append(descriptor)
        return {g: items for g, items in groups.items() if items}

    def family(self, name: str) -> List[MetricDescriptor]:
        return [m for m in self._ordered if m.family == name]

    def explain(self, metric_id: str) -> str:
        """Markdown explanation for a metric (label, group, units, description)."""
        descriptor = self.describe(metric_id)
        explanation = f"**{descriptor.label}**"
        explanation += f"\n\n**Group:** {descriptor.group.value}"
        explanation += f"\n\n**Units:** {descriptor.units}"
        if descriptor.description:
            explanation += f"\n\n{descriptor.description}"
        return explanation


def _section_field(section: str, name: str) -> Extractor:
    def extract(region: Region) -> Optional[float]:
        value = getattr(getattr(region, section, None), name, None)
        return None if value is None else float(value)

    return extract


def _enrollment_share(level: str) -> Extractor:
    """Enrollment count at ``level`` as a percent of total population."""

    def extract(region: Region) -> Optional[float]:
        count = breakdown_value(region.education.school_enrollment, level)
        if count is None:
            return None
        population = region.demographics.population
        if not population or population <= 0:
            return 0.0
        return count / population * 100

    return extract


def _industry_share(industry: str) -> Extractor:
    def extract(region: Region) -> Optional[float]:
        return breakdown_value(region.employment_by_industry, industry)

    return extract


def _base_metrics() -> List[MetricDescriptor]:
    demo = MetricGroup.DEMOGRAPHICS
    econ = MetricGroup.ECONOMICS_LABOR
    housing = MetricGroup.HOUSING_COMMUTING
    edu = MetricGroup.EDUCATION
    currency, percent, count = MetricFormat.CURRENCY, MetricFormat.PERCENT, MetricFormat.COUNT

    table = [
        # Demographics
        ("population", "Population", demo, count, "demographics", "population"),
        ("population_growth", "Population Growth (%)", demo, percent, "demographics", "population_growth"),
        ("median_age", "Median Age", demo, count, "demographics", "median_age"),
        ("foreign_born_share", "Foreign-Born Share (%)", demo, percent, "demographics", "foreign_born_share"),
        # Economics & Labor
        ("median_household_income", "Median Household Income", econ, currency, "economics", "median_household_income"),
        ("per_capita_income", "Per Capita Income", econ, currency, "economics", "per_capita_income"),
        ("poverty_rate", "Poverty Rate (%)", econ, percent, "economics", "poverty_rate"),
        ("labor_force_participation_rate", "Labor Force Participation (%)", econ, percent, "labor_force", "labor_force_participation_rate"),
        ("unemployment_rate", "Unemployment Rate (%)", econ, percent, "labor_force", "unemployment_rate"),
        # Housing & Commuting
        ("median_home_value", "Median Home Value", housing, currency, "housing", "median_home_value"),
        ("owner_occupied_rate", "Owner-Occupied Housing Rate (%)", housing, percent, "housing", "owner_occupied_rate"),
        ("median_gross_rent", "Median Gross Rent", housing, currency, "housing", "median_gross_rent"),
        ("rent_cost_burden_rate", "Rent Cost Burden (>35%)", housing, percent, "housing", "rent_cost_burden_rate"),
        ("price_to_income_ratio", "Price-to-Income Ratio", housing, count, "housing", "price_to_income_ratio"),
        ("mean_travel_time_to_work", "Mean Travel Time to Work (min)", housing, count, "commuting", "mean_travel_time_to_work"),
        # Education
        ("hs_graduation_rate", "High School Graduation Rate (%)", edu, percent, "education", "hs_graduation_rate"),
        ("college_graduation_rate", "Bachelor's Degree or Higher (%)", edu, percent, "education", "college_graduation_rate"),
    ]
    metrics = [
        MetricDescriptor(
            id=metric_id,
            label=label,
            group=group,
            format=fmt,
            extract=_section_field(section, name),
        )
        for metric_id, label, group, fmt, section, name in table
    ]

    # Data stores raw enrollment counts, so these are expressed as % of total population
    enrollment_levels = [
        ("enrollment_preschool", "Preschool"),
        ("enrollment_kindergarten", "Kindergarten"),
        ("enrollment_grade_1_to_8", "Grade 1-8"),
        ("enrollment_high_school", "High School"),
        ("enrollment_college", "College/Grad"),
    ]
    for metric_id, level in enrollment_levels:
        metrics.append(
            MetricDescriptor(
                id=metric_id,
                label=f"Enrolled: {level} (% of Pop)",
                group=edu,
                format=percent,
                extract=_enrollment_share(level),
                description=f"Residents enrolled in {level}, as a share of total population",
            )
        )
    return metrics


def _industry_metrics() -> List[MetricDescriptor]:
    return [
        MetricDescriptor(
            id=family_metric_id(INDUSTRY_FAMILY, industry),
            label=f"Employment: {industry} (%)",
            group=MetricGroup.ECONOMICS_LABOR,
            format=MetricFormat.PERCENT,
            extract=_industry_share(industry),
            description=f"Share of employed residents working in {industry}",
            family=INDUSTRY_FAMILY,
        )
        for industry in INDUSTRY_LIST
    ]


def build_default_catalog() -> MetricCatalog:
    """Construct the standard metric catalog (base metrics, then industry family)."""
    return MetricCatalog(_base_metrics() + _industry_metrics())


CATALOG = build_default_catalog()
