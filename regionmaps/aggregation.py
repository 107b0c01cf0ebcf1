"""
Aggregation Engine - Combine Selected Regions into One Composite

Merges an ordered list of region records into a single synthetic region:
- Scalar rates and levels use population-weighted averages
- Percentage breakdowns are converted back to head counts, summed, and
  re-expressed as a share of the combined population
- School enrollment is already a head count and is summed directly
- Derived ratios are recomputed from the aggregated inputs, never averaged
"""

import math
from typing import Callable, Dict, List, Optional, Sequence

from loguru import logger

from .models import (
    COMPOSITE_CODE,
    COMPOSITE_GROUP_NAME,
    Breakdown,
    CategoryShare,
    Commuting,
    Demographics,
    Economics,
    Education,
    Housing,
    LaborForce,
    Region,
)

ScalarGetter = Callable[[Region], Optional[float]]
BreakdownGetter = Callable[[Region], Optional[Breakdown]]


def _is_numeric(value: Optional[float]) -> bool:
    return value is not None and math.isfinite(value)


def weighted_average(regions: Sequence[Region], getter: ScalarGetter) -> float:
    """
    Population-weighted average of a scalar field.

    Regions whose value is missing or NaN are left out of both the weighted
    sum and the population denominator. Returns 0 when no region reports a
    numeric value.
    """
    weighted_sum = 0.0
    adjusted_population = 0.0
    for region in regions:
        value = getter(region)
        if not _is_numeric(value):
            continue
        weighted_sum += value * region.population  # type: ignore[operator]
        adjusted_population += region.population
    return weighted_sum / adjusted_population if adjusted_population > 0 else 0.0


def recombine_percentages(
    regions: Sequence[Region], getter: BreakdownGetter, total_population: float
) -> Breakdown:
    """
    Recombine percentage breakdowns through absolute counts.

    Each region's share is converted to a head count (value / 100 * population),
    counts are summed per label, and the sum is re-expressed as a percentage
    of ``total_population``. Labels a region does not report contribute 0.
    """
    combined: Dict[str, float] = {}
    for region in regions:
        for item in getter(region) or ():
            if not _is_numeric(item.value):
                continue
            combined[item.name] = combined.get(item.name, 0.0) + (
                item.value / 100 * region.population
            )
    return tuple(
        CategoryShare(name, (count / total_population) * 100 if total_population > 0 else 0.0)
        for name, count in combined.items()
    )


def sum_counts(regions: Sequence[Region], getter: BreakdownGetter) -> Breakdown:
    """Per-label sum of breakdowns that hold absolute counts."""
    combined: Dict[str, float] = {}
    for region in regions:
        for item in getter(region) or ():
            if not _is_numeric(item.value):
                continue
            combined[item.name] = combined.get(item.name, 0.0) + item.value
    return tuple(CategoryShare(name, value) for name, value in combined.items())


def combine(regions: Sequence[Region]) -> Optional[Region]:
    """
    Combine regions into one composite region.

    Args:
        regions: Ordered region records (the current selection)

    Returns:
        None for an empty selection, the region itself for a single region,
        the first region when the combined population is 0, otherwise a new
        Region with the "Multiple" sentinel identity.
    """
    regions = list(regions)
    if not regions:
        return None
    if len(regions) == 1:
        return regions[0]

    total_population = sum(region.population for region in regions)
    if total_population == 0:
        logger.warning(
            f"⚠️ Combined population of {len(regions)} regions is 0, using {regions[0].code}"
        )
        return regions[0]

    def avg(getter: ScalarGetter) -> float:
        return weighted_average(regions, getter)

    def pct(getter: BreakdownGetter) -> Breakdown:
        return recombine_percentages(regions, getter, total_population)

    median_home_value = avg(lambda r: r.housing.median_home_value)
    median_household_income = avg(lambda r: r.economics.median_household_income)

    composite = Region(
        code=COMPOSITE_CODE,
        group_name=COMPOSITE_GROUP_NAME,
        demographics=Demographics(
            population=total_population,
            population_growth=avg(lambda r: r.demographics.population_growth),
            median_age=avg(lambda r: r.demographics.median_age),
            gender_distribution=pct(lambda r: r.demographics.gender_distribution),
            age_distribution=pct(lambda r: r.demographics.age_distribution),
            race_ethnicity=pct(lambda r: r.demographics.race_ethnicity),
            foreign_born_share=avg(lambda r: r.demographics.foreign_born_share),
        ),
        education=Education(
            hs_graduation_rate=avg(lambda r: r.education.hs_graduation_rate),
            college_graduation_rate=avg(lambda r: r.education.college_graduation_rate),
            school_enrollment=sum_counts(regions, lambda r: r.education.school_enrollment),
        ),
        economics=Economics(
            median_household_income=median_household_income,
            per_capita_income=avg(lambda r: r.economics.per_capita_income),
            poverty_rate=avg(lambda r: r.economics.poverty_rate),
        ),
        labor_force=LaborForce(
            labor_force_participation_rate=avg(
                lambda r: r.labor_force.labor_force_participation_rate
            ),
            unemployment_rate=avg(lambda r: r.labor_force.unemployment_rate),
            occupation_mix=pct(lambda r: r.labor_force.occupation_mix),
        ),
        employment_by_industry=pct(lambda r: r.employment_by_industry),
        housing=Housing(
            median_home_value=median_home_value,
            owner_occupied_rate=avg(lambda r: r.housing.owner_occupied_rate),
            median_gross_rent=avg(lambda r: r.housing.median_gross_rent),
            rent_cost_burden_rate=avg(lambda r: r.housing.rent_cost_burden_rate),
            price_to_income_ratio=(
                median_home_value / median_household_income if median_household_income > 0 else 0.0
            ),
            year_structure_built=pct(lambda r: r.housing.year_structure_built),
        ),
        commuting=Commuting(
            mean_travel_time_to_work=avg(lambda r: r.commuting.mean_travel_time_to_work),
            mode_share=pct(lambda r: r.commuting.mode_share),
        ),
    )

    logger.debug(
        f"🔄 Combined {len(regions)} regions ({', '.join(r.code for r in regions)}) "
        f"into {total_population:,.0f} residents"
    )
    return composite


def combine_selection(
    regions_by_code: Dict[str, Region], selected_codes: Sequence[str]
) -> Optional[Region]:
    """Combine the regions for ``selected_codes``, skipping codes with no record."""
    found: List[Region] = []
    for code in selected_codes:
        region = regions_by_code.get(code)
        if region is None:
            logger.debug(f"  No record for selected region {code}, skipping")
            continue
        found.append(region)
    return combine(found)
