"""
Metric value extraction and normalization domains across a region set.
"""

import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from loguru import logger

from .color_scale import Domain
from .metrics import CATALOG, MetricCatalog
from .models import Region

RegionSet = Union[Mapping[str, Region], Iterable[Region]]


@dataclass(frozen=True)
class MetricResult:
    """Per-region values for one metric plus the [min, max] domain of the numeric ones."""

    metric_id: str
    values_by_region: Dict[str, Optional[float]] = field(default_factory=dict)
    domain: Optional[Domain] = None

    def value_for(self, region_code: Optional[str]) -> Optional[float]:
        if region_code is None:
            return None
        return self.values_by_region.get(region_code)

    @property
    def numeric_count(self) -> int:
        return sum(1 for v in self.values_by_region.values() if v is not None)


def as_plottable(value: object) -> Optional[float]:
    """Classify an extracted value: a finite float, or None for anything not plottable."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _region_items(regions: RegionSet) -> Iterable[Tuple[str, Region]]:
    if isinstance(regions, Mapping):
        return regions.items()
    return _first_by_code(regions)


def _first_by_code(regions: Iterable[Region]) -> Iterable[Tuple[str, Region]]:
    seen = set()
    for region in regions:
        if region.code in seen:
            logger.warning(f"⚠️ Duplicate region code {region.code}, keeping the first occurrence")
            continue
        seen.add(region.code)
        yield region.code, region


def compute_for_regions(
    metric_id: str, regions: RegionSet, catalog: MetricCatalog = CATALOG
) -> MetricResult:
    """
    Extract ``metric_id`` for every region and derive its normalization domain.

    Args:
        metric_id: Registered metric id (unknown ids raise UnknownMetricError)
        regions: Mapping of region code -> Region, or an iterable of Regions
            (a repeated code keeps its first region)
        catalog: Metric catalog to resolve the id against

    Returns:
        MetricResult; domain is None when no region has a numeric value
    """
    descriptor = catalog.describe(metric_id)

    values_by_region: Dict[str, Optional[float]] = {
        code: as_plottable(descriptor.extract(region)) for code, region in _region_items(regions)
    }
    numeric_values = [value for value in values_by_region.values() if value is not None]

    domain: Optional[Domain] = None
    if numeric_values:
        domain = (min(numeric_values), max(numeric_values))

    logger.debug(
        f"📊 {metric_id}: {len(numeric_values)}/{len(values_by_region)} numeric values, domain={domain}"
    )
    return MetricResult(metric_id=metric_id, values_by_region=values_by_region, domain=domain)


def compute_many(
    metric_ids: Sequence[str], regions: RegionSet, catalog: MetricCatalog = CATALOG
) -> Dict[str, MetricResult]:
    """Compute results for several metrics over the same region set."""
    region_list = list(_region_items(regions))
    return {
        metric_id: compute_for_regions(metric_id, dict(region_list), catalog)
        for metric_id in metric_ids
    }


def metric_frame(
    metric_ids: Sequence[str], regions: RegionSet, catalog: MetricCatalog = CATALOG
) -> pd.DataFrame:
    """
    Tabulate metrics by region.

    Returns:
        DataFrame indexed by region code with one column per metric id;
        not-plottable values are NaN.
    """
    results = compute_many(metric_ids, regions, catalog)
    columns = {
        metric_id: pd.Series(
            {
                code: (np.nan if value is None else value)
                for code, value in result.values_by_region.items()
            },
            dtype="float64",
        )
        for metric_id, result in results.items()
    }
    frame = pd.DataFrame(columns, columns=list(metric_ids))
    frame.index.name = "region_code"
    return frame
