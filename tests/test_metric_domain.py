"""
Tests for per-region metric values and domain computation.
"""

import math

import numpy as np
import pytest
from conftest import make_region

from regionmaps.metric_domain import as_plottable, compute_for_regions, compute_many, metric_frame
from regionmaps.metrics import UnknownMetricError
from regionmaps.models import Region


def test_domain_is_min_max_of_numeric_values(sample_regions):
    result = compute_for_regions("median_household_income", sample_regions)
    assert result.domain == (50000.0, 70000.0)
    assert result.value_for("85302") == 70000.0
    assert result.numeric_count == 3


def test_single_value_gives_degenerate_domain():
    result = compute_for_regions("median_household_income", [make_region("85301", 10, income=42.0)])
    assert result.domain == (42.0, 42.0)


def test_domain_none_iff_all_values_missing():
    regions = [make_region("1", 10, income=None), make_region("2", 10, income=None)]
    result = compute_for_regions("median_household_income", regions)
    assert result.domain is None
    assert result.values_by_region == {"1": None, "2": None}

    regions.append(make_region("3", 10, income=1.0))
    assert compute_for_regions("median_household_income", regions).domain == (1.0, 1.0)


@pytest.mark.parametrize("bad", [math.nan, math.inf, -math.inf])
def test_non_finite_values_are_not_plottable(bad):
    regions = [make_region("1", 10, income=bad), make_region("2", 10, income=30000.0)]
    result = compute_for_regions("median_household_income", regions)
    assert result.value_for("1") is None
    assert result.domain == (30000.0, 30000.0)


def test_result_is_independent_of_region_order(sample_regions):
    forward = compute_for_regions("median_household_income", list(sample_regions.values()))
    backward = compute_for_regions("median_household_income", list(reversed(list(sample_regions.values()))))
    assert forward.domain == backward.domain
    assert forward.values_by_region == backward.values_by_region


def test_unknown_metric_raises(sample_regions):
    with pytest.raises(UnknownMetricError):
        compute_for_regions("bogus", sample_regions)


def test_value_for_missing_region():
    result = compute_for_regions("population", [Region(code="1", group_name="x")])
    assert result.value_for(None) is None
    assert result.value_for("does-not-exist") is None


def test_as_plottable():
    assert as_plottable(3) == 3.0
    assert as_plottable(np.float64(2.5)) == 2.5
    assert as_plottable(None) is None
    assert as_plottable("abc") is None
    assert as_plottable(True) is None


def test_compute_many_and_frame(sample_regions):
    results = compute_many(["population", "median_household_income"], sample_regions)
    assert set(results) == {"population", "median_household_income"}

    frame = metric_frame(["population", "employment_by_industry:Information"], sample_regions)
    assert list(frame.columns) == ["population", "employment_by_industry:Information"]
    assert frame.index.name == "region_code"
    assert frame.loc["85302", "population"] == 300
    assert frame["employment_by_industry:Information"].isna().all()


def test_duplicate_codes_keep_first_region():
    regions = [
        make_region("85301", 10, income=50000.0),
        make_region("85302", 10, income=60000.0),
        make_region("85301", 10, income=90000.0),
    ]
    result = compute_for_regions("median_household_income", regions)
    assert result.values_by_region == {"85301": 50000.0, "85302": 60000.0}
    assert result.domain == (50000.0, 60000.0)

    frame = metric_frame(["median_household_income"], regions)
    assert list(frame.index) == ["85301", "85302"]
    assert frame.loc["85301", "median_household_income"] == 50000.0
