"""
Tests for value and selection display formatting.
"""

import math

import pytest

from regionmaps.formatting import (
    METRIC_PLACEHOLDER,
    REGION_PLACEHOLDER,
    format_metric_selection,
    format_metric_value,
    format_region_selection,
)
from regionmaps.metrics import CATALOG, INDUSTRY_FAMILY, MetricFormat, MetricGroup

GROUPS = {
    "85323": "Avondale",
    "85392": "Avondale",
    "85301": "Glendale",
    "85302": "Glendale",
    "85303": "Glendale",
}


@pytest.mark.parametrize(
    "value, fmt, expected",
    [
        (65000.0, MetricFormat.CURRENCY, "$65,000"),
        (65000.4, MetricFormat.CURRENCY, "$65,000"),
        (12.345, MetricFormat.PERCENT, "12.3%"),
        (1234.0, MetricFormat.COUNT, "1,234"),
        (4.26, MetricFormat.COUNT, "4.3"),
        (None, MetricFormat.COUNT, "N/A"),
        (math.nan, MetricFormat.PERCENT, "N/A"),
    ],
)
def test_format_metric_value(value, fmt, expected):
    assert format_metric_value(value, fmt) == expected


def test_region_selection_summary():
    assert format_region_selection([], GROUPS) == REGION_PLACEHOLDER
    assert (
        format_region_selection(["85302", "85323", "85392", "85301"], GROUPS)
        == "Avondale (All), Glendale (85301, 85302)"
    )
    assert format_region_selection(["99999"], GROUPS) == "Unknown (99999)"


def test_metric_selection_summary():
    assert format_metric_selection([]) == METRIC_PLACEHOLDER
    assert format_metric_selection(CATALOG.ids()) == "All Metrics"

    demographics = [d.id for d in CATALOG.by_group()[MetricGroup.DEMOGRAPHICS]]
    industries = [d.id for d in CATALOG.family(INDUSTRY_FAMILY)]
    summary = format_metric_selection(demographics + ["median_household_income"] + industries)
    assert summary == "All Demographics; Median Household Income, All Industries"


def test_partial_industry_selection_uses_short_labels():
    summary = format_metric_selection(["employment_by_industry:Construction", "median_age"])
    assert summary == "Median Age; Construction"
