"""
Tests for the metric catalog and its extraction functions.
"""

import pytest
from conftest import make_region

from regionmaps.metrics import (
    CATALOG,
    INDUSTRY_FAMILY,
    INDUSTRY_LIST,
    MetricCatalog,
    MetricDescriptor,
    MetricFormat,
    MetricGroup,
    UnknownMetricError,
    build_default_catalog,
    family_metric_id,
)
from regionmaps.models import Region


def test_describe_unknown_metric_fails_loudly():
    with pytest.raises(UnknownMetricError) as exc_info:
        CATALOG.describe("not_a_metric")
    assert exc_info.value.metric_id == "not_a_metric"
    assert "not_a_metric" in str(exc_info.value)
    # Still a KeyError for callers that treat the catalog as a mapping
    assert isinstance(exc_info.value, KeyError)


def test_all_is_stable_declaration_order():
    ids = [m.id for m in CATALOG.all()]
    assert ids == CATALOG.ids()
    assert ids[0] == "population"
    assert ids == [m.id for m in build_default_catalog().all()]
    assert len(ids) == len(set(ids))


def test_industry_family_ids_are_deterministic():
    family = CATALOG.family(INDUSTRY_FAMILY)
    assert [m.id for m in family] == [family_metric_id(INDUSTRY_FAMILY, label) for label in INDUSTRY_LIST]
    assert family_metric_id(INDUSTRY_FAMILY, "Construction") == "employment_by_industry:Construction"
    assert all(m.group == MetricGroup.ECONOMICS_LABOR for m in family)


def test_duplicate_ids_rejected():
    descriptor = MetricDescriptor("x", "X", MetricGroup.DEMOGRAPHICS, MetricFormat.COUNT, lambda r: 1.0)
    with pytest.raises(ValueError):
        MetricCatalog([descriptor, descriptor])


def test_by_group_keeps_display_order():
    groups = list(CATALOG.by_group())
    assert groups == [
        MetricGroup.DEMOGRAPHICS,
        MetricGroup.ECONOMICS_LABOR,
        MetricGroup.HOUSING_COMMUTING,
        MetricGroup.EDUCATION,
    ]


def test_extractors_are_total_on_empty_region():
    empty = Region(code="00000", group_name="N/A")
    for descriptor in CATALOG:
        value = descriptor.extract(empty)
        assert value is None or isinstance(value, float), descriptor.id


def test_scalar_and_industry_extraction():
    region = make_region("85301", 1000, income=55000.0)
    assert CATALOG.describe("median_household_income").extract(region) == 55000.0
    assert CATALOG.describe("population").extract(region) == 1000.0
    assert CATALOG.describe("employment_by_industry:Retail Trade").extract(region) == 20.0
    # Industry not reported by this region
    assert CATALOG.describe("employment_by_industry:Information").extract(region) is None


def test_enrollment_metrics_are_share_of_population():
    region = make_region("85301", 2000, enrollment=[("Preschool", 50), ("College/Grad", 300)])
    assert CATALOG.describe("enrollment_preschool").extract(region) == pytest.approx(2.5)
    assert CATALOG.describe("enrollment_college").extract(region) == pytest.approx(15.0)
    assert CATALOG.describe("enrollment_kindergarten").extract(region) is None


def test_enrollment_with_zero_population_is_zero():
    region = make_region("85301", 0, enrollment=[("Preschool", 50)])
    assert CATALOG.describe("enrollment_preschool").extract(region) == 0.0


def test_explain_and_units():
    text = CATALOG.explain("median_home_value")
    assert "**Median Home Value**" in text
    assert "US dollars" in text
    assert CATALOG.describe("poverty_rate").units == "percent"
    assert "poverty_rate" in CATALOG
    assert "nope" not in CATALOG
