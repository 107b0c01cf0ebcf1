"""
Shared fixtures: sample regions, a small zip FeatureCollection and a
recording render surface.
"""

from typing import Any, Dict, List, Mapping, Optional, Tuple

import pytest

from regionmaps.map_sync import Bounds, LatLng, RenderSurface, StyleDict
from regionmaps.models import (
    Commuting,
    Demographics,
    Economics,
    Education,
    Housing,
    LaborForce,
    Region,
    breakdown,
)


def make_region(
    code: str,
    population: float,
    income: Optional[float] = 50000.0,
    group_name: str = "Glendale",
    home_value: Optional[float] = 250000.0,
    enrollment: Optional[List[Tuple[str, float]]] = None,
    industries: Optional[List[Tuple[str, float]]] = None,
    age: Optional[List[Tuple[str, float]]] = None,
    unemployment: Optional[float] = 5.0,
) -> Region:
    """Build a Region with just enough data for engine tests."""
    return Region(
        code=code,
        group_name=group_name,
        demographics=Demographics(
            population=population,
            median_age=35.0,
            age_distribution=breakdown(age or [("0-19", 25.0), ("20-39", 30.0), ("40-59", 25.0), ("60+", 20.0)]),
            gender_distribution=breakdown([("Male", 50.0), ("Female", 50.0)]),
        ),
        education=Education(
            hs_graduation_rate=85.0,
            school_enrollment=breakdown(enrollment or []),
        ),
        economics=Economics(median_household_income=income, poverty_rate=12.0),
        labor_force=LaborForce(unemployment_rate=unemployment),
        employment_by_industry=breakdown(industries or [("Construction", 10.0), ("Retail Trade", 20.0)]),
        housing=Housing(
            median_home_value=home_value,
            price_to_income_ratio=(home_value / income) if home_value and income else 0.0,
        ),
        commuting=Commuting(mean_travel_time_to_work=25.0, mode_share=breakdown([("Drive Alone", 80.0)])),
    )


def square(min_x: float, min_y: float, size: float = 0.1) -> Dict[str, Any]:
    return {
        "type": "Polygon",
        "coordinates": [
            [
                [min_x, min_y],
                [min_x + size, min_y],
                [min_x + size, min_y + size],
                [min_x, min_y + size],
                [min_x, min_y],
            ]
        ],
    }


class RecordingSurface(RenderSurface):
    """RenderSurface that records every call for assertions."""

    def __init__(self, features: Dict[str, Dict[str, Any]], bounds: Optional[Dict[str, Optional[Bounds]]] = None):
        self.features = features
        self.bounds = bounds or {}
        self.styles: Dict[str, StyleDict] = {}
        self.order: List[str] = list(features)
        self.tooltips: Dict[str, str] = {}
        self.fits: List[Tuple[Bounds, Tuple[int, int]]] = []
        self.views: List[Tuple[LatLng, int]] = []

    def feature_ids(self) -> List[str]:
        return list(self.features)

    def feature_properties(self, feature_id: str) -> Mapping[str, Any]:
        return self.features[feature_id]

    def set_style(self, feature_id: str, style: StyleDict) -> None:
        self.styles[feature_id] = dict(style)

    def bring_to_front(self, feature_id: str) -> None:
        self.order.remove(feature_id)
        self.order.append(feature_id)

    def open_tooltip(self, feature_id: str, content: str) -> None:
        self.tooltips[feature_id] = content

    def close_tooltip(self, feature_id: str) -> None:
        self.tooltips.pop(feature_id, None)

    def feature_bounds(self, feature_id: str) -> Optional[Bounds]:
        return self.bounds.get(feature_id)

    def fit_bounds(self, bounds: Bounds, padding: Tuple[int, int]) -> None:
        self.fits.append((bounds, padding))

    def set_view(self, center: LatLng, zoom: int) -> None:
        self.views.append((center, zoom))

    def topmost(self) -> str:
        return self.order[-1]


@pytest.fixture
def sample_regions() -> Dict[str, Region]:
    return {
        "85301": make_region("85301", 100, income=50000.0),
        "85302": make_region("85302", 300, income=70000.0),
        "85323": make_region("85323", 200, income=60000.0, group_name="Avondale"),
    }


@pytest.fixture
def surface() -> RecordingSurface:
    features = {
        "a": {"ZIP": "85301", "CITY": "Glendale"},
        "b": {"ZCTA5CE20": "85302", "CITY": "Glendale"},
        "c": {"ZIP_CODE": 85323, "city": "Avondale"},
        "lake": {"NAME": "Lake Pleasant"},
    }
    bounds = {
        "a": (-112.2, 33.5, -112.1, 33.6),
        "b": (-112.3, 33.4, -112.2, 33.5),
        "c": (-112.4, 33.4, -112.3, 33.5),
        "lake": (-112.3, 33.8, -112.2, 33.9),
    }
    return RecordingSurface(features, bounds)


@pytest.fixture
def feature_collection() -> Dict[str, Any]:
    return {
        "type": "FeatureCollection",
        "features": [
            {"type": "Feature", "id": "a", "properties": {"ZIP": "85301", "CITY": "Glendale"}, "geometry": square(-112.2, 33.5)},
            {"type": "Feature", "id": "b", "properties": {"ZIP": "85302", "CITY": "Glendale"}, "geometry": square(-112.3, 33.4)},
            {"type": "Feature", "id": "c", "properties": {"ZIP": "85323", "CITY": "Avondale"}, "geometry": square(-112.4, 33.4)},
            {"type": "Feature", "id": "empty", "properties": {"ZIP": "85999"}, "geometry": None},
        ],
    }
