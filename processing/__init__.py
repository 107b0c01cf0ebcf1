"""
Processing package for Regional Maps

This package turns raw Census data and exported region records into Region
objects for the map engine.
"""

__version__ = "0.1.0"

from .census_regions import (
    REGION_GROUPS,
    VARIABLE_MAP,
    clean_numeric,
    load_census_rows,
    load_historical_populations,
    load_region_records,
    load_regions,
    safe_parse_float,
    transform_census_row,
)

__all__ = [
    "VARIABLE_MAP",
    "REGION_GROUPS",
    "safe_parse_float",
    "clean_numeric",
    "transform_census_row",
    "load_census_rows",
    "load_historical_populations",
    "load_regions",
    "load_region_records",
]
