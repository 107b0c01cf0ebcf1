#!/usr/bin/env python3
"""
census_regions.py - ACS 5-Year Profile Rows to Region Records

Turns already-downloaded Census API responses (ACS 5-year data profile,
zip code tabulation areas) into Region records for the map engine.

Input format is the Census API JSON layout: a header row followed by data
rows. Several tables (DP02, DP03, DP04, DP05) may be stored together as a
list of such tables; they are merged by zip code.

Usage:
    from processing.census_regions import load_regions
    regions = load_regions("data/raw/acs_profile_2022.json", "data/raw/acs_pop_2017.json")
"""

import json
import math
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import pandas as pd
from loguru import logger

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

ZIP_COLUMN = "zip code tabulation area"
HISTORICAL_POPULATION_VAR = "B01003_001E"

VARIABLE_MAP: Dict[str, str] = {
    # Demographics
    "population": "DP05_0001E",
    "median_age": "DP05_0018E",
    "total_male": "DP05_0002E",
    "total_female": "DP05_0003E",
    "age_under_5": "DP05_0005E",
    "age_5_to_9": "DP05_0006E",
    "age_10_to_14": "DP05_0007E",
    "age_15_to_19": "DP05_0008E",
    "age_20_to_24": "DP05_0009E",
    "age_25_to_34": "DP05_0010E",
    "age_35_to_44": "DP05_0011E",
    "age_45_to_54": "DP05_0012E",
    "age_55_to_59": "DP05_0013E",
    "age_60_to_64": "DP05_0014E",
    "age_65_to_74": "DP05_0015E",
    "age_75_to_84": "DP05_0016E",
    "age_85_plus": "DP05_0017E",
    "race_white_pct": "DP05_0037PE",
    "race_black_pct": "DP05_0038PE",
    "race_native_pct": "DP05_0039PE",
    "race_asian_pct": "DP05_0044PE",
    "race_islander_pct": "DP05_0052PE",
    "race_two_or_more_pct": "DP05_0057PE",
    "race_hispanic_pct": "DP05_0071PE",
    "foreign_born_pct": "DP02_0094PE",
    # Economics
    "median_household_income": "DP03_0062E",
    "per_capita_income": "DP03_0088E",
    "poverty_rate_pct": "DP03_0128PE",
    # Labor force
    "labor_force_participation_pct": "DP03_0002PE",
    "unemployment_rate_pct": "DP03_0009PE",
    "occupation_mgmt_sci_art_pct": "DP03_0027PE",
    "occupation_service_pct": "DP03_0028PE",
    "occupation_sales_office_pct": "DP03_0029PE",
    "occupation_construct_maint_pct": "DP03_0030PE",
    "occupation_prod_transport_pct": "DP03_0031PE",
    # Employment by industry
    "industry_agri_mining_pct": "DP03_0033PE",
    "industry_construction_pct": "DP03_0034PE",
    "industry_manufacturing_pct": "DP03_0035PE",
    "industry_wholesale_trade_pct": "DP03_0036PE",
    "industry_retail_trade_pct": "DP03_0037PE",
    "industry_transport_warehouse_pct": "DP03_0038PE",
    "industry_information_pct": "DP03_0039PE",
    "industry_finance_ins_re_pct": "DP03_0040PE",
    "industry_prof_sci_mgmt_pct": "DP03_0041PE",
    "industry_edu_health_social_pct": "DP03_0042PE",
    "industry_arts_ent_food_pct": "DP03_0043PE",
    "industry_other_services_pct": "DP03_0044PE",
    "industry_public_admin_pct": "DP03_0045PE",
    # Housing
    "median_home_value": "DP04_0089E",
    "owner_occupied_pct": "DP04_0046PE",
    "median_gross_rent": "DP04_0134E",
    "rent_cost_burden_35_plus_pct": "DP04_0143PE",
    "year_built_2020_plus_pct": "DP04_0017PE",
    "year_built_2010_to_2019_pct": "DP04_0018PE",
    "year_built_2000_to_2009_pct": "DP04_0019PE",
    "year_built_1980_to_1999_pct": "DP04_0020PE",
    "year_built_1960_to_1979_pct": "DP04_0021PE",
    "year_built_1940_to_1959_pct": "DP04_0022PE",
    "year_built_before_1940_pct": "DP04_0023PE",
    # Education
    "hs_graduation_pct": "DP02_0066PE",
    "college_graduation_pct": "DP02_0067PE",
    "enrolled_preschool": "DP02_0053E",
    "enrolled_kindergarten": "DP02_0054E",
    "enrolled_grade_1_to_8": "DP02_0055E",
    "enrolled_9_to_12": "DP02_0056E",
    "enrolled_college": "DP02_0057E",
    # Commuting
    "mean_travel_time_to_work": "DP03_0025E",
    "commute_drive_alone_pct": "DP03_0019PE",
    "commute_carpool_pct": "DP03_0020PE",
    "commute_public_transit_pct": "DP03_0021PE",
    "commute_walk_pct": "DP03_0022PE",
    "commute_other_pct": "DP03_0023PE",
    "commute_work_from_home_pct": "DP03_0024PE",
}

# West Valley study area (zip -> city). Some zips straddle a city line;
# the first city listed owns the zip.
_STUDY_AREA = [
    ("85323", "Avondale"), ("85392", "Avondale"),
    ("85326", "Buckeye"), ("85396", "Buckeye"),
    ("85335", "El Mirage"),
    ("85301", "Glendale"), ("85302", "Glendale"), ("85303", "Glendale"), ("85304", "Glendale"),
    ("85305", "Glendale"), ("85306", "Glendale"), ("85307", "Glendale"), ("85308", "Glendale"),
    ("85309", "Glendale"), ("85310", "Glendale"),
    ("85338", "Goodyear"), ("85395", "Goodyear"),
    ("85340", "Litchfield Park"),
    ("85345", "Peoria"), ("85381", "Peoria"), ("85382", "Peoria"), ("85383", "Peoria"),
    ("85374", "Surprise"), ("85378", "Surprise"), ("85379", "Surprise"), ("85387", "Surprise"),
    ("85388", "Surprise"),
    ("85353", "Tolleson"),
    ("85363", "Youngtown"),
    ("85355", "Waddell"),
    ("85351", "Sun City"), ("85373", "Sun City"),
    ("85375", "Sun City West"),
    ("85390", "Wickenburg"),
    ("85361", "Wittmann"),
    ("85031", "Phoenix"), ("85033", "Phoenix"), ("85035", "Phoenix"), ("85037", "Phoenix"),
    ("85043", "Phoenix"), ("85302", "Phoenix"), ("85304", "Phoenix"), ("85306", "Phoenix"),
]

REGION_GROUPS: Dict[str, str] = {}
for _zip, _city in _STUDY_AREA:
    REGION_GROUPS.setdefault(_zip, _city)


def safe_parse_float(value: Any) -> float:
    """Parse a Census value; missing, "-", non-numeric and negative values become 0.

    The Census API reports suppressed or unavailable estimates with negative
    sentinel codes, so negatives are treated as missing.
    """
    if value is None:
        return 0.0
    if isinstance(value, str):
        value = value.replace(",", "").strip()
        if value in ("", "-"):
            return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or number < 0:
        return 0.0
    return number


def clean_numeric(series: pd.Series) -> pd.Series:
    """
    Cleans a pandas Series to numeric type, handling commas and percent signs.

    Args:
        series: The pandas Series to clean.

    Returns:
        A pandas Series with numeric data (NaN where unparseable).
    """
    s = (
        series.astype(str)
        .str.replace(",", "", regex=False)
        .str.replace("%", "", regex=False)
        .str.strip()
    )
    return pd.to_numeric(s, errors="coerce")


def transform_census_row(
    row: Mapping[str, Any],
    historical_populations: Optional[Mapping[str, float]] = None,
    region_groups: Mapping[str, str] = REGION_GROUPS,
) -> Optional[Region]:
    """
    Build a Region from one merged Census row.

    Args:
        row: Mapping of Census variable code -> raw value, plus the zip column
        historical_populations: zip -> population five years earlier, for growth
        region_groups: zip -> city lookup

    Returns:
        Region, or None when the row has no zip or reports zero population
    """
    zip_code = row.get(ZIP_COLUMN)
    if zip_code is None or str(zip_code).strip() == "":
        return None
    zip_code = str(zip_code).strip()

    def v(name: str) -> float:
        return safe_parse_float(row.get(VARIABLE_MAP[name]))

    total_population = v("population")
    if total_population == 0:
        logger.debug(f"  Skipping {zip_code}: zero population")
        return None

    def share_of_population(*names: str) -> float:
        return sum(v(name) for name in names) / total_population * 100

    past_population = safe_parse_float((historical_populations or {}).get(zip_code))
    growth = (
        (total_population - past_population) / past_population * 100
        if past_population > 0
        else math.nan
    )

    demographics = Demographics(
        population=total_population,
        population_growth=growth,
        median_age=v("median_age"),
        gender_distribution=breakdown(
            [
                ("Male", share_of_population("total_male")),
                ("Female", share_of_population("total_female")),
            ]
        ),
        age_distribution=breakdown(
            [
                ("0-19", share_of_population("age_under_5", "age_5_to_9", "age_10_to_14", "age_15_to_19")),
                ("20-39", share_of_population("age_20_to_24", "age_25_to_34")),
                ("40-59", share_of_population("age_35_to_44", "age_45_to_54", "age_55_to_59")),
                ("60+", share_of_population("age_60_to_64", "age_65_to_74", "age_75_to_84", "age_85_plus")),
            ]
        ),
        race_ethnicity=breakdown(
            [
                ("Hispanic", v("race_hispanic_pct")),
                ("White", v("race_white_pct")),
                ("Black", v("race_black_pct")),
                ("Asian", v("race_asian_pct")),
                ("Native Am.", v("race_native_pct")),
                ("Two+", v("race_two_or_more_pct")),
            ]
        ),
        foreign_born_share=v("foreign_born_pct"),
    )

    # Enrollment is kept as head counts so composites can sum it directly
    education = Education(
        hs_graduation_rate=v("hs_graduation_pct"),
        college_graduation_rate=v("college_graduation_pct"),
        school_enrollment=breakdown(
            [
                ("Preschool", v("enrolled_preschool")),
                ("Kindergarten", v("enrolled_kindergarten")),
                ("Grade 1-8", v("enrolled_grade_1_to_8")),
                ("High School", v("enrolled_9_to_12")),
                ("College/Grad", v("enrolled_college")),
            ]
        ),
    )

    median_household_income = v("median_household_income")
    economics = Economics(
        median_household_income=median_household_income,
        per_capita_income=v("per_capita_income"),
        poverty_rate=v("poverty_rate_pct"),
    )

    labor_force = LaborForce(
        labor_force_participation_rate=v("labor_force_participation_pct"),
        unemployment_rate=v("unemployment_rate_pct"),
        occupation_mix=breakdown(
            [
                ("Mgmt/Sci/Art", v("occupation_mgmt_sci_art_pct")),
                ("Service", v("occupation_service_pct")),
                ("Sales/Office", v("occupation_sales_office_pct")),
                ("Construct/Maint", v("occupation_construct_maint_pct")),
                ("Prod/Transport", v("occupation_prod_transport_pct")),
            ]
        ),
    )

    employment_by_industry = breakdown(
        [
            ("Agri/Mining", v("industry_agri_mining_pct")),
            ("Construction", v("industry_construction_pct")),
            ("Manufacturing", v("industry_manufacturing_pct")),
            ("Wholesale Trade", v("industry_wholesale_trade_pct")),
            ("Retail Trade", v("industry_retail_trade_pct")),
            ("Transport/Warehouse", v("industry_transport_warehouse_pct")),
            ("Information", v("industry_information_pct")),
            ("Finance/Ins/RE", v("industry_finance_ins_re_pct")),
            ("Prof/Sci/Mgmt", v("industry_prof_sci_mgmt_pct")),
            ("Edu/Health/Social", v("industry_edu_health_social_pct")),
            ("Arts/Ent/Food", v("industry_arts_ent_food_pct")),
            ("Other Services", v("industry_other_services_pct")),
            ("Public Admin", v("industry_public_admin_pct")),
        ]
    )

    median_home_value = v("median_home_value")
    housing = Housing(
        median_home_value=median_home_value,
        owner_occupied_rate=v("owner_occupied_pct"),
        median_gross_rent=v("median_gross_rent"),
        rent_cost_burden_rate=v("rent_cost_burden_35_plus_pct"),
        price_to_income_ratio=(
            median_home_value / median_household_income if median_household_income > 0 else 0.0
        ),
        year_structure_built=breakdown(
            [
                ("2010+", v("year_built_2010_to_2019_pct") + v("year_built_2020_plus_pct")),
                ("2000-09", v("year_built_2000_to_2009_pct")),
                ("1980-99", v("year_built_1980_to_1999_pct")),
                ("1960-79", v("year_built_1960_to_1979_pct")),
                ("<1960", v("year_built_1940_to_1959_pct") + v("year_built_before_1940_pct")),
            ]
        ),
    )

    commuting = Commuting(
        mean_travel_time_to_work=v("mean_travel_time_to_work"),
        mode_share=breakdown(
            [
                ("Drive Alone", v("commute_drive_alone_pct")),
                ("Carpool", v("commute_carpool_pct")),
                ("Public Transit", v("commute_public_transit_pct")),
                ("Walk", v("commute_walk_pct")),
                ("Work From Home", v("commute_work_from_home_pct")),
                ("Other", v("commute_other_pct")),
            ]
        ),
    )

    return Region(
        code=zip_code,
        group_name=region_groups.get(zip_code, "N/A"),
        demographics=demographics,
        education=education,
        economics=economics,
        labor_force=labor_force,
        employment_by_industry=employment_by_industry,
        housing=housing,
        commuting=commuting,
    )


def _table_to_frame(table: List[List[Any]]) -> pd.DataFrame:
    if not isinstance(table, list) or len(table) < 2:
        return pd.DataFrame()
    headers = [str(h) for h in table[0]]
    if ZIP_COLUMN not in headers:
        logger.warning(f"⚠️ Census table has no '{ZIP_COLUMN}' column, skipping")
        return pd.DataFrame()
    frame = pd.DataFrame(table[1:], columns=headers)
    frame[ZIP_COLUMN] = frame[ZIP_COLUMN].astype(str).str.strip()
    return frame.set_index(ZIP_COLUMN)


def load_census_rows(path: Union[str, Path]) -> pd.DataFrame:
    """
    Read Census API JSON into a DataFrame indexed by zip.

    The file holds either one table (header row + data rows) or a list of
    tables; tables are merged column-wise on the zip column. Variable
    columns are coerced to numeric.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Census data file not found: {path}")

    logger.info(f"📊 Loading Census rows from {path}")
    with open(path) as f:
        data = json.load(f)

    if not isinstance(data, list):
        raise ValueError(f"Expected a Census API table (list of rows) in {path}")

    # One table is a list of rows; several tables are a list of those
    is_multi = bool(data) and isinstance(data[0], list) and data[0] and isinstance(data[0][0], list)
    tables = data if is_multi else [data]

    merged: Optional[pd.DataFrame] = None
    for table in tables:
        frame = _table_to_frame(table)
        if frame.empty:
            continue
        if merged is None:
            merged = frame
        else:
            new_columns = [c for c in frame.columns if c not in merged.columns]
            merged = merged.join(frame[new_columns], how="outer")

    if merged is None:
        logger.warning(f"⚠️ No usable Census rows in {path}")
        return pd.DataFrame(index=pd.Index([], name=ZIP_COLUMN))

    for column in merged.columns:
        if column in VARIABLE_MAP.values() or column == HISTORICAL_POPULATION_VAR:
            merged[column] = clean_numeric(merged[column])

    merged.index.name = ZIP_COLUMN
    logger.debug(f"  Loaded {len(merged)} zips x {len(merged.columns)} columns")
    return merged


def load_historical_populations(path: Union[str, Path]) -> Dict[str, float]:
    """Read historical populations from a zip -> population JSON object or a Census table."""
    path = Path(path)
    with open(path) as f:
        data = json.load(f)
    if isinstance(data, dict):
        return {str(k): safe_parse_float(val) for k, val in data.items()}

    frame = load_census_rows(path)
    if HISTORICAL_POPULATION_VAR not in frame.columns:
        logger.warning(f"⚠️ {path} has no {HISTORICAL_POPULATION_VAR} column; growth will be unavailable")
        return {}
    return {
        str(zip_code): safe_parse_float(value)
        for zip_code, value in frame[HISTORICAL_POPULATION_VAR].items()
    }


def load_regions(
    path: Union[str, Path],
    historical_path: Optional[Union[str, Path]] = None,
    region_groups: Mapping[str, str] = REGION_GROUPS,
) -> Dict[str, Region]:
    """
    Load Census rows and transform them into Region records.

    Returns:
        Dict of zip -> Region for every row with a zip and non-zero population
    """
    frame = load_census_rows(path)
    historical = load_historical_populations(historical_path) if historical_path else {}

    regions: Dict[str, Region] = {}
    for zip_code, values in frame.iterrows():
        row = values.to_dict()
        row[ZIP_COLUMN] = zip_code
        region = transform_census_row(row, historical, region_groups)
        if region is not None:
            regions[region.code] = region

    skipped = len(frame) - len(regions)
    logger.success(f"✅ Built {len(regions)} regions from Census rows ({skipped} skipped)")
    return regions


def load_region_records(path: Union[str, Path]) -> Dict[str, Region]:
    """
    Read already-built region records from JSON.

    The file may hold a list of region objects or an object keyed by code.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Region records file not found: {path}")

    with open(path) as f:
        data = json.load(f)

    if isinstance(data, dict):
        records = list(data.values())
    elif isinstance(data, list):
        records = data
    else:
        raise ValueError(f"Expected a list or object of region records in {path}")

    regions: Dict[str, Region] = {}
    for record in records:
        region = Region.from_mapping(record)
        if region.code in regions:
            logger.warning(f"⚠️ Duplicate region code {region.code} in {path}, keeping the last one")
        regions[region.code] = region

    logger.info(f"📊 Loaded {len(regions)} region records from {path.name}")
    return regions
