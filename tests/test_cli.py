"""
Tests for the click command line interface.
"""

import json
import sys

import pandas as pd
import pytest
from click.testing import CliRunner
from conftest import make_region
from loguru import logger

from ops.run_map import cli
from processing.census_regions import VARIABLE_MAP, ZIP_COLUMN


@pytest.fixture(autouse=True)
def restore_logging(monkeypatch):
    monkeypatch.setenv("LOGURU_LEVEL", "INFO")
    yield
    # The CLI rebinds loguru to the runner's captured stderr
    logger.remove()
    logger.add(sys.stderr)


@pytest.fixture
def regions_file(tmp_path):
    regions = [
        make_region("85301", 100, income=50000.0),
        make_region("85302", 300, income=70000.0),
        make_region("85323", 200, income=60000.0, group_name="Avondale"),
    ]
    path = tmp_path / "regions.json"
    path.write_text(json.dumps([r.to_dict() for r in regions]))
    return path


@pytest.fixture
def boundaries_file(tmp_path, feature_collection):
    collection = dict(feature_collection)
    collection["features"] = [f for f in feature_collection["features"] if f["geometry"]]
    path = tmp_path / "zips.geojson"
    path.write_text(json.dumps(collection))
    return path


def test_metrics_lists_catalog():
    result = CliRunner().invoke(cli, ["metrics"])
    assert result.exit_code == 0, result.output


def test_combine_writes_composite(regions_file, tmp_path):
    output = tmp_path / "composite.json"
    result = CliRunner().invoke(
        cli, ["combine", str(regions_file), "-s", "85301", "-s", "85302", "-o", str(output)]
    )
    assert result.exit_code == 0, result.output

    composite = json.loads(output.read_text())
    assert composite["code"] == "Multiple"
    assert composite["demographics"]["population"] == 400
    assert composite["economics"]["median_household_income"] == pytest.approx(65000.0)


def test_combine_with_no_known_regions_fails(regions_file):
    result = CliRunner().invoke(cli, ["combine", str(regions_file), "-s", "99999"])
    assert result.exit_code == 1


def test_metric_writes_csv(regions_file, tmp_path):
    output = tmp_path / "income.csv"
    result = CliRunner().invoke(
        cli, ["metric", str(regions_file), "median_household_income", "-o", str(output)]
    )
    assert result.exit_code == 0, result.output

    frame = pd.read_csv(output, index_col="region_code", dtype={"region_code": str})
    assert frame.loc["85302", "median_household_income"] == 70000.0


def test_unknown_metric_exits_with_error(regions_file):
    result = CliRunner().invoke(cli, ["metric", str(regions_file), "not_a_metric"])
    assert result.exit_code == 1


def test_invalid_config_override_is_usage_error():
    result = CliRunner().invoke(cli, ["--config", "no-equals-sign", "metrics"])
    assert result.exit_code == 2


def test_render_saves_html(regions_file, boundaries_file, tmp_path):
    output = tmp_path / "maps" / "income.html"
    result = CliRunner().invoke(
        cli,
        [
            "--config",
            "map.fit_initial_bounds=false",
            "render",
            str(regions_file),
            str(boundaries_file),
            "--metric",
            "median_household_income",
            "--select",
            "85301",
            "--fit",
            "--output",
            str(output),
        ],
    )
    assert result.exit_code == 0, result.output
    html = output.read_text()
    assert "Median Household Income" in html
    assert "Glendale: 85301" in html


def test_census_converts_rows(tmp_path):
    columns = list(VARIABLE_MAP.values()) + [ZIP_COLUMN]
    row = {code: "0" for code in VARIABLE_MAP.values()}
    row.update({ZIP_COLUMN: "85301", VARIABLE_MAP["population"]: "1500"})
    census = tmp_path / "acs.json"
    census.write_text(json.dumps([columns, [row[c] for c in columns]]))
    output = tmp_path / "regions.json"

    result = CliRunner().invoke(cli, ["census", str(census), "-o", str(output)])
    assert result.exit_code == 0, result.output

    records = json.loads(output.read_text())
    assert records[0]["code"] == "85301"
    assert records[0]["group_name"] == "Glendale"
    assert records[0]["demographics"]["population"] == 1500
