"""
Tests for the YAML configuration loader.
"""

import pytest
import yaml

from ops.config_loader import PACKAGED_CONFIG, Config
from regionmaps.color_scale import COLOR_SCALE
from regionmaps.map_sync import DEFAULT_STYLES, REGION_CODE_FIELDS, MapStyles


def test_packaged_config_matches_defaults():
    config = Config(PACKAGED_CONFIG)
    assert config.get_color_scale() == list(COLOR_SCALE)
    assert config.get_region_code_fields() == REGION_CODE_FIELDS
    assert config.get_initial_view() == ((33.55, -112.4), 9)
    assert MapStyles.from_config(config) == DEFAULT_STYLES


def test_environment_variable_lookup(tmp_path, monkeypatch):
    path = tmp_path / "custom.yaml"
    path.write_text(yaml.safe_dump({"project_name": "Test Map", "map": {"initial_zoom": 11}}))
    monkeypatch.setenv("REGIONMAPS_CONFIG_PATH", str(path))
    monkeypatch.chdir(tmp_path)

    config = Config()
    assert config.config_path == path.resolve()
    assert config.get("project_name") == "Test Map"
    assert config.get_map_setting("initial_zoom") == 11
    # Missing keys fall back to defaults
    assert config.get_map_setting("fit_padding") == [20, 20]
    assert config.get("nope.nothing", "fallback") == "fallback"


def test_in_memory_data_and_overrides():
    config = Config(data={"styles": {"hover": {"weight": 7}}})
    assert config.get_style("hover") == {"weight": 7}
    config.set("map.initial_center", [1.0, 2.0])
    assert config.get_initial_view() == ((1.0, 2.0), 9)


def test_missing_explicit_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        Config(tmp_path / "missing.yaml")


def test_malformed_config_raises(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("- just\n- a list\n")
    with pytest.raises(ValueError):
        Config(path)


def test_invalid_color_scale_and_style():
    config = Config(data={"color_scale": ["#000"], "styles": {"base": "thin"}})
    with pytest.raises(ValueError):
        config.get_color_scale()
    with pytest.raises(ValueError):
        config.get_style("base")
