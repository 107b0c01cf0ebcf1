"""
Configuration Loader for the Regional Metrics Map

This module provides a centralized way to load and access configuration
settings (map view, feature styles, color scale, GeoJSON property names)
from a config.yaml file.

Usage:
    from ops import Config

    config = Config()
    center = config.get_map_setting("initial_center")
    hover = config.get_style("hover")
"""

import copy
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml  # type: ignore[import-untyped]
from loguru import logger

PACKAGED_CONFIG = Path(__file__).parent / "config.yaml"


class Config:
    """Configuration manager for the regional metrics map."""

    # Default values that can be overridden in config
    DEFAULTS: Dict[str, Any] = {
        "project_name": "West Valley Regional Explorer",
        "map": {
            "initial_center": [33.55, -112.4],
            "initial_zoom": 9,
            "tiles": "CartoDB Positron",
            "fit_padding": [20, 20],
            "fit_initial_bounds": True,
        },
        "styles": {
            "base": {"weight": 1, "opacity": 1, "color": "white", "fillOpacity": 0.8},
            "selected": {"weight": 3, "color": "#122426", "fillOpacity": 1},
            "hover": {"weight": 2, "color": "#1C4953", "fillOpacity": 0.9},
        },
        "color_scale": ["#D0D0D0", "#C0392B", "#E67E22", "#F1C40F", "#82E0AA", "#27AE60"],
        "features": {
            "region_code_fields": ["ZIP", "BdVal", "ZCTA5CE20", "ZCTA5CE10", "ZIP_CODE", "ZCTA"],
            "display_name_fields": ["CITY", "city", "NAME"],
        },
    }

    def __init__(
        self,
        config_file: Optional[Union[str, Path]] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize configuration manager.

        Args:
            config_file: Path to config file. If None, looks for:
                        1. Environment variable REGIONMAPS_CONFIG_PATH
                        2. config.yaml in current directory
                        3. the config.yaml shipped with the ops package
            data: Already-parsed configuration mapping (skips file lookup)
        """
        if data is not None:
            self.config_path: Optional[Path] = None
            self.data = copy.deepcopy(data)
            logger.debug("Using in-memory configuration")
            return

        if config_file is None:
            env_config = os.environ.get("REGIONMAPS_CONFIG_PATH")
            if env_config and Path(env_config).exists():
                config_file = env_config
                logger.debug(f"Using config from environment: {config_file}")
            elif Path("config.yaml").exists():
                config_file = "config.yaml"
            else:
                config_file = PACKAGED_CONFIG
                logger.debug("Using packaged ops/config.yaml")

        self.config_path = Path(config_file).resolve()
        if not self.config_path.exists():
            raise FileNotFoundError(f"Config file not found: {self.config_path}")

        logger.debug(f"Loading config from: {self.config_path}")
        with open(self.config_path, "r") as f:
            loaded = yaml.safe_load(f)

        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ValueError(f"Expected a mapping at the top of {self.config_path}")
        self.data = loaded

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation with intelligent defaults.

        Args:
            key_path: Dot-separated path to the configuration value
            default: Default value if key not found

        Returns:
            Configuration value
        """
        keys = key_path.split(".")

        # Try to get from config first
        value: Any = self.data
        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                value = None
                break

        # If not found in config, try defaults
        if value is None:
            value = self.DEFAULTS
            for key in keys:
                if isinstance(value, dict) and key in value:
                    value = value[key]
                else:
                    return default

        return value

    def set(self, key_path: str, value: Any) -> None:
        """Set a configuration value using dot notation (used for CLI overrides)."""
        keys = key_path.split(".")
        current = self.data
        for key in keys[:-1]:
            if not isinstance(current.get(key), dict):
                current[key] = {}
            current = current[key]
        current[keys[-1]] = value
        logger.debug(f"Config override: {key_path} = {value}")

    def get_map_setting(self, setting_key: str) -> Any:
        """Get map view setting with intelligent defaults."""
        return self.get(f"map.{setting_key}")

    def get_initial_view(self) -> Tuple[Tuple[float, float], int]:
        """Get the initial (center, zoom) pair restored by a view reset."""
        lat, lon = self.get_map_setting("initial_center")
        return (float(lat), float(lon)), int(self.get_map_setting("initial_zoom"))

    def get_style(self, name: str) -> Dict[str, Any]:
        """Get a feature style overlay ('base', 'selected' or 'hover')."""
        style = self.get(f"styles.{name}")
        if not isinstance(style, dict):
            raise ValueError(f"Style not found or not a mapping: {name}")
        return dict(style)

    def get_color_scale(self) -> List[str]:
        """Get the six choropleth color tokens (index 0 is the no-data color)."""
        scale = self.get("color_scale")
        if not isinstance(scale, list) or len(scale) != 6:
            raise ValueError("color_scale must be a list of exactly 6 colors")
        return [str(c) for c in scale]

    def get_region_code_fields(self) -> Tuple[str, ...]:
        """Get the GeoJSON property names tried, in order, for a region code."""
        return tuple(self.get("features.region_code_fields"))

    def get_display_name_fields(self) -> Tuple[str, ...]:
        """Get the GeoJSON property names tried, in order, for a tooltip name."""
        return tuple(self.get("features.display_name_fields"))

    def print_config_summary(self) -> None:
        """Log a summary of the current configuration."""
        logger.debug("📋 Configuration Summary")
        logger.debug("=" * 50)
        logger.debug(f"Project: {self.get('project_name', 'Unknown')}")
        logger.debug(f"Config file: {self.config_path or '<in-memory>'}")
        center, zoom = self.get_initial_view()
        logger.debug(f"Initial view: {center} @ zoom {zoom}")
        logger.debug(f"Region code fields: {', '.join(self.get_region_code_fields())}")
