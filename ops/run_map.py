#!/usr/bin/env python3
"""
Regional Metrics Map CLI

Command line front end for the regional metrics engine: combine selected
regions into a composite, compute a metric across regions, list the metric
catalog, convert Census rows into region records, and render an interactive
choropleth with the current selection highlighted.

Usage:
    python -m ops.run_map metrics
    python -m ops.run_map combine data/regions.json --select 85301 --select 85302
    python -m ops.run_map metric data/regions.json median_household_income
    python -m ops.run_map render data/regions.json data/zips.geojson \\
        --metric median_household_income --select 85301 --fit --output maps/income.html

    # Override config values:
    python -m ops.run_map --config map.initial_zoom=10 render ...

    # Verbose logging:
    python -m ops.run_map --verbose metrics
"""

import json
import os
import sys
from pathlib import Path
from typing import Any, Dict, Tuple

import click
import geopandas as gpd
from loguru import logger

from ops.config_loader import Config
from processing.census_regions import load_region_records, load_regions
from regionmaps.aggregation import combine_selection
from regionmaps.color_scale import legend_entries
from regionmaps.folium_surface import FoliumSurface
from regionmaps.formatting import format_metric_value, format_region_selection
from regionmaps.map_sync import MapStyles, SelectionMapSync, SelectionState, apply_metrics_change
from regionmaps.metric_domain import compute_for_regions, metric_frame
from regionmaps.metrics import CATALOG, UnknownMetricError
from regionmaps.models import Region


# Custom Click types for better validation
class ConfigOverride(click.ParamType):
    """Custom parameter type for config overrides."""

    name = "config_override"

    def convert(self, value, param, ctx) -> Tuple[str, Any]:
        if "=" not in value:
            self.fail(f"Invalid format: {value}. Use KEY=VALUE", param, ctx)

        key, val = value.split("=", 1)

        # Auto-parse value type
        if val.lower() in ("true", "false"):
            parsed_val: Any = val.lower() == "true"
        elif val.lstrip("-").isdigit():
            parsed_val = int(val)
        elif "." in val and val.lstrip("-").replace(".", "", 1).isdigit():
            parsed_val = float(val)
        else:
            parsed_val = val

        return key, parsed_val


# Main CLI group
@click.group()
@click.option(
    "--config-file",
    type=click.Path(exists=True, dir_okay=False),
    help="Path to config.yaml (defaults to REGIONMAPS_CONFIG_PATH, ./config.yaml, then the packaged file)",
)
@click.option(
    "--config",
    "config_overrides",
    multiple=True,
    type=ConfigOverride(),
    help="Set config values using dot notation (e.g., map.initial_zoom=10)",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable DEBUG level logging")
@click.option(
    "--trace", is_flag=True, help="Enable TRACE level logging for deep debugging (maximum detail)"
)
@click.option("--log-file", type=str, help="Also log to specified file")
@click.pass_context
def cli(ctx, config_file, config_overrides, verbose, trace, log_file):
    """
    Regional Metrics Map

    Combine regions, compute metrics and render choropleth maps from
    region records and boundary files.

    \b
    Examples:
      python -m ops.run_map metrics                                      # List available metrics
      python -m ops.run_map combine regions.json -s 85301 -s 85302      # Composite of two zips
      python -m ops.run_map metric regions.json poverty_rate            # Values and domain
      python -m ops.run_map render regions.json zips.geojson -m poverty_rate --fit
    """
    # Set up logging first, before anything else
    setup_logging(verbose=verbose, enable_trace=trace)

    if log_file:
        log_level = "TRACE" if trace else ("DEBUG" if verbose else "INFO")
        logger.add(
            log_file,
            level=log_level,
            format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | {message}",
            rotation="10 MB",
            retention="7 days",
        )
        logger.info(f"📄 Also logging to file: {log_file}")

    try:
        config = Config(config_file)
    except (FileNotFoundError, ValueError) as e:
        handle_critical_error(e, "Loading configuration")
        logger.info("💡 Make sure config.yaml exists and is valid")
        ctx.exit(1)

    for key, value in config_overrides:
        config.set(key, value)

    config.print_config_summary()
    ctx.obj = {"config": config}


@cli.command("metrics")
def list_metrics():
    """List the metric catalog grouped for a metric picker."""
    for group, descriptors in CATALOG.by_group().items():
        logger.info(f"📂 {group.value} ({len(descriptors)})")
        for descriptor in descriptors:
            logger.info(f"   {descriptor.id:<45} {descriptor.label} [{descriptor.format.value}]")
    logger.success(f"✅ {len(CATALOG)} metrics registered")


@cli.command("combine")
@click.argument("regions_json", type=click.Path(exists=True, dir_okay=False))
@click.option("-s", "--select", "selected", multiple=True, required=True, help="Region code to include")
@click.option("-o", "--output", type=click.Path(dir_okay=False), help="Write the composite as JSON")
@click.pass_context
def combine_command(ctx, regions_json, selected, output):
    """Combine the selected regions into one population-weighted composite."""
    regions = _load_regions_or_exit(ctx, regions_json)

    missing = [code for code in selected if code not in regions]
    if missing:
        logger.warning(f"⚠️ No records for: {', '.join(missing)}")

    composite = combine_selection(regions, list(selected))
    if composite is None:
        logger.critical("❌ None of the selected regions have records")
        ctx.exit(1)

    groups = {code: region.group_name for code, region in regions.items()}
    logger.info(f"🔄 Selection: {format_region_selection(selected, groups)}")
    _log_region_summary(composite)

    if output:
        output_path = Path(output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w") as f:
            json.dump(composite.to_dict(), f, indent=2)
        logger.success(f"✅ Composite saved: {output_path}")


@cli.command("metric")
@click.argument("regions_json", type=click.Path(exists=True, dir_okay=False))
@click.argument("metric_id")
@click.option("-o", "--output", type=click.Path(dir_okay=False), help="Write per-region values as CSV")
@click.pass_context
def metric_command(ctx, regions_json, metric_id, output):
    """Compute one metric for every region and report its domain."""
    regions = _load_regions_or_exit(ctx, regions_json)

    try:
        result = compute_for_regions(metric_id, regions)
    except UnknownMetricError as e:
        handle_critical_error(e, "Computing metric")
        logger.info("💡 Run 'metrics' to list available metric ids")
        ctx.exit(1)

    descriptor = CATALOG.describe(metric_id)
    logger.info(f"📊 {descriptor.label}")
    for code, value in sorted(result.values_by_region.items()):
        logger.info(f"   {code:<10} {format_metric_value(value, descriptor.format)}")

    if result.domain is None:
        logger.warning("⚠️ No region has a plottable value for this metric")
    else:
        lo, hi = result.domain
        logger.info(
            f"📏 Domain: {format_metric_value(lo, descriptor.format)} – "
            f"{format_metric_value(hi, descriptor.format)} ({result.numeric_count} regions)"
        )

    if output:
        output_path = Path(output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        metric_frame([metric_id], regions).to_csv(output_path)
        logger.success(f"✅ Values saved: {output_path}")


@cli.command("census")
@click.argument("census_json", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--historical",
    type=click.Path(exists=True, dir_okay=False),
    help="Historical population JSON for growth rates",
)
@click.option("-o", "--output", type=click.Path(dir_okay=False), required=True, help="Region records JSON")
def census_command(census_json, historical, output):
    """Convert downloaded ACS profile rows into region records."""
    try:
        regions = load_regions(census_json, historical)
    except (ValueError, json.JSONDecodeError) as e:
        handle_critical_error(e, "Transforming Census rows")
        sys.exit(1)

    output_path = Path(output)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        json.dump([region.to_dict() for region in regions.values()], f, indent=2)
    logger.success(f"✅ Region records saved: {output_path}")


@cli.command("render")
@click.argument("regions_json", type=click.Path(exists=True, dir_okay=False))
@click.argument("boundaries", type=click.Path(exists=True, dir_okay=False))
@click.option("-m", "--metric", "metric_id", help="Metric driving the choropleth colors")
@click.option("-s", "--select", "selected", multiple=True, help="Region code to select")
@click.option("--fit", is_flag=True, help="Fit the view to the selected regions")
@click.option(
    "-o", "--output", type=click.Path(dir_okay=False), default="maps/regions.html", show_default=True
)
@click.pass_context
def render_command(ctx, regions_json, boundaries, metric_id, selected, fit, output):
    """Render an interactive choropleth of the boundaries with the selection highlighted."""
    config: Config = ctx.obj["config"]
    regions = _load_regions_or_exit(ctx, regions_json)

    result = None
    if metric_id:
        try:
            result = compute_for_regions(metric_id, regions)
        except UnknownMetricError as e:
            handle_critical_error(e, "Computing metric")
            logger.info("💡 Run 'metrics' to list available metric ids")
            ctx.exit(1)

    logger.info(f"🗺️ Loading boundaries: {boundaries}")
    try:
        gdf = gpd.read_file(boundaries)
    except Exception as e:
        handle_critical_error(e, f"Reading boundaries {boundaries}")
        ctx.exit(1)
    gdf = _to_wgs84(gdf)

    palette = config.get_color_scale()
    center, zoom = config.get_initial_view()
    surface = FoliumSurface(gdf, tiles=config.get_map_setting("tiles"))
    sync = SelectionMapSync(
        surface,
        initial_center=center,
        initial_zoom=zoom,
        styles=MapStyles.from_config(config),
        palette=palette,
        fit_initial_bounds=bool(config.get_map_setting("fit_initial_bounds")),
        padding=tuple(config.get_map_setting("fit_padding")),
        region_code_fields=config.get_region_code_fields(),
        display_name_fields=config.get_display_name_fields(),
    )

    state = apply_metrics_change(
        SelectionState(selected=frozenset(selected)), [metric_id] if metric_id else []
    )
    if fit:
        state = state.request_fit()
    sync.update(state, result)

    title_parts = []
    legend = None
    if result is not None:
        title_parts.append(CATALOG.describe(result.metric_id).label)
        legend = legend_entries(result.domain, palette)
    if selected:
        groups = {code: region.group_name for code, region in regions.items()}
        title_parts.append(format_region_selection(selected, groups))
        composite = combine_selection(regions, list(selected))
        if composite is not None:
            _log_region_summary(composite)

    surface.save(
        output,
        title=" · ".join(title_parts) or config.get("project_name"),
        legend=legend,
        tooltips={fid: sync.tooltip_for(fid) for fid in surface.feature_ids()},
    )


def _load_regions_or_exit(ctx: click.Context, path: str) -> Dict[str, Region]:
    try:
        return load_region_records(path)
    except (ValueError, json.JSONDecodeError) as e:
        handle_critical_error(e, f"Loading region records from {path}")
        ctx.exit(1)
        raise


def _to_wgs84(gdf: gpd.GeoDataFrame) -> gpd.GeoDataFrame:
    """Reproject boundaries to WGS84 (EPSG:4326) when they carry another CRS."""
    if gdf.crs is None:
        logger.warning("⚠️ Boundaries have no CRS, assuming WGS84")
        return gdf
    if gdf.crs.to_epsg() != 4326:
        logger.debug(f"  🔄 Reprojecting boundaries from {gdf.crs} to EPSG:4326")
        return gdf.to_crs("EPSG:4326")
    return gdf


def _log_region_summary(region: Region) -> None:
    logger.info(f"📍 {region.group_name} ({region.code})")
    logger.info(f"   Population: {region.population:,.0f}")
    for metric_id in (
        "median_household_income",
        "median_home_value",
        "price_to_income_ratio",
        "poverty_rate",
        "unemployment_rate",
        "median_age",
    ):
        descriptor = CATALOG.describe(metric_id)
        value = descriptor.extract(region)
        logger.info(f"   {descriptor.label}: {format_metric_value(value, descriptor.format)}")


def setup_logging(verbose: bool = False, enable_trace: bool = False) -> None:
    """
    Configure loguru logging with appropriate levels.

    Args:
        verbose: If True, set log level to DEBUG
        enable_trace: If True, enable TRACE level logging for deep debugging
    """
    # Remove default logger
    logger.remove()

    if enable_trace:
        log_level = "TRACE"
    elif verbose:
        log_level = "DEBUG"
    else:
        log_level = "INFO"

    if enable_trace or verbose:
        log_format = "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | <level>{message}</level>"
    else:
        log_format = (
            "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>"
        )

    logger.add(
        sys.stderr,
        format=log_format,
        level=log_level,
        colorize=True,
        backtrace=enable_trace,
        diagnose=enable_trace,
    )

    os.environ["LOGURU_LEVEL"] = log_level

    if verbose:
        logger.debug("🔧 Verbose logging enabled (DEBUG level)")
    if enable_trace:
        logger.trace("🔍 Trace logging enabled - maximum detail mode")


def handle_critical_error(error: Exception, context: str = "") -> None:
    """
    Handle critical errors with optional trace logging.

    Args:
        error: The exception that occurred
        context: Additional context about where the error occurred
    """
    enable_trace = os.environ.get("LOGURU_LEVEL", "INFO") == "TRACE"

    if enable_trace:
        logger.trace(f"Error context: {context}")
        logger.trace(f"Error type: {type(error).__name__}")
        logger.trace(f"Error args: {error.args}")
        logger.opt(exception=error).trace("Full traceback:")

    logger.critical(f"💥 CRITICAL ERROR: {context}")
    logger.critical(f"Exception: {type(error).__name__}: {error}")

    if not enable_trace:
        logger.info("💡 For detailed debugging, run with --trace flag")


if __name__ == "__main__":
    cli()
