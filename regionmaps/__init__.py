"""
Regional metric aggregation and choropleth synchronization.

Core pieces:
- models: Region records and categorical breakdowns
- metrics: the metric catalog
- color_scale: six-class choropleth bucketing
- metric_domain: per-region metric values and their domain
- aggregation: population-weighted composites of selected regions
- map_sync: selection / hover / view synchronization for a rendered layer
- folium_surface: folium-backed rendering surface
"""

from .aggregation import combine, combine_selection, recombine_percentages, sum_counts, weighted_average
from .color_scale import COLOR_SCALE, choropleth_color, color_class, legend_entries
from .folium_surface import FoliumSurface
from .formatting import format_metric_selection, format_metric_value, format_region_selection
from .map_sync import (
    MapStyles,
    RenderSurface,
    SelectionIntent,
    SelectionMapSync,
    SelectionState,
    apply_active_metric,
    apply_group_toggle,
    apply_metrics_change,
    apply_selection_intent,
    feature_style,
    hover_style,
    resolve_display_name,
    resolve_region_code,
    tooltip_content,
    union_bounds,
)
from .metric_domain import MetricResult, as_plottable, compute_for_regions, compute_many, metric_frame
from .metrics import (
    CATALOG,
    INDUSTRY_LIST,
    MetricCatalog,
    MetricDescriptor,
    MetricFormat,
    MetricGroup,
    UnknownMetricError,
    build_default_catalog,
    family_metric_id,
)
from .models import COMPOSITE_CODE, COMPOSITE_GROUP_NAME, CategoryShare, Region, breakdown

__all__ = [
    "CATALOG",
    "COLOR_SCALE",
    "COMPOSITE_CODE",
    "COMPOSITE_GROUP_NAME",
    "INDUSTRY_LIST",
    "CategoryShare",
    "FoliumSurface",
    "MapStyles",
    "MetricCatalog",
    "MetricDescriptor",
    "MetricFormat",
    "MetricGroup",
    "MetricResult",
    "Region",
    "RenderSurface",
    "SelectionIntent",
    "SelectionMapSync",
    "SelectionState",
    "UnknownMetricError",
    "apply_active_metric",
    "apply_group_toggle",
    "apply_metrics_change",
    "apply_selection_intent",
    "as_plottable",
    "breakdown",
    "build_default_catalog",
    "choropleth_color",
    "color_class",
    "combine",
    "combine_selection",
    "compute_for_regions",
    "compute_many",
    "family_metric_id",
    "feature_style",
    "format_metric_selection",
    "format_metric_value",
    "format_region_selection",
    "hover_style",
    "legend_entries",
    "metric_frame",
    "recombine_percentages",
    "resolve_display_name",
    "resolve_region_code",
    "sum_counts",
    "tooltip_content",
    "union_bounds",
    "weighted_average",
]
