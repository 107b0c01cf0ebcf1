"""
Display formatting for metric values and selection summaries.
"""

from typing import Dict, Iterable, List, Mapping, Optional

from .metric_domain import as_plottable
from .metrics import CATALOG, INDUSTRY_FAMILY, MetricCatalog, MetricFormat, MetricGroup

REGION_PLACEHOLDER = "Select cities or zip codes"
METRIC_PLACEHOLDER = "Select data metrics"
UNKNOWN_GROUP = "Unknown"


def format_metric_value(value: Optional[float], fmt: MetricFormat) -> str:
    """Format a metric value for display; not-plottable values render as N/A."""
    number = as_plottable(value)
    if number is None:
        return "N/A"
    if fmt == MetricFormat.CURRENCY:
        return f"${round(number):,}"
    if fmt == MetricFormat.PERCENT:
        return f"{number:.1f}%"
    if number.is_integer():
        return f"{int(number):,}"
    return f"{number:,.1f}"


def format_region_selection(selected: Iterable[str], region_groups: Mapping[str, str]) -> str:
    """
    Summarize selected region codes by group.

    Groups whose every region is selected collapse to "<group> (All)"; others
    list their selected codes. Groups are sorted by name.

    Example:
        "Avondale (All), Glendale (85301, 85302)"
    """
    selected = list(selected)
    if not selected:
        return REGION_PLACEHOLDER

    group_sizes: Dict[str, int] = {}
    for group in region_groups.values():
        group_sizes[group] = group_sizes.get(group, 0) + 1

    selected_by_group: Dict[str, List[str]] = {}
    for code in selected:
        group = region_groups.get(code, UNKNOWN_GROUP)
        selected_by_group.setdefault(group, []).append(code)

    parts = []
    for group in sorted(selected_by_group):
        codes = selected_by_group[group]
        if group in group_sizes and len(codes) == group_sizes[group]:
            parts.append(f"{group} (All)")
        else:
            parts.append(f"{group} ({', '.join(sorted(codes))})")
    return ", ".join(parts)


def _short_industry_label(label: str) -> str:
    return label.replace("Employment: ", "").replace(" (%)", "")


def format_metric_selection(metric_ids: Iterable[str], catalog: MetricCatalog = CATALOG) -> str:
    """
    Summarize selected metrics by group.

    A fully selected group collapses to "All <group>". Within Economics &
    Labor, a fully selected industry family collapses to "All Industries".
    """
    selected = set(metric_ids)
    if not selected:
        return METRIC_PLACEHOLDER
    if selected >= set(catalog.ids()):
        return "All Metrics"

    parts = []
    for group, descriptors in catalog.by_group().items():
        chosen = [d for d in descriptors if d.id in selected]
        if not chosen:
            continue
        if len(chosen) == len(descriptors):
            parts.append(f"All {group.value}")
            continue

        if group == MetricGroup.ECONOMICS_LABOR:
            family_size = len([d for d in descriptors if d.family == INDUSTRY_FAMILY])
            industries = [d for d in chosen if d.family == INDUSTRY_FAMILY]
            sub_parts = [d.label for d in chosen if d.family != INDUSTRY_FAMILY]
            if industries and len(industries) == family_size:
                sub_parts.append("All Industries")
            else:
                sub_parts.extend(_short_industry_label(d.label) for d in industries)
            parts.append(", ".join(sub_parts))
        else:
            parts.append(", ".join(d.label for d in chosen))
    return "; ".join(parts)
