"""
Selection / Map Synchronization

Keeps the styling, draw order, tooltips and viewport of a rendered region
layer in step with the host's selection state and the active metric.

The host owns a SelectionState and pushes it in through ``update()``; pointer
and click events arrive through ``pointer_enter``, ``pointer_leave`` and
``click``. Selection is never mutated here: clicks are reported back to the
host as SelectionIntent values, and the host folds them in with
``apply_selection_intent``.

Styling is a pure function of (region code, selection set, metric value,
metric domain), so every update restyles the whole layer instead of patching.
Fit-to-selection and reset-view arrive as monotonically increasing counters
and only fire when a counter moves past the last value observed.
"""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from typing import (
    Any,
    Callable,
    Dict,
    FrozenSet,
    Iterable,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
)

from loguru import logger

from .color_scale import COLOR_SCALE, Domain, choropleth_color
from .metric_domain import MetricResult

Bounds = Tuple[float, float, float, float]  # (min_lon, min_lat, max_lon, max_lat)
LatLng = Tuple[float, float]
StyleDict = Dict[str, Any]

REGION_CODE_FIELDS: Tuple[str, ...] = ("ZIP", "BdVal", "ZCTA5CE20", "ZCTA5CE10", "ZIP_CODE", "ZCTA")
DISPLAY_NAME_FIELDS: Tuple[str, ...] = ("CITY", "city", "NAME")

DEFAULT_INITIAL_CENTER: LatLng = (33.55, -112.4)
DEFAULT_INITIAL_ZOOM = 9
DEFAULT_FIT_PADDING: Tuple[int, int] = (20, 20)


# ---------------------------------------------------------------------------
# Host-owned selection state
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SelectionState:
    """
    Selection set, picked metrics, active metric and the two view command counters.

    ``metric_ids`` holds every metric the user picked, in pick order;
    ``metric_id`` is the one currently drawn on the map.
    """

    selected: FrozenSet[str] = frozenset()
    metric_ids: Tuple[str, ...] = ()
    metric_id: Optional[str] = None
    fit_selection_signal: int = 0
    reset_view_signal: int = 0

    def with_selection(self, selected: Iterable[str]) -> "SelectionState":
        return replace(self, selected=frozenset(selected))

    def with_metric(self, metric_id: Optional[str]) -> "SelectionState":
        return replace(self, metric_id=metric_id)

    def request_fit(self) -> "SelectionState":
        return replace(self, fit_selection_signal=self.fit_selection_signal + 1)

    def request_reset(self) -> "SelectionState":
        return replace(self, reset_view_signal=self.reset_view_signal + 1)

    def cleared(self) -> "SelectionState":
        """Drop the selection and every picked metric, then ask for the initial view."""
        return replace(
            self,
            selected=frozenset(),
            metric_ids=(),
            metric_id=None,
            reset_view_signal=self.reset_view_signal + 1,
        )


@dataclass(frozen=True)
class SelectionIntent:
    """A click on a region, reported upward to the host."""

    region_code: str
    multi_select: bool = False


def apply_selection_intent(selected: FrozenSet[str], intent: SelectionIntent) -> FrozenSet[str]:
    """
    Fold a click intent into a selection set.

    With the modifier held the region is toggled in or out. Without it the
    selection becomes just that region, unless it was already the only
    selected region, in which case the selection is cleared.
    """
    code = intent.region_code
    if intent.multi_select:
        return selected - {code} if code in selected else selected | {code}
    if selected == frozenset({code}):
        return frozenset()
    return frozenset({code})


def apply_group_toggle(selected: FrozenSet[str], group_codes: Iterable[str]) -> FrozenSet[str]:
    """
    Toggle a whole group (a city) of region codes.

    If every code of the group is already selected the group is removed,
    otherwise the missing codes are added. An empty group changes nothing.
    """
    codes = frozenset(group_codes)
    if not codes:
        return selected
    if codes <= selected:
        return selected - codes
    return selected | codes


def apply_metrics_change(state: SelectionState, metric_ids: Iterable[str]) -> SelectionState:
    """
    Replace the picked metrics and choose which one the map draws.

    The active metric survives when it is still picked; otherwise the most
    recently picked metric takes over, or None when nothing is picked.
    """
    picked = tuple(metric_ids)
    if state.metric_id is not None and state.metric_id in picked:
        active: Optional[str] = state.metric_id
    else:
        active = picked[-1] if picked else None
    return replace(state, metric_ids=picked, metric_id=active)


def apply_active_metric(state: SelectionState, metric_id: str) -> SelectionState:
    """Draw ``metric_id`` on the map; ignored unless it is one of the picked metrics."""
    if metric_id not in state.metric_ids:
        logger.debug(f"Metric {metric_id} is not picked, keeping {state.metric_id}")
        return state
    return replace(state, metric_id=metric_id)


# ---------------------------------------------------------------------------
# Feature property resolution
# ---------------------------------------------------------------------------


def _first_present(properties: Optional[Mapping[str, Any]], keys: Sequence[str]) -> Optional[str]:
    if not properties:
        return None
    for key in keys:
        value = properties.get(key)
        # Falsy values (None, 0, False, "") fall through to the next key
        if not value:
            continue
        if isinstance(value, float):
            if not math.isfinite(value):
                continue
            # Shapefile attributes often load zip codes as floats
            if value.is_integer():
                value = int(value)
        text = str(value).strip()
        if text:
            return text
    return None


def resolve_region_code(
    properties: Optional[Mapping[str, Any]], keys: Sequence[str] = REGION_CODE_FIELDS
) -> Optional[str]:
    """First non-empty region code among ``keys``, or None when the feature has none."""
    return _first_present(properties, keys)


def resolve_display_name(
    properties: Optional[Mapping[str, Any]], keys: Sequence[str] = DISPLAY_NAME_FIELDS
) -> Optional[str]:
    return _first_present(properties, keys)


def tooltip_content(region_code: Optional[str], display_name: Optional[str]) -> str:
    if region_code is None:
        return display_name or ""
    if display_name:
        return f"{display_name}: {region_code}"
    return region_code


# ---------------------------------------------------------------------------
# Styling
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MapStyles:
    """Path options for the base, selected and hover states."""

    base: StyleDict = field(
        default_factory=lambda: {"weight": 1, "opacity": 1, "color": "white", "fillOpacity": 0.8}
    )
    selected: StyleDict = field(
        default_factory=lambda: {"weight": 3, "color": "#122426", "fillOpacity": 1}
    )
    hover: StyleDict = field(
        default_factory=lambda: {"weight": 2, "color": "#1C4953", "fillOpacity": 0.9}
    )

    @classmethod
    def from_config(cls, config) -> "MapStyles":
        return cls(
            base=config.get_style("base"),
            selected=config.get_style("selected"),
            hover=config.get_style("hover"),
        )


DEFAULT_STYLES = MapStyles()


def feature_style(
    region_code: Optional[str],
    selected: FrozenSet[str],
    value: Optional[float],
    domain: Optional[Domain],
    styles: MapStyles = DEFAULT_STYLES,
    palette: Sequence[str] = COLOR_SCALE,
) -> StyleDict:
    """
    Resting style for one feature.

    The metric value picks the fill color; selected regions get the selected
    overlay merged over the base style.
    """
    style = dict(styles.base)
    style["fillColor"] = choropleth_color(value, domain, palette)
    if region_code is not None and region_code in selected:
        style.update(styles.selected)
    return style


def hover_style(
    region_code: Optional[str],
    selected: FrozenSet[str],
    value: Optional[float],
    domain: Optional[Domain],
    styles: MapStyles = DEFAULT_STYLES,
    palette: Sequence[str] = COLOR_SCALE,
) -> StyleDict:
    style = feature_style(region_code, selected, value, domain, styles, palette)
    style.update(styles.hover)
    return style


# ---------------------------------------------------------------------------
# Bounds
# ---------------------------------------------------------------------------


def is_valid_bounds(bounds: Optional[Sequence[float]]) -> bool:
    if bounds is None or len(bounds) != 4:
        return False
    try:
        min_x, min_y, max_x, max_y = (float(b) for b in bounds)
    except (TypeError, ValueError):
        return False
    if not all(math.isfinite(b) for b in (min_x, min_y, max_x, max_y)):
        return False
    return min_x <= max_x and min_y <= max_y


def union_bounds(bounds_list: Iterable[Optional[Sequence[float]]]) -> Optional[Bounds]:
    """Smallest box covering every valid box in ``bounds_list``; None if there are none."""
    union: Optional[List[float]] = None
    for bounds in bounds_list:
        if not is_valid_bounds(bounds):
            continue
        min_x, min_y, max_x, max_y = (float(b) for b in bounds)  # type: ignore[union-attr]
        if union is None:
            union = [min_x, min_y, max_x, max_y]
        else:
            union = [
                min(union[0], min_x),
                min(union[1], min_y),
                max(union[2], max_x),
                max(union[3], max_y),
            ]
    return None if union is None else (union[0], union[1], union[2], union[3])


# ---------------------------------------------------------------------------
# Rendering surface
# ---------------------------------------------------------------------------


class RenderSurface(ABC):
    """The rendered feature layer and viewport the sync layer drives."""

    @abstractmethod
    def feature_ids(self) -> List[str]:
        """Ids of every rendered feature."""

    @abstractmethod
    def feature_properties(self, feature_id: str) -> Mapping[str, Any]:
        """Property bag of a feature."""

    @abstractmethod
    def set_style(self, feature_id: str, style: StyleDict) -> None:
        ...

    @abstractmethod
    def bring_to_front(self, feature_id: str) -> None:
        ...

    @abstractmethod
    def open_tooltip(self, feature_id: str, content: str) -> None:
        ...

    @abstractmethod
    def close_tooltip(self, feature_id: str) -> None:
        ...

    @abstractmethod
    def feature_bounds(self, feature_id: str) -> Optional[Bounds]:
        """(min_lon, min_lat, max_lon, max_lat), or None without usable geometry."""

    @abstractmethod
    def fit_bounds(self, bounds: Bounds, padding: Tuple[int, int]) -> None:
        ...

    @abstractmethod
    def set_view(self, center: LatLng, zoom: int) -> None:
        ...


# ---------------------------------------------------------------------------
# Sync layer
# ---------------------------------------------------------------------------


class SelectionMapSync:
    """
    Drives a RenderSurface from host state and pointer events.

    Features whose properties carry no region code are inert: they are
    styled as no-data and ignore hover and click.
    """

    def __init__(
        self,
        surface: RenderSurface,
        on_select: Optional[Callable[[SelectionIntent], None]] = None,
        initial_center: LatLng = DEFAULT_INITIAL_CENTER,
        initial_zoom: int = DEFAULT_INITIAL_ZOOM,
        styles: Optional[MapStyles] = None,
        palette: Sequence[str] = COLOR_SCALE,
        fit_initial_bounds: bool = False,
        padding: Tuple[int, int] = DEFAULT_FIT_PADDING,
        region_code_fields: Sequence[str] = REGION_CODE_FIELDS,
        display_name_fields: Sequence[str] = DISPLAY_NAME_FIELDS,
    ):
        self.surface = surface
        self.on_select = on_select
        self.initial_center = initial_center
        self.initial_zoom = initial_zoom
        self.styles = styles or DEFAULT_STYLES
        self.palette = tuple(palette)
        self.padding = padding
        self.display_name_fields = tuple(display_name_fields)

        self._state = SelectionState()
        self._metric_result: Optional[MetricResult] = None
        self._hovered: Optional[str] = None
        self._last_fit_signal = 0
        self._last_reset_signal = 0

        self._codes: Dict[str, Optional[str]] = {
            fid: resolve_region_code(surface.feature_properties(fid), region_code_fields)
            for fid in surface.feature_ids()
        }
        inert = sum(1 for code in self._codes.values() if code is None)
        if inert:
            logger.warning(f"⚠️ {inert} of {len(self._codes)} features have no region code")
        logger.debug(f"🗺️ Map sync bound to {len(self._codes)} features")

        self._restyle_all()
        if fit_initial_bounds:
            all_bounds = union_bounds(surface.feature_bounds(fid) for fid in self._codes)
            if all_bounds is not None:
                surface.fit_bounds(all_bounds, self.padding)
            else:
                self.reset_view()
        else:
            self.reset_view()

    # -- accessors ----------------------------------------------------------

    @property
    def state(self) -> SelectionState:
        return self._state

    @property
    def hovered(self) -> Optional[str]:
        return self._hovered

    def region_code(self, feature_id: str) -> Optional[str]:
        return self._codes.get(feature_id)

    def features_for(self, region_code: str) -> List[str]:
        return [fid for fid, code in self._codes.items() if code == region_code]

    def selected_features(self) -> List[str]:
        return [
            fid for fid, code in self._codes.items() if code is not None and code in self._state.selected
        ]

    def tooltip_for(self, feature_id: str) -> str:
        properties = self.surface.feature_properties(feature_id)
        return tooltip_content(
            self._codes.get(feature_id), resolve_display_name(properties, self.display_name_fields)
        )

    # -- styling ------------------------------------------------------------

    def _metric_inputs(self, region_code: Optional[str]) -> Tuple[Optional[float], Optional[Domain]]:
        result = self._metric_result
        if result is None or self._state.metric_id is None:
            return None, None
        return result.value_for(region_code), result.domain

    def _resting_style(self, feature_id: str) -> StyleDict:
        code = self._codes.get(feature_id)
        value, domain = self._metric_inputs(code)
        return feature_style(code, self._state.selected, value, domain, self.styles, self.palette)

    def _hover_style(self, feature_id: str) -> StyleDict:
        code = self._codes.get(feature_id)
        value, domain = self._metric_inputs(code)
        return hover_style(code, self._state.selected, value, domain, self.styles, self.palette)

    def _restyle_all(self) -> None:
        for fid in self._codes:
            if fid == self._hovered:
                self.surface.set_style(fid, self._hover_style(fid))
            else:
                self.surface.set_style(fid, self._resting_style(fid))

    def _raise_selected(self) -> None:
        for fid in self.selected_features():
            self.surface.bring_to_front(fid)

    # -- host state ---------------------------------------------------------

    def update(self, state: SelectionState, metric_result: Optional[MetricResult] = None) -> None:
        """
        Apply new host state.

        Selection and metric are level-triggered and restyle every feature.
        The view counters are edge-triggered: a command runs only when its
        counter is greater than the last one observed.
        """
        if (
            metric_result is not None
            and state.metric_id is not None
            and metric_result.metric_id != state.metric_id
        ):
            logger.warning(
                f"⚠️ Metric result for {metric_result.metric_id} does not match "
                f"active metric {state.metric_id}, ignoring it"
            )
            metric_result = None

        self._state = state
        self._metric_result = metric_result
        self._restyle_all()
        self._raise_selected()

        if state.reset_view_signal > self._last_reset_signal:
            self.reset_view()
        self._last_reset_signal = state.reset_view_signal

        if state.fit_selection_signal > self._last_fit_signal:
            self.fit_to_selection()
        self._last_fit_signal = state.fit_selection_signal

    # -- pointer events -----------------------------------------------------

    def pointer_enter(self, feature_id: str) -> None:
        if self._codes.get(feature_id) is None:
            return
        if self._hovered is not None and self._hovered != feature_id:
            self.pointer_leave(self._hovered)

        self._hovered = feature_id
        self.surface.set_style(feature_id, self._hover_style(feature_id))
        self.surface.bring_to_front(feature_id)
        self.surface.open_tooltip(feature_id, self.tooltip_for(feature_id))

    def pointer_leave(self, feature_id: str) -> None:
        if self._codes.get(feature_id) is None:
            return
        if self._hovered == feature_id:
            self._hovered = None

        self.surface.set_style(feature_id, self._resting_style(feature_id))
        self.surface.close_tooltip(feature_id)
        # Selected borders must end up above the feature that was hovered
        self._raise_selected()

    def click(self, feature_id: str, multi_select: bool = False) -> Optional[SelectionIntent]:
        """Report a click on a feature to the host; returns the intent emitted, if any."""
        code = self._codes.get(feature_id)
        if code is None:
            return None
        intent = SelectionIntent(region_code=code, multi_select=multi_select)
        logger.debug(f"🖱️ Click on {code} (multi_select={multi_select})")
        if self.on_select is not None:
            self.on_select(intent)
        return intent

    # -- view commands ------------------------------------------------------

    def fit_to_selection(self) -> bool:
        """Fit the viewport to the selected features. Returns False when nothing could be fit."""
        bounds = union_bounds(self.surface.feature_bounds(fid) for fid in self.selected_features())
        if bounds is None:
            logger.debug("No selected feature has valid bounds, skipping fit")
            return False
        self.surface.fit_bounds(bounds, self.padding)
        return True

    def reset_view(self) -> None:
        self.surface.set_view(self.initial_center, self.initial_zoom)
