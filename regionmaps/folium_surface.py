"""
Folium-backed rendering surface.

Holds the feature layer in memory (style, draw order, open tooltips and the
last requested view) so SelectionMapSync can drive it like a live map, then
renders the current state to a static Leaflet map with folium.
"""

from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import folium
from loguru import logger
from shapely.geometry import shape

from .map_sync import (
    DEFAULT_INITIAL_CENTER,
    DEFAULT_INITIAL_ZOOM,
    Bounds,
    LatLng,
    RenderSurface,
    StyleDict,
    is_valid_bounds,
)

TILES = "CartoDB Positron"


def _feature_collection(source: Any) -> Mapping[str, Any]:
    # GeoDataFrames (and anything else exposing __geo_interface__) are accepted as-is
    if hasattr(source, "__geo_interface__"):
        source = source.__geo_interface__
    if not isinstance(source, Mapping) or source.get("type") != "FeatureCollection":
        raise ValueError("Expected a GeoJSON FeatureCollection")
    return source


class FoliumSurface(RenderSurface):
    """RenderSurface over a GeoJSON FeatureCollection, rendered with folium."""

    def __init__(self, features: Any, tiles: str = TILES):
        collection = _feature_collection(features)
        self.tiles = tiles
        self._features: Dict[str, Mapping[str, Any]] = {}
        for index, feature in enumerate(collection.get("features") or []):
            fid = self._unique_id(feature.get("id"), index)
            self._features[fid] = feature

        self._styles: Dict[str, StyleDict] = {}
        self._order: List[str] = list(self._features)
        self._tooltips: Dict[str, str] = {}
        self._bounds_cache: Dict[str, Optional[Bounds]] = {}
        self.view: Optional[Tuple[str, Any, Any]] = None
        logger.debug(f"Loaded {len(self._features)} features into folium surface")

    def _unique_id(self, feature_id: Any, index: int) -> str:
        """Feature id, or the feature's index without one, suffixed until no other feature uses it."""
        candidate = str(index) if feature_id is None else str(feature_id)
        if candidate not in self._features:
            return candidate
        suffix = 1
        while f"{candidate}_{suffix}" in self._features:
            suffix += 1
        unique = f"{candidate}_{suffix}"
        logger.warning(f"⚠️ Feature id {candidate} is already in use, storing feature {index} as {unique}")
        return unique

    # -- RenderSurface ------------------------------------------------------

    def feature_ids(self) -> List[str]:
        return list(self._features)

    def feature_properties(self, feature_id: str) -> Mapping[str, Any]:
        return self._features[feature_id].get("properties") or {}

    def set_style(self, feature_id: str, style: StyleDict) -> None:
        self._styles[feature_id] = dict(style)

    def bring_to_front(self, feature_id: str) -> None:
        self._order.remove(feature_id)
        self._order.append(feature_id)

    def open_tooltip(self, feature_id: str, content: str) -> None:
        self._tooltips[feature_id] = content

    def close_tooltip(self, feature_id: str) -> None:
        self._tooltips.pop(feature_id, None)

    def feature_bounds(self, feature_id: str) -> Optional[Bounds]:
        if feature_id not in self._bounds_cache:
            self._bounds_cache[feature_id] = self._compute_bounds(feature_id)
        return self._bounds_cache[feature_id]

    def fit_bounds(self, bounds: Bounds, padding: Tuple[int, int]) -> None:
        self.view = ("fit", tuple(bounds), tuple(padding))

    def set_view(self, center: LatLng, zoom: int) -> None:
        self.view = ("view", tuple(center), zoom)

    # -- inspection ---------------------------------------------------------

    def style_of(self, feature_id: str) -> StyleDict:
        return dict(self._styles.get(feature_id, {}))

    def z_order(self) -> List[str]:
        """Feature ids from bottom to top of the draw order."""
        return list(self._order)

    @property
    def open_tooltips(self) -> Dict[str, str]:
        return dict(self._tooltips)

    def _compute_bounds(self, feature_id: str) -> Optional[Bounds]:
        geometry = self._features[feature_id].get("geometry")
        if not geometry:
            return None
        try:
            bounds = shape(geometry).bounds
        except Exception as e:
            logger.warning(f"⚠️ Could not read geometry of feature {feature_id}: {e}")
            return None
        return tuple(bounds) if is_valid_bounds(bounds) else None  # type: ignore[return-value]

    # -- rendering ----------------------------------------------------------

    def to_map(
        self,
        title: Optional[str] = None,
        legend: Optional[Sequence[Tuple[str, str]]] = None,
        tooltips: Optional[Mapping[str, str]] = None,
    ) -> folium.Map:
        """
        Render the current layer state to a folium Map.

        Args:
            title: Optional heading drawn above the map
            legend: Optional (label, color) pairs drawn as a legend box
            tooltips: Tooltip text per feature id; open tooltips are used when omitted

        Returns:
            folium.Map with features drawn bottom-to-top in the current draw order
        """
        tooltips = dict(tooltips) if tooltips is not None else self.open_tooltips

        center: LatLng = DEFAULT_INITIAL_CENTER
        zoom = DEFAULT_INITIAL_ZOOM
        if self.view is not None and self.view[0] == "view":
            center, zoom = self.view[1], self.view[2]

        m = folium.Map(location=list(center), zoom_start=zoom, tiles=self.tiles, prefer_canvas=True)

        for fid in self._order:
            feature = self._features[fid]
            if not feature.get("geometry"):
                continue
            style = self._styles.get(fid, {})
            text = tooltips.get(fid)
            folium.GeoJson(
                data={"type": "Feature", "id": fid, "geometry": feature["geometry"], "properties": {}},
                name=text or fid,
                style_function=lambda _feature, style=style: style,
                tooltip=folium.Tooltip(text, sticky=True) if text else None,
                control=False,
            ).add_to(m)

        if self.view is not None and self.view[0] == "fit":
            min_x, min_y, max_x, max_y = self.view[1]
            m.fit_bounds([[min_y, min_x], [max_y, max_x]], padding=self.view[2])

        if title:
            title_html = f"""
            <h3 align="center" style="font-size:20px; color: #333333; margin-top:10px;">
            <b>{title}</b>
            </h3>
            """
            m.get_root().html.add_child(folium.Element(title_html))

        if legend:
            rows = "".join(
                f'<div><span style="display:inline-block;width:14px;height:14px;'
                f'background:{color};margin-right:6px;border:1px solid #999;"></span>{label}</div>'
                for label, color in legend
            )
            legend_html = f"""
            <div style="position: fixed; bottom: 30px; right: 10px; z-index: 9999;
                        background-color: white; border: 2px solid #333333; border-radius: 5px;
                        padding: 8px; font-family: Arial, sans-serif; font-size: 12px;">
            {rows}
            </div>
            """
            m.get_root().html.add_child(folium.Element(legend_html))

        return m

    def save(self, output_path: Union[str, Path], **to_map_kwargs: Any) -> Path:
        """Render and write the map as HTML."""
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        self.to_map(**to_map_kwargs).save(str(output_path))
        logger.success(f"  ✅ Interactive choropleth map saved: {output_path}")
        return output_path
