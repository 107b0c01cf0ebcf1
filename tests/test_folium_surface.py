"""
Tests for the folium rendering surface.
"""

import folium
import geopandas as gpd
import pytest
from shapely.geometry import shape

from regionmaps.folium_surface import FoliumSurface
from regionmaps.map_sync import SelectionMapSync, SelectionState
from regionmaps.metric_domain import MetricResult


def test_feature_ids_and_bounds(feature_collection):
    surface = FoliumSurface(feature_collection)
    assert surface.feature_ids() == ["a", "b", "c", "empty"]
    assert surface.feature_properties("b") == {"ZIP": "85302", "CITY": "Glendale"}
    min_x, min_y, max_x, max_y = surface.feature_bounds("a")
    assert (min_x, min_y) == pytest.approx((-112.2, 33.5))
    assert (max_x, max_y) == pytest.approx((-112.1, 33.6))
    assert surface.feature_bounds("empty") is None


def test_rejects_non_feature_collection():
    with pytest.raises(ValueError):
        FoliumSurface({"type": "Feature"})


def test_accepts_geodataframe(feature_collection):
    features = [f for f in feature_collection["features"] if f["geometry"]]
    gdf = gpd.GeoDataFrame(
        [f["properties"] for f in features],
        geometry=[shape(f["geometry"]) for f in features],
        crs="EPSG:4326",
    )
    surface = FoliumSurface(gdf)
    assert len(surface.feature_ids()) == 3
    assert surface.feature_properties(surface.feature_ids()[0])["ZIP"] == "85301"


def test_records_sync_state(feature_collection):
    surface = FoliumSurface(feature_collection)
    sync = SelectionMapSync(surface)
    sync.update(SelectionState(selected=frozenset({"85301"})).request_fit())

    assert surface.z_order()[-1] == "a"
    assert surface.style_of("a")["weight"] == 3
    assert surface.view[0] == "fit"
    assert surface.view[1] == pytest.approx((-112.2, 33.5, -112.1, 33.6))

    sync.pointer_enter("b")
    assert surface.open_tooltips == {"b": "Glendale: 85302"}
    sync.pointer_leave("b")
    assert surface.open_tooltips == {}
    assert surface.z_order()[-1] == "a"


def test_to_map_and_save(feature_collection, tmp_path):
    surface = FoliumSurface(feature_collection)
    sync = SelectionMapSync(surface)
    result = MetricResult("population", {"85301": 100.0, "85302": 300.0}, (100.0, 300.0))
    sync.update(SelectionState(selected=frozenset({"85302"}), metric_id="population"), result)

    m = surface.to_map(title="Population", legend=[("100 – 300", "#27AE60")])
    assert isinstance(m, folium.Map)
    geojson_layers = [child for child in m._children.values() if isinstance(child, folium.GeoJson)]
    assert len(geojson_layers) == 3

    tooltips = {fid: sync.tooltip_for(fid) for fid in surface.feature_ids()}
    output = surface.save(tmp_path / "maps" / "population.html", title="Population", tooltips=tooltips)
    html = output.read_text()
    assert "Population" in html
    assert "Glendale: 85301" in html


def test_fallback_id_does_not_overwrite_explicit_id():
    collection = {
        "type": "FeatureCollection",
        "features": [
            {"type": "Feature", "id": "1", "properties": {"ZIP": "85301"}, "geometry": None},
            {"type": "Feature", "properties": {"ZIP": "85302"}, "geometry": None},
            {"type": "Feature", "id": "1", "properties": {"ZIP": "85323"}, "geometry": None},
        ],
    }
    surface = FoliumSurface(collection)
    ids = surface.feature_ids()
    assert len(ids) == 3
    assert [surface.feature_properties(fid)["ZIP"] for fid in ids] == ["85301", "85302", "85323"]
    assert ids[0] == "1"
    assert len(set(ids)) == 3

    sync = SelectionMapSync(surface)
    assert sorted(sync.region_code(fid) for fid in ids) == ["85301", "85302", "85323"]
