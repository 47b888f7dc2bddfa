"""Tests for the interactive folium map."""

import folium
import geopandas as gpd
import pandas as pd
import pytest
from shapely.geometry import Point

from nycmaps.interactive import (
    MISSING_COLOR,
    _categories,
    InteractiveMapBuilder,
    build_interactive_map,
    category_colors,
)
from nycmaps.joins import bucket_income


@pytest.fixture
def hospitals():
    return gpd.GeoDataFrame(
        {
            "facility_name": ["Midtown Hospital", "Brooklyn <Medical> Center"],
            "facility_city": ["New York", "Brooklyn"],
            "ownership_type": ["Not for Profit Corporation", None],
        },
        geometry=[Point(-73.98, 40.75), Point(-73.99, 40.69)],
        crs="EPSG:4326",
    )


@pytest.fixture
def bucketed_pumas(pumas):
    out = pumas.copy()
    out["income_bucket"] = bucket_income([50000, 24999, None]).values
    return out


class TestCategoryColors:

    def test_one_color_per_category(self):
        colors = category_colors(["<$25K", "$25-50K", "$50-75K"])
        assert list(colors) == ["<$25K", "$25-50K", "$50-75K"]
        assert len(set(colors.values())) == 3
        assert all(c.startswith("#") for c in colors.values())

    def test_explicit_palette(self):
        colors = category_colors(["a", "b"], ["#000000", "#ffffff", "#ff0000"])
        assert colors == {"a": "#000000", "b": "#ffffff"}

    def test_short_palette_raises(self):
        with pytest.raises(ValueError, match="Palette has 1 colors"):
            category_colors(["a", "b"], ["#000000"])

    def test_empty(self):
        assert category_colors([]) == {}

    def test_qualitative_palette_uses_its_colors_in_order(self):
        colors = category_colors([f"c{i}" for i in range(9)], "Set1")
        assert colors["c0"] == "#e41a1c"
        assert len(set(colors.values())) == 9

    def test_qualitative_palette_too_short(self):
        colors = category_colors([f"c{i}" for i in range(10)], "Set1")
        assert len(set(colors.values())) == 10

    def test_numeric_categories_sorted_by_value(self):
        colors = category_colors(_categories(pd.Series([10, 9, 100, 9])))
        assert list(colors) == ["9", "10", "100"]


class TestInteractiveMapBuilder:

    def test_layers_and_legend_in_html(self, tmp_path, hospitals, bucketed_pumas):
        builder = InteractiveMapBuilder()
        builder.add_polygons(
            bucketed_pumas, "income_bucket", name="Median household income",
            tooltip_columns=["puma", "income_bucket"],
        )
        builder.add_points(
            hospitals, name="Hospitals", label_column="facility_name",
            popup_columns=["facility_name", "facility_city"],
        )
        builder.add_layer_control()

        path = builder.save(tmp_path / "maps" / "facilities.html")
        html = path.read_text()

        assert builder.layer_names == ["Median household income", "Hospitals"]
        assert "Median household income" in html
        assert "Hospitals" in html
        assert "Midtown Hospital" in html
        assert "nycmaps-legend" in html
        assert "$50-75K" in html
        assert "No data" in html
        assert "L.control.layers" in html

    def test_legend_lists_all_buckets_in_order(self, bucketed_pumas):
        builder = InteractiveMapBuilder().add_polygons(bucketed_pumas, "income_bucket")
        title, legend = builder.legends[0]
        assert title == "income_bucket"
        assert list(legend) == [
            "<$25K", "$25-50K", "$50-75K", "$75-100K", "$100-150K", "$150K+", "No data"
        ]
        assert legend["No data"] == MISSING_COLOR

    def test_popup_text_is_escaped(self, tmp_path, hospitals):
        builder = InteractiveMapBuilder().add_points(
            hospitals, popup_columns=["facility_name"]
        )
        html = builder.save(tmp_path / "points.html").read_text()
        assert "Brooklyn &lt;Medical&gt; Center" in html

    def test_missing_label_has_no_tooltip(self, tmp_path, hospitals):
        hospitals.loc[1, "facility_name"] = None
        builder = InteractiveMapBuilder().add_points(hospitals, label_column="facility_name")
        html = builder.save(tmp_path / "points.html").read_text()
        assert "Midtown Hospital" in html
        assert html.count("bindTooltip") == 1

    def test_points_colored_by_category(self, hospitals):
        builder = InteractiveMapBuilder().add_points(hospitals, color_column="ownership_type")
        title, legend = builder.legends[0]
        assert list(legend) == ["Not for Profit Corporation"]

    def test_layer_control_added_once(self):
        builder = InteractiveMapBuilder()
        builder.add_layer_control().add_layer_control()
        controls = [
            child for child in builder.map._children.values()
            if isinstance(child, folium.LayerControl)
        ]
        assert len(controls) == 1

    def test_build_is_repeatable(self, bucketed_pumas):
        builder = InteractiveMapBuilder().add_polygons(bucketed_pumas, "income_bucket")
        first = builder.build()
        second = builder.build()
        assert first is second
        assert first.get_root().render().count("nycmaps-legend") == 1


def test_build_interactive_map(tmp_path, hospitals, bucketed_pumas):
    path = tmp_path / "map.html"
    m = build_interactive_map(
        hospitals,
        bucketed_pumas,
        [("income_bucket", "Income")],
        label_column="facility_name",
        tooltip_columns=["puma"],
        save_path=path,
    )
    assert isinstance(m, folium.Map)
    assert "Income" in path.read_text()
