"""
Interactive web maps.

Builds a folium (Leaflet) map from the same frames the static maps use:
base tiles, circle markers with popups and hover labels, polygons colored
by an ordered category, HTML legends and a layer-toggle control. The
result is written out as a single self-contained HTML document.
"""

import html
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Union

import folium
import geopandas as gpd
import matplotlib.pyplot as plt
import pandas as pd
from matplotlib.colors import ListedColormap, to_hex

from nycmaps.config import CRS_WEB, NYC_CENTER

DEFAULT_PALETTE = "YlGnBu"
MISSING_COLOR = "#bdbdbd"
POINT_COLOR = "#d7301f"
# Listed colormaps this short (Set1, tab10, ...) are qualitative
QUALITATIVE_MAX_COLORS = 20


def _is_qualitative(cmap) -> bool:
    return isinstance(cmap, ListedColormap) and cmap.N <= QUALITATIVE_MAX_COLORS


def _categories(values: pd.Series) -> List[str]:
    """Categories in display order: declared order if ordered, else sorted."""
    if isinstance(values.dtype, pd.CategoricalDtype):
        return [str(c) for c in values.cat.categories]
    return [str(v) for v in sorted(values.dropna().unique())]


def category_colors(
    categories: Sequence[str],
    palette: Union[str, Sequence[str]] = DEFAULT_PALETTE
) -> Dict[str, str]:
    """Map each category to a hex color.

    ``palette`` is either a matplotlib colormap name or an explicit list of
    colors used in order. Qualitative colormaps hand out their colors in
    order, moving to a larger qualitative map when they run short;
    continuous ones are sampled evenly across the categories.
    """
    categories = list(categories)
    if not categories:
        return {}

    if isinstance(palette, str):
        cmap = plt.get_cmap(palette)
        n = len(categories)
        if _is_qualitative(cmap) and n > cmap.N:
            cmap = plt.get_cmap("tab20" if n <= 20 else "turbo")
        if _is_qualitative(cmap):
            colors = [to_hex(c) for c in cmap.colors[:n]]
        else:
            # Skip the palest end of sequential maps so fills stay visible
            positions = [0.15 + 0.85 * i / max(n - 1, 1) for i in range(n)]
            colors = [to_hex(cmap(p)) for p in positions]
    else:
        if len(palette) < len(categories):
            raise ValueError(
                f"Palette has {len(palette)} colors for {len(categories)} categories"
            )
        colors = list(palette)

    return dict(zip(categories, colors))


def _popup_html(row: pd.Series, columns: Sequence[str]) -> str:
    lines = []
    for column in columns:
        value = row.get(column)
        if value is None or (not isinstance(value, str) and pd.isna(value)):
            continue
        lines.append(f"<b>{html.escape(column.replace('_', ' ').title())}:</b> {html.escape(str(value))}")
    return "<br>".join(lines)


def _legend_html(legends: List[Tuple[str, Dict[str, str]]]) -> str:
    sections = []
    for title, colors in legends:
        rows = "".join(
            f'<div style="display:flex;align-items:center;gap:6px;margin:2px 0;">'
            f'<span style="width:14px;height:14px;display:inline-block;'
            f'background:{color};border:1px solid #777;"></span>'
            f'<span>{html.escape(label)}</span></div>'
            for label, color in colors.items()
        )
        sections.append(
            f'<div style="margin-bottom:8px;">'
            f'<div style="font-weight:600;margin-bottom:4px;">{html.escape(title)}</div>'
            f'{rows}</div>'
        )
    return (
        '<div class="nycmaps-legend" style="position: fixed; bottom: 24px; left: 12px; z-index: 9999;'
        ' background: rgba(255,255,255,0.92); padding: 10px 12px; border-radius: 8px;'
        ' box-shadow: 0 1px 6px rgba(0,0,0,0.2); font: 12px/1.2 system-ui, sans-serif;">'
        + "".join(sections)
        + "</div>"
    )


class InteractiveMapBuilder:
    """Layered folium map with legends and a layer-toggle control.

    Example:
        >>> builder = InteractiveMapBuilder()
        >>> builder.add_polygons(pumas, "income_bucket", name="Income",
        ...                      tooltip_columns=["puma", "income_bucket"])
        >>> builder.add_points(hospitals, label_column="facility_name")
        >>> builder.add_layer_control().save("output/map.html")
    """

    def __init__(
        self,
        center: Tuple[float, float] = NYC_CENTER,
        zoom_start: int = 10,
        tiles: str = "CartoDB positron"
    ):
        self.map = folium.Map(
            location=list(center),
            zoom_start=zoom_start,
            tiles=tiles,
            control_scale=True,
        )
        self.legends: List[Tuple[str, Dict[str, str]]] = []
        self.layer_names: List[str] = []
        self._has_layer_control = False
        self._legend_added = False

    def add_points(
        self,
        data: gpd.GeoDataFrame,
        name: str = "Facilities",
        label_column: Optional[str] = None,
        popup_columns: Optional[Sequence[str]] = None,
        color_column: Optional[str] = None,
        color: str = POINT_COLOR,
        palette: Union[str, Sequence[str]] = "Set1",
        radius: float = 5,
        show: bool = True
    ) -> "InteractiveMapBuilder":
        """Add circle markers with popups and hover labels as one layer.

        Args:
            data: Point GeoDataFrame
            name: Layer name shown in the layer control
            label_column: Column shown on hover
            popup_columns: Columns listed in the click popup
            color_column: Optional category column mapped to marker color
            color: Marker color when color_column is None
            palette: Colors for color_column categories
            radius: Marker radius in pixels
            show: Whether the layer starts visible

        Returns:
            Self for method chaining
        """
        data = data.to_crs(CRS_WEB) if data.crs is not None and data.crs != CRS_WEB else data
        popup_columns = list(popup_columns or [])

        colors: Dict[str, str] = {}
        if color_column is not None:
            colors = category_colors(_categories(data[color_column]), palette)
            self.legends.append((f"{name}: {color_column.replace('_', ' ')}", colors))

        group = folium.FeatureGroup(name=name, show=show)
        for _, row in data.iterrows():
            geom = row.geometry
            if geom is None or geom.is_empty:
                continue

            marker_color = color
            if color_column is not None and pd.notna(row[color_column]):
                marker_color = colors.get(str(row[color_column]), MISSING_COLOR)

            popup_text = _popup_html(row, popup_columns)
            label = None
            if label_column is not None and pd.notna(row[label_column]):
                label = str(row[label_column])
            folium.CircleMarker(
                location=[geom.y, geom.x],
                radius=radius,
                color=marker_color,
                weight=1,
                fill=True,
                fill_color=marker_color,
                fill_opacity=0.8,
                popup=folium.Popup(popup_text, max_width=300) if popup_text else None,
                tooltip=label,
            ).add_to(group)

        group.add_to(self.map)
        self.layer_names.append(name)
        return self

    def add_polygons(
        self,
        data: gpd.GeoDataFrame,
        value_column: str,
        name: Optional[str] = None,
        palette: Union[str, Sequence[str]] = DEFAULT_PALETTE,
        tooltip_columns: Optional[Sequence[str]] = None,
        legend_title: Optional[str] = None,
        fill_opacity: float = 0.7,
        show: bool = True
    ) -> "InteractiveMapBuilder":
        """Add polygons filled by the category in ``value_column``.

        Missing values are filled grey and listed as "No data" in the
        legend when present.

        Returns:
            Self for method chaining
        """
        name = name or value_column
        data = data.to_crs(CRS_WEB) if data.crs is not None and data.crs != CRS_WEB else data
        tooltip_columns = list(tooltip_columns or [value_column])

        values = data[value_column]
        colors = category_colors(_categories(values), palette)

        layer = gpd.GeoDataFrame(
            {
                col: data[col].astype(object).where(data[col].notna(), "n/a").astype(str)
                for col in tooltip_columns
            },
            geometry=data.geometry,
            crs=data.crs,
        )
        layer["_fill"] = values.astype(object).map(
            lambda v: MISSING_COLOR if pd.isna(v) else colors.get(str(v), MISSING_COLOR)
        )

        legend = dict(colors)
        if values.isna().any():
            legend["No data"] = MISSING_COLOR
        self.legends.append((legend_title or name, legend))

        group = folium.FeatureGroup(name=name, show=show)
        folium.GeoJson(
            layer,
            style_function=lambda feature: {
                "fillColor": feature["properties"]["_fill"],
                "color": "white",
                "weight": 0.6,
                "fillOpacity": fill_opacity,
            },
            highlight_function=lambda feature: {"weight": 2, "color": "#333333"},
            tooltip=folium.GeoJsonTooltip(
                fields=tooltip_columns,
                aliases=[c.replace("_", " ").title() for c in tooltip_columns],
                sticky=False,
            ),
        ).add_to(group)

        group.add_to(self.map)
        self.layer_names.append(name)
        return self

    def add_layer_control(self, collapsed: bool = False) -> "InteractiveMapBuilder":
        """Add the layer-toggle control (once)."""
        if not self._has_layer_control:
            folium.LayerControl(collapsed=collapsed).add_to(self.map)
            self._has_layer_control = True
        return self

    def build(self) -> folium.Map:
        """Attach the legends and return the folium map."""
        if self.legends and not self._legend_added:
            self.map.get_root().html.add_child(folium.Element(_legend_html(self.legends)))
            self._legend_added = True
        return self.map

    def save(self, path: Union[str, Path]) -> Path:
        """Write the map to a standalone HTML document."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        self.build().save(str(path))
        return path


def build_interactive_map(
    points: gpd.GeoDataFrame,
    polygons: gpd.GeoDataFrame,
    polygon_layers: Sequence[Tuple[str, str]],
    label_column: Optional[str] = None,
    popup_columns: Optional[Sequence[str]] = None,
    tooltip_columns: Optional[Sequence[str]] = None,
    save_path: Optional[Union[str, Path]] = None
) -> folium.Map:
    """Convenience function: polygon layers, a point layer, legends, toggle.

    Args:
        points: Point GeoDataFrame
        polygons: Polygon GeoDataFrame holding the bucketed columns
        polygon_layers: (value_column, layer_name) pairs; only the first
                        layer starts visible
        label_column: Point column shown on hover
        popup_columns: Point columns listed in popups
        tooltip_columns: Extra polygon columns shown on hover
        save_path: Optional path of the HTML document to write

    Returns:
        The folium Map
    """
    builder = InteractiveMapBuilder()
    for i, (column, name) in enumerate(polygon_layers):
        builder.add_polygons(
            polygons,
            column,
            name=name,
            tooltip_columns=list(tooltip_columns or []) + [column],
            show=(i == 0),
        )
    builder.add_points(points, label_column=label_column, popup_columns=popup_columns)
    builder.add_layer_control()

    if save_path is not None:
        builder.save(save_path)
    return builder.build()
