"""
Static map rendering.

This module provides layered static maps built on geopandas and
matplotlib: plain coordinate scatter plots, points styled by a category,
and choropleths (numeric or ordered-categorical) with points overlaid.
"""

import base64
import io
import math
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import geopandas as gpd
import matplotlib.pyplot as plt
import pandas as pd
from matplotlib.axes import Axes
from matplotlib.figure import Figure


class ColorScale(Enum):
    """Pre-defined color scales for map visualization."""
    VIRIDIS = "viridis"
    PLASMA = "plasma"
    CIVIDIS = "cividis"
    BLUES = "Blues"
    GREENS = "Greens"
    PURPLES = "Purples"
    YELLOW_GREEN_BLUE = "YlGnBu"
    YELLOW_ORANGE_RED = "YlOrRd"
    SET1 = "Set1"
    SET2 = "Set2"
    TAB10 = "tab10"


@dataclass
class MapStyle:
    """Configuration for map styling.

    Attributes:
        colormap: Color scale to use for values
        edge_color: Color for polygon boundaries
        edge_width: Width of polygon boundaries
        alpha: Transparency (0-1)
        missing_color: Color for regions with no data (and uniform layers)
        figsize: Figure size in inches (width, height)
        title: Map title
        legend: Whether to show legend/colorbar
        legend_label: Label for the colorbar or legend title
        markersize: Marker size for point layers
    """
    colormap: Union[str, ColorScale] = ColorScale.VIRIDIS
    edge_color: str = "black"
    edge_width: float = 0.5
    alpha: float = 1.0
    missing_color: str = "lightgrey"
    figsize: Tuple[int, int] = (12, 8)
    title: Optional[str] = None
    legend: bool = True
    legend_label: Optional[str] = None
    markersize: float = 12

    def get_colormap_name(self) -> str:
        """Get the colormap name as a string."""
        if isinstance(self.colormap, ColorScale):
            return self.colormap.value
        return self.colormap


@dataclass
class LayerConfig:
    """Configuration for a map layer.

    Attributes:
        data: GeoDataFrame to display
        value_column: Column containing values to visualize (None for uniform color)
        style: Styling options for this layer
        label: Label for this layer in legend
        zorder: Drawing order (higher = on top)
        categorical: Treat value_column as categories instead of numbers
    """
    data: gpd.GeoDataFrame
    value_column: Optional[str] = None
    style: MapStyle = field(default_factory=MapStyle)
    label: Optional[str] = None
    zorder: int = 1
    categorical: bool = False


def _is_categorical(series: pd.Series) -> bool:
    return isinstance(series.dtype, pd.CategoricalDtype) or pd.api.types.is_string_dtype(series)


def _aspect_for(data: gpd.GeoDataFrame) -> float:
    """Aspect ratio that keeps lon/lat maps from looking stretched."""
    miny, maxy = data.total_bounds[1], data.total_bounds[3]
    mid = (miny + maxy) / 2
    if not math.isfinite(mid):
        return 1.0
    return 1 / math.cos(math.radians(mid))


class MapVisualizer:
    """Creates map visualizations from geospatial data.

    This class provides a flexible interface for creating choropleth maps
    and multi-layer visualizations from arbitrary GeoDataFrames.
    """

    def __init__(self, style: Optional[MapStyle] = None):
        """Initialize the visualizer.

        Args:
            style: Default style settings for maps
        """
        self.default_style = style or MapStyle()
        self._layers: List[LayerConfig] = []

    @property
    def layers(self) -> List[LayerConfig]:
        return list(self._layers)

    def add_layer(
        self,
        data: gpd.GeoDataFrame,
        value_column: Optional[str] = None,
        style: Optional[MapStyle] = None,
        label: Optional[str] = None,
        zorder: int = 1,
        categorical: Optional[bool] = None
    ) -> "MapVisualizer":
        """Add a layer to the visualization.

        Args:
            data: GeoDataFrame to display
            value_column: Column containing values to visualize
            style: Styling options (uses default if not specified)
            label: Label for legend
            zorder: Drawing order
            categorical: Force categorical coloring; inferred from the
                         column dtype when None

        Returns:
            Self for method chaining
        """
        if categorical is None:
            categorical = value_column is not None and _is_categorical(data[value_column])

        layer = LayerConfig(
            data=data,
            value_column=value_column,
            style=style or self.default_style,
            label=label,
            zorder=zorder,
            categorical=categorical
        )
        self._layers.append(layer)
        return self

    def clear_layers(self) -> "MapVisualizer":
        """Remove all layers.

        Returns:
            Self for method chaining
        """
        self._layers = []
        return self

    def plot(
        self,
        data: Optional[gpd.GeoDataFrame] = None,
        value_column: Optional[str] = None,
        style: Optional[MapStyle] = None,
        ax: Optional[Axes] = None
    ) -> Tuple[Figure, Axes]:
        """Create a map visualization.

        If data is provided, creates a single-layer map.
        If no data is provided, renders all added layers.

        Args:
            data: GeoDataFrame to visualize (optional if layers added)
            value_column: Column containing values to visualize
            style: Styling options
            ax: Existing axes to plot on (creates new if None)

        Returns:
            Tuple of (Figure, Axes)
        """
        style = style or self.default_style

        if data is None and not self._layers:
            raise ValueError("Nothing to plot: pass data or add layers first")

        # Create figure if needed
        if ax is None:
            fig, ax = plt.subplots(1, 1, figsize=style.figsize)
        else:
            fig = ax.get_figure()

        if data is not None:
            categorical = value_column is not None and _is_categorical(data[value_column])
            self._plot_layer(
                LayerConfig(
                    data=data,
                    value_column=value_column,
                    style=style,
                    categorical=categorical
                ),
                ax,
                show_legend=style.legend
            )
        else:
            # Only the topmost valued layer gets a colorbar; categorical
            # layers always get their own legend.
            ordered = sorted(self._layers, key=lambda x: x.zorder)
            last_valued = max(
                (i for i, layer in enumerate(ordered) if layer.value_column is not None),
                default=None
            )
            for i, layer in enumerate(ordered):
                show_legend = layer.style.legend and layer.value_column is not None and (
                    layer.categorical or i == last_valued
                )
                self._plot_layer(layer, ax, show_legend=show_legend)

        if style.title:
            ax.set_title(style.title, fontsize=14, fontweight='bold')

        ax.set_axis_off()

        plt.tight_layout()
        return fig, ax

    def _plot_layer(
        self,
        layer: LayerConfig,
        ax: Axes,
        show_legend: bool = True
    ):
        """Plot a single layer on the axes."""
        style = layer.style
        is_points = bool(len(layer.data)) and layer.data.geom_type.isin(["Point", "MultiPoint"]).all()

        plot_kwargs: Dict[str, Any] = {
            "ax": ax,
            "alpha": style.alpha,
            "zorder": layer.zorder
        }
        if is_points:
            plot_kwargs["markersize"] = style.markersize
        else:
            plot_kwargs["edgecolor"] = style.edge_color
            plot_kwargs["linewidth"] = style.edge_width

        if layer.value_column is not None:
            plot_kwargs.update({
                "column": layer.value_column,
                "cmap": style.get_colormap_name(),
                "legend": show_legend,
                "missing_kwds": {"color": style.missing_color}
            })

            if layer.categorical:
                plot_kwargs["categorical"] = True
                if show_legend:
                    plot_kwargs["legend_kwds"] = {
                        "title": style.legend_label or layer.label or layer.value_column,
                        "loc": "upper left",
                        "fontsize": "small",
                    }
            elif show_legend and style.legend_label:
                plot_kwargs["legend_kwds"] = {"label": style.legend_label}

        else:
            # Uniform color
            plot_kwargs["color"] = style.missing_color
            if layer.label:
                plot_kwargs["label"] = layer.label

        layer.data.plot(**plot_kwargs)

    def scatter(
        self,
        data: pd.DataFrame,
        lat_column: str = "latitude",
        lon_column: str = "longitude",
        title: Optional[str] = None,
        figsize: Tuple[int, int] = (8, 8)
    ) -> Tuple[Figure, Axes]:
        """Plain scatter plot of longitude against latitude.

        No projection or aspect correction, which is what makes the next
        step (a proper point map) worth doing.
        """
        fig, ax = plt.subplots(1, 1, figsize=figsize)
        ax.scatter(data[lon_column], data[lat_column], s=8)
        ax.set_xlabel(lon_column)
        ax.set_ylabel(lat_column)
        if title:
            ax.set_title(title, fontsize=14, fontweight='bold')
        plt.tight_layout()
        return fig, ax

    def point_map(
        self,
        data: gpd.GeoDataFrame,
        category_column: Optional[str] = None,
        title: Optional[str] = None,
        colormap: Union[str, ColorScale] = ColorScale.SET1,
        legend_label: Optional[str] = None,
        figsize: Tuple[int, int] = (10, 10),
        ax: Optional[Axes] = None
    ) -> Tuple[Figure, Axes]:
        """Points colored by a category, with latitude-corrected aspect.

        Args:
            data: Point GeoDataFrame in EPSG:4326
            category_column: Column mapped to point color (uniform if None)
            title: Map title
            colormap: Qualitative color scale
            legend_label: Legend title
            figsize: Figure size in inches
            ax: Existing axes to plot on

        Returns:
            Tuple of (Figure, Axes)
        """
        style = MapStyle(
            colormap=colormap,
            title=title,
            legend_label=legend_label or category_column,
            figsize=figsize,
            missing_color="steelblue",
            markersize=14,
        )
        if ax is None:
            fig, ax = plt.subplots(1, 1, figsize=figsize)
        else:
            fig = ax.get_figure()

        self._plot_layer(
            LayerConfig(
                data=data,
                value_column=category_column,
                style=style,
                categorical=category_column is not None
            ),
            ax,
            show_legend=category_column is not None
        )
        ax.set_aspect(_aspect_for(data))
        ax.set_xlabel("Longitude")
        ax.set_ylabel("Latitude")
        if title:
            ax.set_title(title, fontsize=14, fontweight='bold')
        plt.tight_layout()
        return fig, ax

    def save(
        self,
        filepath: Union[str, Path],
        fig: Optional[Figure] = None,
        dpi: int = 150,
        **kwargs
    ) -> Path:
        """Save the visualization to a file.

        Args:
            filepath: Output file path (parent directories are created)
            fig: Figure to save (uses current figure if None)
            dpi: Resolution in dots per inch
            **kwargs: Additional arguments passed to savefig

        Returns:
            Path of the written file
        """
        if fig is None:
            fig = plt.gcf()

        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(
            filepath,
            dpi=dpi,
            bbox_inches='tight',
            **kwargs
        )
        return filepath

    def to_bytes(self, fig: Figure, format: str = "png", dpi: int = 100) -> bytes:
        """Render a figure to image bytes."""
        buffer = io.BytesIO()
        fig.savefig(buffer, format=format, dpi=dpi, bbox_inches='tight')
        return buffer.getvalue()

    def to_data_uri(self, fig: Figure, format: str = "png", dpi: int = 100) -> str:
        """Render a figure to a base64 data URI."""
        mime = "image/svg+xml" if format == "svg" else f"image/{format}"
        encoded = base64.b64encode(self.to_bytes(fig, format=format, dpi=dpi)).decode("ascii")
        return f"data:{mime};base64,{encoded}"


def plot_choropleth_with_points(
    polygons: gpd.GeoDataFrame,
    value_column: str,
    points: gpd.GeoDataFrame,
    title: Optional[str] = None,
    colormap: Union[str, ColorScale] = ColorScale.YELLOW_GREEN_BLUE,
    legend_label: Optional[str] = None,
    point_color: str = "crimson",
    figsize: Tuple[int, int] = (10, 10),
    ax: Optional[Axes] = None
) -> Tuple[Figure, Axes]:
    """Choropleth of ``value_column`` with a point layer drawn on top.

    Example:
        >>> fig, ax = plot_choropleth_with_points(
        ...     pumas, "income_bucket", hospitals,
        ...     title="Hospitals and median household income"
        ... )
    """
    viz = MapVisualizer()
    viz.add_layer(
        polygons,
        value_column=value_column,
        style=MapStyle(
            colormap=colormap,
            edge_color="white",
            edge_width=0.4,
            legend_label=legend_label or value_column,
        ),
        zorder=1
    )
    viz.add_layer(
        points,
        style=MapStyle(missing_color=point_color, markersize=10, legend=False),
        label="Facilities",
        zorder=2
    )
    fig, ax = viz.plot(style=MapStyle(title=title, figsize=figsize), ax=ax)
    ax.set_aspect(_aspect_for(polygons))
    return fig, ax


def compare_maps(
    polygons: gpd.GeoDataFrame,
    panels: List[Tuple[str, str, Union[str, ColorScale]]],
    points: Optional[gpd.GeoDataFrame] = None,
    ncols: int = 2,
    figsize: Optional[Tuple[int, int]] = None,
    title: Optional[str] = None
) -> Tuple[Figure, List[Axes]]:
    """Side-by-side choropleths of several columns of the same polygons.

    Args:
        polygons: GeoDataFrame holding every compared column
        panels: List of (value_column, panel title, colormap) tuples
        points: Optional point layer drawn on every panel
        ncols: Number of columns in the grid
        figsize: Figure size (auto-calculated if None)
        title: Figure title

    Returns:
        Tuple of (Figure, list of the panel Axes)

    Example:
        >>> fig, axes = compare_maps(
        ...     pumas,
        ...     [("broadband_bucket", "Broadband adoption", ColorScale.PURPLES),
        ...      ("income_bucket", "Median household income", ColorScale.YELLOW_GREEN_BLUE)],
        ...     points=hospitals,
        ... )
    """
    n = len(panels)
    if n == 0:
        raise ValueError("Nothing to compare: pass at least one panel")
    nrows = (n + ncols - 1) // ncols

    if figsize is None:
        figsize = (7 * ncols, 7 * nrows)

    fig, axes = plt.subplots(nrows, ncols, figsize=figsize, squeeze=False)
    axes = list(axes.flatten())

    for ax, (column, panel_title, colormap) in zip(axes, panels):
        if points is None:
            MapVisualizer().plot(
                polygons,
                column,
                MapStyle(colormap=colormap, title=panel_title, edge_color="white", edge_width=0.4),
                ax=ax
            )
            ax.set_aspect(_aspect_for(polygons))
        else:
            plot_choropleth_with_points(
                polygons, column, points, title=panel_title, colormap=colormap, ax=ax
            )

    # Hide unused axes
    for ax in axes[n:]:
        ax.set_visible(False)

    if title:
        fig.suptitle(title, fontsize=16, fontweight='bold')
    plt.tight_layout()
    return fig, axes[:n]
