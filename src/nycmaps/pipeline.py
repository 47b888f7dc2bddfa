"""End-to-end map walkthrough: fetch, clean, join, render."""

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import geopandas as gpd
import matplotlib.pyplot as plt

from nycmaps.cleaning import clean_facilities, facilities_to_geodataframe
from nycmaps.config import (
    BROADBAND,
    FACILITIES,
    INCOME,
    PUMA_KEY_WIDTH,
    PUMAS_GEOJSON,
    PUMAS_SHAPEFILE,
    DatasetConfig,
    Settings,
)
from nycmaps.datasource import RemoteDataSource, make_source
from nycmaps.interactive import InteractiveMapBuilder
from nycmaps.joins import AttributeJoiner, JoinResult, bucket_broadband, bucket_income, normalize_key
from nycmaps.visualizer import (
    ColorScale,
    MapStyle,
    MapVisualizer,
    compare_maps,
    plot_choropleth_with_points,
)

PUMA_COLUMN = "puma"
BROADBAND_BUCKET = "broadband_bucket"
INCOME_BUCKET = "income_bucket"

BOUNDARY_CONFIGS: Dict[str, DatasetConfig] = {
    "geojson": PUMAS_GEOJSON,
    "shapefile": PUMAS_SHAPEFILE,
}


@dataclass
class PipelineResult:
    """Container for pipeline outputs."""

    facilities: gpd.GeoDataFrame
    pumas: gpd.GeoDataFrame
    joins: Dict[str, JoinResult]
    figures: Dict[str, Path] = field(default_factory=dict)
    html_path: Optional[Path] = None
    cleaning_log: List[str] = field(default_factory=list)


class MapPipeline:
    """Runs the facility map walkthrough stage by stage.

    Stages:
    - Load and clean the facility listing
    - Load PUMA boundaries (GeoJSON endpoint or TIGER shapefile archive)
    - Load broadband and income tables and join them onto the PUMAs
    - Render static figures and the interactive HTML map

    Each stage depends on the previous one; failures propagate.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or Settings()
        self.columns = self.settings.columns
        self.cleaning_log: List[str] = []

    def _log(self, message: str):
        if self.settings.verbose:
            print(message)

    def run(self, boundary_source: str = "geojson", save_static: bool = True) -> PipelineResult:
        """Execute the full walkthrough.

        Args:
            boundary_source: "geojson" or "shapefile"
            save_static: Render and save the static figures

        Returns:
            PipelineResult with the frames and written artifacts
        """
        self._log("Loading facilities...")
        facilities = self.load_facilities()

        self._log(f"Loading PUMA boundaries ({boundary_source})...")
        pumas = self.load_boundaries(boundary_source)

        self._log("Loading attribute tables...")
        tables = self.load_attributes()

        self._log("Joining attributes...")
        pumas, joins = self.join_attributes(pumas, tables)

        figures: Dict[str, Path] = {}
        if save_static:
            self._log("Rendering static maps...")
            figures = self.render_static(facilities, pumas)

        self._log("Rendering interactive map...")
        html_path = self.render_interactive(facilities, pumas)

        self._log(f"Done. Interactive map written to {html_path}")
        return PipelineResult(
            facilities=facilities,
            pumas=pumas,
            joins=joins,
            figures=figures,
            html_path=html_path,
            cleaning_log=list(self.cleaning_log),
        )

    def load_facilities(self) -> gpd.GeoDataFrame:
        """Fetch the facility listing and keep records with usable coordinates."""
        raw = make_source(FACILITIES, self.settings).load()
        cleaned, self.cleaning_log = clean_facilities(
            raw,
            lat_column=self.columns.latitude,
            lon_column=self.columns.longitude,
        )
        for message in self.cleaning_log:
            self._log(f"  {message}")

        return facilities_to_geodataframe(cleaned, self.columns.latitude, self.columns.longitude)

    def load_boundaries(self, boundary_source: str = "geojson") -> gpd.GeoDataFrame:
        """Load PUMA polygons with a normalized ``puma`` key column.

        Raises:
            ValueError: If boundary_source is not a known source
        """
        if boundary_source not in BOUNDARY_CONFIGS:
            raise ValueError(
                f"Unknown boundary source: {boundary_source}. "
                f"Available sources: {list(BOUNDARY_CONFIGS)}"
            )
        config = BOUNDARY_CONFIGS[boundary_source]
        pumas = make_source(config, self.settings).load()

        pumas = pumas.copy()
        pumas[PUMA_COLUMN] = normalize_key(pumas[config.id_column], PUMA_KEY_WIDTH)
        self._log(f"  {len(pumas)} boundaries loaded")
        return pumas

    def load_attributes(self) -> Dict[str, RemoteDataSource]:
        """Load the broadband and income tables.

        Their sources come from ``settings.broadband_url`` and
        ``settings.income_url``.

        Returns:
            Mapping of table name to its loaded data source
        """
        tables = {
            "broadband": make_source(
                replace(BROADBAND, source=self.settings.broadband_url or ""), self.settings
            ),
            "income": make_source(
                replace(INCOME, source=self.settings.income_url or ""), self.settings
            ),
        }
        for name, source in tables.items():
            self._log(f"  {name}: {len(source.load())} rows")
        return tables

    def join_attributes(
        self,
        pumas: gpd.GeoDataFrame,
        tables: Dict[str, RemoteDataSource]
    ) -> Tuple[gpd.GeoDataFrame, Dict[str, JoinResult]]:
        """Join each attribute table onto the PUMAs and add bucket columns.

        Returns:
            Tuple of (joined GeoDataFrame, dict of JoinResult per table)
        """
        geometry_config = replace(PUMAS_GEOJSON, id_column=PUMA_COLUMN)
        joins: Dict[str, JoinResult] = {}

        for name, source in tables.items():
            joiner = AttributeJoiner(pumas, geometry_config, key_width=PUMA_KEY_WIDTH)
            result = joiner.join(source)
            self._log(
                f"  {name}: {result.matched} matched, {result.unmatched} unmatched "
                f"({result.coverage:.0%} coverage)"
            )
            joins[name] = result
            pumas = result.data

        pumas = pumas.copy()
        pumas[BROADBAND_BUCKET] = bucket_broadband(pumas[BROADBAND.value_column]).values
        pumas[INCOME_BUCKET] = bucket_income(pumas[INCOME.value_column]).values
        return pumas, joins

    def render_static(
        self,
        facilities: gpd.GeoDataFrame,
        pumas: gpd.GeoDataFrame
    ) -> Dict[str, Path]:
        """Render and save the static figures.

        Returns:
            Mapping of figure name to saved path
        """
        viz = MapVisualizer()
        figures_dir = Path(self.settings.figures_dir)
        saved: Dict[str, Path] = {}

        def _save(name, fig):
            saved[name] = viz.save(figures_dir / f"{name}.png", fig)
            plt.close(fig)

        fig, _ = viz.scatter(
            facilities,
            lat_column=self.columns.latitude,
            lon_column=self.columns.longitude,
            title="Hospitals (raw coordinates)",
        )
        _save("facilities_scatter", fig)

        fig, _ = viz.point_map(
            facilities,
            category_column=self.columns.affiliation,
            title="Hospitals by ownership type",
            legend_label="Ownership",
        )
        _save("facilities_by_affiliation", fig)

        boundaries = MapVisualizer()
        boundaries.add_layer(
            pumas,
            style=MapStyle(missing_color="whitesmoke", edge_color="grey", edge_width=0.5),
            zorder=1,
        )
        boundaries.add_layer(
            facilities,
            style=MapStyle(missing_color="crimson", markersize=10, legend=False),
            label="Hospitals",
            zorder=2,
        )
        fig, _ = boundaries.plot(style=MapStyle(title="Hospitals and PUMA boundaries", figsize=(10, 10)))
        _save("pumas_with_facilities", fig)

        fig, _ = plot_choropleth_with_points(
            pumas,
            BROADBAND_BUCKET,
            facilities,
            title="Hospitals and broadband adoption",
            colormap=ColorScale.PURPLES,
            legend_label="Broadband adoption",
        )
        _save("broadband_choropleth", fig)

        fig, _ = plot_choropleth_with_points(
            pumas,
            INCOME_BUCKET,
            facilities,
            title="Hospitals and median household income",
            colormap=ColorScale.YELLOW_GREEN_BLUE,
            legend_label="Median household income",
        )
        _save("income_choropleth", fig)

        fig, _ = compare_maps(
            pumas,
            [
                (BROADBAND_BUCKET, "Broadband adoption", ColorScale.PURPLES),
                (INCOME_BUCKET, "Median household income", ColorScale.YELLOW_GREEN_BLUE),
            ],
            points=facilities,
            title="Broadband adoption and income by PUMA",
        )
        _save("broadband_vs_income", fig)

        for name, path in saved.items():
            self._log(f"  {name}: {path}")
        return saved

    def render_interactive(
        self,
        facilities: gpd.GeoDataFrame,
        pumas: gpd.GeoDataFrame
    ) -> Path:
        """Build the interactive map and write it to ``settings.html_path``."""
        columns = self.columns
        popup_columns = [
            c for c in (columns.name, columns.address, columns.city, columns.zip_code, columns.affiliation)
            if c in facilities.columns
        ]
        label_column = columns.name if columns.name in facilities.columns else None

        builder = InteractiveMapBuilder()
        builder.add_polygons(
            pumas,
            INCOME_BUCKET,
            name="Median household income",
            tooltip_columns=[PUMA_COLUMN, INCOME_BUCKET],
            legend_title="Median household income",
        )
        builder.add_polygons(
            pumas,
            BROADBAND_BUCKET,
            name="Broadband adoption",
            palette="Purples",
            tooltip_columns=[PUMA_COLUMN, BROADBAND_BUCKET],
            legend_title="Broadband adoption",
            show=False,
        )
        builder.add_points(
            facilities,
            name="Hospitals",
            label_column=label_column,
            popup_columns=popup_columns,
        )
        builder.add_layer_control()
        return builder.save(self.settings.html_path)
