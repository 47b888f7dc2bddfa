"""
NYC health facility maps.

This package fetches the New York State health facility listing, cleans its
coordinates, joins broadband and income tables onto NYC PUMA boundaries and
renders static and interactive maps.

Modules:
    config: Dataset presets, registry and runtime settings
    datasource: Loading JSON, GeoJSON, zipped shapefile, CSV and spreadsheet sources
    cleaning: Coordinate cleanup for the facility listing
    joins: Attribute joins by PUMA code and value bucketing
    visualizer: Static maps (scatter, point maps, choropleths)
    interactive: Interactive folium maps
    pipeline: The end-to-end walkthrough

Example:
    >>> from nycmaps import (
    ...     load_dataset,
    ...     clean_facilities,
    ...     plot_choropleth_with_points,
    ...     get_dataset_config
    ... )
    >>>
    >>> config = get_dataset_config("facilities")
    >>> hospitals = load_dataset(
    ...     source=config.source,
    ...     format="json",
    ...     id_column=config.id_column,
    ...     params=config.params
    ... )
    >>> hospitals, log = clean_facilities(
    ...     hospitals,
    ...     lat_column="facility_latitude",
    ...     lon_column="facility_longitude"
    ... )
"""

from nycmaps.config import (
    SourceFormat,
    DatasetConfig,
    DatasetRegistry,
    FacilityColumns,
    Settings,
    registry,
    get_dataset_config,
    register_dataset,
    list_datasets,
    load_settings_from_env,
    FACILITIES,
    PUMAS_GEOJSON,
    PUMAS_SHAPEFILE,
    BROADBAND,
    INCOME,
)

from nycmaps.datasource import (
    DataSource,
    RemoteDataSource,
    JSONRecordsSource,
    GeoJSONSource,
    ShapefileArchiveSource,
    CSVSource,
    ExcelSource,
    make_source,
    load_dataset,
)

from nycmaps.cleaning import (
    clean_facilities,
    facilities_to_geodataframe,
    flag_out_of_bounds,
)

from nycmaps.joins import (
    AttributeJoiner,
    JoinResult,
    join_attributes,
    normalize_key,
    bucket_values,
    bucket_income,
    bucket_broadband,
)

from nycmaps.visualizer import (
    ColorScale,
    MapStyle,
    LayerConfig,
    MapVisualizer,
    plot_choropleth_with_points,
    compare_maps,
)

from nycmaps.interactive import (
    InteractiveMapBuilder,
    build_interactive_map,
    category_colors,
)

from nycmaps.pipeline import (
    MapPipeline,
    PipelineResult,
)

__version__ = "1.0.0"

__all__ = [
    # Configuration
    "SourceFormat",
    "DatasetConfig",
    "DatasetRegistry",
    "FacilityColumns",
    "Settings",
    "registry",
    "get_dataset_config",
    "register_dataset",
    "list_datasets",
    "load_settings_from_env",
    # Pre-defined configs
    "FACILITIES",
    "PUMAS_GEOJSON",
    "PUMAS_SHAPEFILE",
    "BROADBAND",
    "INCOME",
    # Data loading
    "DataSource",
    "RemoteDataSource",
    "JSONRecordsSource",
    "GeoJSONSource",
    "ShapefileArchiveSource",
    "CSVSource",
    "ExcelSource",
    "make_source",
    "load_dataset",
    # Cleaning
    "clean_facilities",
    "facilities_to_geodataframe",
    "flag_out_of_bounds",
    # Joins
    "AttributeJoiner",
    "JoinResult",
    "join_attributes",
    "normalize_key",
    "bucket_values",
    "bucket_income",
    "bucket_broadband",
    # Visualization
    "ColorScale",
    "MapStyle",
    "LayerConfig",
    "MapVisualizer",
    "plot_choropleth_with_points",
    "compare_maps",
    "InteractiveMapBuilder",
    "build_interactive_map",
    "category_colors",
    # Pipeline
    "MapPipeline",
    "PipelineResult",
]
