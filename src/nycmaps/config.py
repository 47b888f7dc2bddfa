"""
Configuration presets and runtime settings.

This module provides pre-configured dataset definitions for the open-data
endpoints used by the map walkthrough, a registry for looking them up by
name, and environment-driven runtime settings.
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Tuple


class SourceFormat(Enum):
    """Formats understood by the data sources."""
    JSON = "json"
    GEOJSON = "geojson"
    SHAPEFILE_ZIP = "shapefile_zip"
    CSV = "csv"
    EXCEL = "excel"


@dataclass
class DatasetConfig:
    """Configuration for a dataset.

    Attributes:
        source: URL or local path of the data
        format: How the payload is parsed
        id_column: Column name containing unique (or join) identifiers
        value_column: Column name containing the values to visualize
        geometry_column: Column name for geometry (default: 'geometry')
        layer: Layer name for multi-layer formats like shapefile archives
        name: Human-readable name for the dataset
        params: Query parameters sent with the HTTP request
        read_options: Extra keyword arguments for the pandas/geopandas reader
        crs: CRS assigned to geometries that arrive without one
    """
    source: str
    format: SourceFormat
    id_column: str
    value_column: Optional[str] = None
    geometry_column: str = "geometry"
    layer: Optional[str] = None
    name: Optional[str] = None
    params: Dict[str, Any] = field(default_factory=dict)
    read_options: Dict[str, Any] = field(default_factory=dict)
    crs: str = "EPSG:4326"

    def __post_init__(self):
        if isinstance(self.format, str):
            self.format = SourceFormat(self.format)
        if self.name is None:
            self.name = Path(self.source.split("?")[0]).stem or self.id_column


# Geospatial constants
CRS_WEB = "EPSG:4326"
NYC_CENTER: Tuple[float, float] = (40.7128, -74.0060)

# Plausible box for the facility listing. Tuned to the bad records seen in
# the listing (zeros, and a handful geocoded far south of the state).
LATITUDE_BOUNDS: Tuple[float, float] = (39.0, 45.0)
LONGITUDE_BOUNDS: Tuple[float, float] = (-80.0, -70.0)

# PUMA codes are five characters, zero padded
PUMA_KEY_WIDTH = 5

# Buckets are closed on the left: a value equal to a breakpoint starts the
# next bucket.
INCOME_BREAKS = [0, 25_000, 50_000, 75_000, 100_000, 150_000, float("inf")]
INCOME_LABELS = ["<$25K", "$25-50K", "$50-75K", "$75-100K", "$100-150K", "$150K+"]

BROADBAND_BREAKS = [0, 70, 80, 90, float("inf")]
BROADBAND_LABELS = ["<70%", "70-80%", "80-90%", "90%+"]


# Pre-defined dataset configurations
FACILITIES = DatasetConfig(
    source="https://health.data.ny.gov/resource/vn5v-hh5r.json",
    format=SourceFormat.JSON,
    id_column="fac_id",
    value_column="ownership_type",
    params={"fac_desc_short": "HOSP", "$limit": 5000},
    name="NYS Health Facilities (hospitals)"
)

PUMAS_GEOJSON = DatasetConfig(
    source="https://data.cityofnewyork.us/api/geospatial/cwiz-gcty?method=export&format=GeoJSON",
    format=SourceFormat.GEOJSON,
    id_column="puma",
    name="NYC PUMAs (GeoJSON)"
)

# TIGER/Line PUMAs for New York State
PUMAS_SHAPEFILE = DatasetConfig(
    source="https://www2.census.gov/geo/tiger/TIGER2019/PUMA/tl_2019_36_puma10.zip",
    format=SourceFormat.SHAPEFILE_ZIP,
    id_column="PUMACE10",
    name="NY PUMAs (TIGER shapefile)"
)

# The attribute tables have no canonical public location; their sources
# come from Settings (see NYCMAPS_BROADBAND_URL / NYCMAPS_INCOME_URL).
BROADBAND = DatasetConfig(
    source="",
    format=SourceFormat.CSV,
    id_column="puma",
    value_column="broadband_pct",
    name="Broadband adoption by PUMA"
)

INCOME = DatasetConfig(
    source="",
    format=SourceFormat.EXCEL,
    id_column="puma",
    value_column="median_household_income",
    name="Median household income by PUMA"
)


@dataclass
class FacilityColumns:
    """Column names of the facility listing."""

    name: str = "facility_name"
    address: str = "facility_address_1"
    city: str = "facility_city"
    zip_code: str = "facility_zip_code"
    affiliation: str = "ownership_type"
    latitude: str = "facility_latitude"
    longitude: str = "facility_longitude"


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    """Runtime settings, read from the environment."""

    output_dir: Path = field(
        default_factory=lambda: Path(os.getenv("NYCMAPS_OUTPUT_DIR", "./output"))
    )
    download_dir: Path = field(
        default_factory=lambda: Path(os.getenv("NYCMAPS_DOWNLOAD_DIR", "./data/downloads"))
    )
    request_timeout: float = field(
        default_factory=lambda: float(os.getenv("NYCMAPS_REQUEST_TIMEOUT", "120"))
    )
    broadband_url: Optional[str] = field(
        default_factory=lambda: os.getenv("NYCMAPS_BROADBAND_URL") or None
    )
    income_url: Optional[str] = field(
        default_factory=lambda: os.getenv("NYCMAPS_INCOME_URL") or None
    )
    verbose: bool = field(default_factory=lambda: _env_bool("NYCMAPS_VERBOSE", "true"))
    columns: FacilityColumns = field(default_factory=FacilityColumns)

    @property
    def html_path(self) -> Path:
        """Where the interactive map is exported."""
        return self.output_dir / "facilities_map.html"

    @property
    def figures_dir(self) -> Path:
        """Where static figures are saved."""
        return self.output_dir / "figures"


def load_settings_from_env() -> Settings:
    """Load settings from environment variables."""
    return Settings()


class DatasetRegistry:
    """Registry for managing dataset configurations.

    This class provides a central location for storing and retrieving
    dataset configurations, making it easy to switch between datasets.
    """

    def __init__(self):
        """Initialize with pre-defined datasets."""
        self._datasets: Dict[str, DatasetConfig] = {}
        self._load_defaults()

    def _load_defaults(self):
        """Load default dataset configurations."""
        self.register("facilities", FACILITIES)
        self.register("pumas", PUMAS_GEOJSON)
        self.register("pumas_geojson", PUMAS_GEOJSON)  # Alias
        self.register("pumas_shapefile", PUMAS_SHAPEFILE)
        self.register("broadband", BROADBAND)
        self.register("income", INCOME)

    def register(self, name: str, config: DatasetConfig):
        """Register a dataset configuration.

        Args:
            name: Unique identifier for the dataset
            config: Dataset configuration
        """
        self._datasets[name.lower()] = config

    def get(self, name: str) -> DatasetConfig:
        """Retrieve a dataset configuration.

        Args:
            name: Dataset identifier

        Returns:
            Dataset configuration

        Raises:
            KeyError: If dataset not found
        """
        name = name.lower()
        if name not in self._datasets:
            available = list(self._datasets.keys())
            raise KeyError(
                f"Dataset '{name}' not found. Available datasets: {available}"
            )
        return self._datasets[name]

    def list_datasets(self) -> Dict[str, str]:
        """List all registered datasets.

        Returns:
            Dictionary mapping dataset names to their descriptions
        """
        return {
            name: config.name or config.source
            for name, config in self._datasets.items()
        }

    def create_config(
        self,
        source: str,
        format: str,
        id_column: str,
        value_column: Optional[str] = None,
        layer: Optional[str] = None,
        name: Optional[str] = None,
        register_as: Optional[str] = None
    ) -> DatasetConfig:
        """Create and optionally register a new dataset configuration.

        Args:
            source: URL or path of the data
            format: One of the SourceFormat values
            id_column: Column containing identifiers
            value_column: Column containing values to visualize
            layer: Layer name for multi-layer formats
            name: Human-readable dataset name
            register_as: If provided, register the config with this name

        Returns:
            New DatasetConfig instance
        """
        config = DatasetConfig(
            source=source,
            format=SourceFormat(format),
            id_column=id_column,
            value_column=value_column,
            layer=layer,
            name=name
        )

        if register_as:
            self.register(register_as, config)

        return config


# Global registry instance
registry = DatasetRegistry()


def get_dataset_config(name: str) -> DatasetConfig:
    """Get a dataset configuration from the global registry.

    Example:
        >>> config = get_dataset_config("income")
        >>> print(config.value_column)
        median_household_income
    """
    return registry.get(name)


def register_dataset(name: str, config: DatasetConfig):
    """Register a dataset in the global registry."""
    registry.register(name, config)


def list_datasets() -> Dict[str, str]:
    """List all datasets in the global registry."""
    return registry.list_datasets()
