"""
Data source abstraction for loading remote and local datasets.

This module provides data loading for the formats the map walkthrough
consumes: JSON record listings, GeoJSON feature collections, zipped
shapefiles, CSV tables and spreadsheets. Sources are fetched over HTTP when
the configured source is a URL and read from disk otherwise.
"""

import io
import warnings
import zipfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional, Type, Union

import fiona
import geopandas as gpd
import pandas as pd
import requests

from nycmaps.config import (
    CRS_WEB,
    DatasetConfig,
    Settings,
    SourceFormat,
)

Frame = Union[pd.DataFrame, gpd.GeoDataFrame]


def is_url(source: str) -> bool:
    """Return True if the source should be fetched over HTTP."""
    return source.startswith(("http://", "https://"))


class DataSource(ABC):
    """Abstract base class for data sources."""

    @abstractmethod
    def load(self) -> Frame:
        """Load and return the data."""
        pass

    @abstractmethod
    def get_config(self) -> DatasetConfig:
        """Return the dataset configuration."""
        pass


class RemoteDataSource(DataSource):
    """Data source backed by a URL or a local file.

    Subclasses implement ``_parse`` for the raw payload and ``_read_path``
    for a local file. Network and parse failures propagate unchanged.
    """

    def __init__(self, config: DatasetConfig, settings: Optional[Settings] = None):
        """Initialize the data source.

        Args:
            config: Dataset configuration specifying source and column mappings
            settings: Runtime settings (timeouts, download directory)
        """
        self.config = config
        self.settings = settings or Settings()
        self._data: Optional[Frame] = None

    def load(self) -> Frame:
        """Load the data, fetching it on first use.

        Returns:
            DataFrame or GeoDataFrame containing the loaded data

        Raises:
            ValueError: If no source is configured or required columns are missing
            FileNotFoundError: If a local source does not exist
            requests.HTTPError: If the server answers with an error status
        """
        if self._data is not None:
            return self._data

        source = self.config.source
        if not source:
            raise ValueError(f"No source configured for dataset '{self.config.name}'")

        if is_url(source):
            data = self._parse(self.fetch())
        else:
            path = Path(source)
            if not path.exists():
                raise FileNotFoundError(f"Data file not found: {path}")
            data = self._read_path(path)

        self._validate_columns(data)
        self._data = data
        return self._data

    def fetch(self) -> requests.Response:
        """Issue the HTTP GET for the configured source."""
        response = requests.get(
            self.config.source,
            params=self.config.params or None,
            timeout=self.settings.request_timeout,
        )
        response.raise_for_status()
        return response

    @abstractmethod
    def _parse(self, response: requests.Response) -> Frame:
        """Parse an HTTP response body."""
        pass

    @abstractmethod
    def _read_path(self, path: Path) -> Frame:
        """Read a local file."""
        pass

    def _validate_columns(self, data: Frame):
        """Validate that required columns exist in the loaded data."""
        missing = []
        if self.config.id_column not in data.columns:
            missing.append(f"id_column: {self.config.id_column}")

        if self.config.value_column and self.config.value_column not in data.columns:
            missing.append(f"value_column: {self.config.value_column}")

        if missing:
            available = list(data.columns)
            raise ValueError(
                f"Missing columns in dataset: {missing}. "
                f"Available columns: {available}"
            )

    def get_config(self) -> DatasetConfig:
        """Return the dataset configuration."""
        return self.config

    def get_columns(self) -> List[str]:
        """Get list of available columns, loading the data if needed."""
        if self._data is None:
            self.load()
        return list(self._data.columns)


class JSONRecordsSource(RemoteDataSource):
    """JSON array of flat objects, e.g. a Socrata resource endpoint.

    Fields are kept exactly as delivered, so numeric fields usually arrive
    as strings and need cleaning downstream.
    """

    def _parse(self, response: requests.Response) -> pd.DataFrame:
        return self._to_frame(response.json())

    def _read_path(self, path: Path) -> pd.DataFrame:
        return pd.read_json(path, orient="records", dtype=False, **self.config.read_options)

    @staticmethod
    def _to_frame(records) -> pd.DataFrame:
        if not isinstance(records, list):
            raise ValueError(
                f"Expected a JSON array of records, got {type(records).__name__}"
            )
        return pd.DataFrame.from_records(records)


class GeoJSONSource(RemoteDataSource):
    """GeoJSON FeatureCollection of polygon boundaries."""

    def _parse(self, response: requests.Response) -> gpd.GeoDataFrame:
        payload = response.json()
        if payload.get("type") != "FeatureCollection":
            raise ValueError(
                f"Expected a GeoJSON FeatureCollection, got {payload.get('type')!r}"
            )
        return gpd.GeoDataFrame.from_features(payload["features"], crs=self.config.crs)

    def _read_path(self, path: Path) -> gpd.GeoDataFrame:
        gdf = gpd.read_file(str(path), **self.config.read_options)
        if gdf.crs is None:
            warnings.warn(f"CRS missing in {path.name}. Assuming {self.config.crs}")
            gdf = gdf.set_crs(self.config.crs)
        return gdf


class ShapefileArchiveSource(RemoteDataSource):
    """Zipped shapefile directory (geometry plus sidecar files).

    The archive is downloaded into ``settings.download_dir``, expanded next
    to it and read with geopandas. Geometries are reprojected to EPSG:4326.
    """

    def _parse(self, response: requests.Response) -> gpd.GeoDataFrame:
        download_dir = Path(self.settings.download_dir)
        download_dir.mkdir(parents=True, exist_ok=True)

        archive = download_dir / Path(self.config.source.split("?")[0]).name
        archive.write_bytes(response.content)
        return self._read_path(archive)

    def _read_path(self, path: Path) -> gpd.GeoDataFrame:
        if path.suffix.lower() == ".zip":
            path = self.extract(path)
        return self._load_shapefile(path)

    def extract(self, archive: Path) -> Path:
        """Expand the archive and return the directory holding the .shp files.

        Raises:
            ValueError: If the archive contains no shapefile
        """
        target = archive.with_suffix("")
        with zipfile.ZipFile(archive) as zf:
            zf.extractall(target)

        shapefiles = sorted(target.rglob("*.shp"))
        if not shapefiles:
            raise ValueError(f"No shapefile found in archive: {archive.name}")
        return shapefiles[0].parent

    def list_layers(self, path: Path) -> List[str]:
        """List the shapefile layers in an expanded archive."""
        return fiona.listlayers(str(path))

    def _load_shapefile(self, path: Path) -> gpd.GeoDataFrame:
        """Load the configured (or only) layer of a shapefile directory.

        Raises:
            ValueError: If the layer is ambiguous or not present
        """
        available_layers = self.list_layers(path)

        layer = self.config.layer
        if layer is None:
            if len(available_layers) == 1:
                layer = available_layers[0]
            else:
                raise ValueError(
                    f"Shapefile archive has multiple layers: {available_layers}. "
                    "Please specify a layer in the config."
                )

        if layer not in available_layers:
            raise ValueError(
                f"Layer '{layer}' not found. "
                f"Available layers: {available_layers}"
            )

        gdf = gpd.read_file(str(path), layer=layer, **self.config.read_options)
        if gdf.crs is None:
            warnings.warn(f"CRS missing in layer {layer}. Assuming {self.config.crs}")
            gdf = gdf.set_crs(self.config.crs)
        if gdf.crs != CRS_WEB:
            gdf = gdf.to_crs(CRS_WEB)
        return gdf


class CSVSource(RemoteDataSource):
    """Comma-separated table."""

    def _parse(self, response: requests.Response) -> pd.DataFrame:
        return pd.read_csv(io.StringIO(response.text), **self.config.read_options)

    def _read_path(self, path: Path) -> pd.DataFrame:
        return pd.read_csv(path, **self.config.read_options)


class ExcelSource(RemoteDataSource):
    """Spreadsheet (xlsx) table."""

    def _parse(self, response: requests.Response) -> pd.DataFrame:
        return pd.read_excel(io.BytesIO(response.content), **self.config.read_options)

    def _read_path(self, path: Path) -> pd.DataFrame:
        return pd.read_excel(path, **self.config.read_options)


SOURCE_TYPES: Dict[SourceFormat, Type[RemoteDataSource]] = {
    SourceFormat.JSON: JSONRecordsSource,
    SourceFormat.GEOJSON: GeoJSONSource,
    SourceFormat.SHAPEFILE_ZIP: ShapefileArchiveSource,
    SourceFormat.CSV: CSVSource,
    SourceFormat.EXCEL: ExcelSource,
}


def make_source(config: DatasetConfig, settings: Optional[Settings] = None) -> RemoteDataSource:
    """Create the data source matching the configured format."""
    return SOURCE_TYPES[config.format](config, settings)


def load_dataset(
    source: str,
    format: str,
    id_column: str,
    value_column: Optional[str] = None,
    layer: Optional[str] = None,
    name: Optional[str] = None,
    params: Optional[dict] = None,
    settings: Optional[Settings] = None
) -> Frame:
    """Convenience function to quickly load a dataset.

    Args:
        source: URL or path of the data
        format: One of "json", "geojson", "shapefile_zip", "csv", "excel"
        id_column: Column containing identifiers
        value_column: Optional column containing values to visualize
        layer: Layer name for shapefile archives with several layers
        name: Human-readable name for the dataset
        params: Query parameters for the HTTP request
        settings: Runtime settings

    Returns:
        Loaded DataFrame or GeoDataFrame

    Example:
        >>> pumas = load_dataset(
        ...     source="https://data.cityofnewyork.us/api/geospatial/cwiz-gcty?method=export&format=GeoJSON",
        ...     format="geojson",
        ...     id_column="puma",
        ... )
    """
    config = DatasetConfig(
        source=source,
        format=SourceFormat(format),
        id_column=id_column,
        value_column=value_column,
        layer=layer,
        name=name,
        params=params or {},
    )
    return make_source(config, settings).load()
