"""
Coordinate cleanup for the facility listing.

The listing delivers latitude and longitude as strings, and some facilities
were never geocoded (both coordinates zero). Cleaning discards such records;
it never tries to correct them.
"""

from typing import List, Tuple

import geopandas as gpd
import pandas as pd

from nycmaps.config import CRS_WEB, LATITUDE_BOUNDS, LONGITUDE_BOUNDS


def _require_columns(df: pd.DataFrame, *columns: str):
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise ValueError(
            f"Missing coordinate columns: {missing}. Available columns: {list(df.columns)}"
        )


def coerce_coordinates(
    df: pd.DataFrame,
    lat_column: str = "latitude",
    lon_column: str = "longitude"
) -> pd.DataFrame:
    """Convert textual coordinate fields to numbers.

    Values that cannot be parsed become NaN. Returns a copy.
    """
    _require_columns(df, lat_column, lon_column)
    out = df.copy()
    out[lat_column] = pd.to_numeric(out[lat_column], errors="coerce")
    out[lon_column] = pd.to_numeric(out[lon_column], errors="coerce")
    return out


def drop_zero_coordinates(
    df: pd.DataFrame,
    lat_column: str = "latitude",
    lon_column: str = "longitude"
) -> pd.DataFrame:
    """Drop records whose latitude or longitude is zero or missing."""
    keep = (
        df[lat_column].notna()
        & df[lon_column].notna()
        & (df[lat_column] != 0)
        & (df[lon_column] != 0)
    )
    return df[keep]


def flag_out_of_bounds(
    df: pd.DataFrame,
    lat_column: str = "latitude",
    lon_column: str = "longitude",
    lat_bounds: Tuple[float, float] = LATITUDE_BOUNDS,
    lon_bounds: Tuple[float, float] = LONGITUDE_BOUNDS
) -> pd.Series:
    """Mark records that fall outside the plausible box.

    Returns:
        Boolean Series, True for suspicious records
    """
    lat = df[lat_column]
    lon = df[lon_column]
    inside = lat.between(*lat_bounds) & lon.between(*lon_bounds)
    return ~inside


def summarize_coordinates(
    df: pd.DataFrame,
    lat_column: str = "latitude",
    lon_column: str = "longitude"
) -> pd.DataFrame:
    """Summary statistics of the coordinate columns, for spotting bad records."""
    _require_columns(df, lat_column, lon_column)
    numeric = coerce_coordinates(df[[lat_column, lon_column]], lat_column, lon_column)
    return numeric.describe()


def clean_facilities(
    df: pd.DataFrame,
    lat_column: str = "latitude",
    lon_column: str = "longitude",
    enforce_bounds: bool = True
) -> Tuple[pd.DataFrame, List[str]]:
    """
    Clean the facility listing coordinates.

    Steps:
        1. Convert coordinates to numbers
        2. Drop records with a zero (or unparseable) coordinate
        3. Drop records outside LATITUDE_BOUNDS x LONGITUDE_BOUNDS

    Args:
        df: Raw facility DataFrame
        lat_column: Name of the latitude column
        lon_column: Name of the longitude column
        enforce_bounds: Apply step 3

    Returns:
        Cleaned DataFrame and log messages
    """
    log = []
    before = len(df)

    df_clean = coerce_coordinates(df, lat_column, lon_column)
    log.append(f"Coordinates converted to numeric ({lat_column}, {lon_column})")

    df_clean = drop_zero_coordinates(df_clean, lat_column, lon_column)
    removed = before - len(df_clean)
    if removed > 0:
        log.append(f"Removed {removed} records with zero or missing coordinates")

    if enforce_bounds and len(df_clean) > 0:
        flagged = flag_out_of_bounds(df_clean, lat_column, lon_column)
        if flagged.any():
            log.append(
                f"Removed {int(flagged.sum())} records outside "
                f"lat {LATITUDE_BOUNDS} / lon {LONGITUDE_BOUNDS}"
            )
            df_clean = df_clean[~flagged]

    log.append(f"Facility cleaning complete: {before} -> {len(df_clean)} records")
    return df_clean, log


def facilities_to_geodataframe(
    df: pd.DataFrame,
    lat_column: str = "latitude",
    lon_column: str = "longitude"
) -> gpd.GeoDataFrame:
    """Build Point geometries (EPSG:4326) from cleaned coordinates."""
    _require_columns(df, lat_column, lon_column)
    return gpd.GeoDataFrame(
        df.copy(),
        geometry=gpd.points_from_xy(df[lon_column], df[lat_column]),
        crs=CRS_WEB
    )
