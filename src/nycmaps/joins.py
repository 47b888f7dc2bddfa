"""
Attribute joins and bucketing.

This module joins tabular attribute data (broadband adoption, income) onto
area geometries by a shared identifier, and turns numeric measures into
ordered, labeled ranges for categorical choropleths.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Union

import geopandas as gpd
import pandas as pd

from nycmaps.config import (
    BROADBAND_BREAKS,
    BROADBAND_LABELS,
    INCOME_BREAKS,
    INCOME_LABELS,
    DatasetConfig,
)
from nycmaps.datasource import DataSource

_KEY = "_join_key"


def normalize_key(series: pd.Series, width: Optional[int] = None) -> pd.Series:
    """Turn an identifier column into comparable strings.

    Numbers and numeric strings map to the same text ("3701", 3701 and
    3701.0 all become "3701"); ``width`` zero pads ("03701"). Missing
    values stay missing.
    """
    keys = series.astype("string").str.strip()
    keys = keys.str.replace(r"\.0$", "", regex=True)
    if width:
        keys = keys.str.zfill(width)
    return keys


@dataclass
class JoinResult:
    """Result of an attribute join.

    Attributes:
        data: GeoDataFrame with the attribute columns added
        id_column: Identifier column of the geometries
        value_columns: Attribute columns brought in by the join
        matched: Number of geometries that found an attribute row
        unmatched: Number of geometries left with missing attributes
    """
    data: gpd.GeoDataFrame
    id_column: str
    value_columns: List[str] = field(default_factory=list)
    matched: int = 0
    unmatched: int = 0

    @property
    def coverage(self) -> float:
        """Share of geometries that received attributes."""
        total = self.matched + self.unmatched
        return self.matched / total if total else 0.0


class AttributeJoiner:
    """Left-joins attribute tables onto area geometries.

    Keys are compared as normalized strings (see ``normalize_key``). Rows
    without a match keep missing values; duplicate attribute keys are not
    collapsed, so they fan out exactly as ``DataFrame.merge`` does.
    """

    def __init__(
        self,
        geometries: Union[gpd.GeoDataFrame, DataSource],
        geometry_config: Optional[DatasetConfig] = None,
        key_width: Optional[int] = None
    ):
        """Initialize the joiner.

        Args:
            geometries: GeoDataFrame or DataSource with the area geometries
            geometry_config: Configuration for the geometries (required if
                             geometries is a GeoDataFrame)
            key_width: Zero-pad keys on both sides to this width
        """
        if isinstance(geometries, DataSource):
            self.geometries = geometries.load()
            self.geometry_config = geometries.get_config()
        else:
            if geometry_config is None:
                raise ValueError(
                    "geometry_config is required when passing a GeoDataFrame"
                )
            self.geometries = geometries
            self.geometry_config = geometry_config
        self.key_width = key_width

    def join(
        self,
        table: Union[pd.DataFrame, DataSource],
        table_config: Optional[DatasetConfig] = None,
        columns: Optional[Sequence[str]] = None,
        suffix: str = "_attr"
    ) -> JoinResult:
        """Join an attribute table onto the geometries.

        Args:
            table: DataFrame or DataSource with attribute rows
            table_config: Configuration for the table (required if table is
                          a DataFrame)
            columns: Attribute columns to bring in; defaults to the config's
                     value_column, or every non-key column if that is unset
            suffix: Suffix for attribute columns whose name already exists

        Returns:
            JoinResult with the joined GeoDataFrame
        """
        if isinstance(table, DataSource):
            attrs = table.load()
            config = table.get_config()
        else:
            if table_config is None:
                raise ValueError(
                    "table_config is required when passing a DataFrame"
                )
            attrs = table
            config = table_config

        if config.id_column not in attrs.columns:
            raise ValueError(
                f"Join column '{config.id_column}' not in attribute table. "
                f"Available columns: {list(attrs.columns)}"
            )

        value_columns = self._select_columns(attrs, config, columns)

        right = attrs[value_columns].copy()
        right[_KEY] = normalize_key(attrs[config.id_column], self.key_width)

        left = self.geometries.copy()
        left[_KEY] = normalize_key(left[self.geometry_config.id_column], self.key_width)

        merged = left.merge(right, on=_KEY, how="left", suffixes=("", suffix))

        matched_mask = left[_KEY].isin(right[_KEY].dropna())
        merged = merged.drop(columns=_KEY)

        joined_columns = [
            c if c not in self.geometries.columns else f"{c}{suffix}"
            for c in value_columns
        ]

        return JoinResult(
            data=merged,
            id_column=self.geometry_config.id_column,
            value_columns=joined_columns,
            matched=int(matched_mask.sum()),
            unmatched=int((~matched_mask).sum()),
        )

    @staticmethod
    def _select_columns(
        attrs: pd.DataFrame,
        config: DatasetConfig,
        columns: Optional[Sequence[str]]
    ) -> List[str]:
        if columns is None:
            if config.value_column:
                columns = [config.value_column]
            else:
                columns = [c for c in attrs.columns if c != config.id_column]

        missing = [c for c in columns if c not in attrs.columns]
        if missing:
            raise ValueError(
                f"Missing attribute columns: {missing}. "
                f"Available columns: {list(attrs.columns)}"
            )
        return [c for c in columns if c != config.id_column]


def join_attributes(
    geometries: gpd.GeoDataFrame,
    geometry_id_column: str,
    table: pd.DataFrame,
    table_id_column: str,
    columns: Optional[Sequence[str]] = None,
    key_width: Optional[int] = None
) -> JoinResult:
    """Convenience function for joining an attribute table by identifier.

    Example:
        >>> result = join_attributes(
        ...     geometries=pumas,
        ...     geometry_id_column="puma",
        ...     table=income,
        ...     table_id_column="puma",
        ...     columns=["median_household_income"],
        ...     key_width=5,
        ... )
    """
    geometry_config = DatasetConfig(
        source="",
        format="geojson",
        id_column=geometry_id_column
    )
    table_config = DatasetConfig(
        source="",
        format="csv",
        id_column=table_id_column
    )

    joiner = AttributeJoiner(geometries, geometry_config, key_width=key_width)
    return joiner.join(table, table_config, columns=columns)


def bucket_values(
    values: Union[pd.Series, Sequence[float]],
    breaks: Sequence[float],
    labels: Sequence[str],
    right: bool = False
) -> pd.Series:
    """Bucket numeric values into ordered, labeled ranges.

    Intervals are closed on the left by default, so a value equal to a
    breakpoint lands in the bucket that starts at it. Missing, unparseable
    and out-of-range values come back missing.

    Args:
        values: Numeric (or numeric-string) values
        breaks: Increasing bucket edges, one more than labels
        labels: Bucket labels in increasing order
        right: Close intervals on the right instead

    Returns:
        Series with an ordered categorical dtype
    """
    if len(labels) != len(breaks) - 1:
        raise ValueError(
            f"Expected {len(breaks) - 1} labels for {len(breaks)} breaks, got {len(labels)}"
        )
    numeric = pd.to_numeric(pd.Series(values), errors="coerce")
    return pd.cut(numeric, bins=list(breaks), labels=list(labels), right=right, ordered=True)


def bucket_income(values: Union[pd.Series, Sequence[float]]) -> pd.Series:
    """Bucket median household income at fixed dollar breakpoints."""
    return bucket_values(values, INCOME_BREAKS, INCOME_LABELS)


def bucket_broadband(values: Union[pd.Series, Sequence[float]]) -> pd.Series:
    """Bucket broadband adoption percentages."""
    return bucket_values(values, BROADBAND_BREAKS, BROADBAND_LABELS)
