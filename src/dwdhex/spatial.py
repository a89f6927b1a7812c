"""
Spatial indexing of stations onto the H3 hexagonal grid.
"""

import logging
import math
from typing import Dict, Iterable, List, Sequence, Tuple

import h3
import pandas as pd
from shapely.geometry import Polygon

from .aggregate import aggregates_to_frame
from .base import GeometryResolver
from .config import STATISTICS
from .exceptions import SpatialIndexError
from .models import DailyAggregate, SpatialCell, StationRecord

logger = logging.getLogger(__name__)

Coordinate = Tuple[float, float]


class H3GeometryResolver(GeometryResolver):
    """
    Resolve coordinates to H3 cells at a single, fixed resolution.

    Args:
        resolution: H3 resolution (0-15). Resolution 4 cells are roughly
            1,770 km^2, which suits a country-wide station network.
    """

    def __init__(self, resolution: int = 4):
        if not 0 <= resolution <= 15:
            raise SpatialIndexError(f"H3 resolution must be between 0 and 15, got {resolution}")
        self.resolution = resolution
        self._geometry_cache: Dict[str, Polygon] = {}

    def cell_for(self, latitude: float, longitude: float) -> str:
        if not (math.isfinite(latitude) and math.isfinite(longitude)):
            raise SpatialIndexError(f"Non-finite coordinate ({latitude}, {longitude})")
        if not (-90 <= latitude <= 90 and -180 <= longitude <= 180):
            raise SpatialIndexError(f"Coordinate out of range ({latitude}, {longitude})")
        return h3.latlng_to_cell(latitude, longitude, self.resolution)

    def geometry(self, cell_id: str) -> Polygon:
        """Polygon of a cell in lon/lat (EPSG:4326) order."""
        if cell_id in self._geometry_cache:
            return self._geometry_cache[cell_id]

        if not h3.is_valid_cell(cell_id):
            raise SpatialIndexError(f"Invalid H3 cell: {cell_id!r}")
        cell_resolution = h3.get_resolution(cell_id)
        if cell_resolution != self.resolution:
            raise SpatialIndexError(
                f"Cell {cell_id} has resolution {cell_resolution}, "
                f"this run uses resolution {self.resolution}"
            )

        boundary = h3.cell_to_boundary(cell_id)
        polygon = Polygon([(lng, lat) for lat, lng in boundary])
        self._geometry_cache[cell_id] = polygon
        return polygon


def index_stations(
    stations: Iterable[StationRecord], resolver: GeometryResolver
) -> Dict[Coordinate, str]:
    """
    Map each unique station coordinate to its grid cell.

    Coordinates are deduplicated first, so co-located stations are indexed once
    and always share a cell. Stations whose coordinate cannot be indexed are
    left out with a warning; the rest of the network is unaffected.

    Returns:
        Dictionary of (latitude, longitude) -> cell id
    """
    unique = sorted({station.coordinate for station in stations})

    index: Dict[Coordinate, str] = {}
    for latitude, longitude in unique:
        try:
            index[(latitude, longitude)] = resolver.cell_for(latitude, longitude)
        except SpatialIndexError as e:
            logger.warning(f"Excluding stations at ({latitude}, {longitude}): {e}")

    logger.info(
        f"Indexed {len(unique)} unique coordinates into "
        f"{len(set(index.values()))} cells at resolution {resolver.resolution}"
    )
    return index


def build_cells(
    stations: Iterable[StationRecord],
    coordinate_index: Dict[Coordinate, str],
    resolver: GeometryResolver,
) -> Dict[str, SpatialCell]:
    """Group indexed stations by cell and attach each cell's polygon."""
    members: Dict[str, List[int]] = {}
    for station in stations:
        cell_id = coordinate_index.get(station.coordinate)
        if cell_id is None:
            continue
        members.setdefault(cell_id, []).append(station.station_id)

    return {
        cell_id: SpatialCell(
            cell_id=cell_id,
            geometry=resolver.geometry(cell_id),
            station_ids=frozenset(station_ids),
        )
        for cell_id, station_ids in sorted(members.items())
    }


def join_cells(
    aggregates: Sequence[DailyAggregate],
    stations: Iterable[StationRecord],
    coordinate_index: Dict[Coordinate, str],
    statistic: str = "primary_mean",
) -> pd.DataFrame:
    """
    Attach cell ids to daily aggregates and merge stations sharing a cell.

    Same-date values of stations in one cell are averaged (absent values are
    ignored), giving exactly one row per (cell_id, date).

    Args:
        aggregates: Daily aggregates of any number of stations
        stations: Station records used to locate each aggregate
        coordinate_index: Output of index_stations
        statistic: Aggregate field to map, e.g. 'primary_mean'

    Returns:
        DataFrame with columns cell_id, date, value, station_count
    """
    if statistic not in STATISTICS:
        raise ValueError(
            f"Unknown statistic '{statistic}'. Choose from: {', '.join(STATISTICS)}"
        )

    station_cells = {
        station.station_id: coordinate_index[station.coordinate]
        for station in stations
        if station.coordinate in coordinate_index
    }

    df = aggregates_to_frame(aggregates)
    df["cell_id"] = df["station_id"].map(station_cells)
    unplaced = df["cell_id"].isna()
    if unplaced.any():
        logger.debug(
            f"Dropping {int(unplaced.sum())} aggregates of stations without a cell"
        )
    df = df[~unplaced]

    if df.empty:
        return pd.DataFrame(columns=["cell_id", "date", "value", "station_count"])

    merged = (
        df.groupby(["cell_id", "date"], sort=True)
        .agg(value=(statistic, "mean"), station_count=("station_id", "nunique"))
        .reset_index()
    )
    return merged
