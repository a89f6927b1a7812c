"""
Data models for DWD station observations and pipeline outputs.
"""

import math
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Any, FrozenSet, List, Optional, Tuple


def _absent(value: Optional[float]) -> bool:
    return value is None or math.isnan(value)


@dataclass(frozen=True)
class StationRecord:
    """A DWD station from the station description file."""

    station_id: int
    name: str
    region: str
    valid_from: date
    valid_to: date
    elevation: Optional[float]
    latitude: float
    longitude: float

    @property
    def coordinate(self) -> Tuple[float, float]:
        return (self.latitude, self.longitude)

    def covers(self, start: date, end: date) -> bool:
        """True if the station reported over the whole period [start, end]."""
        return self.valid_from <= start and self.valid_to >= end


@dataclass(frozen=True)
class ObservationRecord:
    """A single sub-daily observation; missing values are None."""

    station_id: int
    timestamp: datetime
    primary: Optional[float]
    secondary: Optional[float] = None

    @property
    def date(self) -> date:
        return self.timestamp.date()

    @property
    def is_empty(self) -> bool:
        """True if neither quantity has a present value."""
        return _absent(self.primary) and _absent(self.secondary)


@dataclass(frozen=True)
class DailyAggregate:
    """Daily extrema and means for one station."""

    station_id: int
    date: date
    count: int
    primary_min: Optional[float]
    primary_max: Optional[float]
    primary_mean: Optional[float]
    secondary_min: Optional[float]
    secondary_max: Optional[float]
    secondary_mean: Optional[float]


@dataclass(frozen=True)
class SpatialCell:
    """A hexagonal grid cell and the stations inside it."""

    cell_id: str
    geometry: Any  # shapely Polygon
    station_ids: FrozenSet[int]


@dataclass(frozen=True)
class ColorDomain:
    """Fixed color scale limits shared by every frame of one animation."""

    vmin: float
    vmax: float

    def as_tuple(self) -> Tuple[float, float]:
        return (self.vmin, self.vmax)


@dataclass(frozen=True)
class Frame:
    """A rendered map image for one date."""

    date: date
    path: Path


@dataclass(frozen=True)
class AnimationArtifact:
    """The encoded animation and the parameters it was written with."""

    path: Path
    dates: Tuple[date, ...]
    width: int
    height: int
    delay: float
    loop: bool

    @property
    def frame_count(self) -> int:
        return len(self.dates)


@dataclass
class SkippedFile:
    """An archive that could not be ingested."""

    name: str
    reason: str


@dataclass
class IngestionReport:
    """Summary of one ingestion run."""

    table: str
    files_seen: int = 0
    records_written: int = 0
    from_cache: bool = False
    skipped: List[SkippedFile] = field(default_factory=list)

    def skip(self, name: str, reason: str) -> None:
        self.skipped.append(SkippedFile(name=name, reason=reason))

    def __str__(self) -> str:
        if self.from_cache:
            return f"IngestionReport({self.table}: cached)"
        return (
            f"IngestionReport({self.table}: {self.files_seen} files, "
            f"{self.records_written} records, {len(self.skipped)} skipped)"
        )
