"""
Abstract collaborators of the pipeline.

The pipeline stages only depend on these interfaces, so any of the concrete
implementations (HTTP client, SQLite cache, H3 resolver, matplotlib renderer,
GIF encoder) can be swapped for another back end or an in-memory fake.
"""

from abc import ABC, abstractmethod
from datetime import date
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .models import AnimationArtifact, Frame, ObservationRecord


class Fetcher(ABC):
    """Remote source of station metadata and observation archives."""

    @abstractmethod
    async def list_archives(self) -> List[str]:
        """Return the file names of all downloadable station archives."""

    @abstractmethod
    async def fetch_archive(self, name: str) -> bytes:
        """Download one archive and return its raw bytes."""

    @abstractmethod
    async def fetch_station_metadata(self) -> str:
        """Download the station description file as text."""

    async def close(self) -> None:
        """Release network resources."""


class Cache(ABC):
    """Durable store of raw observations addressed by table name."""

    @abstractmethod
    def has(self, table: str) -> bool:
        """True if the table was fully written by an earlier ingestion."""

    @abstractmethod
    def write(
        self, table: str, records: Sequence[ObservationRecord], overwrite: bool = True
    ) -> int:
        """Store records, returning the number of rows in the table."""

    @abstractmethod
    def read(
        self, table: str, date_floor: Optional[date] = None
    ) -> List[ObservationRecord]:
        """Read records on or after date_floor."""


class GeometryResolver(ABC):
    """Maps coordinates to grid cells at one fixed resolution."""

    resolution: int

    @abstractmethod
    def cell_for(self, latitude: float, longitude: float) -> str:
        """Return the cell covering a coordinate."""

    @abstractmethod
    def geometry(self, cell_id: str):
        """Return the polygon of a cell."""


class Renderer(ABC):
    """Draws the map for a single date."""

    @abstractmethod
    def render(self, day: date, values: Dict[str, Optional[float]]) -> Frame:
        """Render one frame from per-cell values."""


class Encoder(ABC):
    """Assembles ordered frames into one animation file."""

    @abstractmethod
    def encode(
        self,
        frames: Sequence[Frame],
        output_path: Path,
        width: int,
        height: int,
        delay: float,
        loop: bool = True,
    ) -> AnimationArtifact:
        """Encode frames that are strictly ascending by date."""
