"""
Hexagon-grid animations of DWD station observations.

Ingest sub-daily station archives from the DWD open data server, aggregate and
smooth them on an H3 grid, and render the result as a looping GIF.
"""

try:
    from importlib import metadata

    __version__ = metadata.version(__name__)
except Exception:
    __version__ = "unknown"

from .aggregate import aggregate_daily, aggregates_to_frame
from .base import Cache, Encoder, Fetcher, GeometryResolver, Renderer
from .cache import ObservationCache
from .client import DWDClient
from .config import PRODUCTS, PipelineConfig, Product
from .encode import GifEncoder, check_frame_order, find_date_gaps
from .exceptions import (
    ArchiveError,
    CacheError,
    DWDConnectionError,
    DWDHexError,
    DWDQueryError,
    EncodingError,
    NoDataError,
    SpatialIndexError,
)
from .models import (
    AnimationArtifact,
    ColorDomain,
    DailyAggregate,
    Frame,
    IngestionReport,
    ObservationRecord,
    SpatialCell,
    StationRecord,
)
from .pipeline import (
    PreparedRun,
    ingest_observations,
    load_station_registry,
    prepare_run,
    run_pipeline,
)
from .render import FrameRenderer, compute_color_domain, render_frames
from .smoothing import pad_series, smooth_series
from .spatial import H3GeometryResolver, build_cells, index_stations, join_cells
from .stations import filter_stations, load_stations, parse_station_metadata

__all__ = [
    # Configuration
    "PipelineConfig",
    "Product",
    "PRODUCTS",
    # Collaborator interfaces
    "Fetcher",
    "Cache",
    "GeometryResolver",
    "Renderer",
    "Encoder",
    # Concrete collaborators
    "DWDClient",
    "ObservationCache",
    "H3GeometryResolver",
    "FrameRenderer",
    "GifEncoder",
    # Data models
    "StationRecord",
    "ObservationRecord",
    "DailyAggregate",
    "SpatialCell",
    "ColorDomain",
    "Frame",
    "AnimationArtifact",
    "IngestionReport",
    "PreparedRun",
    # Stages
    "parse_station_metadata",
    "load_stations",
    "filter_stations",
    "aggregate_daily",
    "aggregates_to_frame",
    "index_stations",
    "build_cells",
    "join_cells",
    "pad_series",
    "smooth_series",
    "compute_color_domain",
    "render_frames",
    "check_frame_order",
    "find_date_gaps",
    # Pipeline (async, each with a .sync twin)
    "ingest_observations",
    "load_station_registry",
    "prepare_run",
    "run_pipeline",
    # Exceptions
    "DWDHexError",
    "DWDConnectionError",
    "DWDQueryError",
    "ArchiveError",
    "CacheError",
    "SpatialIndexError",
    "NoDataError",
    "EncodingError",
]
