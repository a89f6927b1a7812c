"""
End-to-end pipeline: ingestion, transient per-run stages, rendering, encoding.

    Registry ──┐
               ├─> Aggregator ─> Spatial join ─> Smoother ─> Renderer ─> Encoder
    Cache ─────┘

Only raw ingestion is cached. Everything downstream of the cache is recomputed
on every run from the cached observations.

Example:
    >>> config = PipelineConfig(start=date(2024, 6, 1), end=date(2024, 6, 30))
    >>> artifact = run_pipeline.sync(config)
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import date, timedelta
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pandas as pd

from .aggregate import aggregate_daily
from .archive import read_archive
from .base import Cache, Encoder, Fetcher, GeometryResolver, Renderer
from .cache import ObservationCache
from .client import DWDClient
from .config import PipelineConfig
from .encode import GifEncoder, find_date_gaps
from .exceptions import ArchiveError, DWDHexError, NoDataError
from .models import (
    AnimationArtifact,
    ColorDomain,
    IngestionReport,
    ObservationRecord,
    SpatialCell,
    StationRecord,
)
from .render import FrameRenderer, compute_color_domain, load_boundaries, render_frames
from .smoothing import pad_series, smooth_series
from .spatial import H3GeometryResolver, build_cells, index_stations, join_cells
from .stations import filter_stations, load_stations, parse_station_metadata
from .utils import add_sync_version

logger = logging.getLogger(__name__)


@dataclass
class PreparedRun:
    """Everything the renderer needs, computed fresh for one run."""

    start: date
    end: date
    dates: List[date]
    cells: Dict[str, SpatialCell]
    smoothed: pd.DataFrame
    domain: ColorDomain


async def _load_archive(
    name: str,
    client: Fetcher,
    config: PipelineConfig,
    semaphore: asyncio.Semaphore,
) -> List[ObservationRecord]:
    local_path: Optional[Path] = None
    if config.download_dir is not None:
        local_path = config.download_dir / name

    async with semaphore:
        try:
            if local_path is not None and local_path.exists():
                payload = local_path.read_bytes()
            else:
                payload = await client.fetch_archive(name)
                if local_path is not None:
                    local_path.parent.mkdir(parents=True, exist_ok=True)
                    local_path.write_bytes(payload)
        except OSError as e:
            raise ArchiveError(f"Cannot store or read {name}", details=str(e)) from e

    return await asyncio.to_thread(read_archive, payload, config.product_info)


@add_sync_version
async def ingest_observations(
    config: PipelineConfig,
    cache: Cache,
    client: Optional[Fetcher] = None,
) -> IngestionReport:
    """
    Download, parse and cache every station archive of the configured product.

    Skipped entirely when the product's table is already cached, unless
    ``config.refresh`` is set. A file that cannot be downloaded or parsed is
    skipped and recorded in the report; the others are still ingested.

    Args:
        config: Pipeline settings
        cache: Observation cache to fill
        client: Fetcher to download with; a DWDClient is created if omitted

    Returns:
        IngestionReport summarizing the run

    Raises:
        NoDataError: If no archive produced any observation
    """
    table = config.product_info.name
    report = IngestionReport(table=table)

    if cache.has(table) and not config.refresh:
        logger.info(f"Table '{table}' already cached, skipping ingestion")
        report.from_cache = True
        return report

    owns_client = client is None
    if client is None:
        client = DWDClient(config.product, timeout=config.timeout)

    try:
        names = await client.list_archives()
        report.files_seen = len(names)
        semaphore = asyncio.Semaphore(config.max_concurrent_downloads)
        results = await asyncio.gather(
            *(_load_archive(name, client, config, semaphore) for name in names),
            return_exceptions=True,
        )
    finally:
        if owns_client:
            await client.close()

    records: List[ObservationRecord] = []
    for name, result in zip(names, results):
        if isinstance(result, DWDHexError):
            logger.warning(f"Skipping {name}: {result}")
            report.skip(name, str(result))
        elif isinstance(result, BaseException):
            raise result
        else:
            records.extend(result)

    if report.skipped:
        logger.warning(
            f"Skipped {len(report.skipped)} of {report.files_seen} archives: "
            + ", ".join(s.name for s in report.skipped)
        )
    if not records:
        raise NoDataError(f"No observations could be ingested for '{table}'")

    report.records_written = cache.write(table, records)
    logger.info(str(report))
    return report


@add_sync_version
async def load_station_registry(
    config: PipelineConfig, client: Optional[Fetcher] = None
) -> List[StationRecord]:
    """Read stations from config.stations_path, or download the description file."""
    if config.stations_path is not None:
        return load_stations(config.stations_path)

    owns_client = client is None
    if client is None:
        client = DWDClient(config.product, timeout=config.timeout)
    try:
        text = await client.fetch_station_metadata()
    finally:
        if owns_client:
            await client.close()
    return parse_station_metadata(text)


def prepare_run(
    config: PipelineConfig,
    stations: Sequence[StationRecord],
    observations: Sequence[ObservationRecord],
    resolver: Optional[GeometryResolver] = None,
) -> PreparedRun:
    """
    Run the transient stages: filter, aggregate, index, join, smooth.

    The analysis period is clipped to the dates that have data. The color
    domain is computed here, once, from the smoothed values of that period.

    Raises:
        NoDataError: If no station, aggregate or cell survives a stage
    """
    resolver = resolver or H3GeometryResolver(config.resolution)
    if resolver.resolution != config.resolution:
        raise ValueError(
            f"Resolver uses resolution {resolver.resolution}, config expects {config.resolution}"
        )

    selected = filter_stations(stations, config.start, config.end)
    if not selected:
        raise NoDataError(f"No station covers {config.start} to {config.end}")
    selected_ids = {s.station_id for s in selected}

    aggregates = aggregate_daily(o for o in observations if o.station_id in selected_ids)
    if not aggregates:
        raise NoDataError("No station-day has enough observations")

    coordinate_index = index_stations(selected, resolver)
    cells = build_cells(selected, coordinate_index, resolver)
    joined = join_cells(aggregates, selected, coordinate_index, config.statistic)
    if joined.empty:
        raise NoDataError("No aggregate could be placed on the grid")

    start = max(config.start, min(joined["date"]))
    end = min(config.end, max(joined["date"]))
    if end < start:
        raise NoDataError(f"No data between {config.start} and {config.end}")

    padded = pad_series(joined, start, end, window=config.window)
    smoothed = smooth_series(padded, window=config.window)
    domain = compute_color_domain(smoothed, start, end)

    in_range = joined[(joined["date"] >= start) & (joined["date"] <= end)]
    dates = sorted(set(in_range["date"]))
    logger.info(
        f"Prepared {len(dates)} dates over {len(cells)} cells, "
        f"color domain [{domain.vmin:.2f}, {domain.vmax:.2f}]"
    )
    return PreparedRun(
        start=start,
        end=end,
        dates=dates,
        cells=cells,
        smoothed=smoothed,
        domain=domain,
    )


def build_renderer(config: PipelineConfig, prepared: PreparedRun) -> FrameRenderer:
    boundaries = None
    if config.boundaries_path is not None:
        boundaries = load_boundaries(config.boundaries_path)
    return FrameRenderer(
        prepared.cells,
        prepared.domain,
        config.output_dir,
        width=config.width,
        height=config.height,
        dpi=config.dpi,
        colormap=config.colormap,
        label=config.label,
        boundaries=boundaries,
    )


@add_sync_version
async def run_pipeline(
    config: PipelineConfig,
    cache: Optional[Cache] = None,
    client: Optional[Fetcher] = None,
    renderer: Optional[Renderer] = None,
    encoder: Optional[Encoder] = None,
) -> AnimationArtifact:
    """
    Produce the animation for the configured product and period.

    Args:
        config: Pipeline settings
        cache: Observation cache; an ObservationCache at config.cache_path if omitted
        client: Fetcher for station metadata and archives
        renderer: Frame renderer; built from config if omitted
        encoder: Animation encoder; GifEncoder if omitted

    Returns:
        AnimationArtifact of the written animation

    Raises:
        NoDataError: If a stage ends up with nothing to work with
        EncodingError: If no frame could be rendered
    """
    config.validate()
    cache = cache or ObservationCache(config.cache_path)
    encoder = encoder or GifEncoder()

    await ingest_observations(config, cache, client)
    stations = await load_station_registry(config, client)

    date_floor = config.start - timedelta(days=config.window // 2)
    observations = cache.read(config.product_info.name, date_floor)
    prepared = prepare_run(config, stations, observations)

    renderer = renderer or build_renderer(config, prepared)
    frames = render_frames(
        renderer, prepared.smoothed, prepared.dates, workers=config.render_workers
    )

    gaps = find_date_gaps((f.date for f in frames), prepared.start, prepared.end)
    if gaps:
        logger.warning(
            f"No frame for {len(gaps)} dates in range: "
            + ", ".join(d.isoformat() for d in gaps)
        )

    artifact = encoder.encode(
        frames,
        config.animation_path,
        width=config.width,
        height=config.height,
        delay=config.delay,
        loop=config.loop,
    )

    if not config.keep_frames:
        for frame in frames:
            frame.path.unlink(missing_ok=True)

    return artifact
