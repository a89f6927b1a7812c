#!/usr/bin/env python3
"""
Render a hexagon-grid animation of DWD sub-daily observations.

Downloads the station archives of a product on the first run (cached in a
SQLite file afterwards), then renders one frame per day and a looping GIF.

Usage:
    python scripts/render_animation.py 2024-06-01 2024-06-30

    # Air temperature, daily maxima, with state boundaries underneath:
    python scripts/render_animation.py 2024-06-01 2024-06-30 \\
        --product temperature --statistic primary_max \\
        --boundaries germany_adm1.geojson
"""

import argparse
import asyncio
import logging
import sys
from datetime import date
from pathlib import Path

from dwdhex import DWDHexError, PipelineConfig, run_pipeline
from dwdhex.config import PRODUCTS, STATISTICS


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.split("\n\n")[0])
    parser.add_argument("start", type=date.fromisoformat, help="First date (YYYY-MM-DD)")
    parser.add_argument("end", type=date.fromisoformat, help="Last date (YYYY-MM-DD)")
    parser.add_argument("--product", choices=sorted(PRODUCTS), default="cloudiness")
    parser.add_argument("--statistic", choices=STATISTICS, default="primary_mean")
    parser.add_argument("--cache", type=Path, default=Path("db/weather.sqlite"))
    parser.add_argument("--output-dir", type=Path, default=Path("figures"))
    parser.add_argument("--stations", type=Path, help="Local station description file")
    parser.add_argument("--download-dir", type=Path, help="Keep downloaded archives here")
    parser.add_argument("--boundaries", type=Path, help="Boundary layer drawn under the grid")
    parser.add_argument("--resolution", type=int, default=4, help="H3 resolution")
    parser.add_argument("--window", type=int, default=7, help="Smoothing window in days")
    parser.add_argument("--size", type=int, default=1200, help="Frame size in pixels")
    parser.add_argument("--delay", type=float, default=0.5, help="Seconds per frame")
    parser.add_argument("--no-loop", action="store_true")
    parser.add_argument("--workers", type=int, default=1, help="Frame rendering threads")
    parser.add_argument("--refresh", action="store_true", help="Ignore cached observations")
    parser.add_argument("--discard-frames", action="store_true")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser.parse_args(argv)


async def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = PipelineConfig(
        start=args.start,
        end=args.end,
        product=args.product,
        statistic=args.statistic,
        cache_path=args.cache,
        output_dir=args.output_dir,
        stations_path=args.stations,
        download_dir=args.download_dir,
        boundaries_path=args.boundaries,
        resolution=args.resolution,
        window=args.window,
        width=args.size,
        height=args.size,
        delay=args.delay,
        loop=not args.no_loop,
        render_workers=args.workers,
        refresh=args.refresh,
        keep_frames=not args.discard_frames,
    )

    try:
        artifact = await run_pipeline(config)
    except (DWDHexError, ValueError) as e:
        logging.getLogger("dwdhex").error(f"Pipeline failed: {e}")
        return 1

    print(f"Wrote {artifact.path} ({artifact.frame_count} frames)")
    return 0


if __name__ == "__main__":
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        print("\nInterrupted by user")
        sys.exit(130)
