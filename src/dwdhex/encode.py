"""
Encoding of rendered frames into a looping GIF.
"""

import logging
from collections import Counter
from datetime import date
from pathlib import Path
from typing import Iterable, List, Sequence

from PIL import Image

from .base import Encoder
from .exceptions import EncodingError
from .models import AnimationArtifact, Frame
from .utils import date_range

logger = logging.getLogger(__name__)


def check_frame_order(frames: Sequence[Frame]) -> None:
    """
    Verify that frames are non-empty and strictly ascending by date.

    Raises:
        EncodingError: On an empty frame set, duplicate dates or unsorted input
    """
    if not frames:
        raise EncodingError(
            "Cannot encode an empty frame set",
            details="no frames were rendered; check the rendering log for per-date failures",
        )

    counts = Counter(f.date for f in frames)
    duplicates = sorted(day for day, n in counts.items() if n > 1)
    if duplicates:
        raise EncodingError(
            "Duplicate frame dates",
            details=", ".join(d.isoformat() for d in duplicates),
        )

    for previous, current in zip(frames, frames[1:]):
        if current.date <= previous.date:
            raise EncodingError(
                "Frames are not in ascending date order",
                details=f"{current.date} follows {previous.date}",
            )


def find_date_gaps(dates: Iterable[date], start: date, end: date) -> List[date]:
    """Dates in [start, end] that have no frame."""
    present = set(dates)
    return [day for day in date_range(start, end) if day not in present]


class GifEncoder(Encoder):
    """Write frames to an animated GIF with Pillow."""

    def encode(
        self,
        frames: Sequence[Frame],
        output_path: Path,
        width: int,
        height: int,
        delay: float,
        loop: bool = True,
    ) -> AnimationArtifact:
        """
        Encode frames into one animation.

        Args:
            frames: Frames strictly ascending by date
            output_path: GIF file to write
            width: Output width in pixels
            height: Output height in pixels
            delay: Seconds each frame is shown
            loop: Loop forever when True, play once otherwise

        Returns:
            AnimationArtifact describing the written file
        """
        frames = list(frames)
        check_frame_order(frames)
        if width <= 0 or height <= 0:
            raise EncodingError(f"Invalid animation size {width}x{height}")
        if delay <= 0:
            raise EncodingError(f"Invalid frame delay {delay}")

        images = []
        for frame in frames:
            try:
                with Image.open(frame.path) as image:
                    images.append(
                        image.convert("RGB").resize((width, height), Image.Resampling.LANCZOS)
                    )
            except OSError as e:
                raise EncodingError(f"Cannot read frame for {frame.date}", details=str(e)) from e

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        save_kwargs = {
            "save_all": True,
            "append_images": images[1:],
            "duration": int(round(delay * 1000)),
            "optimize": False,
        }
        if loop:
            save_kwargs["loop"] = 0
        images[0].save(output_path, format="GIF", **save_kwargs)

        logger.info(f"Wrote {output_path} with {len(images)} frames")
        return AnimationArtifact(
            path=output_path,
            dates=tuple(f.date for f in frames),
            width=width,
            height=height,
            delay=delay,
            loop=loop,
        )
