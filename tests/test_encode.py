"""
Tests for GIF encoding and frame-order checks.
"""

from datetime import date, timedelta

import pytest
from PIL import Image

from dwdhex.encode import GifEncoder, check_frame_order, find_date_gaps
from dwdhex.exceptions import EncodingError
from dwdhex.models import Frame

START = date(2024, 6, 1)
COLORS = [(200, 30, 30), (30, 200, 30), (30, 30, 200), (200, 200, 30)]


@pytest.fixture
def frames(tmp_path):
    result = []
    for offset, color in enumerate(COLORS[:3]):
        day = START + timedelta(days=offset)
        path = tmp_path / f"frame-{day.isoformat()}.png"
        Image.new("RGB", (80, 60), color).save(path)
        result.append(Frame(date=day, path=path))
    return result


class TestCheckFrameOrder:
    """Test encoder preconditions."""

    def test_empty(self):
        with pytest.raises(EncodingError, match="empty") as exc_info:
            check_frame_order([])

        assert "check the rendering log" in exc_info.value.details
        assert str(exc_info.value).endswith("per-date failures)")

    def test_duplicate_dates(self, frames):
        with pytest.raises(EncodingError, match="Duplicate frame dates"):
            check_frame_order(frames + [frames[0]])

    def test_unsorted(self, frames):
        with pytest.raises(EncodingError, match="ascending"):
            check_frame_order([frames[1], frames[0], frames[2]])

    def test_ascending(self, frames):
        check_frame_order(frames)


class TestGifEncoder:
    """Test writing the animation."""

    def test_round_trip(self, frames, tmp_path):
        output = tmp_path / "out" / "animation.gif"

        artifact = GifEncoder().encode(frames, output, width=40, height=30, delay=0.5, loop=True)

        assert artifact.path == output
        assert artifact.frame_count == 3
        assert list(artifact.dates) == [f.date for f in frames]
        with Image.open(output) as gif:
            assert gif.n_frames == 3
            assert gif.size == (40, 30)
            assert gif.info["loop"] == 0
            assert gif.info["duration"] == 500
            decoded = []
            for index in range(gif.n_frames):
                gif.seek(index)
                decoded.append(gif.convert("RGB").getpixel((20, 15)))
        # frame colors come back in date order: red, green, blue
        dominant = [pixel.index(max(pixel)) for pixel in decoded]
        assert dominant == [0, 1, 2]

    def test_play_once(self, frames, tmp_path):
        output = tmp_path / "once.gif"

        artifact = GifEncoder().encode(frames, output, width=40, height=30, delay=0.25, loop=False)

        assert artifact.loop is False
        with Image.open(output) as gif:
            assert "loop" not in gif.info

    def test_rejects_empty(self, tmp_path):
        with pytest.raises(EncodingError):
            GifEncoder().encode([], tmp_path / "a.gif", width=10, height=10, delay=0.5)

    def test_rejects_unreadable_frame(self, frames, tmp_path):
        frames[1].path.write_bytes(b"not an image")

        with pytest.raises(EncodingError, match="Cannot read frame"):
            GifEncoder().encode(frames, tmp_path / "a.gif", width=10, height=10, delay=0.5)

    def test_rejects_bad_delay(self, frames, tmp_path):
        with pytest.raises(EncodingError, match="delay"):
            GifEncoder().encode(frames, tmp_path / "a.gif", width=10, height=10, delay=0)


class TestFindDateGaps:
    def test_gaps(self):
        dates = [START, START + timedelta(days=2)]

        gaps = find_date_gaps(dates, START, START + timedelta(days=3))

        assert gaps == [START + timedelta(days=1), START + timedelta(days=3)]

    def test_no_gaps(self):
        dates = [START + timedelta(days=i) for i in range(3)]

        assert find_date_gaps(dates, START, START + timedelta(days=2)) == []
