"""
Tests for pipeline configuration.
"""

from datetime import date
from pathlib import Path

import pytest

from dwdhex.config import PRODUCTS, PipelineConfig


def make_config(**kwargs):
    return PipelineConfig(start=date(2024, 6, 1), end=date(2024, 6, 30), **kwargs)


class TestPipelineConfig:
    def test_defaults(self):
        config = make_config()

        config.validate()
        assert config.resolution == 4
        assert config.window == 7
        assert (config.width, config.height) == (1200, 1200)
        assert config.delay == 0.5
        assert config.loop is True
        assert config.label == "Cloud Coverage"

    def test_paths_are_coerced(self):
        config = make_config(output_dir="out", cache_path="db/weather.sqlite")

        assert config.animation_path == Path("out/animation.gif")
        assert config.frame_path(date(2024, 6, 3)) == Path("out/frame-2024-06-03.png")
        assert config.cache_path == Path("db/weather.sqlite")

    def test_legend_label_override(self):
        assert make_config(legend_label="Clouds").label == "Clouds"
        assert make_config(product="temperature").label == "Air Temperature"

    @pytest.mark.parametrize(
        "kwargs, message",
        [
            ({"product": "snow"}, "Unknown product"),
            ({"window": 6}, "window"),
            ({"window": 0}, "window"),
            ({"statistic": "median"}, "Unknown statistic"),
            ({"resolution": 16}, "resolution"),
            ({"delay": 0}, "delay"),
            ({"width": 0}, "positive"),
            ({"render_workers": 0}, "at least 1"),
        ],
    )
    def test_invalid_settings(self, kwargs, message):
        with pytest.raises(ValueError, match=message):
            make_config(**kwargs).validate()

    def test_end_before_start(self):
        config = PipelineConfig(start=date(2024, 6, 2), end=date(2024, 6, 1))

        with pytest.raises(ValueError, match="before start"):
            config.validate()


class TestProducts:
    def test_urls(self):
        cloudiness = PRODUCTS["cloudiness"]

        assert cloudiness.url.endswith("/subdaily/cloudiness/historical/")
        assert cloudiness.metadata_file == "N_Terminwerte_Beschreibung_Stationen.txt"
        assert PRODUCTS["temperature"].url.endswith("/subdaily/air_temperature/historical/")
