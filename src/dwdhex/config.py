"""
Configuration for dwdhex pipeline runs.

A PipelineConfig is created once and passed explicitly to every stage; nothing
in the package reads paths from the working directory or module globals.
"""

from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Dict, Optional

BASE_URL = "https://opendata.dwd.de/climate_environment/CDC/observations_germany/climate/subdaily"

MISSING_VALUE = -999.0

# Fixed-width layout of the *_Terminwerte_Beschreibung_Stationen.txt files
STATION_COLUMNS = [
    ("station_id", 6),
    ("valid_from", 9),
    ("valid_to", 9),
    ("elevation", 15),
    ("latitude", 12),
    ("longitude", 10),
    ("name", 41),
    ("region", 41),
    ("release", 5),
]
STATION_HEADER_ROWS = 2
STATION_ENCODING = "cp1252"


@dataclass(frozen=True)
class Product:
    """A DWD sub-daily observation product."""

    name: str  # cache table name
    path: str  # directory below BASE_URL
    code: str  # file name code, e.g. 'N' in terminwerte_N_00003_...
    primary: str  # primary value column in produkt_*.txt
    secondary: str  # secondary value column
    label: str  # default legend label

    @property
    def url(self) -> str:
        return f"{BASE_URL}/{self.path}/historical/"

    @property
    def metadata_file(self) -> str:
        return f"{self.code}_Terminwerte_Beschreibung_Stationen.txt"


PRODUCTS: Dict[str, Product] = {
    "cloudiness": Product(
        name="cloudiness",
        path="cloudiness",
        code="N",
        primary="N_TER",  # cloud cover in eighths
        secondary="CD_TER",  # cloud density
        label="Cloud Coverage",
    ),
    "temperature": Product(
        name="temperature",
        path="air_temperature",
        code="TU",
        primary="TT_TER",  # air temperature, degC
        secondary="RF_TER",  # relative humidity, %
        label="Air Temperature",
    ),
}

STATISTICS = (
    "primary_min",
    "primary_max",
    "primary_mean",
    "secondary_min",
    "secondary_max",
    "secondary_mean",
)


@dataclass
class PipelineConfig:
    """Settings for one pipeline run."""

    start: date
    end: date
    cache_path: Path = Path("weather.sqlite")
    output_dir: Path = Path("figures")
    product: str = "cloudiness"
    stations_path: Optional[Path] = None
    download_dir: Optional[Path] = None
    animation_name: str = "animation.gif"

    # Grid and smoothing
    resolution: int = 4
    window: int = 7
    statistic: str = "primary_mean"

    # Rendering and encoding
    width: int = 1200
    height: int = 1200
    dpi: int = 300
    delay: float = 0.5
    loop: bool = True
    colormap: str = "viridis"
    legend_label: Optional[str] = None
    boundaries_path: Optional[Path] = None
    keep_frames: bool = True

    # Execution
    render_workers: int = 1
    max_concurrent_downloads: int = 4
    timeout: int = 30
    refresh: bool = False

    def __post_init__(self) -> None:
        self.cache_path = Path(self.cache_path)
        self.output_dir = Path(self.output_dir)
        if self.stations_path is not None:
            self.stations_path = Path(self.stations_path)
        if self.download_dir is not None:
            self.download_dir = Path(self.download_dir)
        if self.boundaries_path is not None:
            self.boundaries_path = Path(self.boundaries_path)

    @property
    def product_info(self) -> Product:
        try:
            return PRODUCTS[self.product]
        except KeyError:
            raise ValueError(
                f"Unknown product '{self.product}'. Available: {', '.join(PRODUCTS)}"
            ) from None

    @property
    def label(self) -> str:
        return self.legend_label or self.product_info.label

    @property
    def animation_path(self) -> Path:
        return self.output_dir / self.animation_name

    def frame_path(self, day: date) -> Path:
        """Deterministic image path for one date."""
        return self.output_dir / frame_filename(day)

    def validate(self) -> None:
        """
        Check settings for consistency.

        Raises:
            ValueError: If any setting is out of range or inconsistent
        """
        _ = self.product_info  # raises for unknown products
        if self.end < self.start:
            raise ValueError(f"end ({self.end}) is before start ({self.start})")
        if self.window < 1 or self.window % 2 == 0:
            raise ValueError(f"window must be a positive odd integer, got {self.window}")
        if self.statistic not in STATISTICS:
            raise ValueError(
                f"Unknown statistic '{self.statistic}'. Choose from: {', '.join(STATISTICS)}"
            )
        if not 0 <= self.resolution <= 15:
            raise ValueError(f"H3 resolution must be between 0 and 15, got {self.resolution}")
        if self.width <= 0 or self.height <= 0 or self.dpi <= 0:
            raise ValueError("width, height and dpi must be positive")
        if self.delay <= 0:
            raise ValueError(f"delay must be positive, got {self.delay}")
        if self.render_workers < 1 or self.max_concurrent_downloads < 1:
            raise ValueError("worker counts must be at least 1")


def frame_filename(day: date) -> str:
    return f"frame-{day.isoformat()}.png"
