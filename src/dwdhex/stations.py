"""
Station registry: parsing and filtering of DWD station descriptions.
"""

import io
import logging
import math
from datetime import date, datetime
from pathlib import Path
from typing import Iterable, List, Optional, Union

import pandas as pd

from .config import STATION_COLUMNS, STATION_ENCODING, STATION_HEADER_ROWS
from .models import StationRecord

logger = logging.getLogger(__name__)


def _parse_date(value: str) -> date:
    return datetime.strptime(value.strip(), "%Y%m%d").date()


def _parse_float(value: str) -> float:
    number = float(value.strip())
    if not math.isfinite(number):
        raise ValueError(f"non-finite value '{value}'")
    return number


def _parse_optional_float(value: str) -> Optional[float]:
    try:
        return _parse_float(value)
    except ValueError:
        return None


def parse_station_metadata(text: str) -> List[StationRecord]:
    """
    Parse the fixed-width station description file.

    Malformed rows are dropped with a warning instead of failing the load.

    Args:
        text: Content of a *_Terminwerte_Beschreibung_Stationen.txt file

    Returns:
        List of StationRecord objects in file order
    """
    names = [name for name, _ in STATION_COLUMNS]
    widths = [width for _, width in STATION_COLUMNS]
    df = pd.read_fwf(
        io.StringIO(text),
        widths=widths,
        names=names,
        header=None,
        skiprows=STATION_HEADER_ROWS,
        dtype=str,
        keep_default_na=False,
    )

    stations = []
    for line_number, row in enumerate(df.to_dict("records"), start=STATION_HEADER_ROWS + 1):
        if not any(str(v).strip() for v in row.values()):
            continue
        try:
            station = StationRecord(
                station_id=int(str(row["station_id"]).strip()),
                name=str(row["name"]).strip(),
                region=str(row["region"]).strip(),
                valid_from=_parse_date(str(row["valid_from"])),
                valid_to=_parse_date(str(row["valid_to"])),
                elevation=_parse_optional_float(str(row["elevation"])),
                latitude=_parse_float(str(row["latitude"])),
                longitude=_parse_float(str(row["longitude"])),
            )
        except (ValueError, TypeError) as e:
            logger.warning(f"Skipping malformed station row {line_number}: {e}")
            continue
        stations.append(station)

    logger.info(f"Parsed {len(stations)} stations")
    return stations


def load_stations(source: Union[str, Path]) -> List[StationRecord]:
    """Read and parse a station description file from disk."""
    text = Path(source).read_text(encoding=STATION_ENCODING)
    return parse_station_metadata(text)


def filter_stations(
    stations: Iterable[StationRecord], start: date, end: date
) -> List[StationRecord]:
    """
    Keep stations whose validity interval covers the whole period.

    A station is retained iff valid_from <= start and valid_to >= end;
    partially covering stations are excluded.
    """
    if end < start:
        raise ValueError(f"end ({end}) is before start ({start})")
    selected = [station for station in stations if station.covers(start, end)]
    logger.info(f"{len(selected)} stations cover {start} to {end}")
    return selected
