"""
Extraction and parsing of zipped DWD station archives.

This is the only place the -999 missing marker is seen: every value leaves
this module either as a float or as None.
"""

import io
import logging
import math
import zipfile
import zlib
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union

import pandas as pd

from .config import MISSING_VALUE, Product
from .exceptions import ArchiveError
from .models import ObservationRecord

logger = logging.getLogger(__name__)

# MESS_DATUM precision varies between products
TIMESTAMP_FORMATS = {12: "%Y%m%d%H%M", 10: "%Y%m%d%H", 8: "%Y%m%d"}


def to_optional(value: object) -> Optional[float]:
    """Convert a raw cell to a float, mapping the missing marker and blanks to None."""
    if value is None:
        return None
    try:
        number = float(str(value).strip())
    except ValueError:
        return None
    if math.isnan(number) or number == MISSING_VALUE:
        return None
    return number


def parse_timestamp(value: object) -> datetime:
    text = str(value).strip()
    fmt = TIMESTAMP_FORMATS.get(len(text))
    if fmt is None:
        raise ValueError(f"Unrecognized MESS_DATUM '{text}'")
    return datetime.strptime(text, fmt)


def extract_product_text(payload: Union[bytes, Path]) -> str:
    """
    Return the text of the produkt_*.txt member of a station archive.

    Raises:
        ArchiveError: If the archive is corrupt or has no data member
    """
    source = io.BytesIO(payload) if isinstance(payload, bytes) else payload
    try:
        with zipfile.ZipFile(source) as archive:
            members = [
                name
                for name in archive.namelist()
                if Path(name).name.lower().startswith("produkt") and name.endswith(".txt")
            ]
            if not members:
                raise ArchiveError("No produkt_*.txt file in archive")
            return archive.read(members[0]).decode("cp1252")
    except (zipfile.BadZipFile, zlib.error, EOFError, UnicodeDecodeError) as e:
        raise ArchiveError(f"Corrupt archive: {e}") from e
    except OSError as e:
        raise ArchiveError(f"Cannot read archive: {e}") from e


def parse_observations(text: str, product: Product) -> List[ObservationRecord]:
    """
    Parse a semicolon-delimited observation file.

    Rows with an unparsable station id or timestamp are dropped with a warning.
    Rows whose measured values are all missing are kept; absence is data.

    Args:
        text: Content of a produkt_*.txt file
        product: Product whose primary and secondary columns are read

    Returns:
        List of ObservationRecord objects
    """
    try:
        df = pd.read_csv(
            io.StringIO(text), sep=";", dtype=str, skipinitialspace=True
        )
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise ArchiveError(f"Unreadable observation file: {e}") from e

    df.columns = [str(c).strip() for c in df.columns]
    required = {"STATIONS_ID", "MESS_DATUM", product.primary}
    missing = required - set(df.columns)
    if missing:
        raise ArchiveError(
            f"Observation file lacks columns: {', '.join(sorted(missing))}"
        )

    has_secondary = product.secondary in df.columns
    records = []
    dropped = 0
    for row_dict in df.to_dict("records"):
        try:
            station_id = int(str(row_dict["STATIONS_ID"]).strip())
            timestamp = parse_timestamp(row_dict["MESS_DATUM"])
        except (ValueError, TypeError) as e:
            dropped += 1
            logger.debug(f"Dropping malformed observation row: {e}")
            continue

        records.append(
            ObservationRecord(
                station_id=station_id,
                timestamp=timestamp,
                primary=to_optional(row_dict[product.primary]),
                secondary=to_optional(row_dict[product.secondary]) if has_secondary else None,
            )
        )

    if dropped:
        logger.warning(f"Dropped {dropped} malformed observation rows")
    return records


def read_archive(payload: Union[bytes, Path], product: Product) -> List[ObservationRecord]:
    """Extract and parse one station archive."""
    return parse_observations(extract_product_text(payload), product)
