"""
Shared fixtures for dwdhex tests.
"""

import io
import zipfile
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional

import pytest

from dwdhex.base import Fetcher
from dwdhex.cache import ObservationCache
from dwdhex.config import PRODUCTS
from dwdhex.exceptions import DWDQueryError
from dwdhex.models import ObservationRecord, StationRecord

METADATA_HEADER = (
    "Stations_id von_datum bis_datum Stationshoehe geoBreite geoLaenge "
    "Stationsname Bundesland Abgabe\n"
    "----------- --------- --------- ------------- --------- --------- "
    "----------------------------------------- ---------- ------\n"
)

BERLIN = (52.5200, 13.4050)
MUNICH = (48.1374, 11.5755)


def station_line(
    station_id: int,
    valid_from: str,
    valid_to: str,
    elevation: str,
    latitude: str,
    longitude: str,
    name: str,
    region: str,
    release: str = "Frei",
) -> str:
    """One row of a *_Terminwerte_Beschreibung_Stationen.txt file."""
    return (
        f"{station_id:05d} "
        f" {valid_from:>8}"
        f" {valid_to:>8}"
        f"{elevation:>15}"
        f"{latitude:>12}"
        f"{longitude:>10}"
        f" {name:<40}"
        f" {region:<40}"
        f" {release:<4}"
        "\n"
    )


def metadata_text(lines: List[str]) -> str:
    return METADATA_HEADER + "".join(lines)


def produkt_text(rows: List[tuple], primary: str = "N_TER", secondary: str = "CD_TER") -> str:
    """Observation file content; rows are (station_id, 'YYYYMMDDHH', primary, secondary)."""
    lines = [f"STATIONS_ID;MESS_DATUM;QN_4;{primary};{secondary};eor"]
    for station_id, stamp, first, second in rows:
        lines.append(f"{station_id:>11};{stamp};    1;{first:>5};{second:>5};eor")
    return "\n".join(lines) + "\n"


def zip_bytes(members: Dict[str, str]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, text in members.items():
            archive.writestr(name, text.encode("cp1252"))
    return buffer.getvalue()


def damaged_zip_bytes(name: str, text: str) -> bytes:
    """A deflated archive whose directory is intact but whose data stream is not."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        archive.writestr(name, text.encode("cp1252"))
    payload = bytearray(buffer.getvalue())
    # local file header is 30 bytes plus the member name
    start = 30 + len(name.encode())
    for offset in range(start, start + 40):
        payload[offset] ^= 0xFF
    return bytes(payload)


def scenario_rows(station_id: int, first_day: date, days: int = 10) -> List[tuple]:
    """
    Two readings per day, except a single reading on the last day.

    Station 1 also has one -999 reading on the fifth day.
    """
    rows = []
    for offset in range(days):
        day = first_day + timedelta(days=offset)
        stamp = day.strftime("%Y%m%d")
        morning = float(offset % 5 + station_id)
        noon = morning + 2
        rows.append((station_id, f"{stamp}06", morning, 1))
        if offset == days - 1:
            continue
        if station_id == 1 and offset == 4:
            rows.append((station_id, f"{stamp}12", -999, 1))
        else:
            rows.append((station_id, f"{stamp}12", noon, 0))
    return rows


class FakeFetcher(Fetcher):
    """In-memory fetcher serving fixed archives and station metadata."""

    def __init__(self, archives: Dict[str, bytes], metadata: str):
        self.archives = archives
        self.metadata = metadata
        self.requested: List[str] = []
        self.closed = False

    async def list_archives(self) -> List[str]:
        return sorted(self.archives)

    async def fetch_archive(self, name: str) -> bytes:
        self.requested.append(name)
        if name not in self.archives:
            raise DWDQueryError("File not found", details=name)
        return self.archives[name]

    async def fetch_station_metadata(self) -> str:
        return self.metadata

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def cloudiness():
    return PRODUCTS["cloudiness"]


@pytest.fixture
def scenario_metadata() -> str:
    return metadata_text(
        [
            station_line(1, "20000101", "20301231", "34", f"{BERLIN[0]:.4f}", f"{BERLIN[1]:.4f}", "Berlin-Mitte", "Berlin"),
            station_line(2, "20000101", "20301231", "515", f"{MUNICH[0]:.4f}", f"{MUNICH[1]:.4f}", "München-Stadt", "Bayern"),
        ]
    )


@pytest.fixture
def scenario_fetcher(scenario_metadata) -> FakeFetcher:
    first_day = date(2024, 6, 1)
    archives = {}
    for station_id in (1, 2):
        name = f"terminwerte_N_{station_id:05d}_20000101_20231231_hist.zip"
        text = produkt_text(scenario_rows(station_id, first_day))
        archives[name] = zip_bytes(
            {f"produkt_n_termin_20000101_20231231_{station_id:05d}.txt": text}
        )
    return FakeFetcher(archives, scenario_metadata)


@pytest.fixture
def cache(tmp_path) -> ObservationCache:
    return ObservationCache(tmp_path / "db" / "weather.sqlite")


def make_station(
    station_id: int,
    latitude: float,
    longitude: float,
    valid_from: date = date(2000, 1, 1),
    valid_to: date = date(2030, 12, 31),
) -> StationRecord:
    return StationRecord(
        station_id=station_id,
        name=f"Station {station_id}",
        region="Test",
        valid_from=valid_from,
        valid_to=valid_to,
        elevation=100.0,
        latitude=latitude,
        longitude=longitude,
    )


def make_observation(
    station_id: int,
    timestamp: datetime,
    primary: Optional[float],
    secondary: Optional[float] = None,
) -> ObservationRecord:
    return ObservationRecord(
        station_id=station_id, timestamp=timestamp, primary=primary, secondary=secondary
    )
