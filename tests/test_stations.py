"""
Tests for the station registry.
"""

from datetime import date

import pytest

from conftest import make_station, metadata_text, station_line

from dwdhex.stations import filter_stations, load_stations, parse_station_metadata


@pytest.fixture
def station_text():
    return metadata_text(
        [
            station_line(3, "19500401", "20110331", "202", "50.7827", "6.0941", "Aachen", "Nordrhein-Westfalen"),
            station_line(44, "19710301", "20240930", "44", "52.9336", "8.2370", "Großenkneten", "Niedersachsen"),
            station_line(73, "19530101", "20241231", "374", "48.6183", "13.0620", "Aldersbach-Kramersepp", "Bayern"),
        ]
    )


class TestParseStationMetadata:
    """Test fixed-width parsing."""

    def test_parse(self, station_text):
        stations = parse_station_metadata(station_text)

        assert len(stations) == 3
        aachen = stations[0]
        assert aachen.station_id == 3
        assert aachen.name == "Aachen"
        assert aachen.region == "Nordrhein-Westfalen"
        assert aachen.valid_from == date(1950, 4, 1)
        assert aachen.valid_to == date(2011, 3, 31)
        assert aachen.elevation == 202.0
        assert aachen.latitude == pytest.approx(50.7827)
        assert aachen.longitude == pytest.approx(6.0941)
        assert stations[1].name == "Großenkneten"

    def test_malformed_rows_are_dropped(self, caplog):
        text = metadata_text(
            [
                station_line(3, "19500401", "20110331", "202", "50.7827", "6.0941", "Aachen", "NRW"),
                station_line(5, "1950XX01", "20110331", "202", "50.0", "6.0", "Bad date", "NRW"),
                station_line(7, "19500401", "20110331", "202", "north", "6.0", "Bad latitude", "NRW"),
            ]
        )

        stations = parse_station_metadata(text)

        assert [s.station_id for s in stations] == [3]
        assert "Skipping malformed station row" in caplog.text

    def test_missing_elevation_is_none(self):
        text = metadata_text(
            [station_line(9, "20000101", "20241231", "", "50.0", "7.0", "No height", "Hessen")]
        )

        stations = parse_station_metadata(text)

        assert stations[0].elevation is None

    def test_load_from_file(self, station_text, tmp_path):
        path = tmp_path / "N_Terminwerte_Beschreibung_Stationen.txt"
        path.write_bytes(station_text.encode("cp1252"))

        stations = load_stations(path)

        assert len(stations) == 3
        assert stations[1].name == "Großenkneten"


class TestFilterStations:
    """Test the validity-interval filter."""

    def test_full_coverage_only(self):
        stations = [
            make_station(1, 50.0, 8.0, date(2000, 1, 1), date(2030, 1, 1)),
            make_station(2, 50.0, 8.0, date(2024, 6, 15), date(2030, 1, 1)),  # starts late
            make_station(3, 50.0, 8.0, date(2000, 1, 1), date(2024, 6, 15)),  # ends early
            make_station(4, 50.0, 8.0, date(2024, 6, 1), date(2024, 6, 30)),  # exact
        ]

        selected = filter_stations(stations, date(2024, 6, 1), date(2024, 6, 30))

        assert [s.station_id for s in selected] == [1, 4]

    def test_nothing_covers(self):
        stations = [make_station(1, 50.0, 8.0, date(2000, 1, 1), date(2010, 1, 1))]

        assert filter_stations(stations, date(2024, 6, 1), date(2024, 6, 30)) == []

    def test_reversed_period(self):
        with pytest.raises(ValueError):
            filter_stations([], date(2024, 6, 30), date(2024, 6, 1))
