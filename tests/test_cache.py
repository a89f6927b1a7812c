"""
Tests for the SQLite observation cache.
"""

from datetime import date, datetime

import pytest

from conftest import make_observation

from dwdhex.cache import ObservationCache
from dwdhex.exceptions import CacheError


@pytest.fixture
def records():
    return [
        make_observation(2, datetime(2024, 6, 2, 6), 3.0, 1.0),
        make_observation(1, datetime(2024, 6, 1, 6), 7.0, None),
        make_observation(1, datetime(2024, 6, 1, 12), None, 0.0),
        make_observation(1, datetime(2024, 6, 3, 6), 5.0, 1.0),
    ]


class TestObservationCache:
    """Test cache round trips and idempotency."""

    def test_has_before_write(self, cache):
        assert cache.has("cloudiness") is False

    def test_write_then_has(self, cache, records):
        count = cache.write("cloudiness", records)

        assert count == 4
        assert cache.has("cloudiness") is True
        assert cache.has("temperature") is False
        assert cache.tables() == ["cloudiness"]

    def test_read_preserves_absent_values(self, cache, records):
        cache.write("cloudiness", records)

        result = cache.read("cloudiness")

        assert len(result) == 4
        # ordered by station, then timestamp
        assert [(r.station_id, r.timestamp.day) for r in result] == [(1, 1), (1, 1), (1, 3), (2, 2)]
        assert result[0].secondary is None
        assert result[1].primary is None
        assert result[1].secondary == 0.0

    def test_read_with_date_floor(self, cache, records):
        cache.write("cloudiness", records)

        result = cache.read("cloudiness", date(2024, 6, 2))

        assert {r.timestamp.date() for r in result} == {date(2024, 6, 2), date(2024, 6, 3)}

    def test_overwrite_replaces_table(self, cache, records):
        cache.write("cloudiness", records)
        count = cache.write("cloudiness", records[:1])

        assert count == 1
        assert len(cache.read("cloudiness")) == 1

    def test_append_without_overwrite(self, cache, records):
        cache.write("cloudiness", records[:2])
        count = cache.write("cloudiness", records[1:], overwrite=False)

        # the shared record is keyed by (station, timestamp) and stored once
        assert count == 4

    def test_persists_across_instances(self, cache, records):
        cache.write("cloudiness", records)

        reopened = ObservationCache(cache.db_path)

        assert reopened.has("cloudiness")
        assert len(reopened.read("cloudiness")) == 4

    def test_drop(self, cache, records):
        cache.write("cloudiness", records)
        cache.drop("cloudiness")

        assert cache.has("cloudiness") is False

    def test_read_missing_table(self, cache):
        with pytest.raises(CacheError, match="not cached"):
            cache.read("cloudiness")

    @pytest.mark.parametrize("name", ["", "1table", "cloud; DROP TABLE x", 'a"b'])
    def test_invalid_table_names(self, cache, name):
        with pytest.raises(CacheError, match="Invalid cache table name"):
            cache.has(name)
