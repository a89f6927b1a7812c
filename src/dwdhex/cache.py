"""
SQLite-backed observation cache.

Each product is stored in its own table. A table is created and filled inside a
single transaction, so its existence means the ingestion that wrote it was
committed completely.
"""

import logging
import re
import sqlite3
from datetime import date, datetime
from pathlib import Path
from typing import List, Optional, Sequence, Union

from .base import Cache
from .exceptions import CacheError
from .models import ObservationRecord

logger = logging.getLogger(__name__)

TABLE_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _validate_table(table: str) -> str:
    if not TABLE_NAME_PATTERN.match(table or ""):
        raise CacheError(f"Invalid cache table name: {table!r}")
    return table


class ObservationCache(Cache):
    """Durable store of raw observations keyed by (station_id, timestamp)."""

    def __init__(self, db_path: Union[str, Path]):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def _connect(self) -> sqlite3.Connection:
        try:
            return sqlite3.connect(str(self.db_path))
        except sqlite3.Error as e:
            raise CacheError(f"Cannot open cache at {self.db_path}: {e}") from e

    def tables(self) -> List[str]:
        """Names of all cached tables."""
        conn = self._connect()
        try:
            cursor = conn.execute(
                "SELECT name FROM sqlite_master WHERE type = 'table' ORDER BY name"
            )
            return [row[0] for row in cursor.fetchall()]
        finally:
            conn.close()

    def has(self, table: str) -> bool:
        return _validate_table(table) in self.tables()

    def write(
        self, table: str, records: Sequence[ObservationRecord], overwrite: bool = True
    ) -> int:
        """
        Store observations in a table.

        Args:
            table: Table name, e.g. 'cloudiness'
            records: Observations with missing values already set to None
            overwrite: Replace the table instead of appending to it

        Returns:
            Number of rows in the table after the write
        """
        _validate_table(table)
        rows = [
            (
                r.station_id,
                r.timestamp.isoformat(),
                r.timestamp.date().isoformat(),
                r.primary,
                r.secondary,
            )
            for r in records
        ]

        conn = self._connect()
        # Explicit transaction so DDL and inserts commit or roll back together
        conn.isolation_level = None
        try:
            conn.execute("BEGIN")
            if overwrite:
                conn.execute(f'DROP TABLE IF EXISTS "{table}"')
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS "{table}" (
                    station_id INTEGER NOT NULL,
                    timestamp TEXT NOT NULL,
                    date TEXT NOT NULL,
                    primary_value REAL,
                    secondary_value REAL,
                    PRIMARY KEY (station_id, timestamp)
                )
                """
            )
            conn.execute(
                f'CREATE INDEX IF NOT EXISTS "{table}_date" ON "{table}" (date)'
            )
            conn.executemany(
                f'INSERT OR REPLACE INTO "{table}" VALUES (?, ?, ?, ?, ?)', rows
            )
            count = conn.execute(f'SELECT COUNT(*) FROM "{table}"').fetchone()[0]
            conn.execute("COMMIT")
        except sqlite3.Error as e:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise CacheError(f"Failed to write table '{table}': {e}") from e
        finally:
            conn.close()

        logger.info(f"Cached {len(rows)} observations in '{table}' ({count} rows total)")
        return count

    def read(
        self, table: str, date_floor: Optional[date] = None
    ) -> List[ObservationRecord]:
        """
        Read observations, optionally only those on or after date_floor.

        Raises:
            CacheError: If the table does not exist
        """
        if not self.has(table):
            raise CacheError(f"Table '{table}' is not cached")

        query = (
            f'SELECT station_id, timestamp, primary_value, secondary_value FROM "{table}"'
        )
        params: tuple = ()
        if date_floor is not None:
            query += " WHERE date >= ?"
            params = (date_floor.isoformat(),)
        query += " ORDER BY station_id, timestamp"

        conn = self._connect()
        try:
            cursor = conn.execute(query, params)
            records = [
                ObservationRecord(
                    station_id=row[0],
                    timestamp=datetime.fromisoformat(row[1]),
                    primary=row[2],
                    secondary=row[3],
                )
                for row in cursor.fetchall()
            ]
        except sqlite3.Error as e:
            raise CacheError(f"Failed to read table '{table}': {e}") from e
        finally:
            conn.close()

        logger.debug(f"Read {len(records)} observations from '{table}'")
        return records

    def drop(self, table: str) -> None:
        """Remove a table so the next run ingests it again."""
        _validate_table(table)
        conn = self._connect()
        try:
            with conn:
                conn.execute(f'DROP TABLE IF EXISTS "{table}"')
        finally:
            conn.close()
