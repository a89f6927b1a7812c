"""
Daily aggregation of sub-daily observations.
"""

import logging
from typing import Iterable, List, Optional

import pandas as pd

from .models import DailyAggregate, ObservationRecord

logger = logging.getLogger(__name__)

# A single reading is not enough evidence for a daily extremum
MIN_DAILY_SAMPLES = 2

AGGREGATE_COLUMNS = [
    "station_id",
    "date",
    "count",
    "primary_min",
    "primary_max",
    "primary_mean",
    "secondary_min",
    "secondary_max",
    "secondary_mean",
]


def _optional(value: object) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    return float(value)


def aggregate_daily(observations: Iterable[ObservationRecord]) -> List[DailyAggregate]:
    """
    Collapse observations into per-station daily summaries.

    Extrema and means are taken over present values only. A quantity with no
    present value on a day stays None rather than becoming zero. ``count`` is
    the number of observations carrying at least one present value; days with
    fewer than two such observations are dropped.

    Args:
        observations: Observations of any number of stations

    Returns:
        DailyAggregate objects sorted by station and date
    """
    df = pd.DataFrame(
        [
            {
                "station_id": o.station_id,
                "date": o.timestamp.date(),
                "primary": o.primary,
                "secondary": o.secondary,
                "present": not o.is_empty,
            }
            for o in observations
        ],
        columns=["station_id", "date", "primary", "secondary", "present"],
    )
    if df.empty:
        return []

    df["primary"] = pd.to_numeric(df["primary"], errors="coerce")
    df["secondary"] = pd.to_numeric(df["secondary"], errors="coerce")

    grouped = df.groupby(["station_id", "date"], sort=True).agg(
        count=("present", "sum"),
        primary_min=("primary", "min"),
        primary_max=("primary", "max"),
        primary_mean=("primary", "mean"),
        secondary_min=("secondary", "min"),
        secondary_max=("secondary", "max"),
        secondary_mean=("secondary", "mean"),
    )

    insufficient = grouped["count"] < MIN_DAILY_SAMPLES
    if insufficient.any():
        logger.debug(f"Excluding {int(insufficient.sum())} station-days with <= 1 sample")
    grouped = grouped[~insufficient].reset_index()

    aggregates = [
        DailyAggregate(
            station_id=int(row["station_id"]),
            date=row["date"],
            count=int(row["count"]),
            primary_min=_optional(row["primary_min"]),
            primary_max=_optional(row["primary_max"]),
            primary_mean=_optional(row["primary_mean"]),
            secondary_min=_optional(row["secondary_min"]),
            secondary_max=_optional(row["secondary_max"]),
            secondary_mean=_optional(row["secondary_mean"]),
        )
        for row in grouped.to_dict("records")
    ]
    logger.info(f"Aggregated {len(df)} observations into {len(aggregates)} station-days")
    return aggregates


def aggregates_to_frame(aggregates: Iterable[DailyAggregate]) -> pd.DataFrame:
    """DataFrame with one row per aggregate; None becomes NaN."""
    df = pd.DataFrame(
        [
            {column: getattr(a, column) for column in AGGREGATE_COLUMNS}
            for a in aggregates
        ],
        columns=AGGREGATE_COLUMNS,
    )
    value_columns = AGGREGATE_COLUMNS[3:]
    df[value_columns] = df[value_columns].astype(float)
    return df
