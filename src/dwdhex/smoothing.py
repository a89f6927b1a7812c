"""
Centered rolling means with partial windows at the series boundaries.
"""

import logging
from datetime import date, timedelta

import pandas as pd

logger = logging.getLogger(__name__)


def _check_window(window: int) -> None:
    if window < 1 or window % 2 == 0:
        raise ValueError(f"window must be a positive odd integer, got {window}")


def pad_series(
    frame: pd.DataFrame,
    start: date,
    end: date,
    window: int = 7,
    key: str = "cell_id",
) -> pd.DataFrame:
    """
    Reindex every series onto a continuous daily range around [start, end].

    The range is widened by ``window // 2`` days on each side. Dates without a
    row get an absent placeholder; real rows inside the padding are kept so
    that dates near the edge of the period still see their real neighbors.

    Args:
        frame: DataFrame with columns key, date, value
        start: First date of the period
        end: Last date of the period
        window: Smoothing window width in days
        key: Series grouping column

    Returns:
        DataFrame with columns key, date, value, one row per key and padded date
    """
    _check_window(window)
    half = window // 2
    padded_start = start - timedelta(days=half)
    padded_end = end + timedelta(days=half)
    days = pd.date_range(padded_start, padded_end, freq="D").date

    in_range = frame[(frame["date"] >= padded_start) & (frame["date"] <= padded_end)]
    keys = sorted(in_range[key].unique())
    full_index = pd.MultiIndex.from_product([keys, days], names=[key, "date"])

    padded = (
        in_range.set_index([key, "date"])["value"]
        .reindex(full_index)
        .reset_index()
    )
    logger.debug(
        f"Padded {len(keys)} series to {len(days)} days ({padded_start} to {padded_end})"
    )
    return padded


def smooth_series(
    frame: pd.DataFrame, window: int = 7, key: str = "cell_id"
) -> pd.DataFrame:
    """
    Centered moving average per series.

    Windows are partial at the ends of each series: the mean is taken over
    the neighbors that exist. Absent values are excluded from both sum and
    divisor. A window with no present values stays absent.

    Args:
        frame: Continuous daily series, as returned by pad_series
        window: Odd window width in days
        key: Series grouping column

    Returns:
        Copy of frame with an added ``smoothed`` column
    """
    _check_window(window)
    result = frame.sort_values([key, "date"]).reset_index(drop=True)
    result["smoothed"] = result.groupby(key, sort=False)["value"].transform(
        lambda s: s.rolling(window=window, center=True, min_periods=1).mean()
    )
    return result
