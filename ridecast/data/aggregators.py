"""Roll fine-grained series up to coarser periods by summation."""

import logging
from typing import List

import pandas as pd

from ridecast.data.structs import TimeSeries, WEEKDAYS, period_frequency

logger = logging.getLogger(__name__)

_PERIOD_RANK = {"D": 0, "W": 1, "M": 2}


class Aggregator:
    """
    Sums a TimeSeries into weekly or monthly buckets.

    Buckets are labelled by their first day. A partial leading or trailing
    bucket keeps the sum of whatever points it has; these buckets are listed
    in the result's metadata under ``partial_buckets`` since they understate
    the true period total.
    """

    def __init__(self, week_start: str = "MON"):
        week_start = week_start.upper()
        if week_start not in WEEKDAYS:
            raise ValueError(f"Unknown week start: {week_start}")
        self.week_start = week_start

    def aggregate(self, ts: TimeSeries, target_period: str) -> TimeSeries:
        """
        Aggregate ``ts`` to ``target_period``.

        Args:
            ts: Source series
            target_period: 'D', 'W' or 'M'

        Returns:
            TimeSeries at the target period

        Raises:
            ValueError: If the target is finer than the source, or weekly data
                is rolled up to months (weeks do not nest in months)
        """
        if target_period not in _PERIOD_RANK:
            raise ValueError(f"Unknown period: {target_period}")
        if target_period == ts.period:
            return ts
        if _PERIOD_RANK[target_period] < _PERIOD_RANK[ts.period]:
            raise ValueError(f"Cannot aggregate {ts.period} data to finer period {target_period}")
        if ts.period == "W":
            raise ValueError("Weekly buckets do not nest in months; aggregate from daily data")

        labels = self._bucket_labels(ts.index, target_period)
        grouped = ts.values.groupby(labels)
        sums = grouped.sum()
        counts = grouped.size()

        freq = period_frequency(target_period, self.week_start)
        full_index = pd.date_range(sums.index.min(), sums.index.max(), freq=freq)
        empty = full_index.difference(sums.index)
        if len(empty):
            logger.warning(f"{len(empty)} {target_period} buckets have no source data and are set to 0")
        sums = sums.reindex(full_index, fill_value=0.0)
        sums.index.name = ts.index.name
        sums.name = ts.values.name

        partial = self._partial_buckets(counts, target_period)
        if partial:
            logger.info(
                f"Partial {target_period} buckets kept as-is: "
                + ", ".join(str(p.date()) for p in partial)
            )

        metadata = dict(ts.metadata)
        metadata.update({
            "aggregated_from": ts.period,
            "week_start": self.week_start,
            "partial_buckets": [p.isoformat() for p in partial],
        })
        return TimeSeries.from_series(
            sums, period=target_period, week_start=self.week_start, metadata=metadata
        )

    def _bucket_labels(self, index: pd.DatetimeIndex, target_period: str) -> pd.DatetimeIndex:
        if target_period == "W":
            # pandas names weekly periods by their last day
            week_end = WEEKDAYS[(WEEKDAYS.index(self.week_start) - 1) % 7]
            return index.to_period(f"W-{week_end}").start_time
        return index.to_period("M").start_time

    def _partial_buckets(self, counts: pd.Series, target_period: str) -> List[pd.Timestamp]:
        if target_period == "W":
            expected = pd.Series(7, index=counts.index)
        else:
            expected = pd.Series(counts.index.days_in_month, index=counts.index)
        return list(counts.index[counts < expected])
