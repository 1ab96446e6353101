"""Gap handling for TimeSeries before aggregation and modelling."""

import logging
import pandas as pd

from ridecast.data.structs import TimeSeries

logger = logging.getLogger(__name__)

GAP_STRATEGIES = ("reject", "zero", "forward_fill", "interpolate")


class Preprocessor:
    """Detects and fills missing periods so downstream stages see a regular grid."""

    def find_gaps(self, ts: TimeSeries) -> pd.DatetimeIndex:
        """
        Return the timestamps missing between the first and last observation.

        Args:
            ts: Series to inspect

        Returns:
            DatetimeIndex of missing periods (empty when the series is regular)
        """
        full_index = pd.date_range(ts.first_timestamp, ts.last_timestamp, freq=ts.freq)
        return full_index.difference(ts.index)

    def fill_gaps(self, ts: TimeSeries, strategy: str = "reject") -> TimeSeries:
        """
        Fill missing periods using the specified strategy.

        Args:
            ts: Series that may have missing periods
            strategy: One of 'reject', 'zero', 'forward_fill', 'interpolate'

        Returns:
            Regular TimeSeries (the input itself when there are no gaps)

        Raises:
            ValueError: If strategy is unknown, or gaps exist and strategy is 'reject'
        """
        if strategy not in GAP_STRATEGIES:
            raise ValueError(f"Unknown strategy: {strategy}. Supported strategies are: {list(GAP_STRATEGIES)}")

        gaps = self.find_gaps(ts)
        if gaps.empty:
            return ts

        if strategy == "reject":
            raise ValueError(
                f"Series has {len(gaps)} missing periods, first at {gaps[0].date()}"
            )

        logger.warning(f"Filling {len(gaps)} missing periods with strategy '{strategy}'")
        full_index = pd.date_range(ts.first_timestamp, ts.last_timestamp, freq=ts.freq)
        reindexed = ts.values.reindex(full_index)

        if strategy == "zero":
            filled = reindexed.fillna(0.0)
        elif strategy == "forward_fill":
            filled = reindexed.ffill()
        else:
            filled = reindexed.interpolate(method="time")

        metadata = dict(ts.metadata)
        metadata["filled_gaps"] = len(gaps)
        metadata["gap_strategy"] = strategy
        return TimeSeries(values=filled, period=ts.period, metadata=metadata)
