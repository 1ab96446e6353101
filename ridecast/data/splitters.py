"""Time-series aware train/test splitting."""

from typing import Iterator, List, Tuple, Union
from datetime import date, datetime
import logging

import pandas as pd

from ridecast.data.structs import Split, TimeSeries
from ridecast.utils.error_handling import InvalidBoundary

logger = logging.getLogger(__name__)

DateLike = Union[str, date, datetime, pd.Timestamp]


class TimeSeriesSplitter:
    """Splits a TimeSeries into contiguous train/test windows by date."""

    def split_at(self, ts: TimeSeries, boundary: DateLike) -> Split:
        """
        Split at ``boundary``: train gets every point strictly before it, test
        every point at or after it.

        Args:
            ts: Series to split
            boundary: First date of the test window

        Returns:
            Split covering the whole series

        Raises:
            InvalidBoundary: If the boundary is at or before the series start,
                after the series end, or leaves either side empty
        """
        boundary = pd.Timestamp(boundary)
        if len(ts) == 0:
            raise InvalidBoundary("Cannot split an empty series")
        if boundary <= ts.first_timestamp:
            raise InvalidBoundary(
                f"Boundary {boundary.date()} is not after series start "
                f"{ts.first_timestamp.date()}; training window would be empty"
            )
        if boundary > ts.last_timestamp:
            raise InvalidBoundary(
                f"Boundary {boundary.date()} is after series end "
                f"{ts.last_timestamp.date()}; test window would be empty"
            )

        position = int(ts.index.searchsorted(boundary, side="left"))
        if position == 0 or position == len(ts):
            raise InvalidBoundary(f"Boundary {boundary.date()} leaves an empty side")

        split = Split(series=ts, boundary=boundary, position=position)
        logger.debug(
            f"Split at {boundary.date()}: {position} train / {len(ts) - position} test points"
        )
        return split

    def expanding_origin_splits(
        self,
        ts: TimeSeries,
        initial_boundary: DateLike,
        horizon: int,
        step: int = 1,
    ) -> Iterator[Split]:
        """
        Generate expanding-origin folds for rolling forecast evaluation.

        The first fold's test window starts at ``initial_boundary``; each later
        fold moves the origin forward by ``step`` points. Every fold's test
        window holds exactly ``horizon`` points, so folds stop once fewer than
        ``horizon`` points remain.

        Args:
            ts: Series to split
            initial_boundary: Test start of the first fold
            horizon: Number of test points per fold
            step: Points the origin advances between folds

        Yields:
            Split per fold, with the fold number in its metadata
        """
        if horizon < 1 or step < 1:
            raise ValueError("horizon and step must be positive")

        first = self.split_at(ts, initial_boundary)
        if first.position + horizon > len(ts):
            raise InvalidBoundary(
                f"Only {len(ts) - first.position} points after {first.boundary.date()}, "
                f"need {horizon} for one fold"
            )

        fold = 0
        position = first.position
        while position + horizon <= len(ts):
            yield Split(
                series=ts,
                boundary=ts.index[position],
                position=position,
                test_stop=position + horizon,
                metadata={"split_type": "expanding_origin", "fold": fold, "step": step},
            )
            position += step
            fold += 1

    def validate_no_leakage(self, split: Split) -> Tuple[bool, List[str]]:
        """
        Validate that a split has no temporal leakage.

        Args:
            split: Split to validate

        Returns:
            Tuple of (is_valid, list of issues)
        """
        issues: List[str] = []
        train, test = split.train, split.test

        if len(train) == 0:
            issues.append("Training window is empty")
        if len(test) == 0:
            issues.append("Test window is empty")
        if len(train) and len(test) and train.last_timestamp >= test.first_timestamp:
            issues.append(
                f"Training data ({train.last_timestamp}) overlaps with "
                f"test data ({test.first_timestamp})"
            )
        if len(train) and train.last_timestamp >= split.boundary:
            issues.append(f"Training data reaches past boundary {split.boundary}")

        return len(issues) == 0, issues
