from bisect import bisect_left, insort
from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from oracleview.time_utils import format_display_time


__all__ = [
    "SeriesBuffer",
    "SeriesRow",
]


@dataclass
class SeriesRow:
    """One publish time and every asset price observed at that instant."""

    time: int
    prices: dict[str, float] = field(default_factory=dict)

    @property
    def display_time(self) -> str:
        return format_display_time(self.time)

    def copy(self) -> "SeriesRow":
        return SeriesRow(time=self.time, prices=dict(self.prices))

    def to_dict(self) -> dict:
        out: dict = {"time": self.time, "display_time": self.display_time}
        out.update(self.prices)
        return out


class SeriesBuffer:
    """
    Maintains a rolling, time-aligned window of true prices across assets.

    Rows are unique per publish time and kept in ascending time order. A
    sample for an asset at a time that already has a row is merged into that
    row (last write wins). Once more than ``max_length`` rows exist the oldest
    are evicted.

    Example:
        buf = SeriesBuffer(max_length=100)
        buf.add_sample("SOL/USD", 1000, 142.5)
        buf.add_sample("MSOL/USD", 1000, 171.2)   # same row
        closes = buf.get_prices("SOL/USD")          # np.ndarray, NaN where absent
    """

    def __init__(self, max_length: int = 100):
        if max_length <= 0:
            raise ValueError(f"max_length must be positive, got {max_length}")
        self.max_length = max_length
        self._times: list[int] = []
        self._rows: dict[int, SeriesRow] = {}

    def add_sample(self, asset: str, time: int, price: float) -> bool:
        """
        Record *price* for *asset* at *time*.

        Returns False when the sample is older than every retained row of a
        full buffer and would be evicted immediately.
        """
        row = self._rows.get(time)
        if row is not None:
            row.prices[asset] = price
            return True

        if len(self._times) >= self.max_length and time < self._times[0]:
            return False

        insort(self._times, time)
        self._rows[time] = SeriesRow(time=time, prices={asset: price})

        while len(self._times) > self.max_length:
            oldest = self._times.pop(0)
            del self._rows[oldest]
        return True

    def get_rows(self, count: Optional[int] = None) -> list[SeriesRow]:
        """
        Get copies of the retained rows, oldest first.

        Args:
            count: Number of most recent rows to return (None = all)
        """
        times = self._times if count is None else self._times[-count:]
        return [self._rows[t].copy() for t in times]

    def get_times(self, count: Optional[int] = None) -> np.ndarray:
        """Get array of row times."""
        times = self._times if count is None else self._times[-count:]
        return np.array(times, dtype=np.int64)

    def get_prices(self, asset: str, count: Optional[int] = None) -> np.ndarray:
        """Get array of an asset's prices aligned with ``get_times`` (NaN where absent)."""
        times = self._times if count is None else self._times[-count:]
        return np.array(
            [self._rows[t].prices.get(asset, np.nan) for t in times],
            dtype=np.float64,
        )

    def latest_time_for(self, asset: str) -> Optional[int]:
        """Time of the most recent row holding a price for *asset*."""
        for t in reversed(self._times):
            if asset in self._rows[t].prices:
                return t
        return None

    def price_at(self, asset: str, time: int) -> Optional[float]:
        row = self._rows.get(time)
        return None if row is None else row.prices.get(asset)

    def __contains__(self, time: int) -> bool:
        i = bisect_left(self._times, time)
        return i < len(self._times) and self._times[i] == time

    @property
    def assets(self) -> set[str]:
        out: set[str] = set()
        for row in self._rows.values():
            out.update(row.prices)
        return out

    @property
    def latest(self) -> Optional[SeriesRow]:
        """Get the most recent row, or None if empty."""
        return self._rows[self._times[-1]].copy() if self._times else None

    def __len__(self) -> int:
        return len(self._times)

    def __repr__(self) -> str:
        return f"SeriesBuffer(rows={len(self)}/{self.max_length})"
