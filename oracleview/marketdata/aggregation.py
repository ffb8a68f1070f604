"""Incremental OHLC candle construction from individual price updates."""

import logging
from dataclasses import replace
from typing import Optional

import numpy as np

from oracleview.marketdata.candle import Candle
from oracleview.time_utils import bucket_start


log = logging.getLogger(__name__)


__all__ = [
    "CandleAggregator",
]


class CandleAggregator:
    """
    Bucket price updates into fixed-width candles, one bucket map per asset.

    - Buckets are aligned to ``interval_seconds`` boundaries of publish time.
    - Every asset accumulates independently, whether or not it is displayed.
    - At most ``max_candles`` buckets are kept per asset; the oldest go first.
    - Updates may arrive out of order; a late update lands in its own bucket
      as long as that bucket is still retained.

    Usage:
        aggregator = CandleAggregator(interval_seconds=60, max_candles=30)
        aggregator.update(asset="SOL/USD", time=1000, price=142.5)
        candles = aggregator.candles("SOL/USD")
    """

    def __init__(self, *, interval_seconds: int = 60, max_candles: int = 30):
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")
        if max_candles <= 0:
            raise ValueError(f"max_candles must be positive, got {max_candles}")

        self.interval_seconds = interval_seconds
        self.max_candles = max_candles

        # Per-asset state: bucket_start -> candle
        self._state: dict[str, dict[int, Candle]] = {}

    def reset(self, asset: str) -> None:
        """Reset aggregation state for an asset."""
        self._state.pop(asset, None)

    def update(self, *, asset: str, time: int, price: float) -> Optional[Candle]:
        """
        Fold one update into its bucket.

        Returns:
            The updated candle, or None when the update belongs to a bucket
            older than everything retained for a full asset.
        """
        key = bucket_start(time, self.interval_seconds)
        buckets = self._state.setdefault(asset, {})

        candle = buckets.get(key)
        if candle is not None:
            candle.update(price)
            return candle

        if len(buckets) >= self.max_candles and key < min(buckets):
            log.debug("Dropping late update for %s in evicted bucket %d", asset, key)
            return None

        candle = Candle.opened_at(key, price)
        buckets[key] = candle

        while len(buckets) > self.max_candles:
            del buckets[min(buckets)]

        return candle

    def candles(self, asset: str, count: Optional[int] = None) -> list[Candle]:
        """
        Get copies of an asset's candles, oldest first.

        Args:
            asset: Asset symbol
            count: Number of most recent candles to return (None = all)
        """
        buckets = self._state.get(asset, {})
        keys = sorted(buckets)
        if count is not None:
            keys = keys[-count:]
        return [replace(buckets[k]) for k in keys]

    def latest(self, asset: str) -> Optional[Candle]:
        """Get the most recent candle for an asset, or None if none."""
        out = self.candles(asset, count=1)
        return out[0] if out else None

    def get_opens(self, asset: str, count: Optional[int] = None) -> np.ndarray:
        """Get array of opening prices."""
        return np.array([c.open for c in self.candles(asset, count)], dtype=np.float64)

    def get_highs(self, asset: str, count: Optional[int] = None) -> np.ndarray:
        """Get array of high prices."""
        return np.array([c.high for c in self.candles(asset, count)], dtype=np.float64)

    def get_lows(self, asset: str, count: Optional[int] = None) -> np.ndarray:
        """Get array of low prices."""
        return np.array([c.low for c in self.candles(asset, count)], dtype=np.float64)

    def get_closes(self, asset: str, count: Optional[int] = None) -> np.ndarray:
        """Get array of closing prices."""
        return np.array([c.close for c in self.candles(asset, count)], dtype=np.float64)

    def get_volumes(self, asset: str, count: Optional[int] = None) -> np.ndarray:
        """Get array of update counts per candle."""
        return np.array([c.volume for c in self.candles(asset, count)], dtype=np.int64)

    @property
    def assets(self) -> list[str]:
        return list(self._state)

    def describe(self) -> tuple[int, int, int]:
        """Return (interval_seconds, max_candles, assets_tracked) for debugging."""
        return (self.interval_seconds, self.max_candles, len(self._state))
