from dataclasses import dataclass

from oracleview.time_utils import format_display_time


@dataclass
class Candle:
    """
    Represents a single OHLCV candle built from oracle updates.

    Attributes:
        time: Bucket start, seconds since epoch
        open: First price seen in the bucket
        high: Highest price seen in the bucket
        low: Lowest price seen in the bucket
        close: Most recent price seen in the bucket
        volume: Number of updates folded into the bucket
    """

    time: int
    open: float
    high: float
    low: float
    close: float
    volume: int = 0

    @classmethod
    def opened_at(cls, time: int, price: float) -> "Candle":
        """Start a bucket from its first update."""
        return cls(time=time, open=price, high=price, low=price, close=price, volume=1)

    def update(self, price: float) -> None:
        """Fold one more update into the bucket."""
        self.high = max(self.high, price)
        self.low = min(self.low, price)
        self.close = price
        self.volume += 1

    @property
    def display_time(self) -> str:
        return format_display_time(self.time, with_seconds=False)

    def to_dict(self) -> dict:
        return {
            "time": self.time,
            "display_time": self.display_time,
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
            "volume": self.volume,
        }

    def __repr__(self) -> str:
        return (
            f"Candle(time={self.time}, "
            f"O={self.open:.5f}, H={self.high:.5f}, "
            f"L={self.low:.5f}, C={self.close:.5f}, "
            f"V={self.volume})"
        )
