# oracleview/__init__.py
"""
Oracleview - live oracle price charts.

Aggregates a stream of oracle price updates into bounded time series,
OHLC candles and smoothly interpolated current prices, ready to render.
"""

from .animation import AnimationState, InterpolationScheduler
from .config import ChartConfig
from .dedup import EventDeduplicator
from .engine import ChartEngine
from .frames import AsyncioFrameClock, FrameClock, ManualFrameClock
from .marketdata import Candle, CandleAggregator, PriceUpdateEvent, SeriesBuffer
from .projection import ChartFrame, PriceSummary, ViewProjector
from .runner import configure_logging, run_feed

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "AnimationState",
    "AsyncioFrameClock",
    "Candle",
    "CandleAggregator",
    "ChartConfig",
    "ChartEngine",
    "ChartFrame",
    "EventDeduplicator",
    "FrameClock",
    "InterpolationScheduler",
    "ManualFrameClock",
    "PriceSummary",
    "PriceUpdateEvent",
    "SeriesBuffer",
    "ViewProjector",
    "configure_logging",
    "run_feed",
]
