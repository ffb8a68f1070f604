from .aggregation import CandleAggregator
from .assets import AssetRegistry, default_feed_map
from .candle import Candle
from .price_update import (
    MalformedPriceUpdate,
    PriceComponent,
    PriceMetadata,
    PriceUpdateEvent,
    decode_price,
    normalize_feed_id,
)
from .series import SeriesBuffer, SeriesRow

__all__ = [
    "AssetRegistry",
    "Candle",
    "CandleAggregator",
    "MalformedPriceUpdate",
    "PriceComponent",
    "PriceMetadata",
    "PriceUpdateEvent",
    "SeriesBuffer",
    "SeriesRow",
    "decode_price",
    "default_feed_map",
    "normalize_feed_id",
]
