from dataclasses import dataclass, field
from typing import Mapping

from oracleview.marketdata.price_update import normalize_feed_id


__all__ = [
    "AssetRegistry",
    "default_feed_map",
]

FALLBACK_LABEL_LENGTH = 8


def default_feed_map() -> dict[str, str]:
    """Feed ids for the Solana liquid-staking assets shown by default."""
    return {
        "c2289a6a43d2ce91c6f55caec370f4acc38a2ed477f58813334c6d03749ff2a4": "MSOL/USD",
        "ef0d8b6fda2ceba41da15d4095d1da392a0d2f8ed0c6c7bc0f4cfac8c280b56d": "SOL/USD",
        "55f8289be7450f1ae564dd9798e49e7d797d89adbc54fe4f8c906b1fcb94b0c3": "BNSOL/USD",
    }


@dataclass(frozen=True)
class AssetRegistry:
    """
    Maps opaque oracle feed identifiers to human-readable symbols.

    Lookups are tolerant of ``0x`` prefixes and letter case. Unknown feeds
    are labelled with the first eight characters of their identifier so the
    UI never shows an empty label.

    Example:
        >>> reg = AssetRegistry({"abcdef0123456789": "FOO/USD"})
        >>> reg.symbol_for("0xABCDEF0123456789")
        'FOO/USD'
        >>> reg.symbol_for("1234567890abcdef")
        '12345678'
    """

    feed_map: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        normalized = {normalize_feed_id(k): str(v) for k, v in self.feed_map.items()}
        # Frozen dataclass; replace the caller's mapping with our own copy.
        object.__setattr__(self, "feed_map", normalized)

    def symbol_for(self, feed_id: str) -> str:
        fid = normalize_feed_id(feed_id)
        symbol = self.feed_map.get(fid)
        if symbol:
            return symbol
        return fid[:FALLBACK_LABEL_LENGTH]

    def is_known(self, feed_id: str) -> bool:
        return normalize_feed_id(feed_id) in self.feed_map

    @property
    def symbols(self) -> list[str]:
        """Configured symbols in table order."""
        return list(self.feed_map.values())

    def __len__(self) -> int:
        return len(self.feed_map)
