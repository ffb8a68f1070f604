"""Watermark-based filtering of re-delivered or duplicated price updates."""

import logging
from typing import Callable, Iterable, Optional

from oracleview.marketdata.price_update import PriceUpdateEvent, normalize_feed_id


log = logging.getLogger(__name__)


__all__ = [
    "EventDeduplicator",
]


def _default_key(ev: PriceUpdateEvent) -> str:
    return normalize_feed_id(ev.feed_id)


class EventDeduplicator:
    """
    Reject updates whose publish time is not newer than what was already
    incorporated.

    The watermark is read once at the start of each ``filter`` call and only
    advanced afterwards, so every update in a batch is judged against the same
    high-water mark. This lets callers hand over either the complete event
    history on every delivery or just the newly pushed updates.

    Two modes:
      - per-asset (default): one ``last_processed_time`` per feed.
      - shared: a single scalar across all feeds. Kept for compatibility with
        the legacy chart; an asset whose publish clock lags another asset's
        will have updates rejected as stale.

    Exact duplicates within one batch (same feed, publish time and raw price)
    are accepted once.
    """

    def __init__(
        self,
        *,
        shared_watermark: bool = False,
        key: Callable[[PriceUpdateEvent], str] = _default_key,
    ):
        self.shared_watermark = shared_watermark
        self._key = key
        self._per_asset: dict[str, int] = {}
        self._shared: Optional[int] = None

    def last_processed_time(self, asset: str) -> Optional[int]:
        """Watermark applied to *asset* on the next cycle (None = nothing seen)."""
        if self.shared_watermark:
            return self._shared
        return self._per_asset.get(normalize_feed_id(asset))

    @property
    def watermark(self) -> Optional[int]:
        """Highest publish time incorporated for any asset."""
        if self.shared_watermark:
            return self._shared
        return max(self._per_asset.values(), default=None)

    def is_stale(self, ev: PriceUpdateEvent) -> bool:
        """True if *ev* is at or below the current watermark for its asset."""
        if self.shared_watermark:
            threshold = self._shared
        else:
            threshold = self._per_asset.get(self._key(ev))
        return threshold is not None and ev.publish_time <= threshold

    def reset(self) -> None:
        self._per_asset.clear()
        self._shared = None

    def filter(self, events: Iterable[PriceUpdateEvent]) -> list[PriceUpdateEvent]:
        """
        Return the updates newer than the watermark, in delivery order, and
        advance the watermark to the newest accepted publish time.
        """
        start_shared = self._shared
        start_per_asset = dict(self._per_asset)

        accepted: list[PriceUpdateEvent] = []
        seen: set[tuple] = set()
        batch_max: dict[str, int] = {}
        dropped = 0

        for ev in events:
            asset = self._key(ev)
            t = ev.publish_time

            threshold = start_shared if self.shared_watermark else start_per_asset.get(asset)
            if threshold is not None and t <= threshold:
                dropped += 1
                continue

            ident = ev.dedup_key
            if ident in seen:
                dropped += 1
                continue
            seen.add(ident)

            accepted.append(ev)
            if t > batch_max.get(asset, t - 1):
                batch_max[asset] = t

        if batch_max:
            if self.shared_watermark:
                newest = max(batch_max.values())
                self._shared = newest if start_shared is None else max(start_shared, newest)
            else:
                for asset, t in batch_max.items():
                    prev = self._per_asset.get(asset)
                    self._per_asset[asset] = t if prev is None else max(prev, t)

        if dropped:
            log.debug("Dedup dropped %d already-seen update(s), accepted %d", dropped, len(accepted))

        return accepted
