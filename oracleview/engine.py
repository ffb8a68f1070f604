"""
Chart engine: turns a stream of oracle price updates into animated chart views.

Pipeline per processing pass:

    raw updates -> parse/decode -> EventDeduplicator
                -> SeriesBuffer + CandleAggregator
                -> InterpolationScheduler (retarget)
                -> ViewProjector -> FrameRenderedEvent

Everything runs on one cooperative thread driven by the host's frame clock.
"""

import logging
from typing import Any, Iterable, Mapping, Optional

from oracleview.animation import InterpolationScheduler
from oracleview.config import ChartConfig
from oracleview.dedup import EventDeduplicator
from oracleview.events import (
    AnimationSettledEvent,
    EventDispatcher,
    FrameRenderedEvent,
    PricesAcceptedEvent,
)
from oracleview.frames import AsyncioFrameClock, FrameClock
from oracleview.marketdata.aggregation import CandleAggregator
from oracleview.marketdata.assets import AssetRegistry
from oracleview.marketdata.price_update import MalformedPriceUpdate, PriceUpdateEvent
from oracleview.marketdata.series import SeriesBuffer
from oracleview.projection import ChartFrame, PriceSummary, ViewProjector


log = logging.getLogger(__name__)


__all__ = [
    "ChartEngine",
]


class ChartEngine:
    """
    Owns all derived chart state and drives it from host frames.

    Updates can be handed over in two styles, freely mixed:
      - ``submit(history)``: the full history observed so far (re-delivery).
      - ``push(update)``: one newly arrived update.

    Either way they are queued and processed together on the next frame. A
    new arrival cancels the outstanding processing request and issues a
    fresh one, so back-to-back arrivals coalesce into one pass. Updates are
    parsed on arrival; only distinct ones newer than the watermark are queued.

    Without an explicit ``clock`` the engine uses an ``AsyncioFrameClock``,
    which needs a running event loop by the time the first update arrives.
    Pass a ``ManualFrameClock`` (or a clock bound to a loop) to drive the
    engine from synchronous code.

    Example:
        clock = ManualFrameClock()
        engine = ChartEngine(ChartConfig(), clock=clock)
        engine.submit(updates)
        clock.advance()           # process
        clock.run_until_idle()    # animate to the new prices
        frame = engine.frame()
    """

    def __init__(
        self,
        config: Optional[ChartConfig] = None,
        *,
        clock: Optional[FrameClock] = None,
        dispatcher: Optional[EventDispatcher] = None,
    ):
        self.config = config or ChartConfig()
        self.clock = clock or AsyncioFrameClock(self.config.frame_interval_seconds)
        self.dispatcher = dispatcher or EventDispatcher()

        self.registry = AssetRegistry(self.config.asset_feed_map)
        self.dedup = EventDeduplicator(shared_watermark=self.config.shared_watermark)
        self.series = SeriesBuffer(max_length=self.config.series_window_size)
        self.candles = CandleAggregator(
            interval_seconds=self.config.candle_interval_seconds,
            max_candles=self.config.candle_window_size,
        )
        self.scheduler = InterpolationScheduler(
            self.clock,
            steps=self.config.animation_steps,
            on_frame=self._render,
            on_settled=self._on_settled,
        )
        self.projector = ViewProjector(
            self.series, self.candles, self.scheduler, symbols=self.registry.symbols
        )

        symbols = self.registry.symbols
        self.selected_asset: Optional[str] = symbols[0] if symbols else None

        self._pending: list[PriceUpdateEvent] = []
        self._pending_keys: set[tuple] = set()
        self._pending_skipped = 0
        self._process_handle: Any = None
        self._closed = False
        self._last_frame: Optional[ChartFrame] = None

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def submit(self, history: Iterable[PriceUpdateEvent | Mapping[str, Any]]) -> None:
        """Queue a full (or partial) re-delivery of observed updates."""
        for item in history:
            self._enqueue(item)
        self._schedule_processing()

    def push(self, update: PriceUpdateEvent | Mapping[str, Any]) -> None:
        """Queue a single newly arrived update."""
        self._enqueue(update)
        self._schedule_processing()

    def _enqueue(self, item: PriceUpdateEvent | Mapping[str, Any]) -> None:
        """
        Parse and queue one update.

        The queue only ever holds distinct updates newer than the watermark,
        so repeated re-deliveries (even while closed) cannot grow it past the
        number of distinct new updates.
        """
        try:
            ev = item if isinstance(item, PriceUpdateEvent) else PriceUpdateEvent.from_raw(item)
            # Decode up front so a bad price never advances the watermark.
            ev.decoded_price
        except MalformedPriceUpdate as e:
            self._pending_skipped += 1
            log.warning("Skipping malformed price update: %s", e)
            return

        key = ev.dedup_key
        if key in self._pending_keys or self.dedup.is_stale(ev):
            return
        self._pending_keys.add(key)
        self._pending.append(ev)

    @property
    def pending_count(self) -> int:
        """Number of distinct updates waiting for the next processing pass."""
        return len(self._pending)

    def _schedule_processing(self) -> None:
        if self._closed:
            return
        if self._process_handle is not None:
            self.clock.cancel_frame(self._process_handle)
        self._process_handle = self.clock.request_frame(self._on_process_frame)

    def _on_process_frame(self) -> None:
        self._process_handle = None
        if self._closed:
            return
        self.process_pending()

    # ------------------------------------------------------------------
    # Processing
    # ------------------------------------------------------------------

    def process_pending(self) -> int:
        """
        Process every queued update now.

        Returns the number of updates accepted past the watermark.
        """
        if self._process_handle is not None:
            self.clock.cancel_frame(self._process_handle)
            self._process_handle = None

        batch, self._pending = self._pending, []
        self._pending_keys.clear()
        skipped, self._pending_skipped = self._pending_skipped, 0
        if not batch:
            return 0

        accepted = self.dedup.filter(batch)

        touched: list[str] = []
        for ev in accepted:
            asset = self.registry.symbol_for(ev.feed_id)
            price = ev.decoded_price
            t = ev.publish_time

            self.series.add_sample(asset, t, price)
            self.candles.update(asset=asset, time=t, price=price)
            if self.projector.record_price(asset, t, price):
                self.scheduler.set_target(asset, price)

            if asset not in touched:
                touched.append(asset)

        if accepted:
            log.debug(
                "Processed %d update(s) for %s (%d queued, %d malformed)",
                len(accepted),
                ", ".join(touched),
                len(batch),
                skipped,
            )
            self.dispatcher.publish(
                PricesAcceptedEvent(assets=tuple(touched), accepted=len(accepted), skipped=skipped)
            )
            if not self._closed:
                self._render()

        return len(accepted)

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def frame(self) -> ChartFrame:
        """Project the current state into a fresh frame."""
        return self.projector.project(self.selected_asset)

    @property
    def last_frame(self) -> Optional[ChartFrame]:
        """Most recently rendered frame, or None before the first render."""
        return self._last_frame

    def summary(self, asset: str) -> PriceSummary:
        return self.projector.summary(asset)

    def select_asset(self, asset: str) -> None:
        """Switch the candle view to *asset*. History recorded for it is kept."""
        if asset == self.selected_asset:
            return
        self.selected_asset = asset
        if not self._closed:
            self._render()

    def _render(self) -> None:
        frame = self.frame()
        self._last_frame = frame
        self.dispatcher.publish(FrameRenderedEvent(frame=frame))

    def _on_settled(self, assets: tuple[str, ...]) -> None:
        self.dispatcher.publish(AnimationSettledEvent(assets=assets))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """
        Tear down: cancel every outstanding frame request synchronously.

        Idempotent. Updates submitted while closed are queued and processed
        after ``open()``.
        """
        if self._process_handle is not None:
            self.clock.cancel_frame(self._process_handle)
            self._process_handle = None
        self.scheduler.stop()
        if not self._closed:
            log.debug("Chart engine closed")
        self._closed = True

    def open(self) -> None:
        """Re-attach after ``close()``, resuming animation and queued work."""
        if not self._closed:
            return
        self._closed = False
        self.scheduler.start()
        if self._pending:
            self._schedule_processing()
        log.debug("Chart engine reopened")
