"""Render-ready views built from the engine's stores."""

from dataclasses import dataclass, field
from typing import Iterable, Optional

from oracleview.animation import InterpolationScheduler
from oracleview.marketdata.aggregation import CandleAggregator
from oracleview.marketdata.candle import Candle
from oracleview.marketdata.series import SeriesBuffer, SeriesRow


__all__ = [
    "ChartFrame",
    "PriceSummary",
    "ViewProjector",
    "percent_change",
]


def percent_change(new_price: float, previous_price: Optional[float]) -> float:
    """Percent move from *previous_price*; 0 when there is no usable base."""
    if not previous_price:
        return 0.0
    return (new_price - previous_price) / previous_price * 100


@dataclass(frozen=True)
class PriceSummary:
    """Latest true price for one asset and its move from the prior update."""

    price: float
    percent_change: float
    display_price: float

    def format_change(self) -> str:
        return f"{self.percent_change:+.2f}%"


@dataclass(frozen=True)
class ChartFrame:
    """One renderable frame. Renderers must treat it as read-only."""

    rows: tuple[SeriesRow, ...]
    candles: tuple[Candle, ...]
    summaries: dict[str, PriceSummary] = field(default_factory=dict)
    selected_asset: Optional[str] = None

    def row_dicts(self) -> list[dict]:
        return [r.to_dict() for r in self.rows]

    def candle_dicts(self) -> list[dict]:
        return [c.to_dict() for c in self.candles]


@dataclass
class _Latest:
    publish_time: int
    price: float
    previous: Optional[float]


class ViewProjector:
    """
    Produces ``ChartFrame`` views and tracks per-asset price summaries.

    Series rows carry true prices except in each animating asset's most
    recent row, which shows the interpolated price. Candles are never
    interpolated.
    """

    def __init__(
        self,
        series: SeriesBuffer,
        candles: CandleAggregator,
        scheduler: InterpolationScheduler,
        symbols: Iterable[str] = (),
    ):
        self.series = series
        self.candles = candles
        self.scheduler = scheduler
        # Shown as zero-price cards until their first update arrives.
        self._seeded: list[str] = list(symbols)
        self._latest: dict[str, _Latest] = {}

    def record_price(self, asset: str, publish_time: int, price: float) -> bool:
        """
        Note a newly accepted true price.

        Returns True if it is now the asset's newest price. An update older
        than the asset's newest known publish time does not move the summary.
        """
        latest = self._latest.get(asset)
        if latest is not None and publish_time < latest.publish_time:
            return False
        previous = latest.price if latest is not None else None
        self._latest[asset] = _Latest(publish_time=publish_time, price=price, previous=previous)
        return True

    def summary(self, asset: str) -> PriceSummary:
        latest = self._latest.get(asset)
        if latest is None:
            return PriceSummary(price=0.0, percent_change=0.0, display_price=0.0)

        displayed = self.scheduler.displayed_price(asset)
        return PriceSummary(
            price=latest.price,
            percent_change=percent_change(latest.price, latest.previous),
            display_price=latest.price if displayed is None else displayed,
        )

    def summaries(self) -> dict[str, PriceSummary]:
        assets = list(self._seeded)
        assets.extend(a for a in self._latest if a not in assets)
        return {a: self.summary(a) for a in assets}

    def rows(self) -> list[SeriesRow]:
        """
        Series rows with interpolated prices applied.

        Only each animating asset's most recent row carries the interpolated
        price. Earlier rows keep their true values so the drawn history is
        never flattened toward the moving current price.
        """
        rows = self.series.get_rows()
        if not rows:
            return rows

        index = {r.time: r for r in rows}
        for asset in self.scheduler.animating_assets:
            t = self.series.latest_time_for(asset)
            if t is None:
                continue
            displayed = self.scheduler.displayed_price(asset)
            if displayed is not None:
                index[t].prices[asset] = displayed
        return rows

    def project(self, selected_asset: Optional[str] = None) -> ChartFrame:
        candles = self.candles.candles(selected_asset) if selected_asset else []
        return ChartFrame(
            rows=tuple(self.rows()),
            candles=tuple(candles),
            summaries=self.summaries(),
            selected_asset=selected_asset,
        )
