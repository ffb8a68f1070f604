from __future__ import annotations

import json
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping

from oracleview.marketdata.assets import default_feed_map
from oracleview.time_utils import interval_to_seconds


# Option names as used by the chart front-end.
_ALIASES = {
    "seriesWindowSize": "series_window_size",
    "candleWindowSize": "candle_window_size",
    "candleIntervalSeconds": "candle_interval_seconds",
    "animationSteps": "animation_steps",
    "assetFeedMap": "asset_feed_map",
    "sharedWatermark": "shared_watermark",
    "frameIntervalSeconds": "frame_interval_seconds",
    "historySize": "history_size",
}


@dataclass(frozen=True)
class ChartConfig:
    series_window_size: int = 100
    candle_window_size: int = 30
    candle_interval_seconds: int = 60
    animation_steps: int = 10
    asset_feed_map: Mapping[str, str] = field(default_factory=default_feed_map)
    shared_watermark: bool = False
    frame_interval_seconds: float = 1 / 60
    history_size: int = 10

    def __post_init__(self) -> None:
        for name in (
            "series_window_size",
            "candle_window_size",
            "candle_interval_seconds",
            "animation_steps",
            "history_size",
        ):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ValueError(f"{name} must be a positive integer, got {value!r}")
        if self.frame_interval_seconds <= 0:
            raise ValueError(
                f"frame_interval_seconds must be positive, got {self.frame_interval_seconds!r}"
            )

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> ChartConfig:
        """Validate and construct from a raw options dict.

        Accepts snake_case field names or the camelCase option names. Raises
        ``ValueError`` with a clear message on unknown keys or bad values
        instead of letting ``KeyError`` or ``TypeError`` propagate.
        """
        known = {f.name for f in fields(cls)}
        opts: dict[str, Any] = {}
        for key, value in raw.items():
            name = _ALIASES.get(key, key)
            if name not in known:
                raise ValueError(f"unknown chart option: {key!r}")
            opts[name] = value

        for name in ("series_window_size", "candle_window_size", "animation_steps", "history_size"):
            if name in opts:
                try:
                    opts[name] = int(opts[name])
                except (TypeError, ValueError) as exc:
                    raise ValueError(f"{name} is not an integer: {opts[name]!r}") from exc

        if "candle_interval_seconds" in opts:
            opts["candle_interval_seconds"] = interval_to_seconds(opts["candle_interval_seconds"])

        if "frame_interval_seconds" in opts:
            try:
                opts["frame_interval_seconds"] = float(opts["frame_interval_seconds"])
            except (TypeError, ValueError) as exc:
                raise ValueError(
                    f"frame_interval_seconds is not numeric: {opts['frame_interval_seconds']!r}"
                ) from exc

        if "asset_feed_map" in opts:
            feed_map = opts["asset_feed_map"]
            if not isinstance(feed_map, Mapping):
                raise ValueError("asset_feed_map must be a mapping of feed id to symbol")
            opts["asset_feed_map"] = {str(k): str(v) for k, v in feed_map.items()}

        if "shared_watermark" in opts:
            opts["shared_watermark"] = bool(opts["shared_watermark"])

        return cls(**opts)

    @classmethod
    def from_file(cls, path: str | Path) -> ChartConfig:
        """Load options from a JSON file."""
        with open(path, encoding="utf-8") as f:
            raw = json.load(f)
        if not isinstance(raw, dict):
            raise ValueError(f"chart config in {path} must be a JSON object")
        return cls.from_raw(raw)
