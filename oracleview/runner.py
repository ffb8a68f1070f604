"""
Feed orchestration: connect a transport stream to a chart engine.
"""

import asyncio
import logging
import sys
from collections import deque
from collections.abc import AsyncIterable
from typing import Any, Optional

from oracleview.engine import ChartEngine


log = logging.getLogger(__name__)


__all__ = [
    "StreamHistory",
    "configure_logging",
    "run_feed",
]


def configure_logging(level: str = "INFO", force: bool = False) -> None:
    """
    Configure root logger with console output.

    By default, this is non-destructive: if the root logger already has handlers,
    it will do nothing (assuming the application has configured logging).

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        force: If True, clear existing handlers and force this configuration
    """
    root_logger = logging.getLogger()

    if root_logger.hasHandlers() and not force:
        return

    root_logger.setLevel(level.upper())

    if force:
        root_logger.handlers.clear()

    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)


class StreamHistory:
    """
    Rolling window of the most recent raw updates received from a transport.

    The whole window is re-delivered to the engine on every arrival; the
    engine's watermark sorts out what is new.
    """

    def __init__(self, max_length: int = 10):
        if max_length <= 0:
            raise ValueError(f"max_length must be positive, got {max_length}")
        self.max_length = max_length
        self._updates: deque[Any] = deque(maxlen=max_length)

    def append(self, update: Any) -> None:
        self._updates.append(update)

    def snapshot(self) -> list[Any]:
        """Oldest first."""
        return list(self._updates)

    def __len__(self) -> int:
        return len(self._updates)

    def __repr__(self) -> str:
        return f"StreamHistory(updates={len(self)}/{self.max_length})"


async def run_feed(
    engine: ChartEngine,
    source: AsyncIterable[Any],
    *,
    history: Optional[StreamHistory] = None,
) -> int:
    """
    Consume *source* until it is exhausted or the task is cancelled.

    Each received update is appended to *history* and the full window is
    submitted to *engine*. Updates still queued when the source ends are
    processed; the engine is closed on exit.

    Returns:
        Number of updates received.
    """
    if history is None:
        history = StreamHistory(engine.config.history_size)

    received = 0
    log.info(
        "Starting price feed for %d configured asset%s: %s",
        len(engine.registry),
        "s" if len(engine.registry) != 1 else "",
        ", ".join(engine.registry.symbols) or "(none)",
    )

    try:
        async for update in source:
            history.append(update)
            engine.submit(history.snapshot())
            received += 1
        engine.process_pending()
    except asyncio.CancelledError:
        log.info("Price feed cancelled after %d update(s)", received)
        raise
    finally:
        engine.close()

    log.info("Price feed ended after %d update(s)", received)
    return received
