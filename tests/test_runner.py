import asyncio
import logging

import pytest

from oracleview.config import ChartConfig
from oracleview.engine import ChartEngine
from oracleview.runner import StreamHistory, configure_logging, run_feed


MSOL_FEED = "c2289a6a43d2ce91c6f55caec370f4acc38a2ed477f58813334c6d03749ff2a4"


async def _source(updates, delay=0.0):
    for u in updates:
        if delay:
            await asyncio.sleep(delay)
        yield u


class TestStreamHistory:

    def test_keeps_most_recent(self):
        history = StreamHistory(max_length=3)
        for i in range(5):
            history.append(i)
        assert history.snapshot() == [2, 3, 4]
        assert len(history) == 3

    def test_invalid_length(self):
        with pytest.raises(ValueError):
            StreamHistory(max_length=0)


class TestRunFeed:

    @pytest.mark.asyncio
    async def test_consumes_source_and_processes(self, clock, make_update):
        engine = ChartEngine(ChartConfig(history_size=2), clock=clock)
        updates = [make_update(MSOL_FEED, 100.0 + i, 1000 + i) for i in range(5)]

        received = await run_feed(engine, _source(updates))

        assert received == 5
        assert len(engine.series) == 5
        assert engine.summary("MSOL/USD").price == 104.0
        assert engine.closed
        assert clock.pending == 0

    @pytest.mark.asyncio
    async def test_rolling_window_redelivers_to_engine(self, clock, make_update):
        engine = ChartEngine(ChartConfig(), clock=clock)
        history = StreamHistory(max_length=2)
        submitted = []
        original_submit = engine.submit

        def spy(batch):
            batch = list(batch)
            submitted.append(len(batch))
            original_submit(batch)

        engine.submit = spy
        updates = [make_update(MSOL_FEED, 1.0, i) for i in range(4)]
        await run_feed(engine, _source(updates), history=history)

        assert submitted == [1, 2, 2, 2]

    @pytest.mark.asyncio
    async def test_cancellation_closes_engine(self, clock, make_update):
        engine = ChartEngine(ChartConfig(), clock=clock)
        updates = [make_update(MSOL_FEED, 1.0, i) for i in range(1000)]

        task = asyncio.create_task(run_feed(engine, _source(updates, delay=0.01)))
        await asyncio.sleep(0.03)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert engine.closed
        assert clock.pending == 0


class TestConfigureLogging:

    def test_force_installs_stdout_handler(self):
        root = logging.getLogger()
        saved_handlers = list(root.handlers)
        saved_level = root.level
        try:
            configure_logging("DEBUG", force=True)
            assert root.level == logging.DEBUG
            assert len(root.handlers) == 1
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)

    def test_non_destructive_by_default(self):
        root = logging.getLogger()
        saved_handlers = list(root.handlers)
        marker = logging.NullHandler()
        root.addHandler(marker)
        try:
            configure_logging("DEBUG")
            assert marker in root.handlers
            assert len(root.handlers) == len(saved_handlers) + 1
        finally:
            root.handlers[:] = saved_handlers
