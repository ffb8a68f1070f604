import asyncio

import pytest

from oracleview.frames import AsyncioFrameClock, ManualFrameClock


class TestManualFrameClock:

    def test_nothing_runs_until_advanced(self):
        clock = ManualFrameClock()
        calls = []
        clock.request_frame(lambda: calls.append(1))
        assert calls == []
        assert clock.pending == 1

        assert clock.advance() == 1
        assert calls == [1]
        assert clock.pending == 0
        assert clock.frames == 1

    def test_callbacks_requested_during_frame_run_next_frame(self):
        clock = ManualFrameClock()
        calls = []

        def first():
            calls.append("first")
            clock.request_frame(lambda: calls.append("second"))

        clock.request_frame(first)
        clock.advance()
        assert calls == ["first"]
        clock.advance()
        assert calls == ["first", "second"]

    def test_cancel_is_idempotent(self):
        clock = ManualFrameClock()
        calls = []
        handle = clock.request_frame(lambda: calls.append(1))

        clock.cancel_frame(handle)
        clock.cancel_frame(handle)
        clock.cancel_frame(None)
        clock.cancel_frame(12345)

        clock.advance()
        assert calls == []

    def test_callback_cancelled_by_earlier_callback_in_same_frame(self):
        clock = ManualFrameClock()
        calls = []
        handles = {}

        handles["a"] = clock.request_frame(lambda: clock.cancel_frame(handles["b"]))
        handles["b"] = clock.request_frame(lambda: calls.append("b"))

        assert clock.advance() == 1
        assert calls == []

    def test_run_until_idle(self):
        clock = ManualFrameClock()
        remaining = [3]

        def tick():
            remaining[0] -= 1
            if remaining[0] > 0:
                clock.request_frame(tick)

        clock.request_frame(tick)
        assert clock.run_until_idle() == 3

    def test_run_until_idle_guards_runaway(self):
        clock = ManualFrameClock()

        def forever():
            clock.request_frame(forever)

        clock.request_frame(forever)
        with pytest.raises(RuntimeError):
            clock.run_until_idle(max_frames=5)


class TestAsyncioFrameClock:

    def test_rejects_non_positive_interval(self):
        with pytest.raises(ValueError):
            AsyncioFrameClock(interval=0)

    def test_request_outside_running_loop_has_clear_error(self):
        clock = AsyncioFrameClock()
        with pytest.raises(RuntimeError, match="running event loop"):
            clock.request_frame(lambda: None)

    @pytest.mark.asyncio
    async def test_callback_fires_on_loop(self):
        clock = AsyncioFrameClock(interval=0.001)
        fired = asyncio.Event()
        clock.request_frame(fired.set)
        await asyncio.wait_for(fired.wait(), timeout=1.0)

    @pytest.mark.asyncio
    async def test_cancelled_callback_never_fires(self):
        clock = AsyncioFrameClock(interval=0.001)
        calls = []
        handle = clock.request_frame(lambda: calls.append(1))
        clock.cancel_frame(handle)
        clock.cancel_frame(handle)
        clock.cancel_frame(None)
        await asyncio.sleep(0.02)
        assert calls == []
