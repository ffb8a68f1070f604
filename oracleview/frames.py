"""
Host frame hooks.

The engine needs exactly two primitives from its environment: "run this
callback on the next frame" and "cancel a previously requested callback".
``FrameClock`` names them; concrete clocks adapt them to a host.
"""

import abc
import asyncio
import itertools
import logging
from typing import Any, Callable, Optional


log = logging.getLogger(__name__)


__all__ = [
    "AsyncioFrameClock",
    "FrameCallback",
    "FrameClock",
    "ManualFrameClock",
]


FrameCallback = Callable[[], None]


class FrameClock(abc.ABC):
    """Abstract per-frame scheduling hooks supplied by the host."""

    @abc.abstractmethod
    def request_frame(self, callback: FrameCallback) -> Any:
        """Schedule *callback* for the next frame and return a cancellation handle."""
        raise NotImplementedError

    @abc.abstractmethod
    def cancel_frame(self, handle: Any) -> None:
        """Cancel a pending request. Must be a no-op for stale or unknown handles."""
        raise NotImplementedError


class ManualFrameClock(FrameClock):
    """
    Frame clock advanced explicitly by the caller.

    Used for tests and offline rendering: nothing runs until ``advance`` is
    called, and each call runs exactly the callbacks that were pending when
    the frame started. Callbacks requested during a frame run on the next one.
    """

    def __init__(self):
        self._ids = itertools.count(1)
        self._pending: dict[int, FrameCallback] = {}
        self.frames = 0

    def request_frame(self, callback: FrameCallback) -> int:
        handle = next(self._ids)
        self._pending[handle] = callback
        return handle

    def cancel_frame(self, handle: Optional[int]) -> None:
        if handle is not None:
            self._pending.pop(handle, None)

    def advance(self, frames: int = 1) -> int:
        """Run *frames* frames. Returns how many callbacks were invoked."""
        ran = 0
        for _ in range(frames):
            self.frames += 1
            for handle in list(self._pending):
                # An earlier callback in this frame may have cancelled it.
                callback = self._pending.pop(handle, None)
                if callback is None:
                    continue
                callback()
                ran += 1
        return ran

    def run_until_idle(self, max_frames: int = 10_000) -> int:
        """Advance until nothing is pending. Returns the number of frames run."""
        n = 0
        while self._pending:
            if n >= max_frames:
                raise RuntimeError(f"frame clock still busy after {max_frames} frames")
            self.advance()
            n += 1
        return n

    @property
    def pending(self) -> int:
        return len(self._pending)


class AsyncioFrameClock(FrameClock):
    """
    Frame clock backed by an asyncio event loop.

    Frames fire every ``interval`` seconds (60 fps by default) via
    ``loop.call_later``; the returned ``TimerHandle`` is the cancellation
    handle.
    """

    def __init__(self, interval: float = 1 / 60, loop: Optional[asyncio.AbstractEventLoop] = None):
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self.interval = interval
        self._loop = loop

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            try:
                self._loop = asyncio.get_running_loop()
            except RuntimeError as exc:
                raise RuntimeError(
                    "AsyncioFrameClock needs a running event loop; pass loop= "
                    "or drive the engine with ManualFrameClock"
                ) from exc
        return self._loop

    def request_frame(self, callback: FrameCallback) -> asyncio.TimerHandle:
        return self._get_loop().call_later(self.interval, callback)

    def cancel_frame(self, handle: Optional[asyncio.TimerHandle]) -> None:
        if handle is not None:
            handle.cancel()
