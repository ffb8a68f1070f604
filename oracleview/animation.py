"""
Per-frame price interpolation.

Each asset's displayed price eases toward its latest true price over a fixed
number of frames, so an irregular tick cadence never shows up as a jump.
"""

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Optional

from oracleview.frames import FrameClock


log = logging.getLogger(__name__)


__all__ = [
    "AnimationState",
    "InterpolationScheduler",
    "SchedulerStatus",
]


@dataclass
class AnimationState:
    """
    Interpolation progress for one asset.

    ``steps_elapsed == total_steps`` means settled: ``current_price`` equals
    ``target_price`` and nothing needs advancing.
    """

    target_price: float
    current_price: float
    total_steps: int = 10
    steps_elapsed: int = 10

    @classmethod
    def settled_at(cls, price: float, total_steps: int = 10) -> "AnimationState":
        return cls(
            target_price=price,
            current_price=price,
            total_steps=total_steps,
            steps_elapsed=total_steps,
        )

    @property
    def settled(self) -> bool:
        return self.steps_elapsed >= self.total_steps

    def retarget(self, price: float) -> None:
        """Aim at a new price, restarting progress from the current value."""
        self.target_price = price
        self.steps_elapsed = 0

    def advance(self) -> bool:
        """
        Take one step toward the target.

        Returns True if a step was taken, False if already settled.
        """
        if self.settled:
            return False
        self.steps_elapsed += 1
        if self.steps_elapsed >= self.total_steps:
            self.steps_elapsed = self.total_steps
            self.current_price = self.target_price
        else:
            fraction = self.steps_elapsed / self.total_steps
            self.current_price += (self.target_price - self.current_price) * fraction
        return True


class SchedulerStatus(str, Enum):
    """Lifecycle of the interpolation scheduler."""

    IDLE = "idle"
    ANIMATING = "animating"
    STOPPED = "stopped"


class InterpolationScheduler:
    """
    Advances every animating asset once per host frame.

    The scheduler holds at most one outstanding frame request. It requests a
    frame only while some asset is animating and stops requesting once all
    are settled. ``stop()`` cancels the outstanding request synchronously;
    after it returns no callback fires until ``start()`` is called.

    Callbacks:
        on_frame: called after each frame's step, to render.
        on_settled: called with the asset symbols once everything settles.
    """

    def __init__(
        self,
        clock: FrameClock,
        *,
        steps: int = 10,
        on_frame: Optional[Callable[[], None]] = None,
        on_settled: Optional[Callable[[tuple[str, ...]], None]] = None,
    ):
        if steps <= 0:
            raise ValueError(f"steps must be positive, got {steps}")
        self.clock = clock
        self.steps = steps
        self.on_frame = on_frame
        self.on_settled = on_settled

        self._states: dict[str, AnimationState] = {}
        self._handle: Any = None
        self._status = SchedulerStatus.IDLE

    @property
    def status(self) -> SchedulerStatus:
        return self._status

    @property
    def scheduled(self) -> bool:
        """True while a frame request is outstanding."""
        return self._handle is not None

    def set_target(self, asset: str, price: float) -> None:
        """
        Point *asset* at a newly observed true price.

        The first observation of an asset starts it settled at that price.
        Later observations retarget it, even mid-animation.
        """
        state = self._states.get(asset)
        if state is None:
            self._states[asset] = AnimationState.settled_at(price, self.steps)
            return
        state.retarget(price)
        self._ensure_scheduled()

    def step(self) -> bool:
        """
        Advance every animating asset by one step.

        Returns True while at least one asset is still animating afterwards.
        """
        for state in self._states.values():
            state.advance()
        return any(not s.settled for s in self._states.values())

    def _on_frame(self) -> None:
        self._handle = None
        if self._status is SchedulerStatus.STOPPED:
            return

        self.step()
        if self.on_frame is not None:
            self.on_frame()

        # on_frame may have stopped us or retargeted an asset.
        if self._status is SchedulerStatus.STOPPED or self._handle is not None:
            return

        if self.animating_assets:
            self._handle = self.clock.request_frame(self._on_frame)
            return

        self._status = SchedulerStatus.IDLE
        log.debug("All %d asset(s) settled", len(self._states))
        if self.on_settled is not None:
            self.on_settled(tuple(self._states))

    def _ensure_scheduled(self) -> None:
        if self._status is SchedulerStatus.STOPPED or self._handle is not None:
            return
        if all(s.settled for s in self._states.values()):
            return
        self._status = SchedulerStatus.ANIMATING
        self._handle = self.clock.request_frame(self._on_frame)

    def stop(self) -> None:
        """Halt immediately. Safe to call repeatedly."""
        if self._handle is not None:
            self.clock.cancel_frame(self._handle)
            self._handle = None
        self._status = SchedulerStatus.STOPPED

    def start(self) -> None:
        """Resume after ``stop``; picks up any unfinished animation."""
        if self._status is not SchedulerStatus.STOPPED:
            return
        self._status = SchedulerStatus.IDLE
        self._ensure_scheduled()

    def is_animating(self, asset: str) -> bool:
        state = self._states.get(asset)
        return state is not None and not state.settled

    def displayed_price(self, asset: str) -> Optional[float]:
        """Current interpolated price for *asset*, or None if never observed."""
        state = self._states.get(asset)
        return None if state is None else state.current_price

    def state(self, asset: str) -> Optional[AnimationState]:
        """Copy of the animation state for *asset*."""
        state = self._states.get(asset)
        return None if state is None else replace(state)

    @property
    def animating_assets(self) -> list[str]:
        return [a for a, s in self._states.items() if not s.settled]

    @property
    def assets(self) -> list[str]:
        return list(self._states)
