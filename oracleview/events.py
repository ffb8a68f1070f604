import logging
from abc import ABC
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable

logger = logging.getLogger(__name__)


def event(cls):
    return dataclass(frozen=True, slots=True)(cls)


@dataclass(frozen=True, slots=True, kw_only=True)
class DomainEvent(ABC):
    timestamp: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )


@event
class PricesAcceptedEvent(DomainEvent):
    """Emitted after a processing pass accepted at least one update."""

    assets: tuple[str, ...]
    accepted: int
    skipped: int


@event
class FrameRenderedEvent(DomainEvent):
    """Emitted once per rendered frame with the projected chart views."""

    frame: Any


@event
class AnimationSettledEvent(DomainEvent):
    """Emitted when every asset's displayed price has reached its target."""

    assets: tuple[str, ...]


class EventDispatcher:
    """Synchronous event dispatcher for domain events.

    The chart engine runs on a single cooperative thread driven by frame
    callbacks, so handlers are plain callables invoked in subscription order.
    Exceptions in handlers are logged but don't stop dispatch to other handlers.
    """

    def __init__(self):
        self._handlers: dict[type[DomainEvent], list[Callable]] = defaultdict(list)

    def subscribe(
        self,
        event_type: type[DomainEvent],
        handler: Callable[[DomainEvent], None],
    ):
        """Register a handler for an event type.

        Args:
            event_type: The event class to subscribe to
            handler: Callable that accepts the event
        """
        self._handlers[event_type].append(handler)

    def unsubscribe(self, event_type: type[DomainEvent], handler: Callable):
        """Unregister a handler from an event type."""
        if handler in self._handlers[event_type]:
            self._handlers[event_type].remove(handler)

    def publish(self, event: DomainEvent):
        """Dispatch event to all registered handlers.

        Handlers are called sequentially. Exceptions are logged and don't
        prevent other handlers from running.

        Args:
            event: The domain event to dispatch
        """
        # Copy so a handler may unsubscribe itself mid-dispatch.
        handlers = list(self._handlers[type(event)])
        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error(
                    f"Event handler {getattr(handler, '__name__', handler)} failed "
                    f"for {event.__class__.__name__}: {e}",
                    exc_info=True,
                )
