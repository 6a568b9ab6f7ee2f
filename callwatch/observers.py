"""Observers: where classified call events go.

A session hands every call event, in arrival order, to one ``Observer``.
``on_event`` may be a plain method or a coroutine; the session awaits the
result when it is awaitable, so a slow observer slows the read loop down
with it.
"""

import inspect
import logging
from abc import ABC, abstractmethod
from collections import Counter
from typing import Any, Callable, Dict, List, Optional

from callwatch.config.constants import LOGGER_NAME
from callwatch.models.call_events import (
    BaseCallEvent,
    CallEventKind,
    ChannelAnswered,
    ChannelBridged,
    ChannelCreated,
    ChannelHungUp,
    ChannelTrying,
    GatewayStateChanged,
    HeartbeatStat,
    Malformed,
    Unclassified,
)


class Observer(ABC):
    """Consumer of call events."""

    @abstractmethod
    def on_event(self, event: BaseCallEvent) -> Any:
        """Receive one call event. May return an awaitable."""


async def deliver(observer: Observer, event: BaseCallEvent) -> None:
    """Call ``observer.on_event`` and await its result if needed."""
    result = observer.on_event(event)
    if inspect.isawaitable(result):
        await result


def format_call_event(event: BaseCallEvent) -> str:
    """Render a call event as a single human-readable line."""
    if isinstance(event, ChannelCreated):
        return (
            f"[{event.timestamp}] <{event.call_id}> new incoming "
            f"[{event.direction}] {event.channel_name}"
        )
    if isinstance(event, (ChannelTrying, ChannelAnswered, ChannelBridged)):
        verb = {
            CallEventKind.CHANNEL_TRYING: "trying  ",
            CallEventKind.CHANNEL_ANSWERED: "answered",
            CallEventKind.CHANNEL_BRIDGED: "bridge  ",
        }[event.kind]
        return (
            f"[{event.timestamp}] <{event.call_id}> {verb} [{event.direction}] "
            f"{event.channel_name} for {event.caller_name} {event.caller_number}"
        )
    if isinstance(event, ChannelHungUp):
        line = (
            f"[{event.timestamp}] <{event.call_id}> hangup   "
            f"[{event.direction}] {event.channel_name}"
        )
        if event.hangup_cause:
            line += f" ({event.hangup_cause})"
        return line
    if isinstance(event, HeartbeatStat):
        line = f"[{event.timestamp}] STAT {event.uptime}"
        if event.session_count is not None:
            line += f" sessions={event.session_count}"
        if event.idle_cpu is not None:
            line += f" idle_cpu={event.idle_cpu}"
        return line
    if isinstance(event, GatewayStateChanged):
        return (
            f"[{event.timestamp}] Trunk {event.gateway} (ping={event.ping_status}) "
            f"changed state to {event.state} with status {event.status}"
        )
    if isinstance(event, Malformed):
        return (
            f"malformed {event.event_name} event, missing {', '.join(event.missing)}"
        )
    if isinstance(event, Unclassified):
        return f"unclassified event {event.event_name or '<no Event-Name>'}"
    return f"{event.kind.value} event"


class LogLineObserver(Observer):
    """Writes one log line per call event.

    Lifecycle facts are logged at INFO, malformed events at WARNING and
    unclassified events at DEBUG (there are many of them with ``event ALL``).
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(LOGGER_NAME)

    def on_event(self, event: BaseCallEvent) -> None:
        if isinstance(event, Unclassified):
            level = logging.DEBUG
        elif isinstance(event, Malformed):
            level = logging.WARNING
        else:
            level = logging.INFO
        self.logger.log(level, format_call_event(event))


class EventCounterObserver(Observer):
    """Counts call events per kind, for metrics export."""

    def __init__(self):
        self._counts: Counter = Counter()

    def on_event(self, event: BaseCallEvent) -> None:
        self._counts[event.kind.value] += 1

    @property
    def total(self) -> int:
        return sum(self._counts.values())

    def count(self, kind: CallEventKind) -> int:
        return self._counts[kind.value]

    def snapshot(self) -> Dict[str, Any]:
        return {"total": self.total, "by_kind": dict(self._counts)}

    def reset(self) -> None:
        self._counts.clear()


class CallbackObserver(Observer):
    """Adapts a plain function or coroutine function to an observer."""

    def __init__(self, callback: Callable[[BaseCallEvent], Any]):
        self.callback = callback

    def on_event(self, event: BaseCallEvent) -> Any:
        return self.callback(event)


class CompositeObserver(Observer):
    """Fans each event out to several observers, in registration order.

    A failing observer is logged and does not keep the event from the others.
    """

    def __init__(
        self,
        observers: Optional[List[Observer]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.observers: List[Observer] = list(observers or [])
        self.logger = logger or logging.getLogger(LOGGER_NAME)

    def add(self, observer: Observer) -> None:
        self.observers.append(observer)

    async def on_event(self, event: BaseCallEvent) -> None:
        for observer in self.observers:
            try:
                await deliver(observer, event)
            except Exception as e:
                self.logger.error(
                    f"Observer {type(observer).__name__} failed on {event.kind.value}: {e}"
                )
