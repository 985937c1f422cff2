"""
Event Bus - Fan-out of simulation events to read-only viewers.

Graph renderers, log panes and metric panels follow a run through the bus
instead of holding the update stream themselves. A session publishes:
- lifecycle events (started, suspended, resumed, completed, stopped)
- one event per part of every update (log, status change, data transfer)

Subscribers pick event types and may narrow to one run or one node. The
bus keeps a bounded history so a viewer attached late can catch up.
"""

import asyncio
import logging
from collections import Counter, deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any

from flowsim.runtime.updates import SimulationUpdate

logger = logging.getLogger(__name__)


class EventType(StrEnum):
    """Kinds of simulation events."""

    # Run lifecycle
    SIMULATION_STARTED = "simulation_started"
    SIMULATION_COMPLETED = "simulation_completed"
    SIMULATION_STOPPED = "simulation_stopped"
    SIMULATION_SUSPENDED = "simulation_suspended"
    SIMULATION_RESUMED = "simulation_resumed"

    # One per update part
    LOG_EMITTED = "log_emitted"
    NODE_STATUS_CHANGED = "node_status_changed"
    DATA_FLOW = "data_flow"


@dataclass
class SimulationEvent:
    """Something that happened in a run."""

    type: EventType
    run_id: str
    node_name: str | None = None
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "run_id": self.run_id,
            "node_name": self.node_name,
            "data": self.data,
            "timestamp": self.timestamp.isoformat(),
        }


EventHandler = Callable[[SimulationEvent], Awaitable[None]]


@dataclass
class Subscription:
    """A handler and the events it wants."""

    id: str
    event_types: set[EventType]
    handler: EventHandler
    filter_run: str | None = None
    filter_node: str | None = None

    def accepts(self, event: SimulationEvent) -> bool:
        if event.type not in self.event_types:
            return False
        if self.filter_run is not None and event.run_id != self.filter_run:
            return False
        return self.filter_node is None or event.node_name == self.filter_node


# Update part -> (event type, node the event is about)
_UPDATE_PARTS: tuple[tuple[str, EventType, str], ...] = (
    ("log", EventType.LOG_EMITTED, "node_name"),
    ("status", EventType.NODE_STATUS_CHANGED, "node_name"),
    ("data", EventType.DATA_FLOW, "source"),
    ("suspend", EventType.SIMULATION_SUSPENDED, "node_name"),
)


class EventBus:
    """
    Delivers simulation events to async subscribers.

    Example:
        bus = EventBus()

        async def on_status(event: SimulationEvent):
            print(f"{event.node_name} -> {event.data['status']}")

        bus.subscribe([EventType.NODE_STATUS_CHANGED], on_status, filter_run=session.run_id)
        session = SimulationSession(graph, event_bus=bus)
    """

    def __init__(self, max_history: int = 1000, max_concurrent_handlers: int = 10):
        """
        Args:
            max_history: Events kept for ``get_history``
            max_concurrent_handlers: Handlers allowed to run at once
        """
        self._subscriptions: dict[str, Subscription] = {}
        self._history: deque[SimulationEvent] = deque(maxlen=max_history)
        self._handler_slots = asyncio.Semaphore(max_concurrent_handlers)
        self._next_id = 0

    def subscribe(
        self,
        event_types: list[EventType],
        handler: EventHandler,
        filter_run: str | None = None,
        filter_node: str | None = None,
    ) -> str:
        """Register ``handler`` and return the id to unsubscribe with."""
        self._next_id += 1
        sub_id = f"sub_{self._next_id}"
        self._subscriptions[sub_id] = Subscription(
            id=sub_id,
            event_types=set(event_types),
            handler=handler,
            filter_run=filter_run,
            filter_node=filter_node,
        )
        logger.debug(f"{sub_id} listening for {sorted(t.value for t in event_types)}")
        return sub_id

    def unsubscribe(self, subscription_id: str) -> bool:
        """Drop a subscription; False if the id is unknown."""
        return self._subscriptions.pop(subscription_id, None) is not None

    async def publish(self, event: SimulationEvent) -> None:
        """Record ``event`` and await every matching handler."""
        self._history.append(event)

        handlers = [sub.handler for sub in self._subscriptions.values() if sub.accepts(event)]
        if handlers:
            await asyncio.gather(*(self._deliver(handler, event) for handler in handlers))

    async def _deliver(self, handler: EventHandler, event: SimulationEvent) -> None:
        # A failing viewer must not stall the run
        async with self._handler_slots:
            try:
                await handler(event)
            except Exception:
                logger.exception(f"Handler for {event.type} failed on run {event.run_id}")

    # === PUBLISHING HELPERS ===

    async def publish_update(self, run_id: str, update: SimulationUpdate) -> None:
        """Publish one event per part present in ``update``."""
        for attr, event_type, node_attr in _UPDATE_PARTS:
            part = getattr(update, attr)
            if part is None:
                continue
            await self.publish(
                SimulationEvent(
                    type=event_type,
                    run_id=run_id,
                    node_name=getattr(part, node_attr),
                    data=part.to_dict(),
                )
            )

    async def emit_simulation_started(self, run_id: str, step_mode: bool) -> None:
        await self.publish(
            SimulationEvent(EventType.SIMULATION_STARTED, run_id, data={"step_mode": step_mode})
        )

    async def emit_simulation_resumed(self, run_id: str) -> None:
        await self.publish(SimulationEvent(EventType.SIMULATION_RESUMED, run_id))

    async def emit_simulation_completed(self, run_id: str, summary: dict[str, Any]) -> None:
        await self.publish(SimulationEvent(EventType.SIMULATION_COMPLETED, run_id, data=summary))

    async def emit_simulation_stopped(self, run_id: str) -> None:
        await self.publish(SimulationEvent(EventType.SIMULATION_STOPPED, run_id))

    # === QUERIES ===

    def get_history(
        self,
        event_type: EventType | None = None,
        run_id: str | None = None,
        limit: int = 100,
    ) -> list[SimulationEvent]:
        """Recorded events, newest first."""
        selected = [
            event
            for event in reversed(self._history)
            if (event_type is None or event.type == event_type)
            and (run_id is None or event.run_id == run_id)
        ]
        return selected[:limit]

    def get_stats(self) -> dict:
        counts = Counter(event.type.value for event in self._history)
        return {
            "total_events": len(self._history),
            "subscriptions": len(self._subscriptions),
            "events_by_type": dict(counts),
        }

    async def wait_for(
        self,
        event_type: EventType,
        run_id: str | None = None,
        node_name: str | None = None,
        timeout: float | None = None,
    ) -> SimulationEvent | None:
        """Wait for the next matching event; None on timeout."""
        arrived: asyncio.Future[SimulationEvent] = asyncio.get_running_loop().create_future()

        async def capture(event: SimulationEvent) -> None:
            if not arrived.done():
                arrived.set_result(event)

        sub_id = self.subscribe([event_type], capture, filter_run=run_id, filter_node=node_name)
        try:
            return await asyncio.wait_for(arrived, timeout=timeout)
        except TimeoutError:
            return None
        finally:
            self.unsubscribe(sub_id)
