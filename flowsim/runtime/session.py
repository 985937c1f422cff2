"""
Simulation Session - Drives an engine from a background task.

The session owns one engine and one task. The task pulls updates from the
engine, folds them into a RunMonitor, publishes them on an optional
EventBus, and hands them to the caller through a one-slot channel, so it
never runs more than one update ahead of the consumer.

When a suspension marker should pause the run (every marker in step mode,
and user_approval markers when ``pause_on_approval`` is set) the task waits
until the caller calls ``next_step()``.
"""

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator
from dataclasses import asdict
from typing import TYPE_CHECKING

from flowsim.graph.executor import RunStatus, RunSummary, SimulationEngine, SimulationError
from flowsim.runtime.monitor import RunMonitor
from flowsim.runtime.updates import SimulationUpdate

if TYPE_CHECKING:
    from flowsim.config import SimulationConfig
    from flowsim.graph.edge import WorkflowGraph
    from flowsim.runtime.event_bus import EventBus

logger = logging.getLogger(__name__)


class SimulationSession:
    """
    Runs one simulation in the background and delivers its updates.

    Example:
        session = SimulationSession(graph, step_mode=True)
        await session.start()

        async for update in session.updates():
            render(update)
            if session.waiting:
                await ask_user()
                session.next_step()
    """

    def __init__(
        self,
        graph: "WorkflowGraph",
        step_mode: bool = False,
        *,
        engine: SimulationEngine | None = None,
        config: "SimulationConfig | None" = None,
        event_bus: "EventBus | None" = None,
        pause_on_approval: bool = False,
    ):
        """
        Initialize the session.

        Args:
            graph: The workflow graph to simulate
            step_mode: Pause after every node step
            engine: Pre-built engine (otherwise built from ``config``)
            config: Simulation configuration for the default engine
            event_bus: Optional bus that receives every update
            pause_on_approval: Also pause at user_approval nodes outside step mode
        """
        self.graph = graph
        self.step_mode = step_mode
        self.engine = engine or SimulationEngine.from_config(graph, step_mode, config)
        self.run_id = self.engine.run_id
        self.monitor = RunMonitor(graph)
        self._event_bus = event_bus
        self._pause_on_approval = pause_on_approval

        self._channel: asyncio.Queue[SimulationUpdate | None] = asyncio.Queue(maxsize=1)
        self._resume = asyncio.Event()
        self._task: asyncio.Task | None = None
        self._paused = False
        self._channel_closed = False

    async def __aenter__(self) -> "SimulationSession":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()

    # === STATE ===

    @property
    def waiting(self) -> bool:
        """True while the run is paused until ``next_step()``."""
        return self._paused

    @property
    def status(self) -> RunStatus:
        return self.engine.status

    @property
    def summary(self) -> RunSummary | None:
        return self.engine.summary

    # === CONTROL ===

    async def start(self) -> None:
        """Start pulling updates in the background."""
        if self._task is not None:
            raise SimulationError(f"Session {self.run_id} already started")

        if self._event_bus:
            await self._event_bus.emit_simulation_started(self.run_id, self.step_mode)
        self._task = asyncio.create_task(self._pump(), name=f"flowsim-{self.run_id}")
        logger.info(f"Session {self.run_id} started (step_mode={self.step_mode})")

    def next_step(self) -> bool:
        """Resume a paused run. Returns False if the run was not paused."""
        if not self._paused:
            return False
        self._paused = False
        self._resume.set()
        return True

    async def stop(self) -> None:
        """Cancel the run; undelivered updates are dropped."""
        self.engine.stop()

        if self._task is not None and not self._task.done():
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task

        self._paused = False
        self._close_channel()

        if self._event_bus and self.engine.status == RunStatus.STOPPED:
            await self._event_bus.emit_simulation_stopped(self.run_id)
        logger.info(f"Session {self.run_id} closed ({self.engine.status})")

    # === CONSUMPTION ===

    async def updates(self) -> AsyncIterator[SimulationUpdate]:
        """Yield delivered updates until the run ends or is stopped."""
        while True:
            update = await self._channel.get()
            if update is None:
                return
            # Paused from the moment the consumer holds the marker
            self._paused = self._should_pause(update)
            yield update

    async def run(self, auto_resume: bool = True) -> list[SimulationUpdate]:
        """
        Drive the run to its end and return every update.

        Args:
            auto_resume: Resume immediately after each pause
        """
        if self._task is None:
            await self.start()

        collected = []
        async for update in self.updates():
            collected.append(update)
            if auto_resume and self._paused:
                self.next_step()

        if self._task is not None:
            await self._task
        return collected

    # === INTERNALS ===

    def _should_pause(self, update: SimulationUpdate) -> bool:
        if update.suspend is None:
            return False
        return self.step_mode or self._pause_on_approval

    async def _pump(self) -> None:
        try:
            async for update in self.engine:
                self.monitor.apply(update)
                if self._event_bus:
                    await self._event_bus.publish_update(self.run_id, update)

                await self._channel.put(update)

                if self._should_pause(update):
                    await self._resume.wait()
                    self._resume.clear()
                    if self._event_bus:
                        await self._event_bus.emit_simulation_resumed(self.run_id)

            if self._event_bus and self.engine.summary is not None:
                await self._event_bus.emit_simulation_completed(
                    self.run_id, asdict(self.engine.summary)
                )
            await self._channel.put(None)
            self._channel_closed = True
        except asyncio.CancelledError:
            self._close_channel()
            raise
        except Exception:
            logger.exception(f"Session {self.run_id} failed")
            self._close_channel()
            raise

    def _close_channel(self) -> None:
        """Wake consumers with the end-of-stream marker, dropping anything undelivered."""
        if self._channel_closed:
            return
        while not self._channel.empty():
            self._channel.get_nowait()
        self._channel.put_nowait(None)
        self._channel_closed = True
