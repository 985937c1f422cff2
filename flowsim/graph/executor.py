"""
Simulation Engine - Replays the execution semantics of a workflow graph.

The engine:
1. Seeds a ready-queue with every node that has no incoming link
2. Visits queued nodes in FIFO order, simulating their work with a latency wait
3. Lets the node's role behavior choose successors, validates, and routes
4. Marks every node downstream of a failure as skipped
5. Closes the run with a summary

Nothing is executed for real: tools are never called, work is a timed
wait, and branch decisions are random draws.

The engine is an explicit state object consumed one update at a time:

    engine = SimulationEngine(graph, step_mode=True)
    while True:
        result = await engine.step()
        if result.done:
            break
        render(result.update)

Each call advances the run by at most one phase (open the run, start a
node, finish a node, propagate failures, close) and then hands out the
updates of that phase one by one, so the engine is never more than one
unit of work ahead of its caller.
"""

import asyncio
import contextlib
import logging
import random
import uuid
from collections import deque
from collections.abc import AsyncIterator
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from flowsim.graph.edge import WorkflowGraph
from flowsim.graph.latency import LatencyModel, LatencySampler
from flowsim.graph.node import AgentNode, NodeRole
from flowsim.graph.roles import DEFAULT_MAX_LOOP_ITERATIONS, RoleContext, behavior_for
from flowsim.graph.run_state import RunState
from flowsim.graph.validator import validate_node
from flowsim.observability import clear_run_context, set_run_context
from flowsim.runtime.updates import LogKind, NodeStatus, SimulationUpdate

if TYPE_CHECKING:
    from flowsim.config import SimulationConfig

logger = logging.getLogger(__name__)

INVALID_FLOW_MESSAGE = "Invalid flow format. Expected a list."
START_MESSAGE = "Starting system simulation..."
NODE_START_MESSAGE = "Starting node..."
SKIPPED_MESSAGE = "Skipped because a preceding node failed."

# Simulated payload per transfer, in KB: uniform in [min, min + spread)
DATA_SIZE_MIN_KB = 5.0
DATA_SIZE_SPREAD_KB = 20.0


class SimulationError(Exception):
    """Base class for misuse of a simulation run."""


class SimulationStoppedError(SimulationError):
    """Raised when stepping a run that was stopped."""


class ConcurrentStepError(SimulationError):
    """Raised when ``step()`` is called while another step is in flight."""


class RunStatus(StrEnum):
    """Lifecycle of a whole run."""

    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    STOPPED = "stopped"


class _Phase(StrEnum):
    OPEN = "open"
    SCHEDULE = "schedule"
    PROPAGATE = "propagate"
    CLOSE = "close"
    DONE = "done"


@dataclass(frozen=True)
class StepResult:
    """Result of one ``step()`` call: an update, or ``done``."""

    update: SimulationUpdate | None
    done: bool


@dataclass(frozen=True)
class RunSummary:
    """Close-out counts of a completed run."""

    total: int
    succeeded: int
    failed: int  # failed or skipped

    @property
    def ok(self) -> bool:
        return self.failed == 0


class SimulationEngine:
    """
    Simulates one run of a workflow graph.

    Not re-entrant: one engine drives one run for one caller. Construct a
    new engine for every run.

    Example:
        engine = SimulationEngine(graph, time_scale=0)
        updates = await engine.run()
        engine.summary  # RunSummary(total=3, succeeded=2, failed=1)
    """

    def __init__(
        self,
        graph: WorkflowGraph,
        step_mode: bool = False,
        *,
        sampler: LatencyModel | None = None,
        rng: random.Random | None = None,
        time_scale: float = 1.0,
        max_loop_iterations: int = DEFAULT_MAX_LOOP_ITERATIONS,
        run_id: str | None = None,
    ):
        """
        Initialize the engine.

        Args:
            graph: The workflow graph to simulate
            step_mode: Emit a suspension marker after every node step
            sampler: Latency model (defaults to a LatencySampler sharing ``rng``)
            rng: Source of branch draws and data sizes
            time_scale: Multiplier on simulated latency; 0 skips the waits
            max_loop_iterations: Passes through a while node before it exits
            run_id: Identifier used for log correlation
        """
        self.graph = graph
        self.step_mode = step_mode
        self.run_id = run_id or f"run_{uuid.uuid4().hex[:8]}"
        self.time_scale = time_scale
        self.max_loop_iterations = max_loop_iterations
        self._rng = rng or random.Random()
        self.sampler: LatencyModel = sampler or LatencySampler(rng=self._rng)

        self._status = RunStatus.IDLE
        self._phase = _Phase.OPEN
        self._run: RunState | None = None
        self._current: AgentNode | None = None
        self._pending: deque[SimulationUpdate] = deque()
        self._summary: RunSummary | None = None
        self._waiting = False
        self._stepping = False
        self._stop_event = asyncio.Event()

    @classmethod
    def from_config(
        cls,
        graph: WorkflowGraph,
        step_mode: bool = False,
        config: "SimulationConfig | None" = None,
    ) -> "SimulationEngine":
        """Build an engine from a SimulationConfig (or the user's configuration)."""
        from flowsim.config import SimulationConfig

        config = config or SimulationConfig()
        rng = random.Random(config.seed) if config.seed is not None else None
        return cls(
            graph,
            step_mode=step_mode,
            rng=rng,
            time_scale=config.time_scale,
            max_loop_iterations=config.max_loop_iterations,
        )

    # === STATE ===

    @property
    def status(self) -> RunStatus:
        return self._status

    @property
    def summary(self) -> RunSummary | None:
        """Set once the run has closed normally."""
        return self._summary

    @property
    def is_waiting(self) -> bool:
        """True if the last update handed out was a suspension marker."""
        return self._waiting

    @property
    def run_state(self) -> RunState | None:
        """Live run state; None before the run opens and after it ends."""
        return self._run

    # === CONSUMPTION ===

    async def step(self) -> StepResult:
        """
        Return the next update of the run.

        Cancelling the awaiting task stops the run; it cannot be resumed.

        Raises:
            SimulationStoppedError: The run was stopped
            ConcurrentStepError: Another step is still in flight
        """
        if self._status == RunStatus.STOPPED:
            raise SimulationStoppedError(f"Simulation {self.run_id} was stopped")
        if self._stepping:
            raise ConcurrentStepError(f"Simulation {self.run_id} is already stepping")

        self._stepping = True
        try:
            while not self._pending:
                if self._phase == _Phase.DONE:
                    self._waiting = False
                    return StepResult(update=None, done=True)
                await self._advance()
                if self._status == RunStatus.STOPPED:
                    return StepResult(update=None, done=True)

            update = self._pending.popleft()
            self._waiting = update.suspend is not None
            return StepResult(update=update, done=False)
        except asyncio.CancelledError:
            # A cancelled caller abandons the run; the node in flight is lost
            self.stop()
            raise
        finally:
            self._stepping = False

    async def __aiter__(self) -> AsyncIterator[SimulationUpdate]:
        try:
            while self._status != RunStatus.STOPPED:
                result = await self.step()
                if result.done:
                    return
                yield result.update
        finally:
            # Leaving the loop early abandons the run, unless another caller is stepping
            if self._status != RunStatus.COMPLETED and not self._stepping:
                self.stop()

    async def run(self) -> list[SimulationUpdate]:
        """Drain the whole run and return every update."""
        return [update async for update in self]

    def stop(self) -> None:
        """
        Abandon the run.

        Wakes a pending latency wait, drops the run state and forbids any
        further step. Updates already handed out stay as they were.
        """
        if self._status in (RunStatus.STOPPED, RunStatus.COMPLETED):
            return
        self._stop_event.set()
        self._pending.clear()
        logger.info(f"Simulation {self.run_id} stopped", extra={"event": "run_stopped"})
        self._finish(RunStatus.STOPPED)

    # === PHASES ===

    async def _advance(self) -> None:
        if self._phase == _Phase.OPEN:
            self._open()
        elif self._phase == _Phase.SCHEDULE:
            if self._current is None:
                self._begin_next_node()
            else:
                await self._finish_node(self._current)
        elif self._phase == _Phase.PROPAGATE:
            self._propagate_failures()
        elif self._phase == _Phase.CLOSE:
            self._close()

    def _open(self) -> None:
        self._run = RunState()
        self._status = RunStatus.RUNNING
        set_run_context(run_id=self.run_id, graph=self.graph.name or None)

        if not self.graph.has_valid_flow():
            logger.error(
                f"Simulation {self.run_id} aborted: flow is "
                f"{type(self.graph.flow).__name__}, not a list of links",
                extra={"event": "invalid_flow"},
            )
            self._emit(SimulationUpdate.of_log(LogKind.ERROR, INVALID_FLOW_MESSAGE))
            self._finish(RunStatus.COMPLETED)
            return

        logger.info(
            f"Simulation {self.run_id} started with {len(self.graph.nodes)} nodes",
            extra={"event": "run_started"},
        )
        self._emit(SimulationUpdate.of_log(LogKind.INFO, START_MESSAGE))
        for name in self.graph.entry_nodes():
            self._run.enqueue(name)
        self._phase = _Phase.SCHEDULE

    def _begin_next_node(self) -> None:
        run = self._run
        while (name := run.next_ready()) is not None:
            node = self.graph.get_node(name)
            if node is None or run.is_failed(name):
                # Dangling reference, or already failed/propagated
                continue

            self._current = node
            set_run_context(node=name)
            logger.debug(f"Node '{name}' ({node.role}) running", extra={"node_name": name})
            self._emit(SimulationUpdate.of_log(LogKind.INFO, NODE_START_MESSAGE, name))
            self._emit(SimulationUpdate.of_status(name, NodeStatus.RUNNING))
            return

        self._phase = _Phase.PROPAGATE

    async def _finish_node(self, node: AgentNode) -> None:
        self._current = None
        latency_ms = self.sampler.sample(node)
        await self._simulate_work(latency_ms)
        if self._status == RunStatus.STOPPED:
            return

        run = self._run
        ctx = RoleContext(
            node=node,
            graph=self.graph,
            state=run,
            rng=self._rng,
            duration_ms=round(latency_ms),
            max_loop_iterations=self.max_loop_iterations,
        )
        outcome = behavior_for(node.role).resolve(ctx)
        verdict = outcome.verdict or validate_node(node, self.graph)

        for entry in outcome.logs:
            self._emit(SimulationUpdate(log=entry))
        if outcome.suspend is not None:
            self._emit(SimulationUpdate(suspend=outcome.suspend))
        for name in outcome.requeue:
            run.enqueue(name)

        if not verdict.ok:
            run.mark_failed(node.name)
            logger.debug(
                f"Node '{node.name}' failed: {verdict.error}",
                extra={"node_name": node.name, "status": NodeStatus.FAILED.value},
            )
            self._emit(
                SimulationUpdate.of_log(
                    LogKind.ERROR, f"Validation error: {verdict.error}", node.name
                )
            )
            self._emit(
                SimulationUpdate.of_log(
                    LogKind.INFO, f"Suggested solution: {verdict.solution}", node.name
                )
            )
            self._emit(
                SimulationUpdate.of_status(
                    node.name, NodeStatus.FAILED, verdict.error, verdict.solution
                )
            )
        else:
            logger.debug(
                f"Node '{node.name}' succeeded",
                extra={"node_name": node.name, "status": NodeStatus.SUCCESS.value},
            )
            self._emit(SimulationUpdate.of_status(node.name, NodeStatus.SUCCESS))
            for successor in outcome.successors:
                if run.is_failed(successor):
                    continue
                size_kb = self._rng.random() * DATA_SIZE_SPREAD_KB + DATA_SIZE_MIN_KB
                self._emit(SimulationUpdate.of_data(node.name, successor, size_kb))
                run.enqueue(successor)

        if self.step_mode and node.role != NodeRole.USER_APPROVAL and run.ready:
            self._emit(SimulationUpdate.of_suspend(node.name))

    def _propagate_failures(self) -> None:
        run = self._run
        # Repeat until stable so the declaration order cannot hide a descendant
        changed = True
        while changed:
            changed = False
            for node in self.graph.nodes:
                if run.is_failed(node.name):
                    continue
                if any(run.is_failed(p) for p in self.graph.predecessors(node.name)):
                    # Reuse the failed set so the node is never entered again
                    run.mark_failed(node.name)
                    self._emit(
                        SimulationUpdate.of_status(node.name, NodeStatus.SKIPPED, SKIPPED_MESSAGE)
                    )
                    changed = True
        self._phase = _Phase.CLOSE

    def _close(self) -> None:
        run = self._run
        total = len(self.graph.nodes)
        succeeded = sum(1 for node in self.graph.nodes if not run.is_failed(node.name))
        failed = len(run.failed)
        self._summary = RunSummary(total=total, succeeded=succeeded, failed=failed)

        if failed > 0:
            message = (
                f"Simulation finished. Success: {succeeded}/{total}. "
                f"Errors/Skipped: {failed}/{total}."
            )
            self._emit(SimulationUpdate.of_log(LogKind.ERROR, message))
        else:
            message = (
                f"Simulation finished successfully. All nodes ({total}/{total}) were processed."
            )
            self._emit(SimulationUpdate.of_log(LogKind.SUCCESS, message))

        logger.info(
            f"Simulation {self.run_id} completed: {succeeded}/{total} succeeded, {failed} failed",
            extra={"event": "run_completed"},
        )
        self._finish(RunStatus.COMPLETED)

    # === HELPERS ===

    def _emit(self, update: SimulationUpdate) -> None:
        self._pending.append(update)

    def _finish(self, status: RunStatus) -> None:
        self._status = status
        self._phase = _Phase.DONE
        self._run = None
        self._current = None
        clear_run_context()

    async def _simulate_work(self, latency_ms: float) -> None:
        """Wait out the simulated latency without blocking the event loop."""
        delay = latency_ms / 1000 * self.time_scale
        if delay <= 0:
            await asyncio.sleep(0)
            return
        with contextlib.suppress(TimeoutError):
            await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
