"""Per-run mutable state of a simulation.

Owned by exactly one engine run and discarded when that run completes or
is stopped. Nothing here is shared between runs.
"""

from collections import deque
from dataclasses import dataclass, field
from typing import Any


@dataclass
class RunState:
    """Scheduler bookkeeping for one run."""

    ready: deque[str] = field(default_factory=deque)
    # Failed nodes, and nodes marked skipped so they are never entered again
    failed: set[str] = field(default_factory=set)
    # Written by set_state nodes, read by guardrails nodes
    scratch: dict[str, Any] = field(default_factory=dict)
    loop_counters: dict[str, int] = field(default_factory=dict)

    def enqueue(self, name: str) -> None:
        self.ready.append(name)

    def next_ready(self) -> str | None:
        return self.ready.popleft() if self.ready else None

    def mark_failed(self, name: str) -> None:
        self.failed.add(name)

    def is_failed(self, name: str) -> bool:
        return name in self.failed

    def bump_loop(self, name: str) -> int:
        """Count one more pass through a while node and return the new count."""
        self.loop_counters[name] = self.loop_counters.get(name, 0) + 1
        return self.loop_counters[name]
