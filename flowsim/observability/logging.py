"""
Logging for simulation runs, correlated by run.

Modules log through ``logging.getLogger(__name__)`` as usual. The engine
stores the run it is driving in a ContextVar, and both formatters read it
back, so every record emitted while a run is active carries its run id,
graph name and current node without any module passing them along:

    SimulationEngine opens a run   -> set_run_context(run_id=..., graph=...)
    SimulationEngine starts a node -> set_run_context(node=...)
    flowsim.graph.roles logs       -> record shows run, graph and node

Concurrent runs in separate asyncio tasks keep separate contexts.
"""

import json
import logging
import os
import re
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any

run_context: ContextVar[dict[str, Any] | None] = ContextVar("run_context", default=None)

_ANSI = re.compile(r"\x1b\[[0-9;]*m")

# Fields copied from ``extra={...}`` into JSON records
EXTRA_FIELDS = ("event", "node_name", "status", "latency_ms")


def strip_ansi_codes(text: str) -> str:
    return _ANSI.sub("", text)


class StructuredFormatter(logging.Formatter):
    """One JSON object per record: base fields, run context, selected extras."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": strip_ansi_codes(record.getMessage()),
            **(run_context.get() or {}),
        }
        payload.update(
            {name: getattr(record, name) for name in EXTRA_FIELDS if hasattr(record, name)}
        )
        if record.exc_info:
            payload["exception"] = strip_ansi_codes(self.formatException(record.exc_info))
        return json.dumps(payload, default=str)


class HumanReadableFormatter(logging.Formatter):
    """
    Coloured single-line output for terminals.

    ``[INFO    ] [run:1a2b3c4d | graph:research | node:Researcher] message [event]``
    """

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    @staticmethod
    def run_prefix(context: dict[str, Any]) -> str:
        parts = []
        if run_id := context.get("run_id"):
            parts.append(f"run:{run_id[-8:]}")
        for key in ("graph", "node"):
            if value := context.get(key):
                parts.append(f"{key}:{value}")
        return f"[{' | '.join(parts)}] " if parts else ""

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, "")
        line = (
            f"{color}[{record.levelname:<8}]{self.RESET} "
            f"{self.run_prefix(run_context.get() or {})}{record.getMessage()}"
        )
        event = getattr(record, "event", None)
        if event is not None:
            line += f" [{event}]"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def _resolve_format(format: str) -> str:
    if format != "auto":
        return format
    if os.getenv("LOG_FORMAT", "").lower() == "json":
        return "json"
    return "json" if os.getenv("ENV", "development").lower() == "production" else "human"


def configure_logging(level: str = "INFO", format: str = "auto") -> None:
    """
    Install a single root handler. The CLI calls this once at startup.

    Args:
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL (any case)
        format: "json", "human", or "auto" (JSON when LOG_FORMAT=json or
            ENV=production)
    """
    handler = logging.StreamHandler()
    if _resolve_format(format) == "json":
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(HumanReadableFormatter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level.upper())


def set_run_context(**fields: Any) -> None:
    """Merge ``fields`` into the run context of the current task."""
    run_context.set({**(run_context.get() or {}), **fields})


def get_run_context() -> dict:
    return dict(run_context.get() or {})


def clear_run_context() -> None:
    run_context.set(None)
