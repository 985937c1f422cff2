"""
Observability module for run correlation and structured logging.

- Run context propagation via ContextVar
- Structured JSON logging for machines
- Human-readable logging for development
"""

from flowsim.observability.logging import (
    clear_run_context,
    configure_logging,
    get_run_context,
    set_run_context,
)

__all__ = [
    "configure_logging",
    "get_run_context",
    "set_run_context",
    "clear_run_context",
]
