"""
Named diagnostic events emitted by the query runner, result processors and writer.

A hook is any callable taking ``(name, fields)``. The default hook routes events to
the ``athena_results.events`` logger so hosts only need to configure logging; hosts
that ship diagnostics elsewhere pass their own hook.
"""

import logging
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

EventHook = Callable[[str, Dict[str, Any]], None]


def log_event(name: str, fields: Dict[str, Any]) -> None:
    level = logging.ERROR if name.endswith(".failed") else logging.INFO
    details = " ".join(f"{k}={v}" for k, v in fields.items())
    logger.log(level, "%s %s", name, details)


def emit(hook: Optional[EventHook], name: str, **fields: Any) -> None:
    """Send an event to the hook; a failing hook is logged and never interrupts processing."""
    try:
        (hook or log_event)(name, fields)
    except Exception as e:
        logger.exception("Event hook failed for %s: %s", name, e)
