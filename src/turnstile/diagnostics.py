"""Dispatch diagnostics.

A small structured-event channel. The dispatcher emits an event at each
decision point; sinks decide what to do with them (log, count, collect in
tests). The dispatcher never depends on a sink's storage format.

Event names:
    request.received      -- every request, before anything else
    route.matched         -- a route resolved (details: pattern, params)
    route.unmatched       -- no route for method/path
    middleware.blocked    -- a middleware returned False
    middleware.unresolved -- a middleware identifier has no implementation
    handler.error         -- an unexpected exception reached the error boundary
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from time import time
from typing import Any

logger = logging.getLogger("turnstile.diagnostics")


@dataclass(frozen=True, slots=True)
class DiagnosticEvent:
    """A structured dispatch event."""

    name: str
    timestamp: float = field(default_factory=time)
    method: str | None = None
    path: str | None = None
    details: dict[str, Any] = field(default_factory=dict)


type DiagnosticSink = Callable[[DiagnosticEvent], None]


_LEVELS: dict[str, int] = {
    "request.received": logging.INFO,
    "route.matched": logging.DEBUG,
    "route.unmatched": logging.WARNING,
    "middleware.blocked": logging.WARNING,
    "middleware.unresolved": logging.ERROR,
    "handler.error": logging.ERROR,
}


class LoggingSink:
    """Forward events to the ``turnstile.diagnostics`` logger.

    Unknown event names log at INFO.
    """

    __slots__ = ("_logger",)

    def __init__(self, target: logging.Logger | None = None) -> None:
        self._logger = target or logger

    def __call__(self, event: DiagnosticEvent) -> None:
        level = _LEVELS.get(event.name, logging.INFO)
        self._logger.log(
            level,
            "%s %s %s",
            event.name,
            event.method or "-",
            event.path or "-",
            extra={"event": event.name, "details": event.details},
        )


class Diagnostics:
    """A lock-guarded list of sinks.

    The sink list is the only shared mutable state in the dispatch path, so
    one ``Diagnostics`` can be shared by concurrent requests.
    """

    __slots__ = ("_lock", "_sinks")

    def __init__(self, *sinks: DiagnosticSink) -> None:
        self._lock = threading.Lock()
        self._sinks: list[DiagnosticSink] = list(sinks)

    @classmethod
    def default(cls) -> Diagnostics:
        return cls(LoggingSink())

    def add_sink(self, sink: DiagnosticSink) -> None:
        with self._lock:
            self._sinks.append(sink)

    def remove_sink(self, sink: DiagnosticSink) -> None:
        with self._lock:
            self._sinks.remove(sink)

    def emit(
        self,
        name: str,
        *,
        request: Any | None = None,
        **details: Any,
    ) -> DiagnosticEvent:
        """Build an event and deliver it to every sink, in order.

        A sink that raises is logged and skipped; the remaining sinks still run.
        """
        event = DiagnosticEvent(
            name=name,
            method=getattr(request, "method", None),
            path=getattr(request, "path", None),
            details=details,
        )
        with self._lock:
            sinks = tuple(self._sinks)
        for sink in sinks:
            try:
                sink(event)
            except Exception:
                logger.exception("Diagnostic sink %r failed on %s", sink, name)
        return event
