"""
Telemetry for the metrics migration.

Events are logged and recorded as Sentry breadcrumbs, then handed to any
registered sinks. Emitting never raises: a failing sink is logged and
skipped.
"""
from typing import Optional, List, Dict, Any, Callable
import hashlib
import logging

import sentry_sdk

logger = logging.getLogger(__name__)

EVENT_PARITY_MISMATCH = "metrics_parity_mismatch"
EVENT_PARITY_ERROR = "metrics_parity_error"

TelemetrySink = Callable[[str, Dict[str, Any]], None]


def hash_user_id(user_id: str, salt: str = "") -> str:
    """Stable anonymous id for telemetry payloads."""
    return hashlib.sha256(f"{salt}{user_id}".encode()).hexdigest()[:16]


class MetricsTelemetry:
    """Fan-out of telemetry events to the log, Sentry and extra sinks."""

    def __init__(self, sinks: Optional[List[TelemetrySink]] = None):
        self._sinks: List[TelemetrySink] = list(sinks or [])

    def add_sink(self, sink: TelemetrySink) -> None:
        self._sinks.append(sink)

    def clear_sinks(self) -> None:
        self._sinks.clear()

    def emit(self, event: str, payload: Optional[Dict[str, Any]] = None) -> None:
        payload = dict(payload or {})
        level = "error" if event == EVENT_PARITY_ERROR else "warning"
        logger.warning(f"[telemetry] {event}: {payload}")

        try:
            sentry_sdk.add_breadcrumb(
                category="metrics",
                message=event,
                data=payload,
                level=level,
            )
        except Exception as e:
            logger.warning(f"Failed to record telemetry breadcrumb: {e}")

        for sink in list(self._sinks):
            try:
                sink(event, payload)
            except Exception as e:
                logger.warning(f"Telemetry sink {sink!r} failed for {event}: {e}")


# Process-wide instance used by the facade unless one is injected
telemetry = MetricsTelemetry()
