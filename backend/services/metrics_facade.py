"""
Shadow facade for the v1 to v2 metrics migration.

Modes, selected by two independent flags:
- default: return the v1 summary unchanged
- v2: skip v1 and return the v2 envelope (wins when both flags are set)
- shadow: return v1, and run v2 in the background to diff the two

The shadow run is fire-and-observe. It is scheduled on a thread pool after
v1 has been produced, and every failure inside it is caught at its own
boundary and reported as telemetry.
"""
from typing import Optional, Dict, Any, Callable, Set
from concurrent.futures import ThreadPoolExecutor
import asyncio
import logging

from application.ports.metrics_repository import DateRange
from backend.core.metrics.records import ServiceOutput
from backend.services.metrics_parity import summarize_parity_diff
from backend.services.metrics_telemetry import (
    EVENT_PARITY_ERROR,
    EVENT_PARITY_MISMATCH,
    MetricsTelemetry,
    telemetry as default_telemetry,
)

logger = logging.getLogger(__name__)

MODE_V1 = "v1"
MODE_V2 = "v2"
MODE_SHADOW = "shadow"

FetchV1 = Callable[[str, DateRange], Dict[str, Any]]
FetchV2 = Callable[[str, DateRange], ServiceOutput]

# Thread pool for sync repository work called from async handlers
_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="metrics_")


class MetricsFacade:
    """Chooses between the v1 and v2 metrics paths per the feature flags."""

    def __init__(
        self,
        fetch_v1: FetchV1,
        fetch_v2: FetchV2,
        *,
        v2_enabled: bool = False,
        shadow_enabled: bool = False,
        telemetry: Optional[MetricsTelemetry] = None,
        hash_user_id: Optional[Callable[[str], str]] = None,
        executor: Optional[ThreadPoolExecutor] = None,
    ):
        """
        Initialize the facade.

        Args:
            fetch_v1: Produces the legacy summary dict
            fetch_v2: Produces the v2 ServiceOutput
            v2_enabled: Serve v2 instead of v1
            shadow_enabled: Serve v1 and compare against v2 in the background
            telemetry: Event emitter (process-wide instance by default)
            hash_user_id: Anonymizes the user id attached to telemetry events
            executor: Thread pool for the sync fetchers
        """
        self._fetch_v1 = fetch_v1
        self._fetch_v2 = fetch_v2
        self._v2_enabled = v2_enabled
        self._shadow_enabled = shadow_enabled
        self._telemetry = telemetry or default_telemetry
        self._hash_user_id = hash_user_id
        self._executor = executor or _executor
        self._pending: Set[asyncio.Future] = set()

    @property
    def mode(self) -> str:
        if self._v2_enabled:
            return MODE_V2
        if self._shadow_enabled:
            return MODE_SHADOW
        return MODE_V1

    async def get_metrics(self, user_id: str, date_range: DateRange) -> Dict[str, Any]:
        """
        Metrics for the caller, in the shape the current mode serves.

        Errors from the primary path propagate. Errors from the shadow path
        never do.
        """
        loop = asyncio.get_event_loop()

        if self.mode == MODE_V2:
            output = await loop.run_in_executor(
                self._executor, self._fetch_v2, user_id, date_range
            )
            return output.to_dict()

        v1 = await loop.run_in_executor(self._executor, self._fetch_v1, user_id, date_range)

        if self.mode == MODE_SHADOW:
            future = loop.run_in_executor(
                self._executor, self._run_shadow, user_id, date_range, v1
            )
            self._pending.add(future)
            future.add_done_callback(self._pending.discard)

        return v1

    async def drain(self) -> None:
        """Wait for in-flight shadow runs to finish."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _user_tag(self, user_id: str) -> Dict[str, Any]:
        if self._hash_user_id is None:
            return {}
        try:
            return {"userIdHash": self._hash_user_id(user_id)}
        except Exception as e:
            logger.warning(f"User id hashing failed: {e}")
            return {}

    def _run_shadow(
        self,
        user_id: str,
        date_range: DateRange,
        v1: Dict[str, Any],
    ) -> Optional[Dict[str, Any]]:
        """Compute v2, diff it against v1 and report. Never raises."""
        try:
            v2 = self._fetch_v2(user_id, date_range).to_dict()
            diff = summarize_parity_diff(v1, v2)
        except Exception as e:
            logger.warning(f"Shadow metrics v2 failed: {e}")
            self._telemetry.emit(EVENT_PARITY_ERROR, {
                "error": str(e),
                "errorType": type(e).__name__,
                **self._user_tag(user_id),
            })
            return None

        if diff is not None:
            self._telemetry.emit(EVENT_PARITY_MISMATCH, {
                **diff,
                "range": {"start": date_range.start.isoformat(), "end": date_range.end.isoformat()},
                **self._user_tag(user_id),
            })
        return diff
