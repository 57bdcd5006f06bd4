"""
Process-wide memoized schema capability flags.

Some columns (the per-set timing columns) only exist on migrated databases.
Whether they exist is probed once per process: the first caller runs the
probe under a lock, concurrent callers wait for that result, and the answer
(including a failed probe, cached as False) is reused until invalidate() is
called.
"""
from typing import Optional, Callable
from threading import Lock
import logging

logger = logging.getLogger(__name__)


class SchemaCapability:
    """A lazily probed, cached boolean about the database schema."""

    def __init__(self, name: str):
        self.name = name
        self._lock = Lock()
        self._value: Optional[bool] = None
        self.probe_count = 0

    @property
    def known(self) -> bool:
        return self._value is not None

    def get(self, probe: Callable[[], bool]) -> bool:
        """
        Return the cached capability, running ``probe`` on first use.

        A probe that raises counts as "not supported".
        """
        value = self._value
        if value is not None:
            return value

        with self._lock:
            if self._value is None:
                self.probe_count += 1
                try:
                    self._value = bool(probe())
                except Exception as e:
                    logger.warning(f"Schema probe '{self.name}' failed, assuming unsupported: {e}")
                    self._value = False
                logger.info(f"Schema capability '{self.name}' = {self._value}")
            return self._value

    def invalidate(self) -> None:
        """Forget the cached value so the next get() probes again."""
        with self._lock:
            self._value = None


# Whether exercise_sets has started_at/completed_at columns
timing_columns = SchemaCapability("exercise_sets.timing_columns")
