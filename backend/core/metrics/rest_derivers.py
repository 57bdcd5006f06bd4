"""
Rest-Time Derivers.

Two strategies turn a day's sets into a flat list of rest durations (ms):

- Legacy: one "performed-at" timestamp per set, rest = difference between
  consecutive timestamps.
- Corrected: explicit start/completion pairs, rest = start of next set minus
  completion of the current one, with outlier rejection.

Which one runs is decided by the day's timing quality, so calculators only
ever see one list shape. This module also provides summary statistics over
rest samples and a validator that reports timing anomalies in raw sets.
"""
from typing import Optional, List, Dict, Any, Iterable
from dataclasses import dataclass, field
from collections import OrderedDict
import math
import statistics
import logging

from application.ports.metrics_repository import SetRecord, TIMING_ACTUAL
from backend.core.metrics.day_context import timestamp_ms
from backend.core.metrics.records import DayContext

logger = logging.getLogger(__name__)

MAX_REST_MS = 30 * 60 * 1000  # longer gaps are stuck timers or skipped sets
MAX_SET_DURATION_SEC = 10 * 60


# =============================================================================
# Derivers
# =============================================================================


def _legacy_anchor_ms(s: SetRecord) -> Optional[float]:
    return (
        timestamp_ms(s.performed_at)
        or timestamp_ms(s.completed_at)
        or timestamp_ms(s.started_at)
    )


def derive_rest_legacy(sets: Iterable[SetRecord]) -> List[float]:
    """
    Rest intervals from a single timestamp stream.

    Sets are ordered by ``performed_at`` (completion or start time when that
    is missing); sets with no timestamp at all are ignored. Negative and
    non-finite differences are discarded.
    """
    stamps = sorted(t for t in (_legacy_anchor_ms(s) for s in sets) if t is not None)
    intervals = []
    for prev, cur in zip(stamps, stamps[1:]):
        diff = cur - prev
        if math.isfinite(diff) and diff >= 0:
            intervals.append(diff)
    return intervals


def _completion_ms(s: SetRecord) -> Optional[float]:
    return timestamp_ms(s.completed_at) or timestamp_ms(s.performed_at)


def derive_rest_corrected(sets: Iterable[SetRecord]) -> List[float]:
    """
    Rest intervals from start/completion pairs.

    Sets are ordered by completion time; sets without one sort last in their
    original order. For each adjacent pair the rest is
    ``start(next) - complete(current)``. Intervals outside ``[0, 30 min]``
    are dropped. When a timestamp of the pair is missing, the next set's
    stored rest value is used if positive.
    """
    keyed = [(_completion_ms(s), i, s) for i, s in enumerate(sets)]
    keyed.sort(key=lambda k: (k[0] is None, k[0] if k[0] is not None else 0.0, k[1]))
    ordered = [k[2] for k in keyed]

    intervals = []
    for cur, nxt in zip(ordered, ordered[1:]):
        end = _completion_ms(cur)
        start = timestamp_ms(nxt.started_at)
        if end is not None and start is not None:
            rest = start - end
            if math.isfinite(rest) and 0 <= rest <= MAX_REST_MS:
                intervals.append(rest)
            continue
        if nxt.rest_time_sec is not None and nxt.rest_time_sec > 0:
            intervals.append(float(nxt.rest_time_sec) * 1000.0)
    return intervals


def _by_workout(sets: Iterable[SetRecord]) -> "OrderedDict[str, List[SetRecord]]":
    grouped: "OrderedDict[str, List[SetRecord]]" = OrderedDict()
    for s in sets:
        grouped.setdefault(s.workout_id, []).append(s)
    return grouped


def select_rest_intervals(ctx: DayContext) -> List[float]:
    """
    Rest intervals (ms) for a day, using the strategy its timing quality allows.

    Intervals are derived per workout so the gap between two sessions on the
    same day never counts as rest.
    """
    if ctx.timing_quality == TIMING_ACTUAL:
        intervals: List[float] = []
        for group in _by_workout(ctx.sets).values():
            intervals.extend(derive_rest_corrected(group))
        return intervals

    if ctx.rest_intervals_ms:
        return list(ctx.rest_intervals_ms)

    intervals = []
    for group in _by_workout(ctx.sets).values():
        intervals.extend(derive_rest_legacy(group))
    return intervals


def workout_rest_intervals(sets: List[SetRecord]) -> List[float]:
    """
    Rest intervals (ms) for the sets of a single workout.

    Corrected intervals when every set is timed, otherwise the stored rest
    values, otherwise gaps between performed-at timestamps.
    """
    if sets and all(s.has_actual_timing for s in sets):
        return derive_rest_corrected(sets)
    stored = [
        float(s.rest_time_sec) * 1000.0
        for s in sets
        if s.rest_time_sec is not None and s.rest_time_sec > 0
    ]
    if stored:
        return stored
    return derive_rest_legacy(sets)


# =============================================================================
# Rest Analytics
# =============================================================================


@dataclass(frozen=True)
class RestSummary:
    """Descriptive statistics over rest samples, in seconds."""
    count: int = 0
    mean_sec: float = 0.0
    median_sec: float = 0.0
    min_sec: float = 0.0
    max_sec: float = 0.0
    stdev_sec: float = 0.0
    cv_pct: float = 0.0  # consistency, lower is steadier

    def to_dict(self) -> Dict[str, Any]:
        return {
            "count": self.count,
            "meanSec": self.mean_sec,
            "medianSec": self.median_sec,
            "minSec": self.min_sec,
            "maxSec": self.max_sec,
            "stdevSec": self.stdev_sec,
            "cvPct": self.cv_pct,
        }


def summarize_rest(rest_seconds: Iterable[float]) -> RestSummary:
    """Summarize a list of rest durations in seconds. Non-finite values are ignored."""
    values = [float(v) for v in rest_seconds if v is not None and math.isfinite(v) and v >= 0]
    if not values:
        return RestSummary()

    mean = statistics.fmean(values)
    stdev = statistics.pstdev(values) if len(values) > 1 else 0.0
    return RestSummary(
        count=len(values),
        mean_sec=round(mean, 2),
        median_sec=round(statistics.median(values), 2),
        min_sec=round(min(values), 2),
        max_sec=round(max(values), 2),
        stdev_sec=round(stdev, 2),
        cv_pct=round(stdev / mean * 100.0, 2) if mean > 0 else 0.0,
    )


# =============================================================================
# Timing Validation
# =============================================================================


@dataclass
class TimingValidation:
    """Timing anomalies found in a list of sets."""
    total_sets: int = 0
    actual_timing_sets: int = 0
    warnings: List[str] = field(default_factory=list)

    @property
    def actual_timing_pct(self) -> float:
        if self.total_sets <= 0:
            return 0.0
        return round(self.actual_timing_sets / self.total_sets * 100.0, 2)

    @property
    def data_quality(self) -> str:
        pct = self.actual_timing_pct
        if pct >= 80:
            return "high"
        if pct >= 50:
            return "medium"
        return "low"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalSets": self.total_sets,
            "actualTimingSets": self.actual_timing_sets,
            "actualTimingPct": self.actual_timing_pct,
            "dataQuality": self.data_quality,
            "warnings": list(self.warnings),
        }


def validate_timing(sets: Iterable[SetRecord]) -> TimingValidation:
    """
    Check raw sets for timing problems.

    Reports sets missing a start or completion time, sets completed before
    they started, and sets longer than 10 minutes.
    """
    result = TimingValidation()
    for s in sets:
        result.total_sets += 1
        start = timestamp_ms(s.started_at)
        end = timestamp_ms(s.completed_at)

        if start is None and end is None:
            result.warnings.append(f"Set {s.id}: no start or completion time")
            continue
        if start is None:
            result.warnings.append(f"Set {s.id}: missing start time")
            continue
        if end is None:
            result.warnings.append(f"Set {s.id}: missing completion time")
            continue

        result.actual_timing_sets += 1
        duration_sec = (end - start) / 1000.0
        if duration_sec < 0:
            result.warnings.append(f"Set {s.id}: negative duration ({duration_sec:.0f}s)")
        elif duration_sec > MAX_SET_DURATION_SEC:
            result.warnings.append(f"Set {s.id}: unusually long set ({duration_sec:.0f}s)")
    return result
