"""
Day Context Builder.

Groups workouts and their sets into calendar-day buckets in the fixed
business timezone. A set always lands on the day its parent workout started
on, converted to local time; a naive UTC date slice would put late-evening
sessions on the previous day.
"""
from typing import Optional, Dict, Iterable
from datetime import datetime, timezone
from functools import lru_cache
from zoneinfo import ZoneInfo
import logging

from application.ports.metrics_repository import WorkoutRecord, SetRecord
from backend.core.metrics.records import DayContext

logger = logging.getLogger(__name__)

BUSINESS_TIMEZONE = "Europe/Warsaw"
_BUSINESS_TZ = ZoneInfo(BUSINESS_TIMEZONE)


# =============================================================================
# Timestamp helpers
# =============================================================================


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO timestamp into an aware datetime.

    Accepts a trailing ``Z``. Naive timestamps are taken as UTC. Returns None
    for empty or unparseable input.
    """
    if not value:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            logger.debug(f"Unparseable timestamp: {value!r}")
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@lru_cache(maxsize=65536)
def _epoch_ms(text: str) -> Optional[float]:
    parsed = parse_timestamp(text)
    if parsed is None:
        return None
    return parsed.timestamp() * 1000.0


def timestamp_ms(value: Optional[str]) -> Optional[float]:
    """Epoch milliseconds for an ISO timestamp, or None."""
    if not value:
        return None
    return _epoch_ms(str(value))


def to_business_day(value: Optional[str]) -> Optional[str]:
    """
    Convert a timestamp to a ``YYYY-MM-DD`` day in the business timezone.

    A plain ``YYYY-MM-DD`` value is returned unchanged.
    """
    if not value:
        return None
    text = str(value)
    if len(text) == 10 and text[4] == "-" and text[7] == "-":
        return text
    parsed = parse_timestamp(text)
    if parsed is None:
        return None
    return parsed.astimezone(_BUSINESS_TZ).date().isoformat()


# =============================================================================
# Builder
# =============================================================================


def set_work_ms(s: SetRecord) -> float:
    """Work time of a set in ms, 0 when unknown."""
    if s.duration_sec is not None and s.duration_sec > 0:
        return float(s.duration_sec) * 1000.0
    return 0.0


def build_day_contexts(
    workouts: Iterable[WorkoutRecord],
    sets: Iterable[SetRecord],
) -> Dict[str, DayContext]:
    """
    Bucket sets into business-timezone days keyed by ``YYYY-MM-DD``.

    Sets whose workout is not in ``workouts`` (or whose workout has no
    parseable start time) are skipped. Stored legacy rest values are
    collected into the day's rest interval list; a single set without
    actual timing marks the whole day as legacy.

    Returns:
        Day contexts keyed by date, in ascending date order
    """
    workout_day: Dict[str, str] = {}
    days: Dict[str, DayContext] = {}

    for workout in workouts:
        day = to_business_day(workout.started_at)
        if day is None:
            logger.warning(f"Workout {workout.id} has no valid start time, skipping")
            continue
        workout_day[workout.id] = day
        ctx = days.get(day)
        if ctx is None:
            ctx = days[day] = DayContext(date=day)
        ctx.workout_ids.append(workout.id)

    for s in sets:
        day = workout_day.get(s.workout_id)
        if day is None:
            continue
        ctx = days[day]
        ctx.sets.append(s)

        work_ms = set_work_ms(s)
        if work_ms > 0:
            ctx.total_work_ms = (ctx.total_work_ms or 0.0) + work_ms

        if s.rest_time_sec is not None and s.rest_time_sec > 0:
            if ctx.rest_intervals_ms is None:
                ctx.rest_intervals_ms = []
            ctx.rest_intervals_ms.append(float(s.rest_time_sec) * 1000.0)

        if not s.has_actual_timing:
            ctx.has_actual_timing = False

    for ctx in days.values():
        ctx.active_minutes = round((ctx.total_work_ms or 0.0) / 60000.0, 2)
        if not ctx.sets:
            ctx.has_actual_timing = False

    return dict(sorted(days.items()))
