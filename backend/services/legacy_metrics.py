"""
Legacy (v1) metrics summary.

The production shape during the v2 migration. Days are the UTC date prefix
of the workout start time and volume is plain weight x reps, which is what
existing clients were built against. Kept so the shadow facade can compare
the two engines on real traffic.
"""
from typing import List, Dict, Any, Iterable
from collections import defaultdict
import logging

from application.ports.metrics_repository import WorkoutRecord, SetRecord, DateRange
from backend.core.metrics.personal_records import compute_personal_records
from backend.services.metrics_service import MetricsService

logger = logging.getLogger(__name__)

V1_VERSION = "v1"


def compute_metrics_v1(
    workouts: Iterable[WorkoutRecord],
    sets: Iterable[SetRecord],
) -> Dict[str, Any]:
    """
    Build the v1 summary dict.

    Returns:
        Dict with ``version``, ``totals`` (totalVolumeKg, totalSets,
        totalReps, workouts, durationMin), ``series`` (volume, sets) and
        ``prs``
    """
    workouts = list(workouts)
    sets = list(sets)
    day_of = {w.id: (w.started_at or "")[:10] for w in workouts if w.started_at}

    volume_by_day: Dict[str, float] = defaultdict(float)
    sets_by_day: Dict[str, int] = defaultdict(int)
    for day in day_of.values():
        volume_by_day[day] += 0.0
        sets_by_day[day] += 0

    total_volume = 0.0
    total_sets = 0
    total_reps = 0
    for s in sets:
        day = day_of.get(s.workout_id)
        if day is None:
            continue
        reps = max(s.reps or 0, 0)
        volume = max(s.weight_kg or 0.0, 0.0) * reps
        total_volume += volume
        total_sets += 1
        total_reps += reps
        volume_by_day[day] += volume
        sets_by_day[day] += 1

    return {
        "version": V1_VERSION,
        "totals": {
            "totalVolumeKg": round(total_volume, 2),
            "totalSets": total_sets,
            "totalReps": total_reps,
            "workouts": len(day_of),
            "durationMin": round(sum(max(w.duration_min or 0.0, 0.0) for w in workouts), 2),
        },
        "series": {
            "volume": [
                {"date": day, "value": round(volume_by_day[day], 2)}
                for day in sorted(volume_by_day)
            ],
            "sets": [
                {"date": day, "value": sets_by_day[day]}
                for day in sorted(sets_by_day)
            ],
        },
        "prs": [p.to_dict() for p in compute_personal_records(workouts, sets)],
    }


class LegacyMetricsService:
    """Serves the v1 summary from the same records the v2 engine uses."""

    def __init__(self, metrics_service: MetricsService):
        self._metrics_service = metrics_service

    def get_summary(self, user_id: str, date_range: DateRange) -> Dict[str, Any]:
        records = self._metrics_service.fetch_records(
            user_id, date_range, with_bodyweight=False
        )
        return compute_metrics_v1(records.workouts, records.sets)
