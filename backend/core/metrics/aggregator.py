"""
Metrics Aggregator.

Combines day contexts, rest derivers and KPI calculators into:
- Per-workout metrics (volume, sets, reps, active/rest split, optional KPIs)
- Totals across the selected range, and totals KPIs recomputed from sums
- Day-bucketed rolling series

Daily density is always weighted (sum of volume over sum of duration for the
day). Averaging per-workout densities would bias the result toward short
workouts.
"""
from typing import Optional, List, Dict, Iterable
from collections import defaultdict
import logging

from application.ports.metrics_repository import WorkoutRecord, SetRecord
from backend.core.metrics.bodyweight import LoadContext, get_set_volume_kg
from backend.core.metrics.calculators import (
    DEFAULT_TARGET_REST_SEC,
    calc_density_kg_per_min,
    calc_avg_rest_sec,
    calc_avg_rest_per_session,
    calc_set_efficiency_ratio,
    calc_set_efficiency_kg_per_min,
    get_target_rest_sec_for_workout,
)
from backend.core.metrics.day_context import to_business_day
from backend.core.metrics.records import (
    DayContext,
    PerWorkoutKpis,
    PerWorkoutMetrics,
    Totals,
    TotalsKpis,
    TimeSeriesPoint,
)
from backend.core.metrics.rest_derivers import select_rest_intervals, workout_rest_intervals

logger = logging.getLogger(__name__)


# Series kinds produced by rolling_windows
SERIES_VOLUME = "volume"
SERIES_SETS = "sets"
SERIES_REPS = "reps"
SERIES_WORKOUTS = "workouts"
SERIES_DURATION = "duration"
SERIES_DENSITY = "density"
SERIES_AVG_REST = "avg_rest_sec"
SERIES_SET_EFFICIENCY = "set_efficiency"
SERIES_SET_EFFICIENCY_KG_PER_MIN = "set_efficiency_kg_per_min"

BASE_SERIES = (SERIES_VOLUME, SERIES_SETS, SERIES_REPS, SERIES_WORKOUTS, SERIES_DURATION)
DERIVED_SERIES = (
    SERIES_DENSITY,
    SERIES_AVG_REST,
    SERIES_SET_EFFICIENCY,
    SERIES_SET_EFFICIENCY_KG_PER_MIN,
)


def _positive(value: Optional[float]) -> float:
    if value is None or value != value or value < 0:
        return 0.0
    return float(value)


# =============================================================================
# Per Workout
# =============================================================================


def aggregate_per_workout(
    workouts: Iterable[WorkoutRecord],
    sets: Iterable[SetRecord],
    *,
    load: Optional[LoadContext] = None,
    derived_kpis_enabled: bool = True,
    target_rest_sec: float = DEFAULT_TARGET_REST_SEC,
) -> List[PerWorkoutMetrics]:
    """
    Compute metrics for each workout.

    Rest comes from corrected intervals when every set of the workout has
    actual timing, otherwise from the stored per-set rest values. Active time
    is the declared duration minus rest, never below zero. KPIs are attached
    only when ``derived_kpis_enabled`` is set.
    """
    sets_by_workout: Dict[str, List[SetRecord]] = defaultdict(list)
    for s in sets:
        sets_by_workout[s.workout_id].append(s)

    results = []
    for workout in workouts:
        day = to_business_day(workout.started_at)
        if day is None:
            continue

        workout_sets = sets_by_workout.get(workout.id, [])
        volume = round(sum(get_set_volume_kg(s, load) for s in workout_sets), 2)
        total_reps = sum(max(s.reps or 0, 0) for s in workout_sets)
        duration_min = _positive(workout.duration_min)

        intervals = workout_rest_intervals(workout_sets)
        rest_sec = sum(intervals) / 1000.0
        rest_min = rest_sec / 60.0
        active_min = max(0.0, duration_min - rest_min)

        kpis = None
        if derived_kpis_enabled:
            avg_rest = calc_avg_rest_sec(intervals)
            target = get_target_rest_sec_for_workout(workout.id, target_rest_sec)
            kpis = PerWorkoutKpis(
                density_kg_per_min=calc_density_kg_per_min(volume, duration_min),
                avg_rest_sec=avg_rest,
                set_efficiency=(
                    calc_set_efficiency_ratio(avg_rest, target) if intervals else None
                ),
                set_efficiency_kg_per_min=calc_set_efficiency_kg_per_min(
                    volume, active_min + rest_min
                ),
            )

        results.append(PerWorkoutMetrics(
            workout_id=workout.id,
            date=day,
            total_volume_kg=volume,
            total_sets=len(workout_sets),
            total_reps=total_reps,
            duration_min=round(duration_min, 2),
            active_min=round(active_min, 2),
            rest_min=round(rest_min, 2),
            kpis=kpis,
            rest_sec=round(rest_sec, 2),
            rest_samples=len(intervals),
        ))

    return results


# =============================================================================
# Totals
# =============================================================================


def aggregate_totals(per_workout: Iterable[PerWorkoutMetrics]) -> Totals:
    """Sum per-workout metrics across the range."""
    rows = list(per_workout)
    return Totals(
        total_volume_kg=round(sum(w.total_volume_kg for w in rows), 2),
        total_sets=sum(w.total_sets for w in rows),
        total_reps=sum(w.total_reps for w in rows),
        duration_min=round(sum(w.duration_min for w in rows), 2),
        active_min=round(sum(w.active_min for w in rows), 2),
        rest_min=round(sum(w.rest_min for w in rows), 2),
        workouts=len(rows),
        rest_sec=round(sum(w.rest_sec for w in rows), 2),
    )


def aggregate_totals_kpis(
    per_workout: Iterable[PerWorkoutMetrics],
    totals: Totals,
) -> TotalsKpis:
    """
    KPIs over the whole range.

    Density and average rest are recomputed from the summed values rather
    than averaged. Set efficiency is the mean of the non-null per-workout
    ratios.
    """
    ratios = [
        w.kpis.set_efficiency
        for w in per_workout
        if w.kpis is not None and w.kpis.set_efficiency is not None
    ]
    return TotalsKpis(
        density_kg_per_min=calc_density_kg_per_min(totals.total_volume_kg, totals.duration_min),
        avg_rest_sec=calc_avg_rest_per_session(totals.rest_sec, totals.total_sets),
        set_efficiency=round(sum(ratios) / len(ratios), 2) if ratios else None,
        set_efficiency_kg_per_min=calc_set_efficiency_kg_per_min(
            totals.total_volume_kg, totals.active_min + totals.rest_min
        ),
    )


# =============================================================================
# Rolling Series
# =============================================================================


def rolling_windows(
    days: Dict[str, DayContext],
    per_workout: Iterable[PerWorkoutMetrics],
    *,
    derived_kpis_enabled: bool = True,
    target_rest_sec: float = DEFAULT_TARGET_REST_SEC,
) -> Dict[str, List[TimeSeriesPoint]]:
    """
    Build one point per day for every series kind.

    Volume, sets, reps, workouts and duration are daily sums. Density is
    ``sum(volume) / sum(duration)`` for the day. Rest-derived points are
    None on days without rest samples.
    """
    by_day: Dict[str, List[PerWorkoutMetrics]] = defaultdict(list)
    for w in per_workout:
        by_day[w.date].append(w)

    kinds = BASE_SERIES + (DERIVED_SERIES if derived_kpis_enabled else ())
    series: Dict[str, List[TimeSeriesPoint]] = {kind: [] for kind in kinds}

    for day in sorted(set(by_day) | set(days)):
        rows = by_day.get(day, [])
        volume = round(sum(w.total_volume_kg for w in rows), 2)
        duration = round(sum(w.duration_min for w in rows), 2)

        series[SERIES_VOLUME].append(TimeSeriesPoint(day, volume))
        series[SERIES_SETS].append(TimeSeriesPoint(day, sum(w.total_sets for w in rows)))
        series[SERIES_REPS].append(TimeSeriesPoint(day, sum(w.total_reps for w in rows)))
        series[SERIES_WORKOUTS].append(TimeSeriesPoint(day, len(rows)))
        series[SERIES_DURATION].append(TimeSeriesPoint(day, duration))

        if not derived_kpis_enabled:
            continue

        series[SERIES_DENSITY].append(
            TimeSeriesPoint(day, calc_density_kg_per_min(volume, duration))
        )
        total_minutes = sum(w.active_min + w.rest_min for w in rows)
        series[SERIES_SET_EFFICIENCY_KG_PER_MIN].append(
            TimeSeriesPoint(day, calc_set_efficiency_kg_per_min(volume, total_minutes))
        )

        ctx = days.get(day)
        intervals = select_rest_intervals(ctx) if ctx is not None else []
        if intervals:
            avg_rest = calc_avg_rest_sec(intervals)
            ratio = calc_set_efficiency_ratio(avg_rest, target_rest_sec)
        else:
            avg_rest = None
            ratio = None
        series[SERIES_AVG_REST].append(TimeSeriesPoint(day, avg_rest))
        series[SERIES_SET_EFFICIENCY].append(TimeSeriesPoint(day, ratio))

    return series
