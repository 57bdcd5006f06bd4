"""
Metrics v2 engine.

Composes the day context builder, rest derivers, aggregator and series
adapter into a single versioned ServiceOutput. The engine is synchronous and
pure: it takes already-fetched records and never touches the repository.
"""
from typing import Optional, List, Iterable
from datetime import datetime, timezone
import logging

from application.ports.metrics_repository import WorkoutRecord, SetRecord
from backend.core.metrics.aggregator import (
    aggregate_per_workout,
    aggregate_totals,
    aggregate_totals_kpis,
    rolling_windows,
)
from backend.core.metrics.bodyweight import resolve_body_mass
from backend.core.metrics.calculators import calc_rest_coverage_pct, rest_quality
from backend.core.metrics.config import MetricsConfig
from backend.core.metrics.day_context import BUSINESS_TIMEZONE, build_day_contexts
from backend.core.metrics.personal_records import compute_personal_records
from backend.core.metrics.records import (
    DayTiming,
    RestQuality,
    ServiceMeta,
    ServiceOutput,
)
from backend.core.metrics.rest_derivers import select_rest_intervals
from backend.core.metrics.series_adapter import normalize_series

logger = logging.getLogger(__name__)


def compute_metrics_v2(
    workouts: Iterable[WorkoutRecord],
    sets: Iterable[SetRecord],
    *,
    config: Optional[MetricsConfig] = None,
    bodyweight_kg: Optional[float] = None,
    now: Optional[datetime] = None,
) -> ServiceOutput:
    """
    Compute the v2 metrics envelope.

    Args:
        workouts: Workouts in the selected range
        sets: Sets belonging to those workouts
        config: Feature options (defaults apply when omitted)
        bodyweight_kg: Recorded body mass, used only when bodyweight loads
            are enabled
        now: Generation timestamp override

    Returns:
        ServiceOutput. KPI fields and derived series are omitted when
        derived KPIs are disabled.
    """
    config = config or MetricsConfig()
    workouts = list(workouts)
    sets = list(sets)

    load = None
    if config.include_bodyweight_loads:
        load = resolve_body_mass(bodyweight_kg, config.default_bodyweight_kg)

    days = build_day_contexts(workouts, sets)
    per_workout = aggregate_per_workout(
        workouts,
        sets,
        load=load,
        derived_kpis_enabled=config.derived_kpis_enabled,
        target_rest_sec=config.target_rest_sec,
    )
    totals = aggregate_totals(per_workout)

    timing: List[DayTiming] = []
    rest_samples = 0
    possible_gaps = 0
    for ctx in days.values():
        samples = len(select_rest_intervals(ctx))
        rest_samples += samples
        possible_gaps += ctx.possible_gaps
        timing.append(DayTiming(
            date=ctx.date,
            timing_quality=ctx.timing_quality,
            active_minutes=ctx.active_minutes,
            rest_samples=samples,
            possible_gaps=ctx.possible_gaps,
        ))

    coverage = calc_rest_coverage_pct(rest_samples, possible_gaps)
    quality = RestQuality(
        coverage_pct=coverage,
        quality=rest_quality(coverage),
        trusted=coverage >= config.rest_coverage_threshold_pct,
    )

    raw_series = rolling_windows(
        days,
        per_workout,
        derived_kpis_enabled=config.derived_kpis_enabled,
        target_rest_sec=config.target_rest_sec,
    )
    adapted = normalize_series(
        raw_series,
        derived_enabled=config.derived_kpis_enabled,
        rest_trusted=quality.trusted,
    )

    generated_at = (now or datetime.now(timezone.utc)).isoformat()
    meta = ServiceMeta(
        generated_at=generated_at,
        timezone=BUSINESS_TIMEZONE,
        rest_quality=quality,
        bodyweight_assumed=bool(load is not None and load.assumed),
        timing=tuple(timing),
        available_measures=adapted.available_measures,
    )

    if not quality.trusted and config.derived_kpis_enabled and sets:
        logger.info(
            f"Rest coverage {coverage}% below threshold "
            f"{config.rest_coverage_threshold_pct}%, rest series hidden"
        )

    return ServiceOutput(
        totals=totals,
        per_workout=tuple(per_workout),
        series=adapted.series,
        meta=meta,
        totals_kpis=(
            aggregate_totals_kpis(per_workout, totals)
            if config.derived_kpis_enabled else None
        ),
        prs=tuple(compute_personal_records(workouts, sets, load=load)),
    )
