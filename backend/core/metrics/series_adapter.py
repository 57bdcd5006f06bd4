"""
Series/Chart Adapter.

Normalizes series maps with heterogeneous key spellings into one canonical
measure set for chart consumers:
- Keys are resolved through a declared alias table (no case guessing)
- Every canonical key is mirrored to its camelCase spelling
- Missing derived series (density, throughput) are filled from tonnage and
  duration, with a diagnostic record per computed point
- The populated measures are reported so a UI can disable empty options
"""
from typing import Optional, List, Dict, Any, Mapping, Iterable, Tuple
from dataclasses import dataclass
from enum import Enum
import logging
import math

from backend.core.metrics.day_context import to_business_day
from backend.core.metrics.records import TimeSeriesPoint

logger = logging.getLogger(__name__)


class MeasureId(str, Enum):
    """Canonical measure identifiers."""
    TONNAGE_KG = "tonnage_kg"
    SETS = "sets"
    REPS = "reps"
    WORKOUTS = "workouts"
    DURATION_MIN = "duration_min"
    DENSITY_KG_PER_MIN = "density_kg_per_min"
    AVG_REST_SEC = "avg_rest_sec"
    SET_EFFICIENCY = "set_efficiency"  # avg rest / target rest
    SET_EFFICIENCY_KG_PER_MIN = "set_efficiency_kg_per_min"  # volume per total minute


CAMEL_CASE_KEYS: Dict[MeasureId, str] = {
    MeasureId.TONNAGE_KG: "tonnageKg",
    MeasureId.SETS: "sets",
    MeasureId.REPS: "reps",
    MeasureId.WORKOUTS: "workouts",
    MeasureId.DURATION_MIN: "durationMin",
    MeasureId.DENSITY_KG_PER_MIN: "densityKgPerMin",
    MeasureId.AVG_REST_SEC: "avgRestSec",
    MeasureId.SET_EFFICIENCY: "setEfficiency",
    MeasureId.SET_EFFICIENCY_KG_PER_MIN: "setEfficiencyKgPerMin",
}

MEASURE_ALIASES: Dict[str, MeasureId] = {
    # Tonnage
    "volume": MeasureId.TONNAGE_KG,
    "volume_kg": MeasureId.TONNAGE_KG,
    "volumeKg": MeasureId.TONNAGE_KG,
    "tonnage": MeasureId.TONNAGE_KG,
    "total_volume_kg": MeasureId.TONNAGE_KG,
    "totalVolumeKg": MeasureId.TONNAGE_KG,
    # Counts
    "total_sets": MeasureId.SETS,
    "totalSets": MeasureId.SETS,
    "total_reps": MeasureId.REPS,
    "totalReps": MeasureId.REPS,
    "sessions": MeasureId.WORKOUTS,
    "workout_count": MeasureId.WORKOUTS,
    "workoutCount": MeasureId.WORKOUTS,
    # Duration
    "duration": MeasureId.DURATION_MIN,
    "minutes": MeasureId.DURATION_MIN,
    # Derived
    "density": MeasureId.DENSITY_KG_PER_MIN,
    "avg_rest": MeasureId.AVG_REST_SEC,
    "avgRest": MeasureId.AVG_REST_SEC,
    "rest_sec": MeasureId.AVG_REST_SEC,
    "set_efficiency_ratio": MeasureId.SET_EFFICIENCY,
    "setEfficiencyRatio": MeasureId.SET_EFFICIENCY,
    "throughput": MeasureId.SET_EFFICIENCY_KG_PER_MIN,
}
for _measure, _camel in CAMEL_CASE_KEYS.items():
    MEASURE_ALIASES[_measure.value] = _measure
    MEASURE_ALIASES[_camel] = _measure

DERIVED_MEASURES = (
    MeasureId.DENSITY_KG_PER_MIN,
    MeasureId.AVG_REST_SEC,
    MeasureId.SET_EFFICIENCY,
    MeasureId.SET_EFFICIENCY_KG_PER_MIN,
)
REST_MEASURES = (MeasureId.AVG_REST_SEC, MeasureId.SET_EFFICIENCY)
FILLABLE_MEASURES = (MeasureId.DENSITY_KG_PER_MIN, MeasureId.SET_EFFICIENCY_KG_PER_MIN)


def resolve_measure(key: str) -> Optional[MeasureId]:
    """Canonical measure for a key spelling, or None if the spelling is not declared."""
    return MEASURE_ALIASES.get(key)


# =============================================================================
# Points
# =============================================================================


def coerce_value(value: Any) -> Optional[float]:
    """Numeric value of a point; numeric strings are accepted, anything else is None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value if math.isfinite(value) else None
    if isinstance(value, str):
        try:
            parsed = float(value.strip())
        except ValueError:
            return None
        return parsed if math.isfinite(parsed) else None
    return None


def normalize_point(raw: Any) -> Optional[TimeSeriesPoint]:
    """
    Normalize one raw point.

    Accepts a TimeSeriesPoint or a dict keyed by ``date``, ``timestamp`` or
    ``ts``; timestamps are converted to the business day. Returns None when
    no day can be determined.
    """
    if isinstance(raw, TimeSeriesPoint):
        return raw
    if not isinstance(raw, Mapping):
        return None

    day = raw.get("date") or raw.get("timestamp") or raw.get("ts")
    day = to_business_day(day) if day else None
    if day is None:
        return None
    return TimeSeriesPoint(date=day, value=coerce_value(raw.get("value")))


# =============================================================================
# Series
# =============================================================================


@dataclass(frozen=True)
class SeriesAdapterResult:
    series: Dict[str, Tuple[TimeSeriesPoint, ...]]
    available_measures: Tuple[str, ...]
    diagnostics: Tuple[Dict[str, Any], ...] = ()


def _fill_derived(
    measure: MeasureId,
    tonnage: Dict[str, Optional[float]],
    duration: Dict[str, Optional[float]],
    diagnostics: List[Dict[str, Any]],
) -> Dict[str, Optional[float]]:
    filled: Dict[str, Optional[float]] = {}
    for day, tonnage_kg in tonnage.items():
        duration_min = duration.get(day)
        if tonnage_kg is None or duration_min is None or duration_min <= 0:
            value = None
        else:
            value = round(tonnage_kg / duration_min, 2)
        filled[day] = value
        diagnostic = {
            "kind": "derived_fallback",
            "measure": measure.value,
            "date": day,
            "tonnage_kg": tonnage_kg,
            "duration_min": duration_min,
            "value": value,
        }
        diagnostics.append(diagnostic)
        logger.debug(f"Series fallback computed: {diagnostic}")
    return filled


def normalize_series(
    raw: Mapping[str, Iterable[Any]],
    *,
    derived_enabled: bool = True,
    rest_trusted: bool = True,
) -> SeriesAdapterResult:
    """
    Normalize a raw series map into canonical measures.

    Args:
        raw: Series keyed by any declared spelling
        derived_enabled: When False, derived measures are dropped
        rest_trusted: When False, rest-derived measures are dropped and
            reported as unavailable

    Returns:
        SeriesAdapterResult with canonical and camelCase keys, the populated
        canonical measures and any diagnostics raised along the way
    """
    diagnostics: List[Dict[str, Any]] = []
    values: Dict[MeasureId, Dict[str, Optional[float]]] = {}

    for key, points in (raw or {}).items():
        measure = resolve_measure(key)
        if measure is None:
            diagnostics.append({"kind": "unknown_key", "key": key})
            continue
        bucket = values.setdefault(measure, {})
        for raw_point in points or ():
            point = normalize_point(raw_point)
            if point is None:
                diagnostics.append({"kind": "invalid_point", "key": key, "point": raw_point})
                continue
            bucket.setdefault(point.date, point.value)

    if not derived_enabled:
        for measure in DERIVED_MEASURES:
            values.pop(measure, None)
    else:
        tonnage = values.get(MeasureId.TONNAGE_KG)
        duration = values.get(MeasureId.DURATION_MIN)
        if tonnage and duration is not None:
            for measure in FILLABLE_MEASURES:
                if not values.get(measure):
                    values[measure] = _fill_derived(measure, tonnage, duration, diagnostics)

    if not rest_trusted:
        for measure in REST_MEASURES:
            if values.pop(measure, None) is not None:
                diagnostics.append({"kind": "rest_untrusted", "measure": measure.value})

    series: Dict[str, Tuple[TimeSeriesPoint, ...]] = {}
    available: List[str] = []
    for measure in MeasureId:
        if measure not in values:
            continue
        points = tuple(
            TimeSeriesPoint(date=day, value=value)
            for day, value in sorted(values[measure].items())
        )
        series[measure.value] = points
        series[CAMEL_CASE_KEYS[measure]] = points
        if any(p.value is not None for p in points):
            available.append(measure.value)

    return SeriesAdapterResult(
        series=series,
        available_measures=tuple(available),
        diagnostics=tuple(diagnostics),
    )


def resolve_series(series: Mapping[str, Any], name: str) -> List[Any]:
    """
    Look up a series by any declared spelling.

    Tries the spelling itself, then the canonical and camelCase keys, then
    every other alias of the same measure. Returns an empty list when absent.
    """
    if name in series and series[name] is not None:
        return list(series[name])
    measure = resolve_measure(name)
    if measure is None:
        return []
    candidates = [measure.value, CAMEL_CASE_KEYS[measure]]
    candidates += [alias for alias, target in MEASURE_ALIASES.items() if target is measure]
    for key in candidates:
        if series.get(key) is not None:
            return list(series[key])
    return []


def to_chart_series(
    series: Mapping[str, Iterable[TimeSeriesPoint]],
    measures: Optional[Iterable[str]] = None,
) -> List[Dict[str, Any]]:
    """
    Flatten canonical series into per-date chart rows.

    Returns rows like ``{"date": "2024-05-02", "tonnage_kg": 1200.0, ...}``
    sorted by date. Measures without a point on a date are left out of that
    row.
    """
    wanted = [
        m for m in (resolve_measure(name) for name in (measures or [m.value for m in MeasureId]))
        if m is not None
    ]
    rows: Dict[str, Dict[str, Any]] = {}
    for measure in wanted:
        for point in series.get(measure.value, ()):
            row = rows.setdefault(point.date, {"date": point.date})
            row[measure.value] = point.value
    return [rows[day] for day in sorted(rows)]


# =============================================================================
# Totals
# =============================================================================


@dataclass(frozen=True)
class NormalizedTotals:
    values: Dict[str, Optional[float]]
    diagnostics: Tuple[Dict[str, Any], ...] = ()


def normalize_totals(raw: Mapping[str, Any]) -> NormalizedTotals:
    """
    Normalize a totals dict to canonical keys (mirrored to camelCase).

    Density is computed from tonnage and duration when it is missing or 0.
    Unknown keys are ignored.
    """
    diagnostics: List[Dict[str, Any]] = []
    canonical: Dict[MeasureId, Optional[float]] = {}
    for key, value in (raw or {}).items():
        measure = resolve_measure(key)
        if measure is None:
            continue
        if measure not in canonical or canonical[measure] is None:
            canonical[measure] = coerce_value(value)

    density = canonical.get(MeasureId.DENSITY_KG_PER_MIN)
    if not density:
        tonnage_kg = canonical.get(MeasureId.TONNAGE_KG)
        duration_min = canonical.get(MeasureId.DURATION_MIN)
        if tonnage_kg is not None and duration_min is not None and duration_min > 0:
            density = round(tonnage_kg / duration_min, 2)
            canonical[MeasureId.DENSITY_KG_PER_MIN] = density
            diagnostic = {
                "kind": "totals_density_fallback",
                "tonnage_kg": tonnage_kg,
                "duration_min": duration_min,
                "density": density,
            }
            diagnostics.append(diagnostic)
            logger.debug(f"Totals density fallback computed: {diagnostic}")

    values: Dict[str, Optional[float]] = {}
    for measure in MeasureId:
        if measure in canonical:
            values[measure.value] = canonical[measure]
            values[CAMEL_CASE_KEYS[measure]] = canonical[measure]
    return NormalizedTotals(values=values, diagnostics=tuple(diagnostics))
