"""
KPI Calculators.

Pure functions over aggregated daily or per-workout values. Every calculator
guards its inputs (zero or negative time, empty samples, missing targets)
and returns a safe default instead of raising or producing NaN/Infinity.
"""
from typing import Optional, List, Dict, Iterable, Any
import math

from application.ports.metrics_repository import SetRecord

DEFAULT_TARGET_REST_SEC = 90
MAX_AVG_REST_SAMPLE_SEC = 600

QUALITY_HIGH = "high"
QUALITY_MEDIUM = "medium"
QUALITY_LOW = "low"


def _finite(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


# =============================================================================
# Density
# =============================================================================


def calc_density_kg_per_min(volume_kg: float, minutes: float) -> float:
    """
    Training density: volume lifted per minute.

    Returns 0 when ``minutes`` is not positive.
    """
    if not _finite(volume_kg) or not _finite(minutes) or minutes <= 0:
        return 0.0
    return round(volume_kg / minutes, 2)


# =============================================================================
# Rest
# =============================================================================


def calc_avg_rest_sec(rest_intervals_ms: Iterable[float]) -> float:
    """
    Mean rest in seconds over a list of intervals in ms.

    Each sample is clamped into [0, 600] seconds before averaging so one bad
    interval cannot dominate a small sample.
    """
    clamped = [
        min(max(ms / 1000.0, 0.0), MAX_AVG_REST_SAMPLE_SEC)
        for ms in rest_intervals_ms
        if _finite(ms)
    ]
    if not clamped:
        return 0.0
    return round(sum(clamped) / len(clamped), 2)


def calc_avg_rest_per_session(total_rest_sec: float, set_count: int) -> int:
    """
    Average rest from aggregate totals only: ``floor(total_rest_sec / set_count)``.

    Not interchangeable with calc_avg_rest_sec, which averages clamped samples.
    """
    if not _finite(total_rest_sec) or set_count <= 0:
        return 0
    return int(math.floor(total_rest_sec / set_count))


def get_target_rest_sec_for_workout(
    workout_id: Optional[str] = None,
    default: float = DEFAULT_TARGET_REST_SEC,
) -> float:
    """Target rest for a workout. Per-exercise targets are not tracked yet, so the default applies."""
    return default


# =============================================================================
# Set Efficiency
# =============================================================================


def calc_set_efficiency_ratio(
    avg_rest_sec: float,
    target_rest_sec: Optional[float],
) -> Optional[float]:
    """
    Ratio of actual average rest to the target rest.

    Returns None when there is no positive target.
    """
    if target_rest_sec is None or not _finite(target_rest_sec) or target_rest_sec <= 0:
        return None
    if not _finite(avg_rest_sec):
        return None
    return round(avg_rest_sec / target_rest_sec, 2)


def calc_set_efficiency_kg_per_min(volume_kg: float, total_minutes: float) -> float:
    """
    Throughput: volume per total (active + rest) minute.

    Returns 0 when ``total_minutes`` is not positive.
    """
    return calc_density_kg_per_min(volume_kg, total_minutes)


# =============================================================================
# Coverage
# =============================================================================


def calc_rest_coverage_pct(rest_samples: int, possible_gaps: int) -> float:
    """Percentage of set-to-set gaps that have rest data, clamped to 0-100."""
    if possible_gaps <= 0 or rest_samples <= 0:
        return 0.0
    return round(min(rest_samples / possible_gaps, 1.0) * 100.0, 2)


def compute_pct_of_sets_with_non_null_rest(sets: Iterable[SetRecord]) -> float:
    """
    Share of set-to-set gaps with a stored rest value.

    Sets are grouped by workout; each workout of n sets has n-1 gaps. The
    result is non-null rest values over total gaps, as a percentage.
    """
    counts: Dict[str, List[int]] = {}
    for s in sets:
        entry = counts.setdefault(s.workout_id, [0, 0])
        entry[0] += 1
        if s.rest_time_sec is not None:
            entry[1] += 1

    gaps = sum(max(n - 1, 0) for n, _ in counts.values())
    non_null = sum(k for _, k in counts.values())
    return calc_rest_coverage_pct(non_null, gaps)


def rest_quality(coverage_pct: float) -> str:
    if coverage_pct >= 80:
        return QUALITY_HIGH
    if coverage_pct >= 50:
        return QUALITY_MEDIUM
    return QUALITY_LOW
