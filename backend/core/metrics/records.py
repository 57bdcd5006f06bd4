"""
Record types produced by the metrics engine.

Every record here is created per request from repository output and
calculator results, and never mutated afterwards. ``ServiceOutput.to_dict``
produces the camelCase wire shape of the versioned "v2" contract.
"""
from typing import Optional, List, Dict, Any, Tuple
from dataclasses import dataclass, field

from application.ports.metrics_repository import SetRecord, TIMING_ACTUAL, TIMING_LEGACY


SCHEMA_VERSION = "v2"
UNITS = "kg|min"


# =============================================================================
# Day buckets
# =============================================================================


@dataclass
class DayContext:
    """All sets of the workouts that started on one business-timezone day."""
    date: str  # YYYY-MM-DD
    sets: List[SetRecord] = field(default_factory=list)
    workout_ids: List[str] = field(default_factory=list)
    active_minutes: float = 0.0
    rest_intervals_ms: Optional[List[float]] = None
    total_work_ms: Optional[float] = None
    has_actual_timing: bool = True

    @property
    def timing_quality(self) -> str:
        return TIMING_ACTUAL if self.has_actual_timing and self.sets else TIMING_LEGACY

    @property
    def possible_gaps(self) -> int:
        return max(len(self.sets) - 1, 0)


# =============================================================================
# Per-workout and totals
# =============================================================================


@dataclass(frozen=True)
class PerWorkoutKpis:
    density_kg_per_min: float
    avg_rest_sec: float
    set_efficiency: Optional[float]  # avg rest / target rest
    set_efficiency_kg_per_min: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "densityKgPerMin": self.density_kg_per_min,
            "avgRestSec": self.avg_rest_sec,
            "setEfficiency": self.set_efficiency,
            "setEfficiencyKgPerMin": self.set_efficiency_kg_per_min,
        }


@dataclass(frozen=True)
class PerWorkoutMetrics:
    workout_id: str
    date: str
    total_volume_kg: float
    total_sets: int
    total_reps: int
    duration_min: float
    active_min: float
    rest_min: float
    kpis: Optional[PerWorkoutKpis] = None
    rest_sec: float = 0.0
    rest_samples: int = 0

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "workoutId": self.workout_id,
            "date": self.date,
            "totalVolumeKg": self.total_volume_kg,
            "totalSets": self.total_sets,
            "totalReps": self.total_reps,
            "durationMin": self.duration_min,
            "activeMin": self.active_min,
            "restMin": self.rest_min,
            "restSamples": self.rest_samples,
        }
        if self.kpis is not None:
            data["kpis"] = self.kpis.to_dict()
        return data


@dataclass(frozen=True)
class Totals:
    total_volume_kg: float = 0.0
    total_sets: int = 0
    total_reps: int = 0
    duration_min: float = 0.0
    active_min: float = 0.0
    rest_min: float = 0.0
    workouts: int = 0
    rest_sec: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalVolumeKg": self.total_volume_kg,
            "totalSets": self.total_sets,
            "totalReps": self.total_reps,
            "durationMin": self.duration_min,
            "activeMin": self.active_min,
            "restMin": self.rest_min,
            "workouts": self.workouts,
        }


@dataclass(frozen=True)
class TotalsKpis:
    density_kg_per_min: float
    avg_rest_sec: float
    set_efficiency: Optional[float]
    set_efficiency_kg_per_min: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "densityKgPerMin": self.density_kg_per_min,
            "avgRestSec": self.avg_rest_sec,
            "setEfficiency": self.set_efficiency,
            "setEfficiencyKgPerMin": self.set_efficiency_kg_per_min,
        }


# =============================================================================
# Series and envelope
# =============================================================================


@dataclass(frozen=True)
class TimeSeriesPoint:
    date: str
    value: Optional[float]

    def to_dict(self) -> Dict[str, Any]:
        return {"date": self.date, "value": self.value}


@dataclass(frozen=True)
class RestQuality:
    """How far the rest-derived KPIs can be trusted."""
    coverage_pct: float
    quality: str  # "high", "medium", "low"
    trusted: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "coveragePct": self.coverage_pct,
            "quality": self.quality,
            "trusted": self.trusted,
        }


@dataclass(frozen=True)
class DayTiming:
    """Per-day timing breakdown reported in meta."""
    date: str
    timing_quality: str
    active_minutes: float
    rest_samples: int
    possible_gaps: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "timingQuality": self.timing_quality,
            "activeMinutes": self.active_minutes,
            "restSamples": self.rest_samples,
            "possibleGaps": self.possible_gaps,
        }


@dataclass(frozen=True)
class ServiceMeta:
    generated_at: str
    timezone: str
    rest_quality: RestQuality
    version: str = SCHEMA_VERSION
    units: str = UNITS
    bodyweight_assumed: bool = False
    timing: Tuple[DayTiming, ...] = ()
    available_measures: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "generatedAt": self.generated_at,
            "version": self.version,
            "inputs": {"timezone": self.timezone, "units": self.units},
            "restQuality": self.rest_quality.to_dict(),
            "bodyweightAssumed": self.bodyweight_assumed,
            "timing": [t.to_dict() for t in self.timing],
            "availableMeasures": list(self.available_measures),
        }


@dataclass(frozen=True)
class ServiceOutput:
    """Versioned envelope returned by the v2 engine."""
    totals: Totals
    per_workout: Tuple[PerWorkoutMetrics, ...]
    series: Dict[str, Tuple[TimeSeriesPoint, ...]]
    meta: ServiceMeta
    totals_kpis: Optional[TotalsKpis] = None
    prs: Tuple[Any, ...] = ()  # PersonalRecord

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "totals": self.totals.to_dict(),
            "perWorkout": [w.to_dict() for w in self.per_workout],
            "series": {
                key: [p.to_dict() for p in points]
                for key, points in self.series.items()
            },
            "prs": [p.to_dict() for p in self.prs],
            "meta": self.meta.to_dict(),
        }
        if self.totals_kpis is not None:
            data["totalsKpis"] = self.totals_kpis.to_dict()
        return data
