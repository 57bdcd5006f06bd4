"""
Personal records derived from logged sets.

Records are computed on demand from the sets in the selected range:
- Estimated 1RM (Brzycki or Epley)
- Heaviest set (max weight)
- Most reps in a single set
- Highest single-session volume for the exercise
"""
from typing import Optional, List, Dict, Any, Iterable
from dataclasses import dataclass
from collections import defaultdict

from application.ports.metrics_repository import WorkoutRecord, SetRecord
from backend.core.metrics.bodyweight import LoadContext, get_set_load_kg
from backend.core.metrics.day_context import to_business_day


RECORD_1RM = "1rm"
RECORD_MAX_WEIGHT = "max_weight"
RECORD_MAX_REPS = "max_reps"
RECORD_MAX_VOLUME = "max_volume"


# =============================================================================
# 1RM Calculation Formulas
# =============================================================================


def calculate_1rm_brzycki(weight: float, reps: int) -> float:
    """
    Estimated 1RM using Brzycki: ``weight * 36 / (37 - reps)``.

    Most accurate for 1-10 reps. The formula breaks down at 37+ reps, so the
    estimate is capped at 2.5x the weight.
    """
    if reps <= 0:
        return 0.0
    if reps == 1:
        return float(weight)
    if reps >= 37:
        return float(weight) * 2.5
    return weight * (36.0 / (37.0 - reps))


def calculate_1rm_epley(weight: float, reps: int) -> float:
    """Estimated 1RM using Epley: ``weight * (1 + reps / 30)``."""
    if reps <= 0:
        return 0.0
    if reps == 1:
        return float(weight)
    return weight * (1.0 + reps / 30.0)


def calculate_1rm(weight: float, reps: int, formula: str = "brzycki") -> float:
    """Estimated 1RM with the given formula, rounded to 1 decimal place."""
    if formula == "epley":
        result = calculate_1rm_epley(weight, reps)
    else:
        result = calculate_1rm_brzycki(weight, reps)
    return round(result, 1)


# =============================================================================
# Records
# =============================================================================


@dataclass(frozen=True)
class PersonalRecord:
    exercise_id: str
    exercise_name: str
    record_type: str  # "1rm", "max_weight", "max_reps", "max_volume"
    value: float
    unit: str  # "kg" or "reps"
    achieved_at: Optional[str] = None  # YYYY-MM-DD
    workout_id: Optional[str] = None
    weight_kg: Optional[float] = None
    reps: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "exerciseId": self.exercise_id,
            "exerciseName": self.exercise_name,
            "recordType": self.record_type,
            "value": self.value,
            "unit": self.unit,
            "achievedAt": self.achieved_at,
            "workoutId": self.workout_id,
            "weightKg": self.weight_kg,
            "reps": self.reps,
        }


def _exercise_of(s: SetRecord) -> str:
    return s.exercise_id or s.exercise_name or "unknown"


def compute_personal_records(
    workouts: Iterable[WorkoutRecord],
    sets: Iterable[SetRecord],
    *,
    load: Optional[LoadContext] = None,
    exercise_id: Optional[str] = None,
    formula: str = "brzycki",
) -> List[PersonalRecord]:
    """
    Best-ever records per exercise within the given sets.

    Warm-up sets and sets with no reps are ignored. Ties keep the earliest
    workout. Records are ordered by exercise, then record type.
    """
    workout_list = sorted(workouts, key=lambda w: w.started_at or "")
    order = {w.id: i for i, w in enumerate(workout_list)}
    days = {w.id: to_business_day(w.started_at) for w in workout_list}

    eligible = [
        s for s in sets
        if s.workout_id in order
        and not s.is_warmup
        and (s.reps or 0) > 0
        and (exercise_id is None or _exercise_of(s) == exercise_id)
    ]
    eligible.sort(key=lambda s: order[s.workout_id])

    best: Dict[str, Dict[str, PersonalRecord]] = defaultdict(dict)
    session_volume: Dict[tuple, float] = defaultdict(float)
    names: Dict[str, str] = {}

    def consider(key: str, record: PersonalRecord) -> None:
        current = best[key].get(record.record_type)
        if current is None or record.value > current.value:
            best[key][record.record_type] = record

    for s in eligible:
        key = _exercise_of(s)
        names.setdefault(key, s.exercise_name or key)
        load_kg = get_set_load_kg(s, load)
        common = dict(
            exercise_id=key,
            exercise_name=names[key],
            achieved_at=days[s.workout_id],
            workout_id=s.workout_id,
            weight_kg=load_kg,
            reps=s.reps,
        )
        if load_kg > 0:
            consider(key, PersonalRecord(
                record_type=RECORD_1RM,
                value=calculate_1rm(load_kg, s.reps, formula),
                unit="kg",
                **common,
            ))
            consider(key, PersonalRecord(
                record_type=RECORD_MAX_WEIGHT, value=load_kg, unit="kg", **common
            ))
        consider(key, PersonalRecord(
            record_type=RECORD_MAX_REPS, value=float(s.reps), unit="reps", **common
        ))
        session_volume[(key, s.workout_id)] += load_kg * s.reps

    for (key, workout_id), volume in session_volume.items():
        if volume <= 0:
            continue
        consider(key, PersonalRecord(
            exercise_id=key,
            exercise_name=names[key],
            record_type=RECORD_MAX_VOLUME,
            value=round(volume, 2),
            unit="kg",
            achieved_at=days[workout_id],
            workout_id=workout_id,
        ))

    type_order = [RECORD_1RM, RECORD_MAX_WEIGHT, RECORD_MAX_REPS, RECORD_MAX_VOLUME]
    records = []
    for key in sorted(best):
        for record_type in type_order:
            if record_type in best[key]:
                records.append(best[key][record_type])
    return records
