"""
Bodyweight Load Resolver.

Bodyweight sets are usually logged with a weight of 0. When bodyweight loads
are enabled, the load of such a set is imputed as
``body mass x exercise load factor`` plus any added weight. Body mass comes
from the user's profile, falling back to a default that is flagged as
assumed.
"""
from typing import Optional, Dict
from dataclasses import dataclass
import re

from application.ports.metrics_repository import SetRecord

DEFAULT_BODYWEIGHT_KG = 75.0

# Fraction of body mass moved per rep
EXERCISE_LOAD_FACTORS: Dict[str, float] = {
    "pull-up": 1.0,
    "chin-up": 1.0,
    "dip": 1.0,
    "muscle-up": 1.0,
    "push-up": 0.64,
    "knee push-up": 0.49,
    "inverted row": 0.6,
    "squat": 0.7,
    "bodyweight squat": 0.7,
    "lunge": 0.7,
    "pistol squat": 0.9,
    "sit-up": 0.3,
    "crunch": 0.3,
    "hanging leg raise": 0.35,
    "burpee": 0.7,
}


def _exercise_key(name: str) -> str:
    key = re.sub(r"[_\s]+", " ", (name or "").strip().lower())
    key = re.sub(r"(pull|chin|push|sit|muscle) ups?\b", r"\1-up", key)
    return re.sub(r"s$", "", key)


@dataclass(frozen=True)
class LoadContext:
    """Resolved inputs for bodyweight load imputation."""
    enabled: bool = False
    body_mass_kg: float = DEFAULT_BODYWEIGHT_KG
    assumed: bool = True  # True when body mass is the default, not a recorded value


def resolve_body_mass(
    recorded_kg: Optional[float],
    default_kg: float = DEFAULT_BODYWEIGHT_KG,
) -> LoadContext:
    """Build a LoadContext from a recorded body mass, falling back to the default."""
    if recorded_kg is not None and recorded_kg > 0:
        return LoadContext(enabled=True, body_mass_kg=float(recorded_kg), assumed=False)
    return LoadContext(enabled=True, body_mass_kg=float(default_kg), assumed=True)


def get_load_factor(s: SetRecord) -> float:
    """Load factor for a set: explicit value, then the exercise table, then 1.0."""
    if s.load_factor is not None and s.load_factor > 0:
        return float(s.load_factor)
    for name in (s.exercise_id, s.exercise_name):
        factor = EXERCISE_LOAD_FACTORS.get(_exercise_key(name))
        if factor is not None:
            return factor
    return 1.0


def get_set_load_kg(s: SetRecord, load: Optional[LoadContext] = None) -> float:
    """Effective load of one rep of a set."""
    weight = float(s.weight_kg or 0.0)
    if weight < 0:
        weight = 0.0
    if not s.is_bodyweight or load is None or not load.enabled:
        return weight
    return round(load.body_mass_kg * get_load_factor(s) + weight, 2)


def get_set_volume_kg(s: SetRecord, load: Optional[LoadContext] = None) -> float:
    """Volume of a set (load x reps). Non-positive reps contribute nothing."""
    reps = s.reps or 0
    if reps <= 0:
        return 0.0
    return get_set_load_kg(s, load) * reps
