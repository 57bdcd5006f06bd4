"""
Unit tests for per-workout averages over calendar periods.
"""
import pytest
from datetime import datetime, timezone

from backend.core.metrics.time_period_averages import calculate_time_period_averages
from tests.fakes import make_set, make_workout

# Wednesday
REFERENCE = datetime(2024, 1, 17, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def history():
    """
    - wa 2024-01-16, 60 min: 2 x 100kg x 5
    - wb 2024-01-05, 30 min: bodyweight set logged at 0 kg x 10
    - wc 2023-11-01, 45 min: 50kg x 10, plus a warm-up
    """
    workouts = [
        make_workout("wa", "2024-01-16T10:00:00Z", duration_min=60),
        make_workout("wb", "2024-01-05T10:00:00Z", duration_min=30),
        make_workout("wc", "2023-11-01T10:00:00Z", duration_min=45),
    ]
    sets = [
        make_set("s1", "wa", weight_kg=100, reps=5),
        make_set("s2", "wa", weight_kg=100, reps=5),
        make_set("s3", "wb", exercise="push-up", weight_kg=0, reps=10, is_bodyweight=True),
        make_set("s4", "wc", weight_kg=50, reps=10),
        make_set("s5", "wc", weight_kg=20, reps=10, is_warmup=True),
    ]
    return workouts, sets


@pytest.mark.unit
class TestTimePeriodAverages:
    """Tests for calculate_time_period_averages."""

    def test_returns_all_periods(self, history):
        """Every standard period is present."""
        workouts, sets = history
        result = calculate_time_period_averages(workouts, sets, reference=REFERENCE)
        assert set(result) == {"this_week", "this_month", "last_7_days", "last_30_days", "all_time"}

    def test_period_bounds(self, history):
        """Weeks start on Monday; rolling windows count back from the reference."""
        workouts, sets = history
        result = calculate_time_period_averages(workouts, sets, reference=REFERENCE)

        assert result["this_week"].start_date == "2024-01-15"
        assert result["this_month"].start_date == "2024-01-01"
        assert result["last_7_days"].start_date == "2024-01-10"
        assert result["last_30_days"].start_date == "2023-12-18"
        assert result["all_time"].start_date is None
        assert result["all_time"].end_date == "2024-01-17"

    def test_this_week(self, history):
        """Only the Tuesday workout falls in this week."""
        workouts, sets = history
        week = calculate_time_period_averages(workouts, sets, reference=REFERENCE)["this_week"]

        assert week.total_workouts == 1
        assert week.average_tonnage_per_workout == 1000
        assert week.average_duration_per_workout == 60
        assert week.average_sets_per_workout == 2
        assert week.average_reps_per_workout == 10

    def test_bodyweight_sets_use_body_mass(self, history):
        """A bodyweight set logged at 0 kg counts at the given body mass."""
        workouts, sets = history
        month = calculate_time_period_averages(
            workouts, sets, reference=REFERENCE, bodyweight_kg=75
        )["this_month"]

        assert month.total_workouts == 2
        assert month.average_tonnage_per_workout == 875
        assert month.average_duration_per_workout == 45
        assert month.average_sets_per_workout == 2  # 1.5 rounds half up

    def test_all_time_excludes_warmups(self, history):
        """Warm-up sets do not count towards averages."""
        workouts, sets = history
        all_time = calculate_time_period_averages(workouts, sets, reference=REFERENCE)["all_time"]

        assert all_time.total_workouts == 3
        assert all_time.average_tonnage_per_workout == 750
        assert all_time.average_sets_per_workout == 1
        assert all_time.average_reps_per_workout == 10

    def test_future_workouts_excluded(self, history):
        """Workouts after the reference day are not counted."""
        workouts, sets = history
        workouts.append(make_workout("wz", "2024-01-20T10:00:00Z"))
        all_time = calculate_time_period_averages(workouts, sets, reference=REFERENCE)["all_time"]
        assert all_time.total_workouts == 3

    def test_empty_period_is_zeroed(self):
        """Periods without workouts report zeros."""
        result = calculate_time_period_averages([], [], reference=REFERENCE)
        assert result["this_week"].total_workouts == 0
        assert result["this_week"].average_tonnage_per_workout == 0

    def test_to_dict_shape(self, history):
        """Wire shape carries the label and a nested date range."""
        workouts, sets = history
        data = calculate_time_period_averages(workouts, sets, reference=REFERENCE)["last_7_days"].to_dict()

        assert data["periodLabel"] == "Last 7 Days"
        assert data["dateRange"] == {"startDate": "2024-01-10", "endDate": "2024-01-17"}
        assert data["totalWorkouts"] == 1
