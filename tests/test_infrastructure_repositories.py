"""
Tests for the Supabase metrics repository.

These tests verify that SupabaseMetricsRepository builds the expected queries,
maps rows into source records and degrades step by step when queries fail.
The Supabase client is mocked; no database is required.
"""
import pytest
from datetime import date
from unittest.mock import Mock, MagicMock

from application.ports.metrics_repository import DateRange, TIMING_ACTUAL, TIMING_LEGACY
from infrastructure.db.metrics_repository import SupabaseMetricsRepository
from infrastructure.db.schema_capability import SchemaCapability

# All tests in this module are pure logic tests with mocks - mark as unit
pytestmark = pytest.mark.unit

JANUARY = DateRange(start=date(2024, 1, 1), end=date(2024, 1, 31))

QUERY_METHODS = ("select", "eq", "gte", "lt", "order", "in_", "or_", "limit")


def make_query(data=None, error=None) -> MagicMock:
    """A chainable query mock whose execute() returns ``data`` or raises ``error``."""
    query = MagicMock()
    for name in QUERY_METHODS:
        getattr(query, name).return_value = query
    if error is not None:
        query.execute.side_effect = error
    else:
        query.execute.return_value = Mock(data=data)
    return query


def make_client(*queries) -> Mock:
    """A client whose successive table() calls return the given queries."""
    client = Mock()
    client.table.side_effect = list(queries)
    return client


def make_repo(client, *, timing: bool = True, mock_fallback: bool = False):
    capability = SchemaCapability("test.timing")
    capability.get(lambda: timing)
    return SupabaseMetricsRepository(
        client, mock_fallback=mock_fallback, timing_capability=capability
    )


SET_ROW = {
    "id": 11,
    "workout_id": "w1",
    "exercise_name": "Bench Press",
    "weight": 100,
    "reps": 5,
    "rest_time": 90,
    "completed": True,
    "is_warmup": False,
    "created_at": "2024-01-02T10:05:00Z",
    "started_at": "2024-01-02T10:04:00Z",
    "completed_at": "2024-01-02T10:04:40Z",
}


# ============================================================================
# Construction
# ============================================================================


class TestRepositoryInstantiation:
    """Test that the repository can be built with a mock client."""

    def test_accepts_client(self):
        """SupabaseMetricsRepository should accept a Supabase client."""
        mock_client = Mock()
        repo = SupabaseMetricsRepository(mock_client)
        assert repo._client is mock_client

    def test_import_from_infrastructure_package(self):
        """The repository should be importable from the infrastructure package."""
        from infrastructure import SupabaseMetricsRepository as Exported
        assert Exported is SupabaseMetricsRepository

    def test_implements_protocol_methods(self):
        """All MetricsRepository methods are present."""
        repo = SupabaseMetricsRepository(Mock())
        for name in ("get_workouts", "get_sets", "get_bodyweight_kg"):
            assert callable(getattr(repo, name))


# ============================================================================
# Workouts
# ============================================================================


class TestGetWorkouts:
    """Tests for get_workouts."""

    def test_maps_rows(self):
        """Rows become WorkoutRecords."""
        query = make_query([
            {"id": 1, "start_time": "2024-01-02T10:00:00Z", "end_time": "2024-01-02T11:00:00Z", "duration": 60},
        ])
        repo = make_repo(make_client(query))

        workouts = repo.get_workouts(JANUARY, "user-1")

        assert len(workouts) == 1
        assert workouts[0].id == "1"
        assert workouts[0].duration_min == 60.0
        assert workouts[0].ended_at == "2024-01-02T11:00:00Z"

    def test_selects_every_mapped_column(self):
        """The query selects exactly the columns the mapping reads."""
        query = make_query([])
        repo = make_repo(make_client(query))

        repo.get_workouts(JANUARY, "user-1")

        query.select.assert_called_once_with("id, start_time, end_time, duration")

    def test_scopes_to_user_and_range(self):
        """The query filters by user and a half-open UTC range."""
        query = make_query([])
        repo = make_repo(make_client(query))

        repo.get_workouts(JANUARY, "user-1")

        query.eq.assert_called_with("user_id", "user-1")
        query.gte.assert_called_with("start_time", "2024-01-01T00:00:00+00:00")
        query.lt.assert_called_with("start_time", "2024-02-01T00:00:00+00:00")
        query.order.assert_called_with("start_time")

    def test_error_returns_empty(self):
        """A failing query yields no workouts."""
        repo = make_repo(make_client(make_query(error=Exception("db down"))))
        assert repo.get_workouts(JANUARY, "user-1") == []

    def test_error_with_mock_fallback(self):
        """With mock fallback enabled, mock workouts are served."""
        repo = make_repo(make_client(make_query(error=Exception("db down"))), mock_fallback=True)
        workouts = repo.get_workouts(JANUARY, "user-1")
        assert [w.id for w in workouts] == ["mock-1", "mock-2"]


# ============================================================================
# Sets
# ============================================================================


class TestGetSets:
    """Tests for get_sets and its fallback chain."""

    def test_no_workout_ids(self):
        """No workouts means no query at all."""
        client = make_client()
        repo = make_repo(client)

        assert repo.get_sets([], "user-1") == []
        client.table.assert_not_called()

    def test_joined_query_with_timing(self):
        """The primary query joins sessions and selects timing columns."""
        query = make_query([SET_ROW])
        repo = make_repo(make_client(query))

        sets = repo.get_sets(["w1"], "user-1")

        columns = query.select.call_args[0][0]
        assert "started_at, completed_at" in columns
        assert "workout_sessions!inner(id,user_id)" in columns
        query.in_.assert_called_with("workout_id", ["w1"])
        query.eq.assert_called_with("workout_sessions.user_id", "user-1")
        query.or_.assert_called_with("completed.is.null,completed.eq.true")

        s = sets[0]
        assert s.id == "11"
        assert s.exercise_id == "Bench Press"
        assert s.weight_kg == 100.0
        assert s.rest_time_sec == 90.0
        assert s.timing_quality == TIMING_ACTUAL
        assert s.performed_at == "2024-01-02T10:04:40Z"

    def test_without_timing_columns(self):
        """Unmigrated schemas yield legacy sets anchored on created_at."""
        query = make_query([SET_ROW])
        repo = make_repo(make_client(query), timing=False)

        s = repo.get_sets(["w1"], "user-1")[0]

        assert "started_at" not in query.select.call_args[0][0]
        assert s.started_at is None
        assert s.timing_quality == TIMING_LEGACY
        assert s.performed_at == "2024-01-02T10:05:00Z"

    def test_exercise_filter(self):
        """An exercise id filters by exercise name."""
        query = make_query([])
        repo = make_repo(make_client(query))

        repo.get_sets(["w1"], "user-1", exercise_id="Squat")

        query.eq.assert_called_with("exercise_name", "Squat")

    def test_falls_back_without_join(self):
        """When the join fails the plain query is used and incomplete sets dropped."""
        joined = make_query(error=Exception("relationship not found"))
        plain = make_query([
            SET_ROW,
            {**SET_ROW, "id": 12, "completed": False},
            {**SET_ROW, "id": 13, "completed": None},
        ])
        repo = make_repo(make_client(joined, plain))

        sets = repo.get_sets(["w1"], "user-1")

        assert [s.id for s in sets] == ["11", "13"]
        plain.or_.assert_not_called()

    def test_both_queries_fail(self):
        """When every query fails the result is empty."""
        repo = make_repo(make_client(
            make_query(error=Exception("a")),
            make_query(error=Exception("b")),
        ))
        assert repo.get_sets(["w1"], "user-1") == []

    def test_both_queries_fail_with_mock_fallback(self):
        """Mock sets are attached to the requested workouts."""
        repo = make_repo(make_client(
            make_query(error=Exception("a")),
            make_query(error=Exception("b")),
        ), mock_fallback=True)

        sets = repo.get_sets(["w7", "w8"], "user-1")

        assert {s.workout_id for s in sets} == {"w7", "w8"}

    def test_timing_probe_runs_once(self):
        """The timing-column probe is shared across calls."""
        capability = SchemaCapability("test.timing")
        probe = make_query([])
        client = make_client(probe, make_query([]), make_query([]))
        repo = SupabaseMetricsRepository(client, timing_capability=capability)

        repo.get_sets(["w1"], "user-1")
        repo.get_sets(["w1"], "user-1")

        assert capability.probe_count == 1
        assert client.table.call_count == 3

    def test_failed_probe_means_legacy(self):
        """A failing probe falls back to the legacy column set."""
        capability = SchemaCapability("test.timing")
        main = make_query([SET_ROW])
        client = make_client(make_query(error=Exception("column does not exist")), main)
        repo = SupabaseMetricsRepository(client, timing_capability=capability)

        s = repo.get_sets(["w1"], "user-1")[0]

        assert s.timing_quality == TIMING_LEGACY
        assert capability.known is True


# ============================================================================
# Profile
# ============================================================================


class TestGetBodyweight:
    """Tests for get_bodyweight_kg."""

    def test_returns_recorded_mass(self):
        """The profile value is returned as a float."""
        query = make_query([{"bodyweight_kg": "81.5"}])
        repo = make_repo(make_client(query))

        assert repo.get_bodyweight_kg("user-1") == 81.5
        query.eq.assert_called_with("id", "user-1")

    def test_missing_profile(self):
        """No profile row means no body mass."""
        repo = make_repo(make_client(make_query([])))
        assert repo.get_bodyweight_kg("user-1") is None

    def test_null_value(self):
        """A null column means no body mass."""
        repo = make_repo(make_client(make_query([{"bodyweight_kg": None}])))
        assert repo.get_bodyweight_kg("user-1") is None

    def test_error_returns_none(self):
        """Query errors are logged and treated as unknown."""
        repo = make_repo(make_client(make_query(error=Exception("db down"))))
        assert repo.get_bodyweight_kg("user-1") is None
