"""
Unit tests for the legacy (v1) summary and the v1/v2 parity diff.
"""
import copy
import pytest
from datetime import date

from application.ports.metrics_repository import DateRange
from backend.core.metrics import compute_metrics_v2
from backend.services.legacy_metrics import LegacyMetricsService, compute_metrics_v1
from backend.services.metrics_parity import (
    MISMATCH_PRS_LENGTH,
    MISMATCH_SERIES_VOLUME_LENGTH,
    MISMATCH_TOTAL_VOLUME,
    summarize_parity_diff,
)
from backend.services.metrics_service import MetricsService
from tests.fakes import create_metrics_repo, make_set, make_workout

USER = "test-user"
JANUARY = DateRange(start=date(2024, 1, 1), end=date(2024, 1, 31))


@pytest.fixture
def records():
    repo = create_metrics_repo(USER)
    return MetricsService(repo).fetch_records(USER, JANUARY)


@pytest.mark.unit
class TestComputeMetricsV1:
    """Tests for the v1 summary."""

    def test_totals(self, records):
        """v1 totals are plain sums."""
        v1 = compute_metrics_v1(records.workouts, records.sets)

        assert v1["version"] == "v1"
        assert v1["totals"] == {
            "totalVolumeKg": 2800.0,
            "totalSets": 5,
            "totalReps": 25,
            "workouts": 2,
            "durationMin": 105.0,
        }

    def test_series_use_utc_date_prefix(self):
        """v1 buckets by the UTC date of the start time."""
        workouts = [make_workout("w1", "2024-01-01T23:30:00Z")]
        v1 = compute_metrics_v1(workouts, [make_set("s1", "w1")])
        assert v1["series"]["volume"] == [{"date": "2024-01-01", "value": 500.0}]

    def test_workout_without_sets_still_has_a_point(self):
        """Every workout day appears in the series."""
        v1 = compute_metrics_v1([make_workout("w1", "2024-01-02T10:00:00Z")], [])
        assert v1["series"]["sets"] == [{"date": "2024-01-02", "value": 0}]

    def test_legacy_service(self):
        """LegacyMetricsService serves v1 from repository records."""
        service = LegacyMetricsService(MetricsService(create_metrics_repo(USER)))
        summary = service.get_summary(USER, JANUARY)
        assert summary["totals"]["totalVolumeKg"] == 2800.0


@pytest.mark.unit
class TestSummarizeParityDiff:
    """Tests for summarize_parity_diff."""

    def test_identical_data_has_no_diff(self, records):
        """v1 and v2 computed from the same daytime data agree."""
        v1 = compute_metrics_v1(records.workouts, records.sets)
        v2 = compute_metrics_v2(records.workouts, records.sets).to_dict()
        assert summarize_parity_diff(v1, v2) is None

    def test_volume_mismatch(self, records):
        """A volume difference is reported."""
        v1 = compute_metrics_v1(records.workouts, records.sets)
        v2 = copy.deepcopy(v1)
        v2["totals"]["totalVolumeKg"] += 10

        diff = summarize_parity_diff(v1, v2)

        assert diff["mismatches"] == [MISMATCH_TOTAL_VOLUME]
        assert diff["totals"] == {"v1": 2800.0, "v2": 2810.0}

    def test_any_volume_difference_is_a_mismatch(self, records):
        """Even sub-gram differences are reported; nothing is absorbed."""
        v1 = compute_metrics_v1(records.workouts, records.sets)
        v2 = copy.deepcopy(v1)
        v2["totals"]["totalVolumeKg"] += 0.005
        assert summarize_parity_diff(v1, v2)["mismatches"] == [MISMATCH_TOTAL_VOLUME]

    def test_prs_and_series_length_mismatch(self):
        """Record counts and series lengths are compared."""
        v1 = {"totals": {"totalVolumeKg": 100}, "prs": [{}], "series": {"volume": [{}]}}
        v2 = {"totals": {"totalVolumeKg": 100}, "prs": [], "series": {"tonnageKg": [{}, {}]}}

        diff = summarize_parity_diff(v1, v2)

        assert diff["mismatches"] == [MISMATCH_PRS_LENGTH, MISMATCH_SERIES_VOLUME_LENGTH]
        assert diff["prsLength"] == {"v1": 1, "v2": 0}
        assert diff["seriesVolumeLen"] == {"v1": 1, "v2": 2}

    def test_missing_fields_are_skipped(self):
        """A field absent on either side is not compared."""
        v1 = {"totals": {"totalVolumeKg": 100}, "prs": [{}]}
        v2 = {"series": {}}
        assert summarize_parity_diff(v1, v2) is None

    def test_late_evening_workout_mismatches_series(self):
        """UTC and local bucketing disagree across midnight."""
        workouts = [
            make_workout("w1", "2024-01-01T23:30:00Z"),
            make_workout("w2", "2024-01-02T10:00:00Z"),
        ]
        sets = [make_set("s1", "w1"), make_set("s2", "w2")]
        v1 = compute_metrics_v1(workouts, sets)
        v2 = compute_metrics_v2(workouts, sets).to_dict()

        diff = summarize_parity_diff(v1, v2)
        assert diff["mismatches"] == [MISMATCH_SERIES_VOLUME_LENGTH]
