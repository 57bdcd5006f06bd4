"""
Metrics router for workout analytics.

This router provides endpoints for:
- The v2 metrics envelope (totals, per-workout metrics, series, meta)
- The migration summary (v1, v2 or shadow, per feature flags)
- Personal records within a date range
- Per-workout averages over standard periods
- Rest statistics and timing validation
"""
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from api.deps import get_current_user, get_metrics_facade, get_metrics_service
from application.ports.metrics_repository import DateRange
from backend.services.metrics_facade import MetricsFacade
from backend.services.metrics_service import MetricsService, MissingUserError

router = APIRouter(
    prefix="/metrics",
    tags=["Metrics"],
)

DEFAULT_RANGE_DAYS = 30
MAX_RANGE_DAYS = 366


# =============================================================================
# Response Models
# =============================================================================


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MetricsV2Response(CamelModel):
    """Response model for the v2 metrics envelope."""
    totals: Dict[str, Any]
    per_workout: List[Dict[str, Any]] = Field(default_factory=list)
    totals_kpis: Optional[Dict[str, Any]] = None
    series: Dict[str, List[Dict[str, Any]]] = Field(default_factory=dict)
    prs: List[Dict[str, Any]] = Field(default_factory=list)
    meta: Dict[str, Any]


class PersonalRecordItem(CamelModel):
    """A single personal record."""
    exercise_id: str
    exercise_name: str
    record_type: str  # "1rm", "max_weight", "max_reps", "max_volume"
    value: float
    unit: str
    achieved_at: Optional[str] = None
    workout_id: Optional[str] = None
    weight_kg: Optional[float] = None
    reps: Optional[int] = None


class PersonalRecordsResponse(CamelModel):
    records: List[PersonalRecordItem]
    exercise_id: Optional[str] = None


class PeriodAveragesItem(CamelModel):
    period_label: str
    date_range: Dict[str, Optional[str]]
    total_workouts: int
    average_tonnage_per_workout: int
    average_duration_per_workout: int
    average_sets_per_workout: int
    average_reps_per_workout: int


class TimePeriodAveragesResponse(CamelModel):
    this_week: PeriodAveragesItem
    this_month: PeriodAveragesItem
    last_7_days: PeriodAveragesItem = Field(alias="last7Days")
    last_30_days: PeriodAveragesItem = Field(alias="last30Days")
    all_time: PeriodAveragesItem


# =============================================================================
# Helpers
# =============================================================================


def _date_range(start: Optional[date], end: Optional[date]) -> DateRange:
    """Resolve query dates, defaulting to the last 30 days."""
    end = end or date.today()
    start = start or end - timedelta(days=DEFAULT_RANGE_DAYS - 1)
    if start > end:
        raise HTTPException(status_code=400, detail="start must not be after end")
    date_range = DateRange(start=start, end=end)
    if date_range.days > MAX_RANGE_DAYS:
        raise HTTPException(
            status_code=400,
            detail=f"Date range too large (max {MAX_RANGE_DAYS} days)",
        )
    return date_range


def _unauthorized(e: MissingUserError) -> HTTPException:
    return HTTPException(status_code=401, detail=e.message)


# =============================================================================
# Endpoints
# =============================================================================


@router.get("/v2", response_model=MetricsV2Response, response_model_exclude_unset=True)
async def get_metrics_v2(
    start: Optional[date] = Query(None, description="First day (YYYY-MM-DD)"),
    end: Optional[date] = Query(None, description="Last day (YYYY-MM-DD), inclusive"),
    exercise_id: Optional[str] = Query(None, description="Restrict to one exercise"),
    user_id: str = Depends(get_current_user),
    service: MetricsService = Depends(get_metrics_service),
) -> MetricsV2Response:
    """
    Get the v2 metrics envelope.

    KPI fields and derived series are omitted when derived KPIs are disabled.
    Rest KPIs are hidden from the series when rest coverage is below the
    configured threshold; meta.restQuality says why.
    """
    date_range = _date_range(start, end)
    try:
        output = service.get_metrics_v2(user_id, date_range, exercise_id)
    except MissingUserError as e:
        raise _unauthorized(e)
    return MetricsV2Response(**output.to_dict())


@router.get("/summary")
async def get_metrics_summary(
    start: Optional[date] = Query(None, description="First day (YYYY-MM-DD)"),
    end: Optional[date] = Query(None, description="Last day (YYYY-MM-DD), inclusive"),
    user_id: str = Depends(get_current_user),
    facade: MetricsFacade = Depends(get_metrics_facade),
) -> Dict[str, Any]:
    """
    Get the metrics summary served by the current migration mode.

    Returns the v1 summary by default, the v2 envelope when v2 is enabled.
    In shadow mode v1 is returned and v2 is compared in the background.
    """
    date_range = _date_range(start, end)
    try:
        return await facade.get_metrics(user_id, date_range)
    except MissingUserError as e:
        raise _unauthorized(e)


@router.get("/personal-records", response_model=PersonalRecordsResponse)
async def get_personal_records(
    start: Optional[date] = Query(None, description="First day (YYYY-MM-DD)"),
    end: Optional[date] = Query(None, description="Last day (YYYY-MM-DD), inclusive"),
    exercise_id: Optional[str] = Query(None, description="Restrict to one exercise"),
    user_id: str = Depends(get_current_user),
    service: MetricsService = Depends(get_metrics_service),
) -> PersonalRecordsResponse:
    """Get personal records (estimated 1RM, max weight, max reps, max session volume)."""
    date_range = _date_range(start, end)
    try:
        records = service.get_personal_records(user_id, date_range, exercise_id)
    except MissingUserError as e:
        raise _unauthorized(e)
    return PersonalRecordsResponse(
        records=[PersonalRecordItem(**r.to_dict()) for r in records],
        exercise_id=exercise_id,
    )


@router.get("/averages", response_model=TimePeriodAveragesResponse)
async def get_time_period_averages(
    exercise_id: Optional[str] = Query(None, description="Restrict to one exercise"),
    user_id: str = Depends(get_current_user),
    service: MetricsService = Depends(get_metrics_service),
) -> TimePeriodAveragesResponse:
    """Get average tonnage, duration, sets and reps per workout for standard periods."""
    try:
        averages = service.get_time_period_averages(user_id, exercise_id)
    except MissingUserError as e:
        raise _unauthorized(e)
    return TimePeriodAveragesResponse(**{
        key: PeriodAveragesItem(**value.to_dict()) for key, value in averages.items()
    })


@router.get("/rest")
async def get_rest_analytics(
    start: Optional[date] = Query(None, description="First day (YYYY-MM-DD)"),
    end: Optional[date] = Query(None, description="Last day (YYYY-MM-DD), inclusive"),
    exercise_id: Optional[str] = Query(None, description="Restrict to one exercise"),
    user_id: str = Depends(get_current_user),
    service: MetricsService = Depends(get_metrics_service),
) -> Dict[str, Any]:
    """Get rest statistics and a timing data-quality report."""
    date_range = _date_range(start, end)
    try:
        return service.get_rest_analytics(user_id, date_range, exercise_id).to_dict()
    except MissingUserError as e:
        raise _unauthorized(e)
