from datetime import date

from fastapi import APIRouter, Depends, Query

from hms_analytics.routers.deps import envelope, get_hospital_client
from hms_analytics.schemas.lab_test import AnalyzeLabTestsRequest, LabPerformanceReport
from hms_analytics.services.hospital_api import HospitalApiClient
from hms_analytics.services.lab_analyzer import (
    accuracy_band,
    compute_completion_time_stats,
    compute_lab_dashboard,
    performance_insights,
    priority_breakdown,
)
from hms_analytics.services.records import parse_department_stats, parse_lab_tests

router = APIRouter(prefix="/api/lab", tags=["laboratory"])


def _accuracy_rate(basic_stats: dict) -> float | None:
    rate = basic_stats.get("accuracyRate")
    try:
        return float(rate) if rate is not None else None
    except (TypeError, ValueError):
        return None


@router.get("/performance")
def performance(
    today: date | None = Query(default=None),
    client: HospitalApiClient = Depends(get_hospital_client),
):
    data = client.labtech_performance()
    basic_stats = data.get("basicStats") if isinstance(data.get("basicStats"), dict) else {}
    recent = data.get("recentPerformance") if isinstance(data.get("recentPerformance"), dict) else {}

    tests, skipped = parse_lab_tests(data.get("recentTests"))
    priority_stats = recent.get("priorityStats")
    breakdown = priority_breakdown(tests)
    if isinstance(priority_stats, dict):
        # backend priorityStats take precedence over counts from recentTests
        for priority in breakdown:
            value = priority_stats.get(priority.value)
            if isinstance(value, int) and not isinstance(value, bool) and value >= 0:
                breakdown[priority] = value

    report = LabPerformanceReport(
        basic_stats=basic_stats,
        accuracy_band=accuracy_band(_accuracy_rate(basic_stats)),
        completion=compute_completion_time_stats(tests, today=today),
        priority_breakdown=breakdown,
        insights=performance_insights(parse_department_stats(recent.get("departmentStats"))),
        skipped=skipped,
    )
    return envelope(report.model_dump(by_alias=True, mode="json"))


@router.post("/performance/analyze")
def analyze_performance(payload: AnalyzeLabTestsRequest):
    tests, skipped = parse_lab_tests(payload.recent_tests)
    stats = compute_completion_time_stats(tests, today=payload.today)
    return envelope(
        {
            "completion": stats.model_dump(by_alias=True, mode="json"),
            "priorityBreakdown": {k.value: v for k, v in priority_breakdown(tests).items()},
            "skipped": [item.model_dump(by_alias=True) for item in skipped],
        }
    )


@router.get("/dashboard")
def dashboard(client: HospitalApiClient = Depends(get_hospital_client)):
    tests, skipped = parse_lab_tests(client.admin_lab_tests())
    techs = client.admin_lab_techs()
    data = compute_lab_dashboard(tests, techs).model_dump(by_alias=True, mode="json")
    data["skipped"] = [item.model_dump(by_alias=True) for item in skipped]
    return envelope(data)
