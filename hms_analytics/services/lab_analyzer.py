import re
from collections import defaultdict
from collections.abc import Iterable, Mapping
from datetime import date, datetime, timedelta, timezone
from typing import Any

from hms_analytics.schemas.lab_test import (
    CompletionTimeStats,
    DepartmentStat,
    LabDashboard,
    LabPriority,
    LabStatus,
    LabTestRecord,
    PerformanceInsights,
    TrendPoint,
)

TRAILING_DAYS = 7

_HOURS_PATTERN = re.compile(r"([\d.]+)\s*hours?", re.IGNORECASE)
_NUMBER_PREFIX = re.compile(r"\d+(?:\.\d*)?|\.\d+")


def parse_completion_hours(value: str | None) -> float | None:
    """Hours from text like "2.50 hours"; only the leading number counts, so "1.2.3 hours" is 1.2."""
    if not value:
        return None
    match = _HOURS_PATTERN.search(value)
    if not match:
        return None
    number = _NUMBER_PREFIX.match(match.group(1))
    if not number:
        return None
    return float(number.group())


def format_duration(hours: float | None) -> str:
    if hours is None:
        return "N/A"
    if hours >= 1:
        return f"{hours:.1f}h"
    return f"{round(hours * 60)}m"


def _is_completed(record: LabTestRecord) -> bool:
    if record.completed_at is None:
        return False
    return record.status is None or record.status is LabStatus.COMPLETED


class _Bucket:
    __slots__ = ("tests", "timed", "hours")

    def __init__(self):
        self.tests = 0
        self.timed = 0
        self.hours = 0.0

    def add(self, hours: float | None) -> None:
        self.tests += 1
        if hours is not None:
            self.timed += 1
            self.hours += hours

    def avg(self) -> float:
        return round(self.hours / self.timed, 2) if self.timed else 0.0


def compute_completion_time_stats(records: Iterable[LabTestRecord], today: date | None = None) -> CompletionTimeStats:
    """Monthly and trailing-week completion volume and average turnaround.

    Every completed record counts toward ``tests``; only records whose
    completionTime parses count toward ``avgTime``.
    """
    today = today or datetime.now(timezone.utc).date()
    window = [today - timedelta(days=offset) for offset in range(TRAILING_DAYS - 1, -1, -1)]

    monthly: dict[tuple[int, int], _Bucket] = defaultdict(_Bucket)
    daily: dict[date, _Bucket] = {day: _Bucket() for day in window}
    overall = _Bucket()

    for record in records:
        if not _is_completed(record):
            continue
        hours = parse_completion_hours(record.completion_time)
        completed_on = record.completed_at.date()
        overall.add(hours)
        monthly[(completed_on.year, completed_on.month)].add(hours)
        if completed_on in daily:
            daily[completed_on].add(hours)

    monthly_points = []
    for (year, month), bucket in sorted(monthly.items()):
        first = date(year, month, 1)
        monthly_points.append(
            TrendPoint(
                key=first.strftime("%Y-%m"),
                label=first.strftime("%b %Y"),
                tests=bucket.tests,
                timed_tests=bucket.timed,
                avg_time=bucket.avg(),
            )
        )

    daily_points = [
        TrendPoint(
            key=day.isoformat(),
            label=day.strftime("%b %d"),
            tests=bucket.tests,
            timed_tests=bucket.timed,
            avg_time=bucket.avg(),
        )
        for day, bucket in daily.items()
    ]

    return CompletionTimeStats(
        monthly=monthly_points,
        daily=daily_points,
        total_completed=overall.tests,
        timed_tests=overall.timed,
        overall_avg_time=overall.avg(),
    )


def priority_breakdown(records: Iterable[LabTestRecord]) -> dict[LabPriority, int]:
    counts = {priority: 0 for priority in LabPriority}
    for record in records:
        if record.priority is not None:
            counts[record.priority] += 1
    return counts


def _percent(part: int, whole: int) -> float:
    if whole == 0:
        return 0.0
    return round(part / whole * 100, 1)


def _tech_is_active(tech: Any) -> bool:
    if not isinstance(tech, Mapping):
        return False
    profile = tech.get("labTech")
    if not isinstance(profile, Mapping):
        return False
    return bool(profile.get("isActive"))


def compute_lab_dashboard(tests: Iterable[LabTestRecord], techs: Iterable[Any]) -> LabDashboard:
    counts: dict[LabStatus | None, int] = defaultdict(int)
    turnaround = _Bucket()
    total = 0
    for record in tests:
        total += 1
        counts[record.status] += 1
        if record.status is LabStatus.COMPLETED:
            turnaround.add(parse_completion_hours(record.completion_time))

    tech_list = list(techs)
    return LabDashboard(
        total_tests=total,
        completed_tests=counts[LabStatus.COMPLETED],
        pending_tests=counts[LabStatus.REQUESTED],
        processing_tests=counts[LabStatus.PROCESSING],
        cancelled_tests=counts[LabStatus.CANCELLED],
        completion_rate=_percent(counts[LabStatus.COMPLETED], total),
        avg_turnaround_time=format_duration(turnaround.avg() if turnaround.timed else None),
        total_lab_techs=len(tech_list),
        active_lab_techs=sum(1 for tech in tech_list if _tech_is_active(tech)),
    )


def performance_insights(department_stats: Iterable[DepartmentStat]) -> PerformanceInsights:
    stats = list(department_stats)
    if not stats:
        return PerformanceInsights()

    most_frequent = max(stats, key=lambda stat: stat.count)

    timed = [(parse_completion_hours(stat.avg_completion_time), stat) for stat in stats]
    timed = [(hours, stat) for hours, stat in timed if hours is not None]
    fastest = min(timed, key=lambda pair: pair[0]) if timed else None

    return PerformanceInsights(
        fastest_test_type=fastest[1].test_name if fastest else None,
        fastest_avg_hours=fastest[0] if fastest else None,
        most_frequent_test_type=most_frequent.test_name,
        most_frequent_count=most_frequent.count,
    )


def accuracy_band(rate: float | None) -> str | None:
    if rate is None:
        return None
    if rate >= 95:
        return "success"
    if rate >= 85:
        return "warning"
    return "error"
