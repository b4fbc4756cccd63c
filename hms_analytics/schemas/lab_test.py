from datetime import date, datetime
from enum import Enum
from typing import Any

from pydantic import AliasChoices, Field, field_validator

from hms_analytics.schemas.base import CamelModel, SkippedRecord


class LabPriority(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


class LabStatus(str, Enum):
    REQUESTED = "Requested"
    PROCESSING = "Processing"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class LabTestRecord(CamelModel):
    """A lab test as listed by the lab backend. completionTime is free text such as "2.50 hours"."""
    id: str | None = Field(default=None, validation_alias=AliasChoices("id", "_id"))
    test_name: str | None = None
    priority: LabPriority | None = None
    status: LabStatus | None = None
    completed_at: datetime | None = None
    completion_time: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_text(cls, value: Any) -> Any:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


class TrendPoint(CamelModel):
    key: str
    label: str
    tests: int
    timed_tests: int
    avg_time: float


class CompletionTimeStats(CamelModel):
    monthly: list[TrendPoint]
    daily: list[TrendPoint]
    total_completed: int
    timed_tests: int
    overall_avg_time: float


class DepartmentStat(CamelModel):
    test_name: str
    count: int = Field(default=0, ge=0)
    avg_completion_time: str | None = None


class PerformanceInsights(CamelModel):
    fastest_test_type: str | None = None
    fastest_avg_hours: float | None = None
    most_frequent_test_type: str | None = None
    most_frequent_count: int = 0


class LabPerformanceReport(CamelModel):
    basic_stats: dict[str, Any]
    accuracy_band: str | None
    completion: CompletionTimeStats
    priority_breakdown: dict[LabPriority, int]
    insights: PerformanceInsights
    skipped: list[SkippedRecord]


class LabDashboard(CamelModel):
    total_tests: int
    completed_tests: int
    pending_tests: int
    processing_tests: int
    cancelled_tests: int
    completion_rate: float
    avg_turnaround_time: str
    total_lab_techs: int
    active_lab_techs: int


class AnalyzeLabTestsRequest(CamelModel):
    recent_tests: list[Any]
    today: date | None = None
