from hms_analytics.schemas.base import CamelModel, SkippedRecord
from hms_analytics.schemas.lab_test import LabPriority, LabStatus, LabTestRecord
from hms_analytics.schemas.medicine import (
    MedicineRecord,
    MedicineUsage,
    MedicineWithMetrics,
    ReorderUrgency,
    StockStatus,
)

__all__ = [
    "CamelModel",
    "SkippedRecord",
    "LabPriority",
    "LabStatus",
    "LabTestRecord",
    "MedicineRecord",
    "MedicineUsage",
    "MedicineWithMetrics",
    "ReorderUrgency",
    "StockStatus",
]
