import logging
from collections.abc import Mapping
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from hms_analytics.schemas.base import SkippedRecord
from hms_analytics.schemas.lab_test import DepartmentStat, LabTestRecord
from hms_analytics.schemas.medicine import MedicineRecord

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def _raw_id(item: Any) -> str | None:
    if not isinstance(item, Mapping):
        return None
    raw = item.get("id", item.get("_id"))
    return None if raw is None else str(raw)


def _describe(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())) or "record"
        parts.append(f"{location}: {error.get('msg')}")
    return "; ".join(parts)


def _parse_each(raw_items: Any, model: type[ModelT], kind: str) -> tuple[list[ModelT], list[SkippedRecord]]:
    if raw_items is None:
        return [], []
    if not isinstance(raw_items, list):
        logger.warning("Expected a list of %s records, got %s", kind, type(raw_items).__name__)
        return [], []

    records: list[ModelT] = []
    skipped: list[SkippedRecord] = []
    for index, item in enumerate(raw_items):
        if not isinstance(item, Mapping):
            skipped.append(SkippedRecord(index=index, reason=f"expected an object, got {type(item).__name__}"))
            continue
        try:
            records.append(model.model_validate(item))
        except ValidationError as exc:
            skipped.append(SkippedRecord(index=index, id=_raw_id(item), reason=_describe(exc)))

    if skipped:
        logger.warning("Skipped %d of %d %s records", len(skipped), len(raw_items), kind)
    return records, skipped


def parse_medicines(raw_items: Any) -> tuple[list[MedicineRecord], list[SkippedRecord]]:
    return _parse_each(raw_items, MedicineRecord, "medicine")


def parse_lab_tests(raw_items: Any) -> tuple[list[LabTestRecord], list[SkippedRecord]]:
    return _parse_each(raw_items, LabTestRecord, "lab test")


def parse_department_stats(raw_items: Any) -> list[DepartmentStat]:
    stats, _ = _parse_each(raw_items, DepartmentStat, "department stat")
    return stats
