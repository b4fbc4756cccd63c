from collections.abc import Iterable, Sequence
from decimal import Decimal
from typing import TypeVar

from hms_analytics.schemas.medicine import (
    Demand,
    DemandTier,
    DerivedStockMetrics,
    InventoryQuery,
    InventorySummary,
    InventoryTotals,
    MedicineRecord,
    MedicineUsage,
    MedicineWithMetrics,
    ReorderUrgency,
    SortField,
    SortOrder,
    StockFilter,
    StockStatus,
)

USAGE_WINDOW_DAYS = 30
LOW_STOCK_THRESHOLD = 30
LOW_STOCK_TAB = "lowstock"
LOW_STOCK_TAB_THRESHOLD = 20
TOP_VALUE_LIMIT = 5

CENTS = Decimal("0.01")

RecordT = TypeVar("RecordT", bound=MedicineRecord)

_FILTER_BANDS = {
    StockFilter.CRITICAL: StockStatus.CRITICAL,
    StockFilter.LOW: StockStatus.LOW,
    StockFilter.NORMAL: StockStatus.NORMAL,
    StockFilter.HIGH: StockStatus.HIGH,
    StockFilter.OUT_OF_STOCK: StockStatus.OUT_OF_STOCK,
}


def _round_half_up(numerator: int, denominator: int) -> int:
    return (2 * numerator + denominator) // (2 * denominator)


def classify_stock_level(quantity: int) -> StockStatus:
    if quantity < 0:
        raise ValueError(f"Stock quantity cannot be negative: {quantity}")
    if quantity == 0:
        return StockStatus.OUT_OF_STOCK
    if quantity < 10:
        return StockStatus.CRITICAL
    if quantity < 30:
        return StockStatus.LOW
    if quantity < 100:
        return StockStatus.NORMAL
    return StockStatus.HIGH


def compute_days_of_supply(record: MedicineRecord, window_days: int = USAGE_WINDOW_DAYS) -> int:
    """Days the current stock lasts at the average daily prescription rate.

    prescriptionCount is taken as consumption over the trailing ``window_days``.
    Without usage history the runway is reported as 0, not infinity, so the
    record surfaces as needing review. Evaluated as stock * window / count in
    integers, rounding halves up.
    """
    count = record.usage.prescription_count
    if count <= 0:
        return 0
    return _round_half_up(record.stock_quantity * window_days, count)


def classify_reorder_urgency(days_of_supply: int) -> ReorderUrgency:
    if days_of_supply < 7:
        return ReorderUrgency.CRITICAL
    if days_of_supply < 14:
        return ReorderUrgency.HIGH
    if days_of_supply < 30:
        return ReorderUrgency.MEDIUM
    return ReorderUrgency.LOW


def classify_demand(usage: MedicineUsage) -> Demand:
    # in_demand is computed by the pharmacy backend; it is only surfaced here
    if usage.prescription_count == 0:
        return Demand(label="No usage", tier=DemandTier.NEUTRAL)
    if usage.in_demand:
        return Demand(label="High demand", tier=DemandTier.ALERT)
    return Demand(label=f"{usage.prescription_count} prescriptions", tier=DemandTier.INFO)


def stock_value(record: MedicineRecord) -> Decimal:
    return (record.price * record.stock_quantity).quantize(CENTS)


def pending_share(usage: MedicineUsage) -> int:
    if usage.prescription_count <= 0:
        return 0
    return _round_half_up(usage.pending_prescriptions * 100, usage.prescription_count)


def derive_metrics(record: MedicineRecord, window_days: int = USAGE_WINDOW_DAYS) -> MedicineWithMetrics:
    days = compute_days_of_supply(record, window_days)
    metrics = DerivedStockMetrics(
        stock_status=classify_stock_level(record.stock_quantity),
        days_of_supply=days,
        reorder_urgency=classify_reorder_urgency(days),
        demand=classify_demand(record.usage),
        stock_value=stock_value(record),
        pending_share=pending_share(record.usage),
    )
    return MedicineWithMetrics.model_validate({**record.model_dump(), "metrics": metrics})


def derive_all(records: Iterable[MedicineRecord], window_days: int = USAGE_WINDOW_DAYS) -> list[MedicineWithMetrics]:
    return [derive_metrics(record, window_days) for record in records]


def _matches(record: MedicineRecord, query: InventoryQuery, term: str) -> bool:
    if query.category != "all" and record.category != query.category:
        return False
    band = _FILTER_BANDS.get(query.stock_filter)
    if band is not None and classify_stock_level(record.stock_quantity) is not band:
        return False
    if query.active_tab == LOW_STOCK_TAB and record.stock_quantity >= LOW_STOCK_TAB_THRESHOLD:
        return False
    if term:
        haystacks = (record.name, record.category or "", record.id)
        if not any(term in text.casefold() for text in haystacks):
            return False
    return True


def _sort_key(field: SortField):
    if field is SortField.STOCK_QUANTITY:
        return lambda record: record.stock_quantity
    if field is SortField.PRICE:
        return lambda record: record.price
    return lambda record: record.name.casefold()


def filter_and_sort(records: Sequence[RecordT], query: InventoryQuery | None = None) -> list[RecordT]:
    """Apply the inventory filters and ordering to a snapshot.

    Always rebuilt from ``records``, which is left untouched, so filters can be
    changed or cleared between calls without losing data. Records with equal
    sort keys keep their input order in both directions.
    """
    query = query or InventoryQuery()
    term = query.search.strip().casefold()
    filtered = [record for record in records if _matches(record, query, term)]
    return sorted(filtered, key=_sort_key(query.sort_field), reverse=query.sort_order is SortOrder.DESC)


def aggregate_totals(records: Iterable[MedicineRecord]) -> InventoryTotals:
    total_count = 0
    total_value = Decimal("0")
    low_stock = 0
    out_of_stock = 0
    for record in records:
        total_count += 1
        total_value += record.price * record.stock_quantity
        if record.stock_quantity < LOW_STOCK_THRESHOLD:
            low_stock += 1
        if record.stock_quantity == 0:
            out_of_stock += 1
    return InventoryTotals(
        total_count=total_count,
        total_stock_value=total_value.quantize(CENTS),
        low_stock_count=low_stock,
        out_of_stock_count=out_of_stock,
    )


def stock_distribution(records: Iterable[MedicineRecord]) -> dict[StockStatus, int]:
    counts = {status: 0 for status in StockStatus}
    for record in records:
        counts[classify_stock_level(record.stock_quantity)] += 1
    return counts


def top_by_stock_value(records: Sequence[RecordT], limit: int = TOP_VALUE_LIMIT) -> list[RecordT]:
    return sorted(records, key=lambda record: record.price * record.stock_quantity, reverse=True)[:limit]


def average_stock_value(records: Sequence[MedicineRecord]) -> Decimal:
    if not records:
        return Decimal("0.00")
    totals = aggregate_totals(records)
    return (totals.total_stock_value / totals.total_count).quantize(CENTS)


def summarize_inventory(records: Sequence[MedicineRecord], window_days: int = USAGE_WINDOW_DAYS) -> InventorySummary:
    return InventorySummary(
        totals=aggregate_totals(records),
        distribution=stock_distribution(records),
        average_stock_value=average_stock_value(records),
        top_by_value=derive_all(top_by_stock_value(records), window_days),
    )


def select_for_bulk_update(records: Iterable[RecordT]) -> list[RecordT]:
    return [record for record in records if record.stock_quantity < LOW_STOCK_THRESHOLD]


def distinct_categories(records: Iterable[MedicineRecord]) -> list[str]:
    return sorted({record.category for record in records if record.category})


def paginate(items: Sequence[RecordT], page: int, limit: int) -> list[RecordT]:
    start = (page - 1) * limit
    return list(items[start : start + limit])
