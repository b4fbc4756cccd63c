from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import AliasChoices, Field, field_validator

from hms_analytics.schemas.base import CamelModel, SkippedRecord


class StockStatus(str, Enum):
    OUT_OF_STOCK = "OutOfStock"
    CRITICAL = "Critical"
    LOW = "Low"
    NORMAL = "Normal"
    HIGH = "High"


class ReorderUrgency(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class DemandTier(str, Enum):
    NEUTRAL = "neutral"
    ALERT = "alert"
    INFO = "info"


class StockFilter(str, Enum):
    ALL = "all"
    CRITICAL = "critical"
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    OUT_OF_STOCK = "outofstock"


class SortField(str, Enum):
    NAME = "name"
    STOCK_QUANTITY = "stockQuantity"
    PRICE = "price"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class StockOperation(str, Enum):
    ADD = "add"
    SUBTRACT = "subtract"
    SET = "set"


def _to_decimal(value: Any) -> Any:
    # floats go through str() so 2.5 stays Decimal("2.5") rather than its binary expansion
    if isinstance(value, float):
        return Decimal(str(value))
    return value


class MedicineUsage(CamelModel):
    """Prescription activity over the trailing observation window."""
    prescription_count: int = Field(default=0, ge=0)
    pending_prescriptions: int = Field(default=0, ge=0)
    in_demand: bool = False

    @field_validator("prescription_count", "pending_prescriptions", mode="before")
    @classmethod
    def _null_count(cls, value: Any) -> Any:
        return 0 if value is None else value

    @field_validator("in_demand", mode="before")
    @classmethod
    def _null_flag(cls, value: Any) -> Any:
        return False if value is None else value


class MedicineRecord(CamelModel):
    """Snapshot of one medicine as returned by the pharmacy backend."""
    id: str = Field(validation_alias=AliasChoices("id", "_id"))
    name: str = Field(min_length=1)
    category: str | None = None
    price: Decimal = Field(ge=0)
    stock_quantity: int = Field(ge=0)
    unit: str | None = None
    usage: MedicineUsage = Field(default_factory=MedicineUsage)
    reorder_level: int | None = None
    manufacturer: str | None = None
    expiry_date: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_text(cls, value: Any) -> Any:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("price", mode="before")
    @classmethod
    def _price_decimal(cls, value: Any) -> Any:
        return _to_decimal(value)

    @field_validator("usage", mode="before")
    @classmethod
    def _missing_usage(cls, value: Any) -> Any:
        return {} if value is None else value


class Demand(CamelModel):
    label: str
    tier: DemandTier


class DerivedStockMetrics(CamelModel):
    stock_status: StockStatus
    days_of_supply: int
    reorder_urgency: ReorderUrgency
    demand: Demand
    stock_value: Decimal
    pending_share: int


class MedicineWithMetrics(MedicineRecord):
    metrics: DerivedStockMetrics


class InventoryQuery(CamelModel):
    category: str = "all"
    stock_filter: StockFilter = StockFilter.ALL
    search: str = ""
    active_tab: str = "list"
    sort_field: SortField = SortField.NAME
    sort_order: SortOrder = SortOrder.ASC


class InventoryTotals(CamelModel):
    total_count: int
    total_stock_value: Decimal
    low_stock_count: int
    out_of_stock_count: int


class InventorySummary(CamelModel):
    totals: InventoryTotals
    distribution: dict[StockStatus, int]
    average_stock_value: Decimal
    top_by_value: list[MedicineWithMetrics]


class InventoryPage(CamelModel):
    items: list[MedicineWithMetrics]
    totals: InventoryTotals
    categories: list[str]
    skipped: list[SkippedRecord]
    total: int
    page: int
    limit: int


class AnalyzeInventoryRequest(CamelModel):
    # raw items, validated one by one so a bad record does not fail the batch
    medicines: list[Any]
    query: InventoryQuery = Field(default_factory=InventoryQuery)


class MedicineCreate(CamelModel):
    name: str = Field(min_length=1)
    category: str | None = None
    price: Decimal = Field(ge=0)
    stock_quantity: int = Field(default=0, ge=0)
    unit: str | None = "tablet"
    manufacturer: str | None = None
    reorder_level: int | None = Field(default=None, ge=0)
    expiry_date: str | None = None
    description: str | None = None

    @field_validator("price", mode="before")
    @classmethod
    def _price_decimal(cls, value: Any) -> Any:
        return _to_decimal(value)


class StockUpdateRequest(CamelModel):
    operation: StockOperation
    quantity: int = Field(ge=0)
    reason: str = "Restock"


class BulkStockUpdateRequest(CamelModel):
    operation: StockOperation = StockOperation.ADD
    quantity: int = Field(ge=0)
    reason: str = "Bulk update"


class BulkUpdateFailure(CamelModel):
    medicine_id: str
    message: str


class BulkUpdateResult(CamelModel):
    updated: list[str]
    failed: list[BulkUpdateFailure]


class LowStockAlerts(CamelModel):
    """Alert lists from the admin low-stock endpoint; entries keep the backend's fields."""

    low_stock: list[dict[str, Any]] = Field(default_factory=list)
    out_of_stock: list[dict[str, Any]] = Field(default_factory=list)
    expiring: list[dict[str, Any]] = Field(default_factory=list)
