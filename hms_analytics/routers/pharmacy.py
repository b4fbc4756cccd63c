import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response

from hms_analytics.config import settings
from hms_analytics.errors import UpstreamError
from hms_analytics.routers.deps import envelope, get_hospital_client
from hms_analytics.schemas.base import SkippedRecord
from hms_analytics.schemas.medicine import (
    AnalyzeInventoryRequest,
    BulkStockUpdateRequest,
    BulkUpdateFailure,
    BulkUpdateResult,
    InventoryPage,
    InventoryQuery,
    MedicineCreate,
    MedicineRecord,
    SortField,
    SortOrder,
    StockFilter,
    StockUpdateRequest,
)
from hms_analytics.services.hospital_api import EXPORT_FORMATS, HospitalApiClient
from hms_analytics.services.records import parse_medicines
from hms_analytics.services.stock_analyzer import (
    aggregate_totals,
    derive_all,
    distinct_categories,
    filter_and_sort,
    paginate,
    select_for_bulk_update,
    summarize_inventory,
)

router = APIRouter(prefix="/api/pharmacy", tags=["pharmacy"])
logger = logging.getLogger(__name__)


def inventory_query(
    category: str = Query(default="all"),
    stock_filter: StockFilter = Query(default=StockFilter.ALL, alias="stockFilter"),
    search: str = Query(default=""),
    active_tab: str = Query(default="list", alias="activeTab"),
    sort_field: SortField = Query(default=SortField.NAME, alias="sortField"),
    sort_order: SortOrder = Query(default=SortOrder.ASC, alias="sortOrder"),
) -> InventoryQuery:
    return InventoryQuery(
        category=category,
        stock_filter=stock_filter,
        search=search,
        active_tab=active_tab,
        sort_field=sort_field,
        sort_order=sort_order,
    )


def _page_limit(limit: int | None) -> int:
    return min(limit or settings.default_page_limit, settings.max_page_limit)


def build_inventory_page(
    records: list[MedicineRecord],
    skipped: list[SkippedRecord],
    query: InventoryQuery,
    page: int,
    limit: int,
    already_paged: bool = False,
) -> InventoryPage:
    ordered = filter_and_sort(records, query)
    visible = ordered if already_paged else paginate(ordered, page, limit)
    return InventoryPage(
        items=derive_all(visible, settings.usage_window_days),
        totals=aggregate_totals(records),
        categories=distinct_categories(records),
        skipped=skipped,
        total=len(ordered),
        page=page,
        limit=limit,
    )


@router.get("/inventory")
def inventory(
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1),
    query: InventoryQuery = Depends(inventory_query),
    client: HospitalApiClient = Depends(get_hospital_client),
):
    limit = _page_limit(limit)
    records, skipped = parse_medicines(client.list_medicines(page=page, limit=limit))
    # the backend pages the list; filters and ordering apply within that page
    result = build_inventory_page(records, skipped, query, page=page, limit=limit, already_paged=True)
    return envelope(result.model_dump(by_alias=True, mode="json"))


@router.post("/inventory/analyze")
def analyze_inventory(
    payload: AnalyzeInventoryRequest,
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1),
):
    records, skipped = parse_medicines(payload.medicines)
    result = build_inventory_page(records, skipped, payload.query, page=page, limit=_page_limit(limit))
    return envelope(result.model_dump(by_alias=True, mode="json"))


@router.get("/search")
def search(
    query: str = Query(default=""),
    client: HospitalApiClient = Depends(get_hospital_client),
):
    term = query.strip()
    if len(term) < 2:
        raise HTTPException(status_code=400, detail="Search query must be at least 2 characters")
    records, skipped = parse_medicines(client.search_medicines(term))
    return envelope(
        {
            "items": [item.model_dump(by_alias=True, mode="json") for item in derive_all(records, settings.usage_window_days)],
            "skipped": [item.model_dump(by_alias=True) for item in skipped],
        }
    )


@router.get("/summary")
def summary(
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1),
    client: HospitalApiClient = Depends(get_hospital_client),
):
    records, skipped = parse_medicines(client.list_medicines(page=page, limit=_page_limit(limit)))
    data = summarize_inventory(records, settings.usage_window_days).model_dump(by_alias=True, mode="json")
    data["skipped"] = [item.model_dump(by_alias=True) for item in skipped]
    return envelope(data)


@router.put("/medicines/{medicine_id}/stock")
def update_stock(
    medicine_id: str,
    payload: StockUpdateRequest,
    client: HospitalApiClient = Depends(get_hospital_client),
):
    data = client.update_stock(medicine_id, payload.operation.value, payload.quantity, payload.reason)
    return envelope(data, message="Stock updated")


@router.post("/medicines")
def add_medicine(
    payload: MedicineCreate,
    client: HospitalApiClient = Depends(get_hospital_client),
):
    data = client.add_medicine(payload.model_dump(by_alias=True, exclude_none=True, mode="json"))
    return envelope(data, message="Medicine created")


@router.post("/inventory/bulk-update")
def bulk_update(
    payload: BulkStockUpdateRequest,
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1),
    client: HospitalApiClient = Depends(get_hospital_client),
):
    records, _ = parse_medicines(client.list_medicines(page=page, limit=_page_limit(limit)))
    result = BulkUpdateResult(updated=[], failed=[])
    for record in select_for_bulk_update(records):
        try:
            client.update_stock(record.id, payload.operation.value, payload.quantity, payload.reason)
        except UpstreamError as exc:
            logger.warning("Bulk stock update failed for %s: %s", record.id, exc)
            result.failed.append(BulkUpdateFailure(medicine_id=record.id, message=str(exc)))
            continue
        result.updated.append(record.id)
    return envelope(result.model_dump(by_alias=True), message="Bulk update finished")


@router.get("/export")
def export(
    export_format: str = Query(default="csv", alias="format"),
    client: HospitalApiClient = Depends(get_hospital_client),
):
    if export_format not in EXPORT_FORMATS:
        raise HTTPException(status_code=400, detail=f"Unsupported export format: {export_format}")
    content, media_type = client.export_medicines(export_format)
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="medicines.{export_format}"'},
    )
