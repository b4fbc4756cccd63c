from fastapi import APIRouter, Depends

from hms_analytics.config import settings
from hms_analytics.routers.deps import envelope, get_hospital_client
from hms_analytics.services.hospital_api import HospitalApiClient
from hms_analytics.services.records import parse_medicines
from hms_analytics.services.stock_analyzer import summarize_inventory

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.get("/pharmacy/summary")
def pharmacy_summary(client: HospitalApiClient = Depends(get_hospital_client)):
    records, skipped = parse_medicines(client.admin_pharmacy_medicines())
    alerts = client.low_stock_alerts()

    data = summarize_inventory(records, settings.usage_window_days).model_dump(by_alias=True, mode="json")
    data["lowStockCount"] = len(alerts.low_stock)
    data["outOfStockCount"] = len(alerts.out_of_stock)
    data["expiringCount"] = len(alerts.expiring)
    data["alerts"] = alerts.model_dump(by_alias=True, mode="json")
    data["skipped"] = [item.model_dump(by_alias=True) for item in skipped]
    return envelope(data)
