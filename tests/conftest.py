from collections.abc import Generator

import pytest
from fastapi import Depends
from fastapi.testclient import TestClient

from hms_analytics.errors import UpstreamError
from hms_analytics.schemas.medicine import LowStockAlerts
from hms_analytics.main import app
from hms_analytics.routers.deps import get_auth_context, get_hospital_client
from hms_analytics.services.hospital_api import AuthContext


class FakeHospitalClient:
    """In-memory stand-in for HospitalApiClient that records its calls."""

    def __init__(self):
        self.auth: AuthContext | None = None
        self.medicines: list = []
        self.search_results: list = []
        self.admin_medicines: list = []
        self.alerts = LowStockAlerts()
        self.performance: dict = {}
        self.lab_tests: list = []
        self.lab_techs: list = []
        self.export_payload = (b"name,stock\n", "text/csv")
        self.failing_ids: set[str] = set()
        self.unavailable = False
        self.calls: list[tuple] = []

    def _call(self, name: str, *args):
        self.calls.append((name, *args))
        if self.unavailable:
            raise UpstreamError("Hospital backend unreachable", endpoint=name)

    def list_medicines(self, page: int = 1, limit: int = 20) -> list:
        self._call("list_medicines", page, limit)
        return self.medicines

    def search_medicines(self, query: str) -> list:
        self._call("search_medicines", query)
        return self.search_results

    def update_stock(self, medicine_id: str, operation: str, quantity: int, reason: str) -> dict:
        self._call("update_stock", medicine_id, operation, quantity, reason)
        if medicine_id in self.failing_ids:
            raise UpstreamError("Medicine not found", status_code=404, endpoint=f"/pharmacist/medicines/{medicine_id}/stock")
        return {"medicine": {"currentStock": quantity}, "transaction": {"operation": operation, "reason": reason}}

    def add_medicine(self, medicine: dict) -> dict:
        self._call("add_medicine", medicine)
        return {"_id": "new-1", **medicine}

    def export_medicines(self, export_format: str = "csv") -> tuple[bytes, str]:
        self._call("export_medicines", export_format)
        return self.export_payload

    def labtech_performance(self) -> dict:
        self._call("labtech_performance")
        return self.performance

    def admin_lab_tests(self, params: dict | None = None) -> list:
        self._call("admin_lab_tests")
        return self.lab_tests

    def admin_lab_techs(self) -> list:
        self._call("admin_lab_techs")
        return self.lab_techs

    def admin_pharmacy_medicines(self, params: dict | None = None) -> list:
        self._call("admin_pharmacy_medicines")
        return self.admin_medicines

    def low_stock_alerts(self, params: dict | None = None) -> LowStockAlerts:
        self._call("low_stock_alerts")
        return self.alerts


@pytest.fixture()
def hospital() -> FakeHospitalClient:
    return FakeHospitalClient()


@pytest.fixture()
def client(hospital) -> Generator[TestClient, None, None]:
    def override_hospital_client(auth: AuthContext = Depends(get_auth_context)):
        hospital.auth = auth
        return hospital

    app.dependency_overrides[get_hospital_client] = override_hospital_client
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
