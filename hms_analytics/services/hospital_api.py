import logging
from dataclasses import dataclass
from typing import Any

import requests
from pydantic import ValidationError

from hms_analytics.config import settings
from hms_analytics.errors import MissingTokenError, UpstreamError
from hms_analytics.schemas.medicine import LowStockAlerts

logger = logging.getLogger(__name__)

EXPORT_FORMATS = {"csv", "pdf"}


@dataclass(frozen=True)
class AuthContext:
    """Session credentials threaded explicitly into every backend call."""

    token: str | None

    @property
    def headers(self) -> dict[str, str]:
        if not self.token:
            raise MissingTokenError()
        return {"Authorization": f"Bearer {self.token}"}


def unwrap_list(payload: Any) -> list:
    data = payload.get("data") if isinstance(payload, dict) else None
    return data if isinstance(data, list) else []


def unwrap_dict(payload: Any) -> dict:
    data = payload.get("data") if isinstance(payload, dict) else None
    return data if isinstance(data, dict) else {}


class HospitalApiClient:
    def __init__(self, auth: AuthContext, base_url: str | None = None, timeout: int | None = None):
        self.auth = auth
        self.base_url = (base_url or settings.hospital_api_base_url).rstrip("/")
        self.timeout = timeout or settings.hospital_api_timeout_seconds

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        headers = self.auth.headers
        url = f"{self.base_url}{path}"
        try:
            res = requests.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            logger.warning("Hospital backend unreachable: %s %s (%s)", method, path, exc)
            raise UpstreamError(f"Hospital backend unreachable: {exc}", endpoint=path) from exc

        if not res.ok:
            message = self._error_message(res)
            logger.warning("Hospital backend error: %s %s -> %s %s", method, path, res.status_code, message)
            raise UpstreamError(message, status_code=res.status_code, endpoint=path)
        return res

    @staticmethod
    def _error_message(res: requests.Response) -> str:
        try:
            body = res.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        return f"Hospital backend returned {res.status_code}"

    def _json(self, method: str, path: str, **kwargs) -> Any:
        res = self._request(method, path, **kwargs)
        try:
            return res.json()
        except ValueError as exc:
            raise UpstreamError("Hospital backend returned invalid JSON", status_code=res.status_code, endpoint=path) from exc

    def list_medicines(self, page: int = 1, limit: int = 20) -> list:
        return unwrap_list(self._json("GET", "/pharmacist/medicines", params={"page": page, "limit": limit}))

    def search_medicines(self, query: str) -> list:
        return unwrap_list(self._json("GET", "/pharmacist/medicines/search", params={"query": query}))

    def update_stock(self, medicine_id: str, operation: str, quantity: int, reason: str) -> dict:
        payload = self._json(
            "PUT",
            f"/pharmacist/medicines/{medicine_id}/stock",
            json={"operation": operation, "quantity": quantity, "reason": reason},
        )
        return unwrap_dict(payload)

    def add_medicine(self, medicine: dict) -> dict:
        return unwrap_dict(self._json("POST", "/pharmacist/medicines", json=medicine))

    def export_medicines(self, export_format: str = "csv") -> tuple[bytes, str]:
        if export_format not in EXPORT_FORMATS:
            raise ValueError(f"Unsupported export format: {export_format}")
        res = self._request("GET", "/pharmacist/medicines/export", params={"format": export_format})
        content_type = res.headers.get("Content-Type") or ("text/csv" if export_format == "csv" else "application/pdf")
        return res.content, content_type

    def labtech_performance(self) -> dict:
        return unwrap_dict(self._json("GET", "/labtech/performance"))

    def admin_lab_tests(self, params: dict | None = None) -> list:
        return unwrap_list(self._json("GET", "/admin/lab/tests", params=params or {}))

    def admin_lab_techs(self) -> list:
        return unwrap_list(self._json("GET", "/admin/lab-techs"))

    def admin_pharmacy_medicines(self, params: dict | None = None) -> list:
        return unwrap_list(self._json("GET", "/admin/pharmacy/medicines", params=params or {}))

    def low_stock_alerts(self, params: dict | None = None) -> LowStockAlerts:
        path = "/admin/pharmacy/alerts/low-stock"
        payload = self._json("GET", path, params=params or {})
        # this endpoint answers {success, summary, alerts: {...}} without a data wrapper
        alerts = payload.get("alerts") if isinstance(payload, dict) else None
        if not isinstance(alerts, dict):
            raise UpstreamError("Hospital backend returned an unexpected low-stock alerts payload", endpoint=path)
        try:
            return LowStockAlerts.model_validate(alerts)
        except ValidationError as exc:
            raise UpstreamError("Hospital backend returned malformed low-stock alerts", endpoint=path) from exc
