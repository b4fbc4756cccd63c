from fastapi import Depends, Header

from hms_analytics.errors import MissingTokenError
from hms_analytics.services.hospital_api import AuthContext, HospitalApiClient


def get_auth_context(authorization: str | None = Header(default=None)) -> AuthContext:
    if not authorization or not authorization.startswith("Bearer "):
        raise MissingTokenError("Missing or invalid Authorization header")
    token = authorization.replace("Bearer ", "", 1).strip()
    if not token:
        raise MissingTokenError("Missing or invalid Authorization header")
    return AuthContext(token=token)


def get_hospital_client(auth: AuthContext = Depends(get_auth_context)) -> HospitalApiClient:
    return HospitalApiClient(auth)


def envelope(data, message: str = "Success") -> dict:
    return {"statusCode": 200, "message": message, "data": data}
