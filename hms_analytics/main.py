import logging
from datetime import datetime, timezone

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from hms_analytics.config import settings
from hms_analytics.errors import MissingTokenError, UpstreamError
from hms_analytics.routers import admin, laboratory, pharmacy

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="Hospital Stock & Lab Analytics API", version="0.1.0")
logger = logging.getLogger(__name__)

allowed_origins = [origin.strip() for origin in settings.allowed_origins.split(",") if origin.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
def root():
    return {"statusCode": 200, "message": "Success", "data": {"status": "ok", "service": "hms-analytics"}}


@app.get("/health")
def health():
    return {
        "status": "ok",
        "service": "hms-analytics",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


def _error_name(status_code: int) -> str:
    if status_code == 400:
        return "BadRequest"
    if status_code == 401:
        return "Unauthorized"
    if status_code == 403:
        return "Forbidden"
    if status_code == 404:
        return "NotFound"
    if status_code == 422:
        return "ValidationError"
    if status_code == 502:
        return "BadGateway"
    if status_code >= 500:
        return "InternalServerError"
    return "HTTPError"


def _error_response(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"statusCode": status_code, "message": message, "error": _error_name(status_code), **extra},
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(_: Request, exc: HTTPException):
    return _error_response(exc.status_code, str(exc.detail) if exc.detail else "Request failed")


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(_: Request, exc: RequestValidationError):
    return _error_response(422, "Invalid request payload", details={"errors": _jsonable_errors(exc)})


def _jsonable_errors(exc: RequestValidationError) -> list[dict]:
    # ctx may hold exception instances that JSONResponse cannot encode
    return [{key: value for key, value in error.items() if key != "ctx"} for error in exc.errors()]


@app.exception_handler(MissingTokenError)
async def missing_token_handler(_: Request, exc: MissingTokenError):
    return _error_response(401, str(exc))


@app.exception_handler(UpstreamError)
async def upstream_error_handler(_: Request, exc: UpstreamError):
    return _error_response(502, str(exc), details={"upstreamStatus": exc.status_code, "endpoint": exc.endpoint})


@app.exception_handler(Exception)
async def unhandled_exception_handler(_: Request, exc: Exception):
    logger.exception("Unhandled server error: %s", exc)
    return _error_response(500, str(exc) or "An unexpected error occurred")


app.include_router(pharmacy.router)
app.include_router(laboratory.router)
app.include_router(admin.router)
