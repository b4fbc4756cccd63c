class AnalyticsError(Exception):
    """Base class for errors raised by the analytics service."""


class MissingTokenError(AnalyticsError):
    def __init__(self, message: str = "Missing bearer token"):
        super().__init__(message)


class UpstreamError(AnalyticsError):
    """The hospital backend could not be reached or answered with a non-2xx status."""

    def __init__(self, message: str, status_code: int | None = None, endpoint: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.endpoint = endpoint
