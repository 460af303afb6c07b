"""Exception types shared across the catalog services and the HTTP layer."""

from fastapi import HTTPException, status


# ============== Domain Errors ==============

class MetadataAPIError(Exception):
    """Base class for catalog errors raised below the HTTP layer."""


class StoreConfigError(MetadataAPIError):
    """The catalog store is not configured or cannot be located."""


class QueryError(MetadataAPIError):
    """A relational fetch against one of the stores failed."""

    def __init__(self, message: str, *, store: str = "catalog"):
        super().__init__(message)
        self.store = store


class MalformedPayloadError(MetadataAPIError):
    """A JSON-encoded column in the annotation store could not be decoded."""

    def __init__(self, field: str, raw: str):
        super().__init__(f"malformed {field} payload: {raw[:80]!r}")
        self.field = field
        self.raw = raw


# ============== HTTP Errors ==============

class NotFoundException(HTTPException):
    def __init__(self, detail: str = "not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class BadRequestException(HTTPException):
    def __init__(self, detail: str = "bad request"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class RequestTimeoutException(HTTPException):
    def __init__(self, detail: str = "request timeout"):
        super().__init__(status_code=status.HTTP_408_REQUEST_TIMEOUT, detail=detail)


class ServiceUnavailableException(HTTPException):
    def __init__(self, detail: str = "catalog store is not available"):
        super().__init__(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=detail)
