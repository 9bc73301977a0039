from fastapi import status


class OrderError(Exception):
    """Base class for errors raised by the order services.

    Each subclass carries the HTTP status the API layer answers with, so
    services stay free of FastAPI imports beyond this module.
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail: str = "Internal server error"

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class ValidationError(OrderError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid request"


class InvalidOperation(OrderError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Operation not supported for this order"


class Unauthorized(OrderError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Not authenticated"


class Forbidden(OrderError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Not allowed"


class NotFound(OrderError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class Conflict(OrderError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Order state changed, please retry"


class GatewayError(OrderError):
    """Payment provider failure. The order is left untouched, callers may retry."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Payment provider unavailable"


class InternalError(OrderError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
