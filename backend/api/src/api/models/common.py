"""Shared API response models.

Domain models (Booking, Payment, PriceBreakdown, ...) live in shared.models
and are returned directly where they fit. This module holds HTTP-layer
concerns only.
"""

from typing import Any

# Re-export ErrorResponse for convenience - this is the standard error format
from shared.models.errors import ErrorCode, ErrorResponse

__all__ = [
    "ErrorCode",
    "ErrorResponse",
    "ERROR_RESPONSES",
]


def _error(description: str) -> dict[str, Any]:
    return {"description": description, "model": ErrorResponse}


# OpenAPI response entries reused by the routers
ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: _error("Invalid request (dates, guests or amount)"),
    401: _error("Authentication required"),
    402: _error("Payment failed"),
    403: _error("Caller does not own this resource"),
    404: _error("Resource not found"),
    409: _error("Dates unavailable or booking not cancellable"),
    422: _error("Property cannot be booked"),
}
