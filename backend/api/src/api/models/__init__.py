"""API-specific request/response models.

Domain models (Booking, Payment, PriceBreakdown, etc.) are in shared.models
and are reused here where appropriate.

Modules:
- common: Error response wrappers
- payments: Checkout and verification requests
- bookings: Booking list response
"""

__all__: list[str] = []
