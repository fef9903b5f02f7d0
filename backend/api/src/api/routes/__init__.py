"""API routes package.

Routers are organized by domain:

- health: Health check endpoints
- properties: Availability, booked dates and quotes
- payments: Stripe Checkout creation and verification
- bookings: Guest bookings and cancellation
- webhooks: Stripe webhook receiver

All routers are registered in main.py with /api prefix.
"""

from api.routes.bookings import router as bookings_router
from api.routes.health import router as health_router
from api.routes.payments import router as payments_router
from api.routes.properties import router as properties_router
from api.routes.webhooks import router as webhooks_router

__all__ = [
    "bookings_router",
    "health_router",
    "payments_router",
    "properties_router",
    "webhooks_router",
]
