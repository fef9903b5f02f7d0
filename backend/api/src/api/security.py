"""Caller identity for protected endpoints.

API Gateway validates the JWT before the request reaches the app and passes
the caller's identity in headers: the subject in ``x-user-sub`` and the
email, when the token has one, in ``x-user-email``.
"""

from dataclasses import dataclass

from fastapi import Request

from shared.models.errors import BookingError, ErrorCode

USER_SUB_HEADER = "x-user-sub"
USER_EMAIL_HEADER = "x-user-email"


@dataclass(frozen=True)
class CurrentUser:
    """Authenticated caller."""

    user_id: str
    email: str | None = None


def get_current_user(request: Request) -> CurrentUser:
    """FastAPI dependency returning the authenticated caller.

    Raises:
        BookingError: AUTH_REQUIRED when the authorizer passed no subject
    """
    user_sub = request.headers.get(USER_SUB_HEADER)
    if not user_sub:
        raise BookingError(
            ErrorCode.AUTH_REQUIRED,
            details={"header": USER_SUB_HEADER},
        )
    return CurrentUser(
        user_id=user_sub,
        email=request.headers.get(USER_EMAIL_HEADER) or None,
    )
