"""
Centralized error handling for notification operations.
Domain exceptions plus a reusable mapper so routes stay thin and new error types are easy to add.
"""
from __future__ import annotations

from fastapi import HTTPException

# ---------------------------------------------------------------------------
# Domain exceptions
# ---------------------------------------------------------------------------


class NotificationError(Exception):
    """Base class for notification engine errors."""


class NotificationNotFound(NotificationError):
    """The acting user has no recipient row for the targeted notification."""

    def __init__(self, notification_id: str):
        super().__init__(f"Notification {notification_id} not found")
        self.notification_id = notification_id


class MailTransportError(NotificationError):
    """Mail capability could not hand the message off (config missing, SMTP failure)."""


# ---------------------------------------------------------------------------
# HTTP status codes for known error categories
# ---------------------------------------------------------------------------

STATUS_NOT_FOUND = 404
STATUS_BAD_GATEWAY = 502  # mail transport
STATUS_INTERNAL_ERROR = 500


# List of (exception type, status_code). First match wins.
DOMAIN_ERROR_RULES: list[tuple[type[Exception], int]] = [
    (NotificationNotFound, STATUS_NOT_FOUND),
    (MailTransportError, STATUS_BAD_GATEWAY),
]


def domain_error_to_http(exc: Exception) -> HTTPException:
    """
    Map a domain exception into an HTTPException.
    Uses DOMAIN_ERROR_RULES for known error types; otherwise returns 500 with the exception message.
    """
    for exc_type, status_code in DOMAIN_ERROR_RULES:
        if isinstance(exc, exc_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=STATUS_INTERNAL_ERROR, detail=str(exc))
