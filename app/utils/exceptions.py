"""Custom exception classes and error handling utilities."""
from typing import Any, Dict, Optional
from fastapi import HTTPException, status
from loguru import logger


class NotifierException(Exception):
    """Base exception for the application."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class SubscriptionError(NotifierException):
    """Invalid subscription registration data."""
    pass


class SubscriptionNotFoundError(NotifierException):
    """Raised when a (user, device) subscription does not exist."""
    pass


class AuditValidationError(NotifierException):
    """An audit record failed validation and was not written."""
    pass


class ImmutableRecordError(NotifierException):
    """Raised on any attempt to update or delete an event record."""
    pass


class DeliveryError(NotifierException):
    """A channel provider could not deliver a notification."""
    pass


class SubscriptionExpiredError(DeliveryError):
    """The destination is permanently invalid and the subscription was removed."""
    pass


def handle_subscription_error(error: SubscriptionError) -> HTTPException:
    """Handle invalid subscription payloads."""
    logger.warning(f"Subscription error: {error.message}")
    return HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail={
            "message": error.message,
            "details": error.details
        }
    )


def handle_subscription_not_found(error: SubscriptionNotFoundError) -> HTTPException:
    """Handle lookups of unknown subscriptions."""
    logger.info(f"Subscription not found: {error.message}")
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=error.message
    )


def handle_database_error(error: Exception) -> HTTPException:
    """Handle database errors and return appropriate HTTP response."""
    logger.error(f"Database error: {error}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Database operation failed. Please try again later."
    )
