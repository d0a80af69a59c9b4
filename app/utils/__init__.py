"""Utility helpers package."""

from app.utils.exceptions import (
    AuditValidationError,
    DeliveryError,
    ImmutableRecordError,
    NotifierException,
    SubscriptionError,
    SubscriptionExpiredError,
    SubscriptionNotFoundError,
)

__all__ = [
    "AuditValidationError",
    "DeliveryError",
    "ImmutableRecordError",
    "NotifierException",
    "SubscriptionError",
    "SubscriptionExpiredError",
    "SubscriptionNotFoundError",
]
