"""Notification channel providers."""

from app.providers.notifications.android import AndroidProvider
from app.providers.notifications.base import ChannelProvider
from app.providers.notifications.email import EmailProvider
from app.providers.notifications.ios import IosProvider
from app.providers.notifications.registry import ProviderRegistry, build_channel_providers
from app.providers.notifications.web_push import WebPushProvider

__all__ = [
    "AndroidProvider",
    "ChannelProvider",
    "EmailProvider",
    "IosProvider",
    "ProviderRegistry",
    "WebPushProvider",
    "build_channel_providers",
]
