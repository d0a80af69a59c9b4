"""Maps each platform to its configured channel provider."""
from __future__ import annotations

from dataclasses import dataclass

from loguru import logger

from app.config import Settings, settings
from app.core.enums import Platform
from app.providers.notifications.android import AndroidProvider
from app.providers.notifications.base import ChannelProvider
from app.providers.notifications.email import EmailProvider
from app.providers.notifications.ios import IosProvider
from app.providers.notifications.web_push import WebPushProvider
from app.services.subscription_store import SubscriptionStore


@dataclass
class ProviderRegistry:
    """One optional provider per platform; ``None`` means unavailable."""

    web: ChannelProvider | None = None
    android: ChannelProvider | None = None
    ios: ChannelProvider | None = None
    email: ChannelProvider | None = None

    def for_platform(self, platform: Platform | str) -> ChannelProvider | None:
        return getattr(self, Platform(platform).value)


def build_channel_providers(
    subscriptions: SubscriptionStore, config: Settings = settings
) -> ProviderRegistry:
    """Instantiate every provider whose settings are present."""

    timeout = config.CHANNEL_SEND_TIMEOUT_SECONDS
    registry = ProviderRegistry()

    if config.VAPID_PRIVATE_KEY:
        registry.web = WebPushProvider(
            subscriptions,
            vapid_private_key=config.VAPID_PRIVATE_KEY,
            vapid_subject=config.VAPID_SUBJECT,
            timeout=timeout,
        )
    else:
        logger.warning("VAPID keys not configured, web push disabled")

    if config.FCM_PROJECT_ID and config.FCM_ACCESS_TOKEN:
        registry.android = AndroidProvider(
            subscriptions,
            project_id=config.FCM_PROJECT_ID,
            access_token=config.FCM_ACCESS_TOKEN,
            timeout=timeout,
        )
    else:
        logger.warning("FCM not configured, android push disabled")

    if config.APNS_KEY_PATH and config.APNS_KEY_ID and config.APNS_TEAM_ID and config.APNS_BUNDLE_ID:
        try:
            registry.ios = IosProvider.from_key_file(
                subscriptions,
                config.APNS_KEY_PATH,
                key_id=config.APNS_KEY_ID,
                team_id=config.APNS_TEAM_ID,
                bundle_id=config.APNS_BUNDLE_ID,
                use_sandbox=config.APNS_USE_SANDBOX,
                timeout=timeout,
            )
        except OSError as exc:
            logger.error("Could not read APNs signing key, iOS push disabled", error=str(exc))
    else:
        logger.warning("APNs not configured, iOS push disabled")

    if config.SMTP_HOST:
        registry.email = EmailProvider(
            host=config.SMTP_HOST,
            port=config.SMTP_PORT,
            username=config.SMTP_USERNAME,
            password=config.SMTP_PASSWORD,
            use_tls=config.SMTP_USE_TLS,
            from_email=config.SMTP_FROM_EMAIL,
            timeout=timeout,
        )
    else:
        logger.warning("SMTP not configured, email fallback disabled")

    return registry
