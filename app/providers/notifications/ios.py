"""iOS notifications through the Apple Push Notification service."""
from __future__ import annotations

import time
from pathlib import Path
from typing import Any, Dict

import httpx
from jose import jwt
from loguru import logger

from app.db.models.notification_subscription import NotificationSubscription
from app.schemas.notification import NotificationPayload
from app.services.subscription_store import SubscriptionStore
from app.utils.exceptions import DeliveryError, SubscriptionExpiredError

APNS_PRODUCTION_URL = "https://api.push.apple.com"
APNS_SANDBOX_URL = "https://api.sandbox.push.apple.com"

# Apple rejects provider JWTs older than an hour.
JWT_REFRESH_SECONDS = 50 * 60
EXPIRATION_SECONDS = 3600
UNREGISTERED_REASONS = {"Unregistered", "BadDeviceToken"}


class IosProvider:
    """Send alert pushes over HTTP/2 with a token-based (.p8) credential."""

    def __init__(
        self,
        subscriptions: SubscriptionStore,
        *,
        signing_key: str,
        key_id: str,
        team_id: str,
        bundle_id: str,
        use_sandbox: bool = True,
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        self.subscriptions = subscriptions
        self.signing_key = signing_key
        self.key_id = key_id
        self.team_id = team_id
        self.bundle_id = bundle_id
        self.base_url = APNS_SANDBOX_URL if use_sandbox else APNS_PRODUCTION_URL
        self.timeout = timeout
        self._client = client
        self._jwt: str | None = None
        self._jwt_issued_at = 0.0

    @classmethod
    def from_key_file(cls, subscriptions: SubscriptionStore, key_path: Path, **kwargs: Any) -> "IosProvider":
        return cls(subscriptions, signing_key=Path(key_path).read_text(), **kwargs)

    def _provider_jwt(self) -> str:
        now = time.time()
        if self._jwt is None or now - self._jwt_issued_at > JWT_REFRESH_SECONDS:
            self._jwt = jwt.encode(
                {"iss": self.team_id, "iat": int(now)},
                self.signing_key,
                algorithm="ES256",
                headers={"kid": self.key_id},
            )
            self._jwt_issued_at = now
        return self._jwt

    def _headers(self) -> Dict[str, str]:
        return {
            "authorization": f"bearer {self._provider_jwt()}",
            "apns-topic": self.bundle_id,
            "apns-push-type": "alert",
            "apns-expiration": str(int(time.time()) + EXPIRATION_SECONDS),
        }

    @staticmethod
    def _build_body(payload: NotificationPayload) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "aps": {
                "alert": {"title": payload.title, "body": payload.body},
                "badge": 1,
                "sound": "ping.aiff",
            },
            "category": payload.category.value,
        }
        if payload.url:
            body["url"] = payload.url
        return body

    def _post(self, path: str, body: Dict[str, Any]) -> httpx.Response:
        if self._client is not None:
            return self._client.post(path, json=body, headers=self._headers())
        with httpx.Client(base_url=self.base_url, http2=True, timeout=self.timeout) as client:
            return client.post(path, json=body, headers=self._headers())

    def send(self, subscription: NotificationSubscription, payload: NotificationPayload) -> None:
        if not subscription.destination:
            raise DeliveryError("iOS subscription has no APNs device address")

        try:
            response = self._post(f"/3/device/{subscription.destination}", self._build_body(payload))
        except httpx.TimeoutException as exc:
            raise DeliveryError(f"APNs request timed out after {self.timeout}s") from exc
        except httpx.HTTPError as exc:
            raise DeliveryError("APNs service unreachable") from exc

        if response.status_code == 200:
            return

        try:
            reason = response.json().get("reason", "")
        except ValueError:
            reason = ""

        if response.status_code == 410 or reason in UNREGISTERED_REASONS:
            logger.info(
                "APNs device is no longer registered, removing",
                subscription_id=str(subscription.id),
                reason=reason,
            )
            self.subscriptions.delete(id=subscription.id)
            raise SubscriptionExpiredError(f"APNs no longer accepts this device (HTTP {response.status_code})")

        logger.error("APNs returned error", status=response.status_code, reason=reason)
        # Reasons such as InvalidProviderToken stay out of the audit details.
        raise DeliveryError(f"APNs rejected the request (HTTP {response.status_code})")
