"""Android notifications through Firebase Cloud Messaging (HTTP v1 API)."""
from __future__ import annotations

from typing import Any, Dict

import httpx
from loguru import logger

from app.db.models.notification_subscription import NotificationSubscription
from app.schemas.notification import NotificationPayload
from app.services.subscription_store import SubscriptionStore
from app.utils.exceptions import DeliveryError, SubscriptionExpiredError

FCM_BASE_URL = "https://fcm.googleapis.com"
UNREGISTERED_ERROR_CODES = {"UNREGISTERED"}


class AndroidProvider:
    """Post messages to ``projects/{id}/messages:send``."""

    def __init__(
        self,
        subscriptions: SubscriptionStore,
        *,
        project_id: str,
        access_token: str,
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        self.subscriptions = subscriptions
        self.project_id = project_id
        self.access_token = access_token
        self.timeout = timeout
        self._client = client

    def _build_message(
        self, subscription: NotificationSubscription, payload: NotificationPayload
    ) -> Dict[str, Any]:
        return {
            "message": {
                "token": subscription.destination,
                "notification": {"title": payload.title, "body": payload.body},
                "data": {"category": payload.category.value, "url": payload.url or ""},
                "android": {
                    "notification": {
                        "icon": payload.icon or "stock_ticker_update",
                        "channel_id": "default_channel_id",
                    }
                },
            }
        }

    @staticmethod
    def _error_codes(response: httpx.Response) -> set[str]:
        try:
            body = response.json()
        except ValueError:
            return set()
        error = body.get("error") if isinstance(body, dict) else None
        if not isinstance(error, dict):
            return set()
        codes = {detail.get("errorCode") for detail in error.get("details", []) if isinstance(detail, dict)}
        codes.add(error.get("status"))
        return {code for code in codes if code}

    def _post(self, body: Dict[str, Any]) -> httpx.Response:
        path = f"/v1/projects/{self.project_id}/messages:send"
        headers = {"Authorization": f"Bearer {self.access_token}"}
        if self._client is not None:
            return self._client.post(path, json=body, headers=headers)
        with httpx.Client(base_url=FCM_BASE_URL, timeout=self.timeout) as client:
            return client.post(path, json=body, headers=headers)

    def send(self, subscription: NotificationSubscription, payload: NotificationPayload) -> None:
        if not subscription.destination:
            raise DeliveryError("Android subscription has no FCM destination")

        try:
            response = self._post(self._build_message(subscription, payload))
        except httpx.TimeoutException as exc:
            raise DeliveryError(f"FCM request timed out after {self.timeout}s") from exc
        except httpx.HTTPError as exc:
            raise DeliveryError("FCM service unreachable") from exc

        if response.status_code < 400:
            return

        codes = self._error_codes(response)
        if response.status_code == 404 or codes & UNREGISTERED_ERROR_CODES:
            logger.info(
                "FCM registration is no longer valid, removing",
                subscription_id=str(subscription.id),
                device_identifier=subscription.device_identifier,
            )
            self.subscriptions.delete(id=subscription.id)
            raise SubscriptionExpiredError("FCM reports the device as unregistered")

        logger.error("FCM returned error", status=response.status_code, codes=sorted(codes))
        raise DeliveryError(f"FCM error {response.status_code}: {', '.join(sorted(codes)) or 'unknown'}")
