"""Email delivery over SMTP, used as the fallback for critical notifications."""
from __future__ import annotations

import html
import smtplib
from email.message import EmailMessage

from app.db.models.notification_subscription import NotificationSubscription
from app.schemas.notification import NotificationPayload
from app.utils.exceptions import DeliveryError


class EmailProvider:
    def __init__(
        self,
        *,
        host: str,
        port: int = 587,
        username: str | None = None,
        password: str | None = None,
        use_tls: bool = True,
        from_email: str = "no-reply@localhost",
        timeout: float = 10.0,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.from_email = from_email
        self.timeout = timeout

    def _build_message(self, to_address: str, payload: NotificationPayload) -> EmailMessage:
        message = EmailMessage()
        message["Subject"] = payload.title
        message["From"] = self.from_email
        message["To"] = to_address

        text = payload.body
        if payload.url:
            text = f"{text}\n\n{payload.url}"
        message.set_content(text)

        markup = f"<p>{html.escape(payload.body)}</p>"
        if payload.url:
            link = html.escape(payload.url, quote=True)
            markup += f'<p><a href="{link}">{link}</a></p>'
        message.add_alternative(f"<html><body>{markup}</body></html>", subtype="html")
        return message

    def send(self, subscription: NotificationSubscription, payload: NotificationPayload) -> None:
        if not subscription.destination:
            raise DeliveryError("Email subscription has no address")

        message = self._build_message(subscription.destination, payload)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
                if self.use_tls:
                    smtp.starttls()
                if self.username:
                    smtp.login(self.username, self.password or "")
                smtp.send_message(message)
        except smtplib.SMTPRecipientsRefused as exc:
            raise DeliveryError("SMTP server refused the recipient") from exc
        except smtplib.SMTPAuthenticationError as exc:
            raise DeliveryError("SMTP login rejected") from exc
        except (smtplib.SMTPException, OSError) as exc:
            raise DeliveryError(f"SMTP delivery failed ({exc.__class__.__name__})") from exc
