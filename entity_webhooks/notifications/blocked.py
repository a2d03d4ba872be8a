"""Alert sent when a webhook URL gets blocked."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any, Protocol

import structlog

from entity_webhooks.delivery.signals import EndpointBlocked
from entity_webhooks.hooks import HookPoint, HookRegistry
from entity_webhooks.notifications.base import Notification

logger = structlog.get_logger(__name__)

MESSAGE_TEMPLATE = """A webhook URL has been blocked due to consecutive failures.

URL: {url}
Webhook: {webhook}
Consecutive Failures: {threshold}
Last Error: {error}
Time: {time}

This URL will be automatically unblocked after 1 hour. No webhooks will be delivered to this URL until then."""


class MailSender(Protocol):
    """Transport for notification emails. May be sync or async."""

    def __call__(
        self,
        recipient: str,
        subject: str,
        message: str,
        headers: list[str],
    ) -> Awaitable[Any] | Any: ...


class BlockedNotification(Notification):
    """Emails the site administrator once per block transition.

    The email is built as a dict (recipient, subject, message, headers,
    url, error_message, response) and passed through the
    BLOCKED_NOTIFICATION_EMAIL hook; a hook returning None or False
    cancels the email.
    """

    identifier = "blocked"

    def __init__(
        self,
        send_mail: MailSender,
        *,
        recipient: str = "",
        site_name: str = "",
        hooks: HookRegistry | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the notification.

        Args:
            send_mail: Mail transport.
            recipient: Administrator address; no email is sent when empty.
            site_name: Site name shown in the subject.
            hooks: Extension points.
            clock: Source of epoch seconds.
        """
        self.send_mail = send_mail
        self.recipient = recipient
        self.site_name = site_name
        self.hooks = hooks or HookRegistry()
        self._clock = clock

    def get_subject(self) -> str:
        return f"Webhook URL Blocked - {self.site_name}"

    def get_message(self, event: EndpointBlocked) -> str:
        return MESSAGE_TEMPLATE.format(
            url=event.url,
            webhook=event.webhook.name,
            threshold=event.threshold,
            error=event.error_message,
            time=datetime.fromtimestamp(self._clock()).strftime("%Y-%m-%d %H:%M:%S"),
        )

    def build_email(self, event: EndpointBlocked) -> dict[str, Any]:
        return {
            "recipient": self.recipient,
            "subject": self.get_subject(),
            "message": self.get_message(event),
            "headers": ["Content-Type: text/plain; charset=UTF-8"],
            "url": event.url,
            "error_message": event.error_message,
            "response": event.response,
        }

    async def on_webhook_blocked(self, event: EndpointBlocked) -> None:
        if not self.recipient:
            logger.debug("blocked_notification_no_recipient", url=event.url)
            return

        email = self.hooks.apply(HookPoint.BLOCKED_NOTIFICATION_EMAIL, self.build_email(event), event.url, event.response)
        if email is None or email is False:
            logger.info("blocked_notification_cancelled", url=event.url)
            return

        result = self.send_mail(email["recipient"], email["subject"], email["message"], email["headers"])
        if asyncio.iscoroutine(result):
            await result

        logger.info(
            "blocked_notification_sent",
            url=event.url,
            webhook=event.webhook.name,
            recipient=email["recipient"],
        )
