"""Notifications triggered by delivery outcomes."""

from entity_webhooks.notifications.base import Notification
from entity_webhooks.notifications.blocked import BlockedNotification, MailSender
from entity_webhooks.notifications.registry import NotificationRegistry

__all__ = [
    "BlockedNotification",
    "MailSender",
    "Notification",
    "NotificationRegistry",
]
