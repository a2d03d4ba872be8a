"""Delivery outcome signals for observability collaborators.

Listeners are plain functions or coroutines. A failing listener is
logged and skipped; it never interrupts delivery bookkeeping.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import httpx
import structlog

if TYPE_CHECKING:
    from entity_webhooks.webhooks.base import Webhook

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class DeliverySucceeded:
    """A delivery returned HTTP 200."""

    url: str
    body: dict[str, Any]
    response: httpx.Response
    webhook: Webhook


@dataclass(frozen=True)
class DeliveryFailure:
    """A delivery attempt failed.

    Attributes:
        failure_count: Consecutive failures for the URL, 0 when blocking
            is disabled for the webhook.
        threshold: Consecutive failures that block the URL.
        final: True when no retry was scheduled for this delivery.
    """

    url: str
    response: httpx.Response | None
    error: str | None
    failure_count: int
    threshold: int
    webhook: Webhook
    final: bool


@dataclass(frozen=True)
class EndpointBlocked:
    """A URL was blocked. Sent once per block transition."""

    url: str
    response: httpx.Response | None
    error: str | None
    threshold: int
    webhook: Webhook

    @property
    def error_message(self) -> str:
        """Human-readable description of the failure that blocked the URL."""
        if self.error:
            return self.error
        if self.response is not None:
            return f"HTTP Status Code: {self.response.status_code}"
        return "Unknown error"


SuccessListener = Callable[[DeliverySucceeded], Awaitable[None] | None]
FailureListener = Callable[[DeliveryFailure], Awaitable[None] | None]
BlockedListener = Callable[[EndpointBlocked], Awaitable[None] | None]


class DeliverySignals:
    """Ordered listener lists for delivery outcomes."""

    def __init__(self) -> None:
        self._success: list[SuccessListener] = []
        self._failure: list[FailureListener] = []
        self._blocked: list[BlockedListener] = []

    def on_success(self, listener: SuccessListener) -> None:
        self._success.append(listener)

    def on_failure(self, listener: FailureListener) -> None:
        self._failure.append(listener)

    def on_blocked(self, listener: BlockedListener) -> None:
        self._blocked.append(listener)

    def remove_listener(self, listener: Callable[..., Any]) -> None:
        """Remove a listener from every signal it is attached to."""
        for listeners in (self._success, self._failure, self._blocked):
            if listener in listeners:
                listeners.remove(listener)

    async def send_success(self, event: DeliverySucceeded) -> None:
        await self._notify(self._success, event, "success")

    async def send_failure(self, event: DeliveryFailure) -> None:
        await self._notify(self._failure, event, "failure")

    async def send_blocked(self, event: EndpointBlocked) -> None:
        await self._notify(self._blocked, event, "blocked")

    async def _notify(self, listeners: list[Any], event: Any, signal: str) -> None:
        """Call every listener of a signal.

        Args:
            listeners: Listeners to call.
            event: Event passed to each listener.
            signal: Signal name for logging.
        """
        for listener in list(listeners):
            try:
                result = listener(event)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as e:
                logger.warning(
                    "signal_listener_error",
                    signal=signal,
                    url=event.url,
                    error=str(e),
                )
