"""Error taxonomy for webhook scheduling and delivery.

Exception Hierarchy:
    WebhookFrameworkError (base)
    ├── InvalidConfigurationError - No URL could be resolved
    ├── InvalidPayloadError - Payload hook returned a malformed payload
    ├── EndpointBlockedError - URL is blocked after consecutive failures
    ├── DeliveryFailedError - Transport error or non-200 response
    ├── EndpointNotFoundError - Queued item references an unknown webhook
    ├── ConfigurationLockedError - Setter called on an activated webhook
    └── DuplicateWebhookError - Webhook name registered twice
"""

from typing import Any


class WebhookFrameworkError(Exception):
    """Base exception for all webhook framework errors.

    Attributes:
        message: Human-readable error message.
        details: Additional error details.
        retryable: Whether the dispatcher retries this kind of failure.
    """

    def __init__(
        self,
        message: str,
        *,
        details: dict[str, Any] | None = None,
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.retryable = retryable

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for logging."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
            "retryable": self.retryable,
        }


class InvalidConfigurationError(WebhookFrameworkError):
    """No webhook URL could be resolved for an emission."""

    def __init__(
        self,
        message: str = "webhook_url_not_set",
        *,
        entity_type: str | None = None,
        entity_id: int | str | None = None,
    ) -> None:
        super().__init__(
            message,
            details={"entity_type": entity_type, "entity_id": entity_id},
        )
        self.entity_type = entity_type
        self.entity_id = entity_id


class InvalidPayloadError(WebhookFrameworkError):
    """The payload hook returned something that is not a usable payload."""

    def __init__(self, message: str = "webhook_payload_invalid", *, reason: str = "") -> None:
        super().__init__(message, details={"reason": reason})
        self.reason = reason


class EndpointBlockedError(WebhookFrameworkError):
    """The target URL is blocked after too many consecutive failures."""

    def __init__(self, url: str) -> None:
        super().__init__("webhook_url_blocked", details={"url": url})
        self.url = url


class DeliveryFailedError(WebhookFrameworkError):
    """A delivery attempt failed with a transport error or a non-200 status.

    Attributes:
        url: Target URL.
        status_code: HTTP status code, None for transport errors.
        error: Transport error message, None for HTTP responses.
        retry_scheduled: Whether the dispatcher enqueued another attempt.
    """

    def __init__(
        self,
        url: str,
        *,
        status_code: int | None = None,
        error: str | None = None,
        retry_scheduled: bool = False,
    ) -> None:
        super().__init__(
            "webhook_delivery_failed",
            details={
                "url": url,
                "status_code": status_code,
                "error": error,
                "retry_scheduled": retry_scheduled,
            },
            retryable=True,
        )
        self.url = url
        self.status_code = status_code
        self.error = error
        self.retry_scheduled = retry_scheduled


class EndpointNotFoundError(WebhookFrameworkError):
    """A queued delivery references a webhook that is not registered."""

    def __init__(self, name: str) -> None:
        super().__init__(
            f"Webhook {name!r} not found in registry.",
            details={"webhook_name": name},
        )
        self.name = name


class ConfigurationLockedError(WebhookFrameworkError):
    """A configuration setter was called after the webhook was activated."""

    def __init__(self, name: str, setting: str) -> None:
        super().__init__(
            f"Webhook {name!r} is active; {setting} can no longer be changed.",
            details={"webhook_name": name, "setting": setting},
        )
        self.name = name
        self.setting = setting


class DuplicateWebhookError(WebhookFrameworkError, ValueError):
    """A webhook with the same name is already registered."""

    def __init__(self, name: str) -> None:
        super().__init__(
            f'Webhook with name "{name}" is already registered.',
            details={"webhook_name": name},
        )
        self.name = name
