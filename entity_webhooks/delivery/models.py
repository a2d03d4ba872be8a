"""Queue item models for scheduled webhook deliveries."""

from __future__ import annotations

import hashlib
import json
import time
import uuid
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

# Headers persisted on every queue item
WEBHOOK_NAME_HEADER = "X-Webhook-Name"
RETRY_COUNT_HEADER = "X-Webhook-Retry-Count"


class WebhookAction(str, Enum):
    """Kinds of entity change a webhook reports."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class ScheduledDelivery(BaseModel):
    """A delivery waiting in (or claimed from) the durable queue."""

    item_id: str = Field(
        default_factory=lambda: uuid.uuid4().hex,
        description="Unique queue item identifier",
    )
    url: str = Field(
        ..., description="Target URL"
    )
    action: WebhookAction = Field(
        ..., description="Change kind"
    )
    entity_type: str = Field(
        ..., description="Entity tag (post, term, user, meta, ...)"
    )
    entity_id: int | str = Field(
        ..., description="Entity ID, integer or digit string"
    )
    payload: dict[str, Any] = Field(
        default_factory=dict,
        description="Payload captured at schedule time",
    )
    headers: dict[str, str] = Field(
        default_factory=dict,
        description="Request headers, including webhook name and retry marker",
    )
    not_before: float = Field(
        default=0.0,
        description="Epoch seconds before which the item is not delivered",
    )
    created_at: float = Field(
        default_factory=time.time,
        description="Epoch seconds when the item was created",
    )

    @property
    def webhook_name(self) -> str:
        """Name of the webhook whose configuration applies."""
        return self.headers.get(WEBHOOK_NAME_HEADER, "")

    @property
    def retry_count(self) -> int:
        """Number of retries already scheduled for this delivery."""
        raw = self.headers.get(RETRY_COUNT_HEADER, "0")
        try:
            return max(0, int(raw))
        except (TypeError, ValueError):
            return 0

    @property
    def dedup_key(self) -> tuple[str, str, str, str]:
        """Tuple that identifies duplicate pending deliveries."""
        return (self.url, self.action.value, self.entity_type, str(self.entity_id))

    def dedup_hash(self) -> str:
        """Stable hash of the dedup tuple for use in storage keys."""
        content = json.dumps(list(self.dedup_key), separators=(",", ":"))
        return hashlib.sha1(content.encode()).hexdigest()

    def next_attempt(self, not_before: float) -> ScheduledDelivery:
        """Build the retry item for this delivery.

        The retry gets a new item id and an incremented retry marker;
        everything else is carried over unchanged.
        """
        headers = dict(self.headers)
        headers[RETRY_COUNT_HEADER] = str(self.retry_count + 1)
        return self.model_copy(
            update={
                "item_id": uuid.uuid4().hex,
                "headers": headers,
                "not_before": not_before,
                "created_at": time.time(),
            }
        )

    def to_json(self) -> str:
        return self.model_dump_json()

    @classmethod
    def from_json(cls, raw: str | bytes) -> ScheduledDelivery:
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        return cls.model_validate_json(raw)
