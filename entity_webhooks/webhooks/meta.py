"""Meta webhook with configurable emission modes.

A meta change can be reported as a ``meta`` entity webhook, as an
``update`` of the entity that owns the value, or both:

- META: only the meta webhook
- BOTH: the meta webhook and the owning entity's update (default)
- ENTITY: only the owning entity's update

The owning entity's update goes through that entity's registered
webhook, and the dispatcher coalesces it on (url, action, entity, id),
so several meta changes on one object collapse into one delivery.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any

import structlog

from entity_webhooks.dedup import current_emission_scope, emission_key
from entity_webhooks.delivery.models import ScheduledDelivery, WebhookAction
from entity_webhooks.entities.meta import MetaHandler, values_equal
from entity_webhooks.support.object_ids import parse_object_id
from entity_webhooks.webhooks.entity import EntityWebhook

logger = structlog.get_logger(__name__)


class MetaEmissionMode(str, Enum):
    """Which webhooks a meta change emits."""

    META = "meta"
    BOTH = "both"
    ENTITY = "entity"

    @property
    def includes_meta(self) -> bool:
        return self in (MetaEmissionMode.META, MetaEmissionMode.BOTH)

    @property
    def includes_entity(self) -> bool:
        return self in (MetaEmissionMode.ENTITY, MetaEmissionMode.BOTH)


class MetaWebhook(EntityWebhook[MetaHandler]):
    """Emits webhooks for post, term and user meta changes.

    Every change source funnels into one handler that skips keys already
    emitted in the current emission scope, ignores unchanged values and
    excluded keys, and detects deletions. Unchanged means loosely equal, so
    "10" written over 10 emits nothing.

    Skipping repeated keys needs an active emission scope. Wrap each host
    request or job in ``WebhookService.unit_of_work()`` (or
    ``emission_scope()``); without one every report is emitted.
    """

    entity_type = "meta"
    handler_class = MetaHandler

    def __init__(self, name: str = "meta") -> None:
        super().__init__(name)
        self._emission_mode = MetaEmissionMode.BOTH

    def set_emission_mode(self, mode: MetaEmissionMode | str) -> MetaWebhook:
        """Select which webhooks a meta change emits.

        Raises:
            ValueError: The mode is not a MetaEmissionMode value.
        """
        self._ensure_mutable("emission_mode")
        try:
            self._emission_mode = MetaEmissionMode(mode)
        except ValueError:
            valid = ", ".join(m.value for m in MetaEmissionMode)
            raise ValueError(f'Invalid emission mode "{mode}". Use one of: {valid}') from None
        return self

    def get_emission_mode(self) -> MetaEmissionMode:
        return self._emission_mode

    # ------------------------------------------------------------------
    # Change sources
    # ------------------------------------------------------------------

    async def on_updated_meta(
        self,
        meta_type: str,
        object_id: int,
        meta_key: str,
        value: Any,
        previous: Any = None,
    ) -> list[ScheduledDelivery]:
        """Handle a storage-level meta write."""
        return await self._on_meta_update(meta_type, object_id, meta_key, value, previous)

    async def on_deleted_meta(
        self,
        meta_type: str,
        object_id: int,
        meta_key: str,
        value: Any,
    ) -> list[ScheduledDelivery]:
        """Handle a storage-level meta deletion; value is the deleted value."""
        return await self._on_meta_update(meta_type, object_id, meta_key, None, value, deletion=True)

    async def on_field_update(
        self,
        object_ref: int | str,
        field: Mapping[str, Any],
        value: Any,
        original: Any = None,
    ) -> list[ScheduledDelivery]:
        """Handle a field-store write.

        Args:
            object_ref: Owner reference such as ``post_12``, ``term_3``,
                ``user_7`` or a bare post ID.
            field: Field definition; its ``name`` is the meta key.
            value: New value.
            original: Previous value.
        """
        meta_type, object_id = parse_object_id(object_ref)
        if meta_type is None or object_id is None:
            return []

        meta_key = field.get("name") or ""
        if not meta_key:
            return []

        return await self._on_meta_update(meta_type, object_id, str(meta_key), value, original)

    # ------------------------------------------------------------------
    # Emission
    # ------------------------------------------------------------------

    async def _on_meta_update(
        self,
        meta_type: str,
        object_id: int,
        meta_key: str,
        new_value: Any,
        old_value: Any = None,
        *,
        deletion: bool = False,
    ) -> list[ScheduledDelivery]:
        handler = self.get_handler()
        is_deletion = deletion or handler.is_deletion(new_value, old_value)

        scope = current_emission_scope()
        key = emission_key(meta_type, object_id, meta_key)
        if scope is None:
            logger.debug("emission_scope_missing", key=key)
        else:
            if is_deletion:
                scope.clear(key)
            elif scope.is_processed(key):
                logger.debug("meta_emission_skipped", key=key)
                return []

        try:
            if values_equal(new_value, old_value):
                return []
            if handler.is_meta_key_excluded(meta_key, meta_type, object_id):
                return []

            action = WebhookAction.DELETE if is_deletion else WebhookAction.UPDATE
            queued: list[ScheduledDelivery] = []

            if self._emission_mode.includes_meta:
                payload = handler.prepare_payload(meta_type, object_id, meta_key)
                item = await self.emit(action, "meta", object_id, payload)
                if item is not None:
                    queued.append(item)

            if self._emission_mode.includes_entity:
                item = await self._trigger_entity_update(meta_type, object_id)
                if item is not None:
                    queued.append(item)

            return queued
        finally:
            if scope is not None:
                scope.mark(key)

    async def _trigger_entity_update(self, meta_type: str, object_id: int) -> ScheduledDelivery | None:
        """Emit an update through the owning entity's registered webhook."""
        if self.registry is None:
            return None
        parent = self.registry.get(meta_type)
        if parent is None:
            return None

        payload = self.get_handler().get_entity_payload(meta_type, object_id)
        return await parent.emit(WebhookAction.UPDATE, meta_type, object_id, payload)
