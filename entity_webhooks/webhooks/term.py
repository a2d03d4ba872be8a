"""Taxonomy term webhook."""

from entity_webhooks.delivery.models import ScheduledDelivery, WebhookAction
from entity_webhooks.entities.term import TermHandler
from entity_webhooks.webhooks.entity import EntityWebhook


class TermWebhook(EntityWebhook[TermHandler]):
    """Emits create, update and delete webhooks for taxonomy terms."""

    entity_type = "term"
    handler_class = TermHandler

    def __init__(self, name: str = "term") -> None:
        super().__init__(name)

    async def on_created_term(self, term_id: int) -> ScheduledDelivery | None:
        return await self._emit_term(WebhookAction.CREATE, term_id)

    async def on_edited_term(self, term_id: int) -> ScheduledDelivery | None:
        return await self._emit_term(WebhookAction.UPDATE, term_id)

    async def on_deleted_term(self, term_id: int) -> ScheduledDelivery | None:
        return await self._emit_term(WebhookAction.DELETE, term_id)

    async def _emit_term(self, action: WebhookAction, term_id: int) -> ScheduledDelivery | None:
        payload = self.get_handler().prepare_payload(term_id)
        return await self.emit(action, "term", term_id, payload)
