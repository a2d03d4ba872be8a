"""Post webhook."""

from entity_webhooks.delivery.models import ScheduledDelivery, WebhookAction
from entity_webhooks.entities.post import PostHandler
from entity_webhooks.webhooks.entity import EntityWebhook


class PostWebhook(EntityWebhook[PostHandler]):
    """Emits create, update and delete webhooks for posts."""

    entity_type = "post"
    handler_class = PostHandler

    def __init__(self, name: str = "post") -> None:
        super().__init__(name)

    async def on_save_post(self, post_id: int, update: bool, *, revision: bool = False) -> ScheduledDelivery | None:
        """Handle a post save.

        Args:
            post_id: Saved post ID.
            update: True for an update of an existing post, False for a create.
            revision: True for revisions and autosaves, which are ignored.
        """
        if revision:
            return None
        action = WebhookAction.UPDATE if update else WebhookAction.CREATE
        payload = self.get_handler().prepare_payload(post_id)
        return await self.emit(action, "post", post_id, payload)

    async def on_delete_post(self, post_id: int) -> ScheduledDelivery | None:
        payload = self.get_handler().prepare_payload(post_id)
        return await self.emit(WebhookAction.DELETE, "post", post_id, payload)
