"""User webhook."""

from entity_webhooks.delivery.models import ScheduledDelivery, WebhookAction
from entity_webhooks.entities.user import UserHandler
from entity_webhooks.webhooks.entity import EntityWebhook


class UserWebhook(EntityWebhook[UserHandler]):
    """Emits create, update and delete webhooks for users.

    User payloads carry the user's roles, so a deletion should be
    reported before the host removes the user's data.
    """

    entity_type = "user"
    handler_class = UserHandler

    def __init__(self, name: str = "user") -> None:
        super().__init__(name)

    async def on_user_register(self, user_id: int) -> ScheduledDelivery | None:
        payload = self.get_handler().prepare_payload(user_id)
        return await self.emit(WebhookAction.CREATE, "user", user_id, payload)

    async def on_profile_update(self, user_id: int) -> ScheduledDelivery | None:
        payload = self.get_handler().prepare_payload(user_id)
        return await self.emit(WebhookAction.UPDATE, "user", user_id, payload)

    async def on_deleted_user(self, user_id: int) -> ScheduledDelivery | None:
        payload = self.get_handler().prepare_payload(user_id)
        return await self.emit(WebhookAction.DELETE, "user", user_id, payload)
