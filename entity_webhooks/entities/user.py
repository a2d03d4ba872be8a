"""User entity handler."""

from typing import Any

from entity_webhooks.entities.base import EntityHandler


class UserHandler(EntityHandler):
    """Transforms user data into webhook payloads.

    User payloads are complete at schedule time; delivery-time
    enrichment is the identity.
    """

    entity_type = "user"

    def prepare_payload(self, user_id: int) -> dict[str, Any]:
        """Payload with the user's roles and, if available, REST URL."""
        roles = self.source.get_user_roles(user_id) if self.source else None
        payload: dict[str, Any] = {"roles": list(roles or [])}

        rest_url = self.source.rest_url(f"wp/v2/users/{user_id}") if self.source else None
        if rest_url:
            payload["rest_url"] = rest_url
        return payload
