"""Post entity handler."""

from typing import Any

from entity_webhooks.entities.base import EntityHandler


class PostHandler(EntityHandler):
    """Transforms post data into webhook payloads."""

    entity_type = "post"

    def prepare_payload(self, post_id: int) -> dict[str, Any]:
        """Minimal event context persisted for async delivery.

        Everything else is resolved at delivery time.
        """
        return {}

    def prepare_delivery_payload(self, entity_id: int, payload: dict[str, Any]) -> dict[str, Any]:
        """Add the post type and, when the type is exposed over REST, its URL."""
        post_type = payload.get("post_type") or ""
        if not isinstance(post_type, str) or not post_type:
            post_type = self.source.get_post_type(entity_id) if self.source else None

        if not isinstance(post_type, str) or not post_type:
            return payload

        payload = {**payload, "post_type": post_type}

        if payload.get("rest_url"):
            return payload

        route = self.source.get_post_type_route(post_type) if self.source else None
        if route is None or route.show_in_rest is not True:
            return payload

        rest_url = self.source.rest_url(route.path_for(post_type, entity_id)) if self.source else None
        if rest_url:
            payload["rest_url"] = rest_url
        return payload
