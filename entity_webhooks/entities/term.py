"""Term entity handler."""

from typing import Any

from entity_webhooks.entities.base import EntityHandler


class TermHandler(EntityHandler):
    """Transforms taxonomy term data into webhook payloads."""

    entity_type = "term"

    def prepare_payload(self, term_id: int) -> dict[str, Any]:
        """Payload with the term's taxonomy, empty if the term is gone."""
        taxonomy = self.source.get_term_taxonomy(term_id) if self.source else None
        if not taxonomy:
            return {}
        return {"taxonomy": taxonomy}

    def prepare_delivery_payload(self, entity_id: int, payload: dict[str, Any]) -> dict[str, Any]:
        if payload.get("rest_url") or self.source is None:
            return payload

        taxonomy = payload.get("taxonomy") or ""
        if not isinstance(taxonomy, str) or not taxonomy:
            taxonomy = self.source.get_term_taxonomy(entity_id)
            if not taxonomy:
                return payload

        route = self.source.get_taxonomy_route(taxonomy)
        if route is None or route.show_in_rest is not True:
            return payload

        rest_url = self.source.rest_url(route.path_for(taxonomy, entity_id))
        if not rest_url:
            return payload
        return {**payload, "rest_url": rest_url}
