"""Base types for entity payload handlers.

Handlers build the minimal payload persisted at schedule time and enrich
it at delivery time. They read the host application through the
ContentSource protocol and never emit webhooks themselves.
"""

from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

DEFAULT_REST_NAMESPACE = "wp/v2"


@dataclass(frozen=True)
class RestRoute:
    """How an entity kind is exposed over the host's REST API.

    Attributes:
        show_in_rest: Whether the kind has REST routes at all.
        rest_base: Route base, defaults to the kind name when empty.
        rest_namespace: Route namespace, defaults to "wp/v2" when empty.
    """

    show_in_rest: bool = False
    rest_base: str = ""
    rest_namespace: str = ""

    def path_for(self, kind: str, entity_id: int) -> str:
        base = self.rest_base or kind
        namespace = self.rest_namespace or DEFAULT_REST_NAMESPACE
        return f"{namespace}/{base}/{entity_id}"


@runtime_checkable
class ContentSource(Protocol):
    """Read access to the host application's entities.

    Every method returns None when the entity or kind does not exist.
    """

    def get_post_type(self, post_id: int) -> str | None: ...

    def get_post_type_route(self, post_type: str) -> RestRoute | None: ...

    def get_term_taxonomy(self, term_id: int) -> str | None: ...

    def get_taxonomy_route(self, taxonomy: str) -> RestRoute | None: ...

    def get_user_roles(self, user_id: int) -> list[str] | None: ...

    def rest_url(self, path: str) -> str | None: ...


def normalize_entity_id(entity_id: int | str) -> int | None:
    """Normalize an entity ID to a positive integer.

    Args:
        entity_id: Integer or digit string.

    Returns:
        The positive integer ID, or None when the ID is invalid.
    """
    if isinstance(entity_id, bool):
        return None
    if isinstance(entity_id, int):
        return entity_id if entity_id >= 1 else None
    if not entity_id or not entity_id.isdigit():
        return None
    parsed = int(entity_id)
    return parsed if parsed >= 1 else None


class EntityHandler:
    """Base handler; enrichment is the identity by default."""

    entity_type: str = ""

    def __init__(self, source: ContentSource | None = None) -> None:
        self.source = source

    def prepare_delivery_payload(self, entity_id: int, payload: dict[str, Any]) -> dict[str, Any]:
        """Enrich payload data at delivery time.

        Args:
            entity_id: The entity ID.
            payload: The scheduled payload data.

        Returns:
            The updated payload data.
        """
        return payload
