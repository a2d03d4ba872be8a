"""Meta entity handler.

Detects meta deletions, filters excluded keys and routes delivery-time
enrichment to the handler of the entity that owns the meta value.
"""

import re
from typing import Any

from entity_webhooks.entities.base import ContentSource, EntityHandler
from entity_webhooks.entities.post import PostHandler
from entity_webhooks.entities.term import TermHandler
from entity_webhooks.entities.user import UserHandler
from entity_webhooks.hooks import HookPoint, HookRegistry

EXCLUDED_META_KEYS = frozenset({"_edit_lock", "_edit_last", "session_tokens"})

_NUMERIC_RE = re.compile(r"^\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?\s*$")
_SCALARS = (str, int, float, bool, type(None))


def is_empty_value(value: Any) -> bool:
    """Check whether a stored meta value counts as empty.

    None, False, zero, "", "0" and empty containers are empty.
    """
    if value is None or value is False:
        return True
    if isinstance(value, str):
        return value in ("", "0")
    if isinstance(value, (int, float)):
        return value == 0
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) == 0
    return False


def _is_numeric(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return True
    return isinstance(value, str) and _NUMERIC_RE.match(value) is not None


def values_equal(new_value: Any, old_value: Any) -> bool:
    """Compare two stored meta values the way loosely typed storage does.

    Stored values often come back as strings, so scalars compare loosely:
    numbers and numeric strings by value ("10" equals 10 and "1e1"),
    booleans by emptiness, and None equals "" or a falsy value. Anything
    else must be strictly equal.
    """
    if not isinstance(new_value, _SCALARS) or not isinstance(old_value, _SCALARS):
        return bool(new_value == old_value)
    if isinstance(new_value, bool) or isinstance(old_value, bool):
        return is_empty_value(new_value) == is_empty_value(old_value)
    if new_value is None or old_value is None:
        other = old_value if new_value is None else new_value
        return other == "" if isinstance(other, str) else not other
    if _is_numeric(new_value) and _is_numeric(old_value):
        return float(new_value) == float(old_value)
    return str(new_value) == str(old_value)


class MetaHandler(EntityHandler):
    """Handles meta-related payloads for post, term and user meta."""

    entity_type = "meta"

    def __init__(self, source: ContentSource | None = None, hooks: HookRegistry | None = None) -> None:
        super().__init__(source)
        self.hooks = hooks or HookRegistry()
        self.post_handler = PostHandler(source)
        self.term_handler = TermHandler(source)
        self.user_handler = UserHandler(source)

    def is_deletion(self, new_value: Any, old_value: Any) -> bool:
        """A write is a deletion when the new value is empty and the old one was not."""
        return is_empty_value(new_value) and not is_empty_value(old_value)

    def is_meta_key_excluded(self, meta_key: str, meta_type: str, object_id: int) -> bool:
        """Check whether a meta key is excluded from webhook emission.

        Internal keys and keys starting with an underscore are excluded;
        the EXCLUDED_META hook has the final say.

        Args:
            meta_key: The meta key.
            meta_type: Owning entity type (post, term, user).
            object_id: Owning entity ID.

        Returns:
            True if no webhook should be emitted for the key.
        """
        excluded = meta_key in EXCLUDED_META_KEYS or meta_key.startswith("_")
        return bool(self.hooks.apply(HookPoint.EXCLUDED_META, excluded, meta_key, meta_type, object_id))

    def prepare_payload(self, meta_type: str, object_id: int, meta_key: str) -> dict[str, Any]:
        return {"meta_type": meta_type, "meta_key": meta_key}

    def prepare_delivery_payload(self, entity_id: int, payload: dict[str, Any]) -> dict[str, Any]:
        meta_type = payload.get("meta_type") or ""
        if isinstance(meta_type, str) and meta_type:
            handler = self._handler_for(meta_type)
            return handler.prepare_delivery_payload(entity_id, payload) if handler else payload

        # Older payloads carry no meta_type; infer it from the owner's fields
        if isinstance(payload.get("post_type"), str) and payload["post_type"]:
            return self.post_handler.prepare_delivery_payload(entity_id, {**payload, "meta_type": "post"})
        if isinstance(payload.get("taxonomy"), str) and payload["taxonomy"]:
            return self.term_handler.prepare_delivery_payload(entity_id, {**payload, "meta_type": "term"})
        if "roles" in payload:
            return self.user_handler.prepare_delivery_payload(entity_id, {**payload, "meta_type": "user"})
        return payload

    def get_entity_payload(self, meta_type: str, object_id: int) -> dict[str, Any]:
        """Payload of the owning entity, used to trigger its update webhook."""
        if meta_type == "post":
            return self.post_handler.prepare_payload(object_id)
        if meta_type == "term":
            return self.term_handler.prepare_payload(object_id)
        if meta_type == "user":
            return self.user_handler.prepare_payload(object_id)
        return {}

    def _handler_for(self, meta_type: str) -> EntityHandler | None:
        return {
            "post": self.post_handler,
            "term": self.term_handler,
            "user": self.user_handler,
        }.get(meta_type)
