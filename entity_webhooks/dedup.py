"""Emission deduplication for change sources that fire more than once.

Some writes are reported twice, for example by a field-level hook and by
the storage layer underneath it. An EmissionScope records which
``entity_type:object_id:key`` changes were already emitted during one
unit of work (one host request, one job) so the second report is
skipped. The scope is bound to the current context and always cleared
when the unit of work ends. Hosts usually bind it with
``WebhookService.unit_of_work()``.

Example:
    async def handle_request(request):
        with emission_scope():
            await meta_webhook.on_field_update("post_42", {"name": "price"}, 10, 5)
            await meta_webhook.on_updated_meta("post", 42, "price", 10, 5)  # skipped
"""

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

import structlog

logger = structlog.get_logger(__name__)

_current_scope: ContextVar["EmissionScope | None"] = ContextVar("emission_scope", default=None)


def emission_key(entity_type: str, object_id: int | str, key: str) -> str:
    return f"{entity_type}:{object_id}:{key}"


class EmissionScope:
    """Set of keys already emitted in one unit of work."""

    def __init__(self) -> None:
        self._processed: set[str] = set()

    def __len__(self) -> int:
        return len(self._processed)

    def is_processed(self, key: str) -> bool:
        return key in self._processed

    def mark(self, key: str) -> None:
        self._processed.add(key)

    def clear(self, key: str) -> None:
        self._processed.discard(key)

    def reset(self) -> None:
        self._processed.clear()


@contextmanager
def emission_scope() -> Iterator[EmissionScope]:
    """Bind a fresh scope to the current context for the duration of a block."""
    scope = EmissionScope()
    token = _current_scope.set(scope)
    try:
        yield scope
    finally:
        if len(scope):
            logger.debug("emission_scope_closed", processed=len(scope))
        scope.reset()
        _current_scope.reset(token)


def current_emission_scope() -> EmissionScope | None:
    """Return the scope bound to the current context, if any."""
    return _current_scope.get()
