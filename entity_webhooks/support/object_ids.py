"""Parsing of field-store object references."""

import re

_OBJECT_REF = re.compile(r"^(post|term|user)_(\d+)$")


def parse_object_id(object_ref: int | str) -> tuple[str | None, int | None]:
    """Split an object reference into entity type and numeric ID.

    Bare numbers refer to posts; ``post_12``, ``term_3`` and ``user_7``
    name their entity type explicitly.

    Args:
        object_ref: Reference as passed by the field store.

    Returns:
        (entity_type, id), or (None, None) for unrecognised references.
    """
    if isinstance(object_ref, bool):
        return None, None
    if isinstance(object_ref, int):
        return "post", object_ref

    ref = object_ref.strip()
    if ref.isdigit():
        return "post", int(ref)

    match = _OBJECT_REF.match(ref)
    if match is None:
        return None, None
    return match.group(1), int(match.group(2))
