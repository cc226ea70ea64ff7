"""Entity reference selection and resolution.

Domain rules look at "the entity" of a request. :class:`Reference` selects
where that entity comes from:

- ``PARENT`` — the resolved parent object of the field (``Event.title`` → the Event)
- ``ARG``    — a mutation argument (``editEvent(event: {...})`` → ``args["event"]``)

Argument paths may be dotted to reach nested ids, e.g. ``"post.postedAt"``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional

from ..context import FieldInfo
from ..exceptions import ReferenceResolutionError


class Reference(str, Enum):
    """Where a domain rule finds its target entity."""

    PARENT = "parent"
    ARG = "arg"


class Relation(str, Enum):
    """Relations between a principal and an entity, answered by the store."""

    OWNS = "owns"
    MANAGES = "manages"
    ATTENDS = "attends"
    MODERATES = "moderates"
    INVITED_TO = "invited_to"
    REQUESTS = "requests"


# Argument name → entity type, for the argument shapes of the mutation API
ARG_TYPES: dict[str, str] = {
    "user": "User",
    "event": "Event",
    "post": "Post",
    "invitation": "Invitation",
    "category": "Category",
    "postedAt": "Event",
    "to": "Event",
}

MISSING: Any = object()


@dataclass(frozen=True)
class EntityRef:
    """A resolved pointer to the entity a rule is about.

    Attributes:
        reference: Whether it came from the parent or an argument.
        type_name: Entity type (``"Event"``, ``"Post"``, ...).
        entity_id: Id, when the source carries one (None for create payloads).
        payload: The source record itself when it is a record, so rules can
            read attributes without a store round-trip.
    """

    reference: Reference
    type_name: str
    entity_id: Optional[str] = None
    payload: Any = None

    def __str__(self) -> str:
        return f"{self.type_name}:{self.entity_id or '<new>'} ({self.reference.value})"


def read_attribute(record: Any, name: str) -> Any:
    """Read ``name`` from a mapping or an object; MISSING if absent."""
    if record is None or isinstance(record, (str, bytes)):
        return MISSING
    if isinstance(record, Mapping):
        return record.get(name, MISSING)
    return getattr(record, name, MISSING)


def extract_id(value: Any) -> str | None:
    """Id of a reference value: a bare id, or a record with ``_id`` / ``id``."""
    if value is None:
        return None
    if isinstance(value, str):
        return value or None
    for key in ("_id", "id"):
        found = read_attribute(value, key)
        if found is not MISSING and found is not None:
            return str(found)
    if isinstance(value, (Mapping, list, tuple, set)):
        return None
    # Non-record scalars such as ObjectId
    if not hasattr(value, "__dict__"):
        return str(value)
    return None


def arg_type_name(path: str) -> str:
    last = path.rsplit(".", 1)[-1]
    return ARG_TYPES.get(last, last[:1].upper() + last[1:])


def resolve_reference(
    reference: Reference,
    parent: Any,
    args: Mapping[str, Any],
    info: FieldInfo,
    arg: str | None = None,
    type_name: str | None = None,
) -> EntityRef:
    """Resolve the entity a rule refers to.

    Raises:
        ReferenceResolutionError: the parent is missing, or the argument path
            does not exist in ``args``.
    """
    if reference is Reference.PARENT:
        if parent is None:
            raise ReferenceResolutionError(
                f"{info} has no parent object to resolve",
                field=str(info),
            )
        return EntityRef(
            reference=reference,
            type_name=type_name or info.type_name,
            entity_id=extract_id(parent),
            payload=parent,
        )

    if not arg:
        raise ReferenceResolutionError(f"{info}: argument reference without an argument name")

    value: Any = args
    for segment in arg.split("."):
        value = read_attribute(value, segment)
        if value is MISSING or value is None:
            raise ReferenceResolutionError(
                f"{info}: argument '{arg}' is missing",
                field=str(info),
                argument=arg,
            )

    return EntityRef(
        reference=reference,
        type_name=type_name or arg_type_name(arg),
        entity_id=extract_id(value),
        payload=None if isinstance(value, str) else value,
    )


__all__ = [
    "ARG_TYPES",
    "MISSING",
    "EntityRef",
    "Reference",
    "Relation",
    "arg_type_name",
    "extract_id",
    "read_attribute",
    "resolve_reference",
]
