"""Per-request evaluation context.

Provides:
- ``Principal`` — authenticated caller (id + role) or the ``ANONYMOUS`` sentinel.
- ``FieldInfo`` — the (type, field) path being authorized.
- ``EvaluationContext`` — principal, data collaborator and request-scoped rule cache.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Mapping
from uuid import uuid4

from .roles import Role

if TYPE_CHECKING:
    from .interfaces import EntityStore


@dataclass(frozen=True)
class Principal:
    """Caller identity as established by the authentication step.

    - id: User id (None = anonymous)
    - role: Role as stored in the session. Kept raw so that an unknown
      value is visible in logs; use :attr:`tier` for the parsed Role.
    """

    id: str | None = None
    role: Role | str | int | None = None

    @property
    def is_anonymous(self) -> bool:
        return self.id is None

    @property
    def tier(self) -> Role | None:
        """Parsed role, or None when anonymous or unknown."""
        if self.is_anonymous:
            return None
        return Role.parse(self.role)

    @classmethod
    def from_session(cls, session_user: Mapping[str, Any] | None) -> Principal:
        """Build a principal from a session user record.

        Accepts ``{"_id": ..., "role": ...}`` (``id`` is accepted too).
        An empty or missing record yields :data:`ANONYMOUS`.
        """
        if not session_user:
            return ANONYMOUS
        user_id = session_user.get("_id", session_user.get("id"))
        if user_id is None:
            return ANONYMOUS
        return cls(id=str(user_id), role=session_user.get("role"))


ANONYMOUS = Principal()


@dataclass(frozen=True)
class FieldInfo:
    """Path of the field being authorized, e.g. ``Mutation.editEvent``."""

    type_name: str
    field_name: str

    def __str__(self) -> str:
        return f"{self.type_name}.{self.field_name}"


@dataclass
class EvaluationContext:
    """Everything a rule needs besides parent and args.

    One instance per request. The rule cache lives here, so memoised
    results are never shared across requests or principals.

    Attributes:
        principal: The caller (``ANONYMOUS`` when not logged in).
        store: Data collaborator used by domain rules.
        request_id: Correlation id for logs.
        extras: Transport-specific values (session, loaders, ...).
        cache_enabled: Memoise rule results within this request.
        waiters: Callers currently awaiting each in-flight cache entry.
    """

    principal: Principal = ANONYMOUS
    store: EntityStore | None = None
    request_id: str = field(default_factory=lambda: uuid4().hex)
    extras: dict[str, Any] = field(default_factory=dict)
    cache_enabled: bool = True
    cache: dict[tuple[str, ...], asyncio.Future] = field(default_factory=dict, repr=False)
    waiters: dict[tuple[str, ...], int] = field(default_factory=dict, repr=False)

    def clear_cache(self) -> None:
        self.cache.clear()


__all__ = [
    "ANONYMOUS",
    "EvaluationContext",
    "FieldInfo",
    "Principal",
]
