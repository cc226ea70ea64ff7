"""Role tiers for authenticated principals.

Roles are totally ordered (FREE < PREMIUM < MODERATOR < ADMINISTRATOR) so
callers can compare them, but rule inheritance is never derived from the
ordering. Each tier lists the maps it composes explicitly in
:data:`fieldgate.permissions.tiers.TIER_HIERARCHY`.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any


class Role(IntEnum):
    """Access tier of an authenticated principal."""

    FREE = 0
    PREMIUM = 1
    MODERATOR = 2
    ADMINISTRATOR = 3

    @classmethod
    def parse(cls, value: Any) -> Role | None:
        """Resolve a role from a session value.

        Accepts a :class:`Role`, its name in any case, or its integer
        value. Returns None for anything else; the gate denies unknown
        roles rather than guessing.

        Example::

            Role.parse("moderator")   # Role.MODERATOR
            Role.parse(3)             # Role.ADMINISTRATOR
            Role.parse("superuser")   # None
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            return None
        if isinstance(value, int):
            try:
                return cls(value)
            except ValueError:
                return None
        if isinstance(value, str):
            return cls.__members__.get(value.strip().upper())
        return None


__all__ = ["Role"]
