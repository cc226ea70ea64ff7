"""Contracts for collaborators the application supplies.

Provides:
- ``EntityStore`` — entity lookup and caller relations behind domain rules.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional

from .roles import Role
from .rules.reference import MISSING, EntityRef, Relation, read_attribute


class EntityStore(ABC):
    """Data collaborator behind domain rules.

    fieldgate never queries a database itself. The application provides
    one store per request (or a shared, stateless one) through
    :attr:`EvaluationContext.store`.
    """

    @abstractmethod
    async def fetch(self, ref: EntityRef) -> Optional[Mapping[str, Any]]:
        """Load the referenced entity, or None if it does not exist."""
        raise NotImplementedError

    @abstractmethod
    async def has_relation(self, principal_id: str, relation: Relation, ref: EntityRef) -> bool:
        """Whether ``principal_id`` owns / manages / attends / ... the entity."""
        raise NotImplementedError

    async def role_of(self, ref: EntityRef) -> Optional[Role]:
        """Role of a referenced user; None if unknown."""
        entity = await self.fetch(ref)
        if entity is None:
            return None
        role = read_attribute(entity, "role")
        return None if role is MISSING else Role.parse(role)


__all__ = ["EntityStore"]
