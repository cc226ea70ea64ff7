"""Shared fixtures: an in-memory entity store and a gate over the default tiers."""

from __future__ import annotations

import asyncio
from typing import Any, Mapping, Optional

import pytest

from fieldgate import (
    EntityRef,
    EntityStore,
    FieldGate,
    GateConfig,
    Principal,
    Relation,
    Role,
    build_default_policy_table,
)


class InMemoryStore(EntityStore):
    """Dict-backed store that counts its lookups."""

    def __init__(self) -> None:
        self.entities: dict[tuple[str, str], dict[str, Any]] = {}
        self.relations: set[tuple[str, Relation, str, str]] = set()
        self.fetch_calls = 0
        self.relation_calls = 0
        self.fail_with: Optional[BaseException] = None

    def add(self, type_name: str, entity_id: str, **attrs: Any) -> dict[str, Any]:
        entity = {"_id": entity_id, **attrs}
        self.entities[(type_name, entity_id)] = entity
        return entity

    def relate(self, principal_id: str, relation: Relation, type_name: str, entity_id: str) -> None:
        self.relations.add((principal_id, relation, type_name, entity_id))

    async def fetch(self, ref: EntityRef) -> Optional[Mapping[str, Any]]:
        self.fetch_calls += 1
        await asyncio.sleep(0)
        if self.fail_with is not None:
            raise self.fail_with
        return self.entities.get((ref.type_name, ref.entity_id))

    async def has_relation(self, principal_id: str, relation: Relation, ref: EntityRef) -> bool:
        self.relation_calls += 1
        await asyncio.sleep(0)
        if self.fail_with is not None:
            raise self.fail_with
        return (principal_id, relation, ref.type_name, ref.entity_id) in self.relations


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def policy():
    return build_default_policy_table()


@pytest.fixture
def gate(policy) -> FieldGate:
    return FieldGate(policy, GateConfig())


@pytest.fixture
def free_user() -> Principal:
    return Principal(id="u1", role=Role.FREE)


@pytest.fixture
def premium_user() -> Principal:
    return Principal(id="u1", role=Role.PREMIUM)


@pytest.fixture
def moderator() -> Principal:
    return Principal(id="u1", role=Role.MODERATOR)


@pytest.fixture
def admin() -> Principal:
    return Principal(id="u1", role=Role.ADMINISTRATOR)
