"""Domain rules for the events API.

Every rule here is parameterised by a :class:`Reference` selecting the
entity from the parent object or from a mutation argument. Constructors
are memoised: calling ``caller_manages(Reference.ARG, "event")`` twice
returns the same Rule, so one name always maps to one rule identity.

Data access goes through :class:`~fieldgate.interfaces.EntityStore`; rules
only decide how to ask. Anonymous callers never satisfy a caller-relative
rule.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Mapping

from ..context import EvaluationContext, FieldInfo
from ..exceptions import ReferenceResolutionError, RuleEvaluationError
from ..roles import Role
from .base import CacheMode, PredicateReturn, Rule
from .reference import MISSING, EntityRef, Reference, Relation, read_attribute, resolve_reference

if TYPE_CHECKING:
    from ..interfaces import EntityStore


def _store(context: EvaluationContext) -> EntityStore:
    if context.store is None:
        raise RuleEvaluationError("no entity store configured for this request")
    return context.store


def _cache_mode(reference: Reference) -> CacheMode:
    # Argument rules never look at the parent
    return CacheMode.STRICT if reference is Reference.PARENT else CacheMode.CONTEXTUAL


def _rule_name(base: str, reference: Reference, arg: str | None) -> str:
    if reference is Reference.PARENT:
        return f"{base}(parent)"
    return f"{base}(arg:{arg})"


class ReferenceRule(Rule):
    """Rule about an entity selected by a Reference."""

    __slots__ = ("reference", "arg")

    def __init__(self, name: str, reference: Reference, arg: str | None) -> None:
        reference = Reference(reference)
        if reference is Reference.ARG and not arg:
            raise ValueError(f"{name}: an argument reference needs an argument name")
        self.reference = reference
        self.arg = arg if reference is Reference.ARG else None
        super().__init__(_rule_name(name, reference, self.arg), cache=_cache_mode(reference))

    def resolve(self, parent: Any, args: Mapping[str, Any], info: FieldInfo) -> EntityRef:
        return resolve_reference(self.reference, parent, args, info, arg=self.arg)


class IsCaller(ReferenceRule):
    """The referenced user is the caller."""

    __slots__ = ()

    async def _execute(self, parent, args, context, info) -> PredicateReturn:
        principal = context.principal
        if principal.is_anonymous:
            return False
        ref = self.resolve(parent, args, info)
        if ref.entity_id is None:
            raise ReferenceResolutionError(f"{info}: {ref.type_name} reference carries no id")
        return ref.entity_id == str(principal.id)


class EntityFlag(ReferenceRule):
    """A boolean attribute of the referenced entity is set.

    The attribute is read from the payload when present (a create or edit
    argument carries the requested value), otherwise from the store.
    A missing entity is an error, never a plain "false": ``not_(...)``
    over a flag must not allow on a dangling id.
    """

    __slots__ = ("attribute",)

    def __init__(self, name: str, attribute: str, reference: Reference, arg: str | None) -> None:
        self.attribute = attribute
        super().__init__(name, reference, arg)

    async def _execute(self, parent, args, context, info) -> PredicateReturn:
        ref = self.resolve(parent, args, info)
        value = read_attribute(ref.payload, self.attribute)
        if value is MISSING:
            if ref.entity_id is None:
                raise ReferenceResolutionError(
                    f"{info}: {ref.type_name} has neither '{self.attribute}' nor an id"
                )
            entity = await _store(context).fetch(ref)
            if entity is None:
                raise ReferenceResolutionError(f"{info}: {ref} not found")
            value = read_attribute(entity, self.attribute)
        return value is not MISSING and bool(value)


class CallerRelation(ReferenceRule):
    """The caller stands in ``relation`` to the referenced entity."""

    __slots__ = ("relation",)

    def __init__(self, name: str, relation: Relation, reference: Reference, arg: str | None) -> None:
        self.relation = relation
        super().__init__(name, reference, arg)

    async def _execute(self, parent, args, context, info) -> PredicateReturn:
        principal = context.principal
        if principal.is_anonymous:
            return False
        ref = self.resolve(parent, args, info)
        if ref.entity_id is None:
            raise ReferenceResolutionError(f"{info}: {ref.type_name} reference carries no id")
        return bool(await _store(context).has_relation(str(principal.id), self.relation, ref))


class HasRole(ReferenceRule):
    """The referenced user holds ``role``."""

    __slots__ = ("role",)

    def __init__(self, role: Role, reference: Reference, arg: str | None) -> None:
        self.role = role
        super().__init__(f"has_role[{role.name}]", reference, arg)

    async def _execute(self, parent, args, context, info) -> PredicateReturn:
        ref = self.resolve(parent, args, info)
        if ref.entity_id is None:
            raise ReferenceResolutionError(f"{info}: {ref.type_name} reference carries no id")
        return await _store(context).role_of(ref) == self.role


# ── Constructors ────────────────────────────────────────

_REGISTRY: dict[str, Rule] = {}


def _register(rule: Rule) -> Rule:
    """Return the rule already registered under this name, if any."""
    return _REGISTRY.setdefault(rule.name, rule)


def is_caller(reference: Reference, arg: str = "user") -> Rule:
    """Caller's id equals the user id taken from the parent or ``args[arg]``."""
    return _register(IsCaller("is_caller", reference, arg))


def is_private(reference: Reference, arg: str = "event") -> Rule:
    return _register(EntityFlag("is_private", "private", reference, arg))


def is_locked(reference: Reference, arg: str = "post") -> Rule:
    return _register(EntityFlag("is_locked", "locked", reference, arg))


def is_flagged(reference: Reference, arg: str = "post") -> Rule:
    return _register(EntityFlag("is_flagged", "flagged", reference, arg))


def caller_owns(reference: Reference, arg: str = "event") -> Rule:
    return _register(CallerRelation("caller_owns", Relation.OWNS, reference, arg))


def caller_manages(reference: Reference, arg: str = "event") -> Rule:
    return _register(CallerRelation("caller_manages", Relation.MANAGES, reference, arg))


def caller_attends(reference: Reference, arg: str = "event") -> Rule:
    return _register(CallerRelation("caller_attends", Relation.ATTENDS, reference, arg))


def caller_moderates(reference: Reference, arg: str = "category") -> Rule:
    return _register(CallerRelation("caller_moderates", Relation.MODERATES, reference, arg))


def caller_is_invited_to(reference: Reference, arg: str = "event") -> Rule:
    return _register(CallerRelation("caller_is_invited_to", Relation.INVITED_TO, reference, arg))


def caller_requests(reference: Reference, arg: str = "event") -> Rule:
    return _register(CallerRelation("caller_requests", Relation.REQUESTS, reference, arg))


def arg_has_role(role: Role, arg: str = "user") -> Rule:
    """The user passed in ``args[arg]`` holds ``role``."""
    return _register(HasRole(role, Reference.ARG, arg))


# ── Shorthands used by the tier maps ────────────────────

parent_is_private = is_private(Reference.PARENT)
parent_is_locked = is_locked(Reference.PARENT)
arg_is_private = is_private(Reference.ARG, "event")
arg_is_locked = is_locked(Reference.ARG, "post")
arg_is_flagged = is_flagged(Reference.ARG, "post")

caller_owns_parent = caller_owns(Reference.PARENT)
caller_manages_parent = caller_manages(Reference.PARENT)
caller_attends_parent = caller_attends(Reference.PARENT)
caller_moderates_parent = caller_moderates(Reference.PARENT)
caller_is_invited_to_parent = caller_is_invited_to(Reference.PARENT)

caller_owns_arg = caller_owns(Reference.ARG, "event")
caller_manages_arg = caller_manages(Reference.ARG, "event")
caller_attends_arg = caller_attends(Reference.ARG, "event")
caller_requests_arg = caller_requests(Reference.ARG, "event")


__all__ = [
    "CallerRelation",
    "EntityFlag",
    "HasRole",
    "IsCaller",
    "ReferenceRule",
    "arg_has_role",
    "arg_is_flagged",
    "arg_is_locked",
    "arg_is_private",
    "caller_attends",
    "caller_attends_arg",
    "caller_attends_parent",
    "caller_is_invited_to",
    "caller_is_invited_to_parent",
    "caller_manages",
    "caller_manages_arg",
    "caller_manages_parent",
    "caller_moderates",
    "caller_moderates_parent",
    "caller_owns",
    "caller_owns_arg",
    "caller_owns_parent",
    "caller_requests",
    "caller_requests_arg",
    "is_caller",
    "is_flagged",
    "is_locked",
    "is_private",
]
