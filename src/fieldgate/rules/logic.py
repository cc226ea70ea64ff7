"""Boolean combinators over rules.

Children are evaluated left to right and evaluation stops as soon as the
outcome is decided. An ERROR result counts as a denial but is passed
through unchanged so the gate can log its cause.

Identities:
- ``and_()`` → allow
- ``or_()``  → deny
"""

from __future__ import annotations

from typing import Any, Mapping

from ..context import EvaluationContext, FieldInfo
from .base import ALLOWED, CacheMode, Outcome, Rule, RuleResult


class LogicRule(Rule):
    """Composite rule owning (shared) references to its children."""

    __slots__ = ("_children",)

    operator: str = ""

    def __init__(self, *children: Rule) -> None:
        for child in children:
            if not isinstance(child, Rule):
                raise TypeError(f"{self.operator}() expects Rule instances, got {type(child).__name__}")
        self._children = tuple(children)
        names = ", ".join(child.name for child in children)
        # Leaves carry the cache; the composite is cheap to recompute
        super().__init__(f"{self.operator}({names})", cache=CacheMode.NO_CACHE)

    @property
    def children(self) -> tuple[Rule, ...]:
        return self._children


class RuleAnd(LogicRule):
    __slots__ = ()
    operator = "and"

    async def _execute(
        self,
        parent: Any,
        args: Mapping[str, Any],
        context: EvaluationContext,
        info: FieldInfo,
    ) -> RuleResult:
        for child in self._children:
            result = await child.evaluate(parent, args, context, info)
            if not result.allowed:
                return result
        return ALLOWED


class RuleOr(LogicRule):
    __slots__ = ()
    operator = "or"

    async def _execute(
        self,
        parent: Any,
        args: Mapping[str, Any],
        context: EvaluationContext,
        info: FieldInfo,
    ) -> RuleResult:
        first_error: RuleResult | None = None
        for child in self._children:
            result = await child.evaluate(parent, args, context, info)
            if result.allowed:
                return result
            if result.failed and first_error is None:
                first_error = result
        return first_error or RuleResult(Outcome.DENY, rule=self.name)


class RuleNot(LogicRule):
    __slots__ = ()
    operator = "not"

    def __init__(self, child: Rule) -> None:
        super().__init__(child)

    async def _execute(
        self,
        parent: Any,
        args: Mapping[str, Any],
        context: EvaluationContext,
        info: FieldInfo,
    ) -> RuleResult:
        result = await self._children[0].evaluate(parent, args, context, info)
        if result.failed:
            return result
        if result.allowed:
            return RuleResult(Outcome.DENY, reason=f"{result.rule} allowed", rule=self.name)
        return ALLOWED


def and_(*rules: Rule) -> RuleAnd:
    """Allow only if every child allows."""
    return RuleAnd(*rules)


def or_(*rules: Rule) -> RuleOr:
    """Allow if any child allows."""
    return RuleOr(*rules)


def not_(rule: Rule) -> RuleNot:
    """Invert allow/deny; errors stay errors."""
    return RuleNot(rule)


__all__ = [
    "LogicRule",
    "RuleAnd",
    "RuleNot",
    "RuleOr",
    "and_",
    "not_",
    "or_",
]
