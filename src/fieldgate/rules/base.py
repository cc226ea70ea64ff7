"""Rule primitives: results, the Rule base class and the ``rule`` decorator.

A rule answers one question about one field access and yields exactly one
:class:`RuleResult` (allow, deny or error). Rules never raise out of
:meth:`Rule.evaluate`; failures become ERROR results carrying the original
exception for diagnostics.
"""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Awaitable, Callable, Mapping, Optional, Union

from ..context import EvaluationContext, FieldInfo
from ..exceptions import RuleEvaluationError

logger = logging.getLogger(__name__)


class Outcome(str, Enum):
    """Terminal outcome of a rule."""

    ALLOW = "allow"
    DENY = "deny"
    ERROR = "error"


class CacheMode(str, Enum):
    """Per-request memoisation key for a rule.

    - ``strict``     — rule name + parent + args
    - ``contextual`` — rule name + args (rule ignores parent)
    - ``no_cache``   — always evaluate
    """

    STRICT = "strict"
    CONTEXTUAL = "contextual"
    NO_CACHE = "no_cache"


@dataclass(frozen=True)
class RuleResult:
    """Outcome of a rule evaluation.

    ``reason`` and ``error`` are internal diagnostics; they are never shown
    to callers unless the gate runs in debug mode.
    """

    outcome: Outcome
    reason: str = ""
    rule: Optional[str] = None
    error: Optional[BaseException] = field(default=None, compare=False)

    @property
    def allowed(self) -> bool:
        return self.outcome is Outcome.ALLOW

    @property
    def failed(self) -> bool:
        return self.outcome is Outcome.ERROR

    @classmethod
    def failure(
        cls,
        reason: str,
        error: BaseException | None = None,
        rule: str | None = None,
    ) -> RuleResult:
        return cls(Outcome.ERROR, reason=reason, rule=rule, error=error)


ALLOWED = RuleResult(Outcome.ALLOW)
DENIED = RuleResult(Outcome.DENY)

PredicateReturn = Union[bool, RuleResult, Exception]
Predicate = Callable[
    [Any, Mapping[str, Any], EvaluationContext, FieldInfo],
    Union[PredicateReturn, Awaitable[PredicateReturn]],
]


def _fingerprint(value: Any) -> str:
    """Stable text key for a parent or args payload."""
    try:
        return json.dumps(value, sort_keys=True, default=str, ensure_ascii=False)
    except (TypeError, ValueError):
        return repr(value)


def normalize_result(value: Any, rule_name: str) -> RuleResult:
    """Coerce whatever a predicate returned into a RuleResult."""
    if isinstance(value, RuleResult):
        return value if value.rule is not None else replace(value, rule=rule_name)
    if isinstance(value, bool):
        return RuleResult(Outcome.ALLOW if value else Outcome.DENY, rule=rule_name)
    if isinstance(value, Exception):
        return RuleResult.failure(str(value) or type(value).__name__, error=value, rule=rule_name)
    return RuleResult.failure(
        f"rule returned unsupported value of type {type(value).__name__}",
        rule=rule_name,
    )


class Rule:
    """Base class for every authorization rule.

    Subclasses implement :meth:`_execute`. Rules are immutable after
    construction and may be shared by any number of composite rules and
    tiers.

    Args:
        name: Identity of the rule; used for cache keys and diagnostics.
        cache: Per-request memoisation mode.
    """

    __slots__ = ("name", "cache")

    def __init__(self, name: str, cache: CacheMode | str = CacheMode.STRICT) -> None:
        if not name:
            raise ValueError("rule name must not be empty")
        self.name = name
        self.cache = CacheMode(cache)

    @property
    def children(self) -> tuple[Rule, ...]:
        return ()

    def cache_key(self, parent: Any, args: Mapping[str, Any], info: FieldInfo) -> tuple[str, ...]:
        if self.cache is CacheMode.STRICT:
            # Parent-relative rules take the entity type from the field
            return (self.name, info.type_name, _fingerprint(parent), _fingerprint(args))
        return (self.name, _fingerprint(args))

    async def evaluate(
        self,
        parent: Any,
        args: Mapping[str, Any],
        context: EvaluationContext,
        info: FieldInfo,
    ) -> RuleResult:
        """Evaluate the rule, reusing a memoised result from this request if any.

        Concurrent callers share one in-flight task. A caller that is
        cancelled stops waiting without cancelling the task for the
        others; the task itself is cancelled and evicted only once its
        last waiter is gone.
        """
        if self.cache is CacheMode.NO_CACHE or not context.cache_enabled:
            return await self._run(parent, args, context, info)

        key = self.cache_key(parent, args, info)
        task = context.cache.get(key)
        if task is None:
            task = asyncio.ensure_future(self._run(parent, args, context, info))
            context.cache[key] = task

            def _evict_cancelled(done: asyncio.Future) -> None:
                if done.cancelled() and context.cache.get(key) is done:
                    del context.cache[key]

            task.add_done_callback(_evict_cancelled)

        context.waiters[key] = context.waiters.get(key, 0) + 1
        try:
            return await asyncio.shield(task)
        finally:
            remaining = context.waiters.pop(key, 1) - 1
            if remaining > 0:
                context.waiters[key] = remaining
            elif not task.done():
                if context.cache.get(key) is task:
                    del context.cache[key]
                task.cancel()

    async def _run(
        self,
        parent: Any,
        args: Mapping[str, Any],
        context: EvaluationContext,
        info: FieldInfo,
    ) -> RuleResult:
        try:
            value = await self._execute(parent, args, context, info)
        except RuleEvaluationError as e:
            return RuleResult.failure(e.message, error=e, rule=self.name)
        except Exception as e:
            return RuleResult.failure(f"{type(e).__name__}: {e}", error=e, rule=self.name)
        return normalize_result(value, self.name)

    async def _execute(
        self,
        parent: Any,
        args: Mapping[str, Any],
        context: EvaluationContext,
        info: FieldInfo,
    ) -> PredicateReturn:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, cache={self.cache.value!r})"


class ConstantRule(Rule):
    """Rule that ignores its input."""

    __slots__ = ("value",)

    def __init__(self, name: str, value: bool) -> None:
        super().__init__(name, cache=CacheMode.NO_CACHE)
        self.value = value

    async def _execute(self, parent, args, context, info) -> PredicateReturn:
        return self.value


class PredicateRule(Rule):
    """Rule backed by a plain sync or async predicate function."""

    __slots__ = ("func",)

    def __init__(self, func: Predicate, name: str, cache: CacheMode | str = CacheMode.STRICT) -> None:
        super().__init__(name, cache=cache)
        self.func = func

    async def _execute(self, parent, args, context, info) -> PredicateReturn:
        value = self.func(parent, args, context, info)
        if inspect.isawaitable(value):
            value = await value
        return value


def rule(
    func: Predicate | None = None,
    *,
    name: str | None = None,
    cache: CacheMode | str = CacheMode.STRICT,
) -> Any:
    """Turn a predicate ``(parent, args, context, info)`` into a Rule.

    The predicate may be sync or async and may return a bool, a
    RuleResult or an Exception instance, or raise.

    Example::

        @rule(cache=CacheMode.CONTEXTUAL)
        async def caller_is_verified(parent, args, ctx, info):
            return await ctx.store.is_verified(ctx.principal.id)

        @rule
        def always_on_weekdays(parent, args, ctx, info):
            return datetime.now().weekday() < 5
    """

    def decorator(fn: Predicate) -> PredicateRule:
        return PredicateRule(fn, name=name or fn.__name__, cache=cache)

    if func is not None:
        return decorator(func)
    return decorator


allow = ConstantRule("allow", True)
deny = ConstantRule("deny", False)


__all__ = [
    "ALLOWED",
    "DENIED",
    "CacheMode",
    "ConstantRule",
    "Outcome",
    "PredicateRule",
    "Rule",
    "RuleResult",
    "allow",
    "deny",
    "normalize_result",
    "rule",
]
