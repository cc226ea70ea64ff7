"""Tests for rule primitives, combinators and per-request caching."""

from __future__ import annotations

import asyncio

import pytest

from fieldgate import (
    CacheMode,
    EvaluationContext,
    FieldInfo,
    Outcome,
    RuleEvaluationError,
    RuleResult,
    allow,
    and_,
    deny,
    not_,
    or_,
    rule,
)
from fieldgate.rules import PredicateRule, RuleAnd, RuleNot, RuleOr

INFO = FieldInfo("Query", "events")


async def run(r, parent=None, args=None, ctx=None, info=INFO):
    return await r.evaluate(parent, args or {}, ctx or EvaluationContext(), info)


def counting_rule(name: str, value: bool = True, cache: CacheMode = CacheMode.STRICT):
    calls = []

    @rule(name=name, cache=cache)
    async def predicate(parent, args, ctx, info):
        calls.append((parent, dict(args)))
        await asyncio.sleep(0)
        return value

    return predicate, calls


@rule
def boom(parent, args, ctx, info):
    raise RuntimeError("lookup unavailable")


class TestRuleResult:
    """Tests for RuleResult."""

    def test_failure_is_not_allowed(self) -> None:
        result = RuleResult.failure("broken")
        assert result.outcome is Outcome.ERROR
        assert result.failed is True
        assert result.allowed is False

    def test_equality_ignores_error_object(self) -> None:
        a = RuleResult.failure("x", error=ValueError("a"))
        b = RuleResult.failure("x", error=ValueError("b"))
        assert a == b


class TestConstantRules:
    """Tests for allow / deny."""

    @pytest.mark.asyncio
    async def test_allow(self) -> None:
        assert (await run(allow)).allowed is True

    @pytest.mark.asyncio
    async def test_deny(self) -> None:
        result = await run(deny)
        assert result.outcome is Outcome.DENY

    @pytest.mark.asyncio
    async def test_constants_ignore_input(self) -> None:
        result = await run(allow, parent={"anything": 1}, args={"x": 2})
        assert result.allowed is True


class TestRuleDecorator:
    """Tests for @rule."""

    def test_name_defaults_to_function_name(self) -> None:
        assert boom.name == "boom"

    def test_explicit_name_and_cache(self) -> None:
        r, _ = counting_rule("custom", cache=CacheMode.CONTEXTUAL)
        assert r.name == "custom"
        assert r.cache is CacheMode.CONTEXTUAL

    def test_empty_name_rejected(self) -> None:
        with pytest.raises(ValueError):
            PredicateRule(lambda p, a, c, i: True, name="")

    @pytest.mark.asyncio
    async def test_sync_predicate(self) -> None:
        @rule
        def is_even(parent, args, ctx, info):
            return args["n"] % 2 == 0

        assert (await run(is_even, args={"n": 2})).allowed is True
        assert (await run(is_even, args={"n": 3})).outcome is Outcome.DENY

    @pytest.mark.asyncio
    async def test_raising_predicate_becomes_error(self) -> None:
        result = await run(boom)
        assert result.outcome is Outcome.ERROR
        assert "lookup unavailable" in result.reason
        assert isinstance(result.error, RuntimeError)
        assert result.rule == "boom"

    @pytest.mark.asyncio
    async def test_rule_evaluation_error_keeps_message(self) -> None:
        @rule
        def unavailable(parent, args, ctx, info):
            raise RuleEvaluationError("store offline")

        result = await run(unavailable)
        assert result.failed
        assert result.reason == "store offline"

    @pytest.mark.asyncio
    async def test_returned_exception_becomes_error(self) -> None:
        @rule
        def returns_error(parent, args, ctx, info):
            return ValueError("not allowed here")

        result = await run(returns_error)
        assert result.failed
        assert result.reason == "not allowed here"

    @pytest.mark.asyncio
    async def test_unsupported_return_value_is_error(self) -> None:
        @rule
        def returns_none(parent, args, ctx, info):
            return None

        result = await run(returns_none)
        assert result.failed

    @pytest.mark.asyncio
    async def test_returned_result_is_passed_through(self) -> None:
        @rule
        def explicit(parent, args, ctx, info):
            return RuleResult(Outcome.DENY, reason="closed")

        result = await run(explicit)
        assert result.outcome is Outcome.DENY
        assert result.reason == "closed"
        assert result.rule == "explicit"


class TestCombinators:
    """Truth tables and identities for and_ / or_ / not_."""

    @pytest.mark.asyncio
    async def test_empty_and_allows(self) -> None:
        assert (await run(and_())).allowed is True

    @pytest.mark.asyncio
    async def test_empty_or_denies(self) -> None:
        assert (await run(or_())).outcome is Outcome.DENY

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "combinator, children, expected",
        [
            (and_, (allow, deny), False),
            (and_, (allow, allow), True),
            (or_, (allow, deny), True),
            (or_, (deny, deny), False),
            (or_, (deny, allow), True),
            (and_, (deny, allow), False),
        ],
    )
    async def test_truth_table(self, combinator, children, expected) -> None:
        assert (await run(combinator(*children))).allowed is expected

    @pytest.mark.asyncio
    @pytest.mark.parametrize("inner", [allow, deny])
    async def test_double_negation(self, inner) -> None:
        assert (await run(not_(not_(inner)))).outcome is (await run(inner)).outcome

    @pytest.mark.asyncio
    async def test_not_propagates_error(self) -> None:
        result = await run(not_(boom))
        assert result.failed
        assert result.rule == "boom"

    @pytest.mark.asyncio
    async def test_and_short_circuits_on_deny(self) -> None:
        tail, calls = counting_rule("and_tail")
        result = await run(and_(deny, tail))
        assert result.allowed is False
        assert calls == []

    @pytest.mark.asyncio
    async def test_and_short_circuits_on_error(self) -> None:
        tail, calls = counting_rule("and_tail_err")
        result = await run(and_(boom, tail))
        assert result.failed
        assert calls == []

    @pytest.mark.asyncio
    async def test_or_short_circuits_on_allow(self) -> None:
        tail, calls = counting_rule("or_tail")
        result = await run(or_(allow, tail))
        assert result.allowed is True
        assert calls == []

    @pytest.mark.asyncio
    async def test_or_error_then_allow_allows(self) -> None:
        assert (await run(or_(boom, allow))).allowed is True

    @pytest.mark.asyncio
    async def test_or_error_without_allow_surfaces_error(self) -> None:
        result = await run(or_(deny, boom, deny))
        assert result.allowed is False
        assert result.failed

    @pytest.mark.asyncio
    async def test_and_evaluates_left_to_right(self) -> None:
        order = []

        def recorder(label):
            @rule(name=f"order_{label}", cache=CacheMode.NO_CACHE)
            def r(parent, args, ctx, info):
                order.append(label)
                return True

            return r

        await run(and_(recorder("a"), recorder("b"), recorder("c")))
        assert order == ["a", "b", "c"]

    def test_combinator_names_and_children(self) -> None:
        composite = and_(allow, or_(deny, not_(allow)))
        assert composite.name == "and(allow, or(deny, not(allow)))"
        assert isinstance(composite, RuleAnd)
        assert isinstance(composite.children[1], RuleOr)
        assert isinstance(composite.children[1].children[1], RuleNot)

    def test_children_are_shared_not_copied(self) -> None:
        shared, _ = counting_rule("shared_child")
        a = and_(shared, allow)
        b = or_(deny, shared)
        assert a.children[0] is b.children[1] is shared

    def test_non_rule_child_rejected(self) -> None:
        with pytest.raises(TypeError):
            and_(allow, True)  # type: ignore[arg-type]


class TestRequestCache:
    """Per-request memoisation."""

    @pytest.mark.asyncio
    async def test_strict_cache_reuses_same_parent_and_args(self) -> None:
        r, calls = counting_rule("strict_rule")
        ctx = EvaluationContext()
        await run(r, parent={"_id": "e1"}, args={"a": 1}, ctx=ctx)
        await run(r, parent={"_id": "e1"}, args={"a": 1}, ctx=ctx)
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_strict_cache_distinguishes_parents(self) -> None:
        r, calls = counting_rule("strict_parents")
        ctx = EvaluationContext()
        await run(r, parent={"_id": "e1"}, ctx=ctx)
        await run(r, parent={"_id": "e2"}, ctx=ctx)
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_strict_cache_distinguishes_field_types(self) -> None:
        r, calls = counting_rule("strict_types")
        ctx = EvaluationContext()
        await run(r, parent="x1", ctx=ctx, info=FieldInfo("Event", "requests"))
        await run(r, parent="x1", ctx=ctx, info=FieldInfo("Post", "flagged"))
        await run(r, parent="x1", ctx=ctx, info=FieldInfo("Event", "invited"))
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_contextual_cache_ignores_parent(self) -> None:
        r, calls = counting_rule("contextual_rule", cache=CacheMode.CONTEXTUAL)
        ctx = EvaluationContext()
        await run(r, parent={"_id": "e1"}, args={"event": "e9"}, ctx=ctx)
        await run(r, parent={"_id": "e2"}, args={"event": "e9"}, ctx=ctx)
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_no_cache_always_evaluates(self) -> None:
        r, calls = counting_rule("uncached_rule", cache=CacheMode.NO_CACHE)
        ctx = EvaluationContext()
        await run(r, ctx=ctx)
        await run(r, ctx=ctx)
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_cache_disabled_on_context(self) -> None:
        r, calls = counting_rule("disabled_cache_rule")
        ctx = EvaluationContext(cache_enabled=False)
        await run(r, ctx=ctx)
        await run(r, ctx=ctx)
        assert len(calls) == 2
        assert ctx.cache == {}

    @pytest.mark.asyncio
    async def test_cache_is_per_request(self) -> None:
        r, calls = counting_rule("per_request_rule")
        await run(r, ctx=EvaluationContext())
        await run(r, ctx=EvaluationContext())
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_concurrent_evaluations_share_one_call(self) -> None:
        r, calls = counting_rule("concurrent_rule")
        ctx = EvaluationContext()
        results = await asyncio.gather(*(run(r, parent={"_id": "e1"}, ctx=ctx) for _ in range(5)))
        assert all(result.allowed for result in results)
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_cancelled_entry_is_evicted(self) -> None:
        started = asyncio.Event()

        @rule(name="slow_rule")
        async def slow(parent, args, ctx, info):
            started.set()
            await asyncio.sleep(10)
            return True

        ctx = EvaluationContext()
        task = asyncio.ensure_future(run(slow, ctx=ctx))
        await started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        await asyncio.sleep(0)
        assert ctx.cache == {}

    @pytest.mark.asyncio
    async def test_clear_cache(self) -> None:
        r, calls = counting_rule("clearable_rule")
        ctx = EvaluationContext()
        await run(r, ctx=ctx)
        ctx.clear_cache()
        await run(r, ctx=ctx)
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_cancelling_one_waiter_keeps_siblings_running(self) -> None:
        started = asyncio.Event()
        release = asyncio.Event()
        calls = []

        @rule(name="shared_slow_rule")
        async def slow(parent, args, ctx, info):
            calls.append(parent)
            started.set()
            await release.wait()
            return True

        ctx = EvaluationContext()
        first = asyncio.ensure_future(run(slow, parent={"_id": "e1"}, ctx=ctx))
        second = asyncio.ensure_future(run(slow, parent={"_id": "e1"}, ctx=ctx))
        await started.wait()
        await asyncio.sleep(0)

        first.cancel()
        with pytest.raises(asyncio.CancelledError):
            await first

        release.set()
        result = await second
        assert result.allowed is True
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_new_caller_after_abandoned_evaluation_starts_fresh(self) -> None:
        started = asyncio.Event()
        calls = []

        @rule(name="abandoned_rule")
        async def slow(parent, args, ctx, info):
            calls.append(parent)
            started.set()
            if len(calls) == 1:
                await asyncio.sleep(10)
            return True

        ctx = EvaluationContext()
        task = asyncio.ensure_future(run(slow, ctx=ctx))
        await started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert (await run(slow, ctx=ctx)).allowed is True
        assert len(calls) == 2
        assert ctx.waiters == {}
