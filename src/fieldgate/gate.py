"""Field gate — resolves and runs the rule for every field access.

Provides:
- ``GateResult`` — decision for one field (allowed/blocked plus diagnostics).
- ``ResolvedRule`` / ``RuleSource`` — which rule applies and where it came from.
- ``FieldCheck`` — one (type, field, parent, args) request for batch evaluation.
- ``FieldGate`` — the evaluator the transport layer calls per field.

Resolution order for a check:
    anonymous      → default map → fallback
    known role     → role map → default map → fallback
    unknown role   → deny

The fallback is ``deny`` unless configured otherwise. Rule failures are
logged and turned into denials; callers only ever see the uniform
``fallback_error`` message unless ``debug`` is on.
"""

from __future__ import annotations

import asyncio
import functools
import inspect
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Iterable, Mapping, NamedTuple, Optional

from .config import FallbackRule, GateConfig
from .context import ANONYMOUS, EvaluationContext, FieldInfo, Principal
from .exceptions import AuthorizationDenied, ConfigurationError
from .interfaces import EntityStore
from .logging import get_gate_logger, safe_log_value
from .permissions.policy import PolicyTable
from .rules.base import Outcome, Rule, RuleResult, allow, deny

logger = logging.getLogger(__name__)


# ── Results ──────────────────────────────────────────────────────


class RuleSource(str, Enum):
    """Where the rule for a check was found."""

    ROLE = "role"
    DEFAULT = "default"
    FALLBACK = "fallback"
    UNKNOWN_ROLE = "unknown_role"


class ResolvedRule(NamedTuple):
    rule: Rule
    source: RuleSource


class FieldCheck(NamedTuple):
    """One field access to authorize."""

    type_name: str
    field_name: str
    parent: Any = None
    args: Optional[Mapping[str, Any]] = None


@dataclass
class GateResult:
    """Decision for one field access.

    ``message`` is what may be shown to the caller. ``reason`` and
    ``error`` are internal diagnostics.
    """

    allowed: bool = False
    type_name: str = ""
    field_name: str = ""
    outcome: Outcome = Outcome.DENY
    rule: str = ""
    source: RuleSource = RuleSource.FALLBACK
    message: str = ""
    reason: str = ""
    error: Optional[BaseException] = field(default=None, repr=False)
    processing_ms: float = 0.0

    @property
    def blocked(self) -> bool:
        return not self.allowed

    @property
    def failed(self) -> bool:
        return self.outcome is Outcome.ERROR


# ── Gate ─────────────────────────────────────────────────────────


class FieldGate:
    """Authorization evaluator for a graph API.

    Args:
        policy: Validated policy table, built once at startup.
        config: Gate configuration (defaults: deny fallback, debug off).
        require_all_roles: Refuse a table that lacks a map for any Role.

    Raises:
        ConfigurationError: the policy table is malformed. The gate never
            serves traffic with a broken table.

    Usage::

        gate = FieldGate(build_default_policy_table(), load_gate_config_from_env())

        ctx = gate.new_context(Principal.from_session(session.get("user")), store=store)
        result = await gate.evaluate("Mutation", "editEvent", None, args, ctx)
        if result.blocked:
            return error(result.message)
    """

    def __init__(
        self,
        policy: PolicyTable,
        config: GateConfig | None = None,
        *,
        require_all_roles: bool = True,
    ) -> None:
        if not isinstance(policy, PolicyTable):
            raise ConfigurationError(f"FieldGate needs a PolicyTable, got {type(policy).__name__}")
        policy.validate(require_all_roles=require_all_roles)

        self._policy = policy
        self._config = config or GateConfig()
        self._log = get_gate_logger(__name__)

        if self._config.fallback_rule == FallbackRule.ALLOW:
            logger.warning("FieldGate fallback rule is 'allow': unmapped fields are readable by everyone")
            self._fallback: Rule = allow
        else:
            self._fallback = deny

    @property
    def policy(self) -> PolicyTable:
        return self._policy

    @property
    def config(self) -> GateConfig:
        return self._config

    def new_context(
        self,
        principal: Principal = ANONYMOUS,
        store: EntityStore | None = None,
        *,
        request_id: str | None = None,
        **extras: Any,
    ) -> EvaluationContext:
        """Create the per-request context (one per request, never shared)."""
        kwargs: dict[str, Any] = {}
        if request_id:
            kwargs["request_id"] = request_id
        return EvaluationContext(
            principal=principal,
            store=store,
            extras=extras,
            cache_enabled=self._config.cache_enabled,
            **kwargs,
        )

    def resolve(self, principal: Principal, type_name: str, field_name: str) -> ResolvedRule:
        """Find the rule governing ``type_name.field_name`` for ``principal``."""
        if not principal.is_anonymous:
            role_map = self._policy.for_role(principal.tier)
            if role_map is None:
                return ResolvedRule(deny, RuleSource.UNKNOWN_ROLE)
            found = role_map.get_rule(type_name, field_name)
            if found is not None:
                return ResolvedRule(found, RuleSource.ROLE)

        found = self._policy.default.get_rule(type_name, field_name)
        if found is not None:
            return ResolvedRule(found, RuleSource.DEFAULT)

        return ResolvedRule(self._fallback, RuleSource.FALLBACK)

    async def evaluate(
        self,
        type_name: str,
        field_name: str,
        parent: Any,
        args: Mapping[str, Any] | None,
        context: EvaluationContext,
    ) -> GateResult:
        """Decide one field access. Never raises for rule failures."""
        start = time.monotonic()
        info = FieldInfo(type_name, field_name)
        resolved = self.resolve(context.principal, type_name, field_name)

        if resolved.source is RuleSource.UNKNOWN_ROLE:
            self._log.warning(
                "Unknown role %r for %s; denying",
                context.principal.role,
                info,
                context=context,
            )
        elif resolved.source is RuleSource.FALLBACK:
            self._log.debug("No rule for %s; fallback '%s'", info, resolved.rule.name, context=context)

        try:
            outcome = await resolved.rule.evaluate(parent, args or {}, context, info)
        except Exception as e:
            # Custom Rule subclasses may override evaluate() and raise
            outcome = RuleResult.failure(f"{type(e).__name__}: {e}", error=e, rule=resolved.rule.name)

        result = self._build_result(info, resolved, outcome)
        result.processing_ms = (time.monotonic() - start) * 1000
        self._report(result, args, context)
        return result

    async def authorize(
        self,
        type_name: str,
        field_name: str,
        parent: Any,
        args: Mapping[str, Any] | None,
        context: EvaluationContext,
    ) -> GateResult:
        """Like :meth:`evaluate`, but raise on denial.

        Raises:
            AuthorizationDenied: with the public message only.
        """
        result = await self.evaluate(type_name, field_name, parent, args, context)
        if result.blocked:
            raise AuthorizationDenied(result.message, type_name=type_name, field_name=field_name)
        return result

    async def evaluate_many(
        self,
        checks: Iterable[FieldCheck],
        context: EvaluationContext,
    ) -> list[GateResult]:
        """Evaluate sibling fields concurrently; results follow input order."""
        tasks = [
            asyncio.ensure_future(self.evaluate(c.type_name, c.field_name, c.parent, c.args, context))
            for c in checks
        ]
        if not tasks:
            return []
        return list(await asyncio.gather(*tasks))

    def protect(
        self,
        type_name: str,
        field_name: str,
    ) -> Callable[[Callable[..., Any]], Callable[..., Awaitable[Any]]]:
        """Decorator gating a resolver ``(parent, args, context, ...)``.

        The resolver runs only after the field is authorized; on denial
        :class:`AuthorizationDenied` is raised and the resolver is never
        called.

        Usage::

            @gate.protect("Mutation", "editEvent")
            async def edit_event(parent, args, ctx):
                ...
        """

        def decorator(resolver: Callable[..., Any]) -> Callable[..., Awaitable[Any]]:
            @functools.wraps(resolver)
            async def wrapper(
                parent: Any,
                args: Mapping[str, Any],
                context: EvaluationContext,
                *rest: Any,
                **kwargs: Any,
            ) -> Any:
                if not isinstance(context, EvaluationContext):
                    raise ConfigurationError(
                        f"{type_name}.{field_name}: resolver context must be an EvaluationContext"
                    )
                await self.authorize(type_name, field_name, parent, args, context)
                value = resolver(parent, args, context, *rest, **kwargs)
                if inspect.isawaitable(value):
                    value = await value
                return value

            return wrapper

        return decorator

    def protect_all(
        self,
        resolvers: Mapping[str, Mapping[str, Callable[..., Any]]],
    ) -> dict[str, dict[str, Callable[..., Awaitable[Any]]]]:
        """Wrap a ``{type: {field: resolver}}`` map with :meth:`protect`."""
        return {
            type_name: {
                field_name: self.protect(type_name, field_name)(resolver)
                for field_name, resolver in fields.items()
            }
            for type_name, fields in resolvers.items()
        }

    # ── Internals ────────────────────────────────────────────────

    def _build_result(self, info: FieldInfo, resolved: ResolvedRule, outcome: RuleResult) -> GateResult:
        allowed = outcome.allowed
        if resolved.source is RuleSource.UNKNOWN_ROLE:
            reason = "unknown role"
        elif outcome.reason:
            reason = outcome.reason
        elif not allowed:
            reason = f"denied by {outcome.rule or resolved.rule.name}"
        else:
            reason = ""

        if allowed:
            message = ""
        elif self._config.debug:
            message = f"{self._config.fallback_error} ({info}: {reason})"
        else:
            message = self._config.fallback_error

        return GateResult(
            allowed=allowed,
            type_name=info.type_name,
            field_name=info.field_name,
            outcome=outcome.outcome,
            rule=resolved.rule.name,
            source=resolved.source,
            message=message,
            reason=reason,
            error=outcome.error,
        )

    def _report(
        self,
        result: GateResult,
        args: Mapping[str, Any] | None,
        context: EvaluationContext,
    ) -> None:
        if result.failed:
            self._log.warning(
                "Rule '%s' failed on %s.%s: %s (args=%s)",
                result.rule,
                result.type_name,
                result.field_name,
                result.reason,
                safe_log_value(args),
                context=context,
                exc_info=result.error,
            )
        elif result.blocked:
            self._log.debug(
                "Denied %s.%s by '%s' (%s)",
                result.type_name,
                result.field_name,
                result.rule,
                result.source.value,
                context=context,
            )


__all__ = [
    "FieldCheck",
    "FieldGate",
    "GateResult",
    "ResolvedRule",
    "RuleSource",
]
