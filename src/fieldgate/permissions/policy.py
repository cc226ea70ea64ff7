"""Policy table: Role → effective rule map, plus the default map.

Provides:
- ``PolicyTable`` — immutable, validated lookup structure shared by all requests.
- ``build_policy_table()`` — compose each role's explicit component list.

The hierarchy between tiers is a DAG, so each role lists every map it is
composed from. Nothing is inferred from the order of :class:`Role`.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Iterator, Mapping, Sequence

from ..exceptions import ConfigurationError
from ..roles import Role
from ..rules.base import CacheMode, Rule
from .inheritance import compose
from .rulemap import RuleMap

logger = logging.getLogger(__name__)


def _walk(rule: Rule) -> Iterator[Rule]:
    yield rule
    for child in rule.children:
        yield from _walk(child)


class PolicyTable:
    """Finalized authorization table used by the gate.

    Anonymous principals only ever see :attr:`default`. Authenticated
    principals see their role's map, then :attr:`default` for fields the
    role map does not declare.

    Args:
        default: Rule map for anonymous callers and the role fallthrough.
        roles: Effective (already composed) rule map per role.
    """

    __slots__ = ("_default", "_roles")

    def __init__(self, default: RuleMap, roles: Mapping[Role, RuleMap]) -> None:
        self._default = default if isinstance(default, RuleMap) else RuleMap(default)
        self._roles = MappingProxyType(
            {role: (rm if isinstance(rm, RuleMap) else RuleMap(rm)) for role, rm in roles.items()}
        )

    @property
    def default(self) -> RuleMap:
        return self._default

    @property
    def roles(self) -> Mapping[Role, RuleMap]:
        return self._roles

    def for_role(self, role: Role | None) -> RuleMap | None:
        """Effective map for ``role``; None when the role has no map."""
        if role is None:
            return None
        return self._roles.get(role)

    def __contains__(self, role: object) -> bool:
        return role in self._roles

    def all_rules(self) -> Iterator[Rule]:
        """Every rule reachable from the table, children included (may repeat)."""
        for rule_map in (self._default, *self._roles.values()):
            for _, _, rule in rule_map.entries():
                yield from _walk(rule)

    def validate(self, *, require_all_roles: bool = True) -> None:
        """Check the table is safe to serve.

        Raises:
            ConfigurationError: a key is not a Role, a role has no map, or
                two different cacheable rules share a name (their memoised
                results would collide within a request).
        """
        for role in self._roles:
            if not isinstance(role, Role):
                raise ConfigurationError(f"policy table key {role!r} is not a Role")

        if require_all_roles:
            missing = [role.name for role in Role if role not in self._roles]
            if missing:
                raise ConfigurationError(
                    f"policy table has no rule map for role(s): {', '.join(missing)}",
                    missing_roles=missing,
                )

        seen: dict[str, Rule] = {}
        for rule in self.all_rules():
            if rule.cache is CacheMode.NO_CACHE:
                continue
            known = seen.setdefault(rule.name, rule)
            if known is not rule:
                raise ConfigurationError(
                    f"two different rules are named '{rule.name}'; rule names must be unique",
                    rule=rule.name,
                )

    def describe(self) -> dict[str, dict[str, dict[str, str]]]:
        """Rule names per role, type and field (``"default"`` for the default map)."""
        described = {"default": self._default.describe()}
        for role, rule_map in sorted(self._roles.items()):
            described[role.name] = rule_map.describe()
        return described

    def __repr__(self) -> str:
        roles = ", ".join(role.name for role in sorted(self._roles))
        return f"PolicyTable(roles=[{roles}], default={self._default!r})"


def build_policy_table(
    default: RuleMap,
    tiers: Mapping[Role, Sequence[RuleMap]],
    *,
    require_all_roles: bool = True,
) -> PolicyTable:
    """Compose every role's component maps and validate the result.

    Args:
        default: Default rule map (anonymous callers, fallthrough).
        tiers: For each role, the ordered list of maps it is composed from,
            base first. ``{Role.PREMIUM: [FREE, PREMIUM]}``.
        require_all_roles: Require a map for every :class:`Role` member.

    Returns:
        Validated, immutable PolicyTable.

    Raises:
        ConfigurationError: a role lists no maps, or validation fails.
    """
    roles: dict[Role, RuleMap] = {}
    for role, components in tiers.items():
        if isinstance(components, (RuleMap, str)) or not components:
            raise ConfigurationError(
                f"role {role!r} must list the rule maps it is composed from",
                role=str(role),
            )
        roles[role] = compose(*components)

    table = PolicyTable(default, roles)
    table.validate(require_all_roles=require_all_roles)

    logger.info(
        "Policy table built: roles=%s default_fields=%d",
        ",".join(role.name for role in sorted(roles)),
        sum(1 for _ in table.default.entries()),
    )
    return table


__all__ = [
    "PolicyTable",
    "build_policy_table",
]
