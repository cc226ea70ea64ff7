"""Rule Map: ``{type name: {field name: Rule}}`` for one access tier.

Rule maps are immutable. A field that is not in a map is *absent*, which
is different from mapping it to ``allow``: absent fields fall through to
the default map and then to the gate's fallback rule.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Iterator, Mapping

from ..exceptions import ConfigurationError
from ..rules.base import Rule


class RuleMap(Mapping[str, Mapping[str, Rule]]):
    """Immutable per-type, per-field rule table.

    Args:
        types: Mapping of type name to a mapping of field name to Rule.

    Raises:
        ConfigurationError: a name is empty or a value is not a Rule
            (``None`` included — absence must be expressed by omission).

    Example::

        FREE = RuleMap({
            "User": {"_id": allow, "name": allow},
            "Mutation": {"editUser": is_caller(Reference.ARG)},
        })
    """

    __slots__ = ("_types",)

    def __init__(self, types: Mapping[str, Mapping[str, Rule]] | None = None) -> None:
        frozen: dict[str, Mapping[str, Rule]] = {}
        for type_name, fields in (types or {}).items():
            if not isinstance(type_name, str) or not type_name:
                raise ConfigurationError(f"invalid type name in rule map: {type_name!r}")
            if not isinstance(fields, Mapping):
                raise ConfigurationError(
                    f"rule map entry for '{type_name}' must be a mapping of fields, got {type(fields).__name__}"
                )
            checked: dict[str, Rule] = {}
            for field_name, value in fields.items():
                if not isinstance(field_name, str) or not field_name:
                    raise ConfigurationError(f"invalid field name in rule map: {type_name}.{field_name!r}")
                if not isinstance(value, Rule):
                    raise ConfigurationError(
                        f"{type_name}.{field_name} maps to {value!r}, expected a Rule",
                        type_name=type_name,
                        field_name=field_name,
                    )
                checked[field_name] = value
            frozen[type_name] = MappingProxyType(checked)
        self._types = MappingProxyType(frozen)

    def __getitem__(self, type_name: str) -> Mapping[str, Rule]:
        return self._types[type_name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._types)

    def __len__(self) -> int:
        return len(self._types)

    def get_rule(self, type_name: str, field_name: str) -> Rule | None:
        """Rule for ``type_name.field_name``, or None when absent."""
        fields = self._types.get(type_name)
        if fields is None:
            return None
        return fields.get(field_name)

    def entries(self) -> Iterator[tuple[str, str, Rule]]:
        """Iterate ``(type name, field name, rule)`` triples."""
        for type_name, fields in self._types.items():
            for field_name, rule in fields.items():
                yield type_name, field_name, rule

    def describe(self) -> dict[str, dict[str, str]]:
        """Rule names per field, for diagnostics."""
        return {
            type_name: {field_name: rule.name for field_name, rule in fields.items()}
            for type_name, fields in self._types.items()
        }

    def __repr__(self) -> str:
        count = sum(len(fields) for fields in self._types.values())
        return f"RuleMap(types={len(self._types)}, fields={count})"


def rule_map(types: Mapping[str, Mapping[str, Rule]] | None = None, /, **by_type: Mapping[str, Rule]) -> RuleMap:
    """Build a RuleMap from a mapping and/or keyword arguments.

    Example::

        PREMIUM = rule_map(Mutation={"subscribe": allow, "createEvent": allow})
    """
    merged: dict[str, Any] = dict(types or {})
    merged.update(by_type)
    return RuleMap(merged)


EMPTY_RULE_MAP = RuleMap()


__all__ = [
    "EMPTY_RULE_MAP",
    "RuleMap",
    "rule_map",
]
