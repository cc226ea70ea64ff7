"""Tier inheritance: composing rule maps.

A tier that extends others does not combine their rules with ``or``. It
overrides them field by field: for each ``(type, field)`` the last map
that declares it wins, and everything it does not declare is inherited
unchanged.
"""

from __future__ import annotations

from typing import Mapping

from ..rules.base import Rule
from .rulemap import RuleMap


def compose(*maps: RuleMap | Mapping[str, Mapping[str, Rule]]) -> RuleMap:
    """Merge rule maps left to right; later maps win per field.

    Type blocks merge field by field, so an extension declaring
    ``Event.messageBoard`` keeps every other inherited ``Event`` field.

    Args:
        maps: Base map first, extensions after it.

    Returns:
        A new RuleMap. ``compose()`` is the empty map.

    Example::

        >>> merged = compose(FREE, PREMIUM)
        >>> merged.get_rule("Mutation", "createEvent") is allow   # PREMIUM override
        True
        >>> merged.get_rule("Mutation", "editUser") is FREE.get_rule("Mutation", "editUser")
        True
    """
    merged: dict[str, dict[str, Rule]] = {}
    for rule_map in maps:
        if not isinstance(rule_map, RuleMap):
            rule_map = RuleMap(rule_map)
        for type_name, fields in rule_map.items():
            merged.setdefault(type_name, {}).update(fields)
    return RuleMap(merged)


__all__ = ["compose"]
