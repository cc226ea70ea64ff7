"""Rule maps, tier inheritance and the policy table.

Defines:
- RuleMap / rule_map(): immutable {type: {field: Rule}} tables
- compose(): override merge of rule maps (later maps win per field)
- PolicyTable / build_policy_table(): Role → effective rule map + default map
- DEFAULTS, FREE, PREMIUM, MODERATOR, ADMINISTRATOR: the events API tiers
- TIER_HIERARCHY / build_default_policy_table(): how those tiers compose
"""

from .inheritance import compose
from .policy import PolicyTable, build_policy_table
from .rulemap import EMPTY_RULE_MAP, RuleMap, rule_map
from .tiers import (
    ADMINISTRATOR,
    DEFAULTS,
    FREE,
    MODERATOR,
    PREMIUM,
    TIER_HIERARCHY,
    build_default_policy_table,
)

__all__ = [
    "ADMINISTRATOR",
    "DEFAULTS",
    "EMPTY_RULE_MAP",
    "FREE",
    "MODERATOR",
    "PREMIUM",
    "PolicyTable",
    "RuleMap",
    "TIER_HIERARCHY",
    "build_default_policy_table",
    "build_policy_table",
    "compose",
    "rule_map",
]
