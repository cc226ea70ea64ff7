"""Authorization rules and their combinators.

Defines:
- Rule / RuleResult / Outcome / CacheMode: the evaluation contract
- rule(): decorator turning a predicate into a Rule
- allow / deny: constant rules
- and_ / or_ / not_: short-circuiting combinators
- Reference / Relation / EntityRef: entity selection for domain rules
"""

from .base import (
    ALLOWED,
    DENIED,
    CacheMode,
    ConstantRule,
    Outcome,
    PredicateRule,
    Rule,
    RuleResult,
    allow,
    deny,
    rule,
)
from .logic import LogicRule, RuleAnd, RuleNot, RuleOr, and_, not_, or_
from .reference import EntityRef, Reference, Relation, resolve_reference

__all__ = [
    "ALLOWED",
    "DENIED",
    "CacheMode",
    "ConstantRule",
    "EntityRef",
    "LogicRule",
    "Outcome",
    "PredicateRule",
    "Reference",
    "Relation",
    "Rule",
    "RuleAnd",
    "RuleNot",
    "RuleOr",
    "RuleResult",
    "allow",
    "and_",
    "deny",
    "not_",
    "or_",
    "resolve_reference",
    "rule",
]
