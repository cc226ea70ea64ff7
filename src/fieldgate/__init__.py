from .config import FallbackRule, GateConfig, LogLevel, load_gate_config_from_env
from .context import ANONYMOUS, EvaluationContext, FieldInfo, Principal
from .exceptions import (
    AuthorizationDenied,
    ConfigurationError,
    FieldGateError,
    ReferenceResolutionError,
    RuleEvaluationError,
)
from .gate import FieldCheck, FieldGate, GateResult, ResolvedRule, RuleSource
from .interfaces import EntityStore
from .logging import (
    GateLogFormatter,
    GateLoggerAdapter,
    get_gate_logger,
    redact_secrets,
    safe_log_value,
    safe_preview,
    setup_logging,
)
from .permissions import (
    PolicyTable,
    RuleMap,
    TIER_HIERARCHY,
    build_default_policy_table,
    build_policy_table,
    compose,
    rule_map,
)
from .roles import Role
from .rules import (
    CacheMode,
    EntityRef,
    Outcome,
    Reference,
    Relation,
    Rule,
    RuleResult,
    allow,
    and_,
    deny,
    not_,
    or_,
    rule,
)

__all__ = [
    # Config
    'FallbackRule',
    'GateConfig',
    'LogLevel',
    'load_gate_config_from_env',
    # Context
    'ANONYMOUS',
    'EvaluationContext',
    'FieldInfo',
    'Principal',
    'Role',
    # Errors
    'AuthorizationDenied',
    'ConfigurationError',
    'FieldGateError',
    'ReferenceResolutionError',
    'RuleEvaluationError',
    # Rules
    'CacheMode',
    'EntityRef',
    'Outcome',
    'Reference',
    'Relation',
    'Rule',
    'RuleResult',
    'allow',
    'and_',
    'deny',
    'not_',
    'or_',
    'rule',
    # Permissions
    'PolicyTable',
    'RuleMap',
    'TIER_HIERARCHY',
    'build_default_policy_table',
    'build_policy_table',
    'compose',
    'rule_map',
    # Gate
    'EntityStore',
    'FieldCheck',
    'FieldGate',
    'GateResult',
    'ResolvedRule',
    'RuleSource',
    # Logging
    'safe_preview',
    'redact_secrets',
    'safe_log_value',
    'GateLogFormatter',
    'GateLoggerAdapter',
    'setup_logging',
    'get_gate_logger',
]
