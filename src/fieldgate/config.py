"""Gate configuration for fieldgate.

Pydantic-validated settings controlling how the gate reports and falls
back. Direct os.environ/os.getenv usage is limited to
:func:`load_gate_config_from_env`; everything else receives a
:class:`GateConfig` instance.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, field_validator


class LogLevel(str, Enum):
    """Standard log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class FallbackRule(str, Enum):
    """Rule applied when no role or default rule covers a field.

    ``deny`` is the only safe production value. ``allow`` exists for
    migrating an API that is not fully mapped yet and is logged loudly.
    """

    DENY = "deny"
    ALLOW = "allow"


class GateConfig(BaseModel):
    """Configuration for :class:`~fieldgate.gate.FieldGate`.

    Environment variables (see :func:`load_gate_config_from_env`):
        FIELDGATE_DEBUG          — expose denial reasons to callers
        FIELDGATE_FALLBACK_RULE  — deny | allow (default: deny)
        FIELDGATE_FALLBACK_ERROR — public message for denials
        FIELDGATE_CACHE_ENABLED  — per-request rule memoisation
        LOG_LEVEL                — logging level
        LOG_JSON                 — JSON log format
    """

    debug: bool = Field(
        default=False,
        description="Expose internal denial reasons in results and errors",
    )
    fallback_rule: FallbackRule = Field(
        default=FallbackRule.DENY,
        description="Rule for fields absent from both the role and the default map",
    )
    fallback_error: str = Field(
        default="Not Authorised!",
        description="Uniform public message for every denial",
    )
    cache_enabled: bool = Field(
        default=True,
        description="Memoise rule results for the lifetime of one request",
    )

    # Logging
    log_level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Logging level",
    )
    log_json: bool = Field(
        default=False,
        description="Use JSON log format (default: plain text)",
    )

    @field_validator("fallback_rule", mode="before")
    @classmethod
    def validate_fallback_rule(cls, v: str | FallbackRule) -> FallbackRule:
        """Accept the rule name in any case."""
        if isinstance(v, FallbackRule):
            return v
        if isinstance(v, str):
            try:
                return FallbackRule(v.strip().lower())
            except ValueError:
                raise ValueError(f"Invalid fallback rule: {v}. Must be one of {[e.value for e in FallbackRule]}")
        raise ValueError(f"Fallback rule must be string or FallbackRule enum, got {type(v)}")

    @field_validator("fallback_error")
    @classmethod
    def validate_fallback_error(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("fallback_error must not be empty")
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: str | LogLevel) -> LogLevel:
        """Convert string to LogLevel enum."""
        if isinstance(v, LogLevel):
            return v
        if isinstance(v, str):
            try:
                return LogLevel[v.upper()]
            except KeyError:
                raise ValueError(f"Invalid log level: {v}. Must be one of {[e.value for e in LogLevel]}")
        raise ValueError(f"Log level must be string or LogLevel enum, got {type(v)}")

    model_config = {
        "use_enum_values": True,
        "extra": "forbid",
        "frozen": True,
    }


def load_gate_config_from_env() -> GateConfig:
    """Load gate configuration from environment variables.

    This is the ONLY place where os.getenv is allowed for gate settings.

    Returns:
        GateConfig instance with values from environment or defaults.
    """
    import os

    truthy = ("true", "1", "yes", "on")

    return GateConfig(
        debug=os.getenv("FIELDGATE_DEBUG", "false").lower() in truthy,
        fallback_rule=os.getenv("FIELDGATE_FALLBACK_RULE", "deny"),
        fallback_error=os.getenv("FIELDGATE_FALLBACK_ERROR", "Not Authorised!"),
        cache_enabled=os.getenv("FIELDGATE_CACHE_ENABLED", "true").lower() in truthy,
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_json=os.getenv("LOG_JSON", "false").lower() in truthy,
    )


__all__ = [
    "FallbackRule",
    "GateConfig",
    "LogLevel",
    "load_gate_config_from_env",
]
