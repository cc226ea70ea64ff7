"""Unified exception hierarchy for fieldgate.

All errors inherit from FieldGateError and carry a stable error code.

Only ConfigurationError is fatal. RuleEvaluationError is always recovered
into a denial by the gate; AuthorizationDenied is the expected "no".

Usage:
    from fieldgate.exceptions import AuthorizationDenied

    try:
        await gate.authorize("Mutation", "editEvent", None, args, ctx)
    except AuthorizationDenied as e:
        return {"errors": [{"message": e.message, "code": e.code}]}
"""

from __future__ import annotations

from typing import Any

__all__ = [
    # Base hierarchy
    "FieldGateError",
    "ConfigurationError",
    "RuleEvaluationError",
    "ReferenceResolutionError",
    "AuthorizationDenied",
]


# ---- Exception Hierarchy ----------------------------------------------------


class FieldGateError(Exception):
    """Base exception for fieldgate.

    Attributes:
        code: Stable error code string (e.g. "PERMISSION_DENIED").
        message: Human-readable error description.
        details: Additional context as keyword arguments.
    """

    code: str = "INTERNAL_ERROR"
    message: str = "An internal error occurred"

    def __init__(self, message: str | None = None, code: str | None = None, **kwargs: Any) -> None:
        self.message = message or self.message
        self.code = code or self.code
        self.details = kwargs
        super().__init__(self.message)


class ConfigurationError(FieldGateError):
    """Malformed rule map, policy table or gate configuration."""

    code: str = "CONFIGURATION_ERROR"


class RuleEvaluationError(FieldGateError):
    """A rule's own logic failed (e.g. its lookup was unavailable).

    Never escapes the gate: it is attached to an ERROR result and
    treated as a denial.
    """

    code: str = "RULE_EVALUATION_ERROR"
    message: str = "Rule evaluation failed"


class ReferenceResolutionError(RuleEvaluationError):
    """The selected parent or argument carries no entity reference."""

    code: str = "REFERENCE_ERROR"
    message: str = "Entity reference could not be resolved"


class AuthorizationDenied(FieldGateError):
    """Access to a field was refused.

    The message is opaque by default so callers cannot tell an explicit
    denial from a recovered rule failure.
    """

    code: str = "PERMISSION_DENIED"
    message: str = "Not Authorised!"

