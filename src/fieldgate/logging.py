"""Centralized logging utilities for fieldgate.

This module provides:
- Logging configuration from GateConfig
- Safe preview utilities for parent/argument payloads
- Secret redaction
- Structured logging with EvaluationContext integration
- Automatic request_id and principal_id propagation
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Optional

from .config import GateConfig, LogLevel
from .context import EvaluationContext


# Patterns for detecting secrets (common patterns to redact)
SECRET_PATTERNS = [
    r'(?i)(?:password|passwd|pwd|secret|token|key|api[_-]?key|auth[_-]?token)["\']?\s*[:=]\s*["\']?([^"\'\s,}]+)',
    r'(?i)(?:bearer|basic)\s+([a-zA-Z0-9+/=]+)',
    r'(?i)(?:sk-|pk-)[a-zA-Z0-9]{32,}',
    r'[a-f0-9]{64,}',  # Long hex strings (hashes, keys); ObjectIds (24 chars) stay readable
]

# LogRecord attributes that are not user-supplied extras
_RESERVED_ATTRS = frozenset({
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "message", "pathname", "process", "processName", "relativeCreated",
    "thread", "threadName", "exc_info", "exc_text", "stack_info",
    "taskName", "request_id", "principal_id",
})


def safe_preview(value: Any, limit: int = 240) -> str:
    """Create a safe, length-bounded, single-line preview of a value.

    Args:
        value: The value to preview (any type)
        limit: Maximum length of the preview (default: 240)

    Returns:
        A safe, truncated string representation
    """
    if value is None:
        return ""

    if isinstance(value, str):
        s = value
    elif isinstance(value, (dict, list, tuple)):
        try:
            s = json.dumps(value, default=str, ensure_ascii=False, sort_keys=True)
        except (TypeError, ValueError):
            s = str(value)
    else:
        s = str(value)

    # Normalize whitespace
    s = " ".join(s.split())

    if len(s) > limit:
        return s[: limit - 1] + "…"

    return s


def redact_secrets(text: str, replacement: str = "[REDACTED]") -> str:
    """Redact secret patterns (passwords, tokens, keys) from text.

    Mutation arguments such as ``createUser`` and ``login`` carry
    passwords, so argument previews must pass through here.
    """
    if not isinstance(text, str):
        return text

    result = text
    for pattern in SECRET_PATTERNS:
        result = re.sub(pattern, replacement, result, flags=re.IGNORECASE | re.DOTALL)

    return result


def safe_log_value(value: Any, limit: int = 240, redact: bool = True) -> str:
    """Preview plus optional redaction. Use for any payload that reaches a log."""
    preview = safe_preview(value, limit=limit)
    if redact:
        preview = redact_secrets(preview)
    return preview


class GateLogFormatter(logging.Formatter):
    """Formatter that includes request_id / principal_id, as JSON or plain text."""

    def __init__(
        self,
        include_request_id: bool = True,
        json_format: bool = True,
        redact_secrets: bool = True,
        *args: Any,
        **kwargs: Any,
    ):
        super().__init__(*args, **kwargs)
        self.include_request_id = include_request_id
        self.json_format = json_format
        self.redact_secrets = redact_secrets

    def format(self, record: logging.LogRecord) -> str:
        request_id = getattr(record, "request_id", None)
        principal_id = getattr(record, "principal_id", None)

        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if self.include_request_id:
            if request_id:
                log_data["request_id"] = str(request_id)
            if principal_id:
                log_data["principal_id"] = str(principal_id)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_data[key] = safe_log_value(value, redact=self.redact_secrets)

        if self.redact_secrets:
            log_data["message"] = redact_secrets(log_data["message"])

        if self.json_format:
            return json.dumps(log_data, default=str, ensure_ascii=False)

        parts = [
            f"[{log_data['timestamp']}]",
            f"{log_data['level']}",
            f"{log_data['logger']}",
        ]
        if request_id:
            parts.append(f"request_id={log_data.get('request_id', '')}")
        parts.append(f": {log_data['message']}")
        if "exception" in log_data:
            parts.append("\n" + log_data["exception"])
        return " ".join(parts)


class GateLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that adds request_id and principal_id to log records.

    Usage:
        logger = get_gate_logger(__name__)
        logger.warning("Rule failed", context=ctx)
    """

    def __init__(
        self,
        logger: logging.Logger,
        request_id: Optional[str] = None,
        principal_id: Optional[str] = None,
    ):
        super().__init__(logger, {})
        self.request_id = request_id
        self.principal_id = principal_id

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        request_id = kwargs.pop("request_id", self.request_id)
        principal_id = kwargs.pop("principal_id", self.principal_id)

        context = kwargs.pop("context", None)
        if isinstance(context, EvaluationContext):
            request_id = request_id or context.request_id
            principal_id = principal_id or context.principal.id

        extra = kwargs.get("extra", {})
        if request_id:
            extra["request_id"] = request_id
        if principal_id:
            extra["principal_id"] = principal_id
        kwargs["extra"] = extra

        return msg, kwargs


def setup_logging(
    config: Optional[GateConfig] = None,
    json_format: Optional[bool] = None,
    redact_secrets: bool = True,
) -> None:
    """Configure the root logger from a GateConfig.

    Args:
        config: GateConfig instance (if None, loads from environment)
        json_format: Override ``config.log_json``
        redact_secrets: Whether to redact secrets (default: True)
    """
    if config is None:
        from .config import load_gate_config_from_env
        config = load_gate_config_from_env()

    level_map = {
        LogLevel.DEBUG: logging.DEBUG,
        LogLevel.INFO: logging.INFO,
        LogLevel.WARNING: logging.WARNING,
        LogLevel.ERROR: logging.ERROR,
        LogLevel.CRITICAL: logging.CRITICAL,
    }
    log_level = level_map.get(config.log_level, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(
        GateLogFormatter(
            include_request_id=True,
            json_format=config.log_json if json_format is None else json_format,
            redact_secrets=redact_secrets,
        )
    )
    root_logger.addHandler(console_handler)


def get_gate_logger(
    name: str,
    request_id: Optional[str] = None,
    principal_id: Optional[str] = None,
) -> GateLoggerAdapter:
    """Get a logger adapter that carries request correlation fields.

    Example:
        logger = get_gate_logger(__name__)
        logger.info("Field denied", context=ctx)
    """
    logger = logging.getLogger(name)
    return GateLoggerAdapter(logger, request_id=request_id, principal_id=principal_id)


__all__ = [
    "safe_preview",
    "redact_secrets",
    "safe_log_value",
    "GateLogFormatter",
    "GateLoggerAdapter",
    "setup_logging",
    "get_gate_logger",
]
