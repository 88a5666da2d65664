"""Observability helpers: structlog configuration and correlation scopes."""

from context_packer.observability.logging import (
    configure_logging,
    correlation_scope,
    get_correlation_context,
    parse_log_level,
    redact_event,
    redact_text,
)

__all__ = [
    "configure_logging",
    "correlation_scope",
    "get_correlation_context",
    "parse_log_level",
    "redact_event",
    "redact_text",
]
