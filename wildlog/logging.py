"""Structured logging for wildlog.

Every entry carries the ``request_id`` of the HTTP request being served and
is scrubbed of credentials before rendering: passwords are dropped, session
tokens and cookies are cut to a short prefix and email addresses keep only
their first character and domain.
"""

from __future__ import annotations

import logging
import os
import uuid
from typing import Any, Dict, Optional

import structlog

_TRUTHY = {"1", "true", "yes", "on"}
_DROP_KEYS = ("password", "secret")
_TOKEN_KEYS = ("token", "session", "cookie")
_EMAIL_KEYS = ("email",)
REDACTED = "[redacted]"


def redact_token(token: Optional[str]) -> Optional[str]:
    """Shorten a session token to a prefix that is safe to log."""
    if not token:
        return token
    return token[:8] + "..."


def mask_email(email: Optional[str]) -> Optional[str]:
    if not email or "@" not in email:
        return email
    local, _, domain = email.partition("@")
    return f"{local[:1]}***@{domain}"


def _scrub_credentials(
    logger: Any, method_name: str, event_dict: Dict[str, Any]
) -> Dict[str, Any]:
    for key in list(event_dict):
        lowered = key.lower()
        value = event_dict[key]
        if any(part in lowered for part in _DROP_KEYS):
            event_dict[key] = REDACTED
        elif not isinstance(value, str):
            continue
        elif any(part in lowered for part in _TOKEN_KEYS):
            # already-shortened tokens pass through unchanged
            if not value.endswith("..."):
                event_dict[key] = redact_token(value)
        elif any(part in lowered for part in _EMAIL_KEYS):
            event_dict[key] = mask_email(value)
    return event_dict


def bind_request_id(request_id: Optional[str] = None) -> str:
    """Start a fresh logging context for one request and return its id."""
    rid = request_id or uuid.uuid4().hex
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=rid)
    return rid


def configure_logging(
    level: Optional[str] = None, json_output: Optional[bool] = None
) -> None:
    """Configure structlog from arguments, falling back to ``LOG_LEVEL`` and ``LOG_JSON``."""
    level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    if json_output is None:
        json_output = os.getenv("LOG_JSON", "true").lower() in _TRUTHY
        if os.getenv("LOG_DEV_MODE", "false").lower() in _TRUTHY:
            json_output = False

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        _scrub_credentials,
    ]
    if json_output:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level, logging.INFO)
        ),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging()


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
