"""
Secure logging utilities for privacy-compliant logging.

Provides:
- Automatic correlation id injection from request context
- User id hashing
- Redaction of credentials in log fields and messages
- Structured JSON formatting
"""

import hashlib
import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Pattern, Set

from pythonjsonlogger import jsonlogger

from . import tracing

# Patterns for secret detection and redaction
SECRET_PATTERNS: List[Pattern] = [
    re.compile(r'(?i)(api[_-]?key|apikey|x-api-key)["\s:=]+([a-zA-Z0-9_\-]{16,})'),
    re.compile(r'(?i)(bearer)\s+([a-zA-Z0-9_\-\.]{20,})'),
    re.compile(r'(?i)(password|passwd|pwd)["\s:=]+([^\s"\']{4,})'),
]

# Fields that should be completely redacted
SENSITIVE_FIELDS: Set[str] = {
    "password",
    "secret",
    "api_key",
    "apikey",
    "authorization",
    "token",
    "bearer",
    "credential",
    "credentials",
    "reasoning_api_key",
}

# Fields holding user identity; hashed rather than redacted
USER_FIELDS: Set[str] = {"user_id", "userid"}

_UNREDACTED_FIELDS = {"timestamp", "level", "logger", "correlation_id"}


def hash_user_id(user_id: str) -> str:
    """
    Hash user ID for logging privacy.

    Returns:
        First 16 characters of SHA-256 hash
    """
    return hashlib.sha256(user_id.encode()).hexdigest()[:16]


def redact_string(text: str) -> str:
    """Redact embedded credentials from a string."""
    if not isinstance(text, str):
        return text

    result = text
    for pattern in SECRET_PATTERNS:
        result = pattern.sub(lambda m: f"{m.group(1)}=[REDACTED]", result)
    return result


def redact_value(value: Any, field_name: str = "") -> Any:
    """
    Redact sensitive values based on field name or content.

    Args:
        value: Value to potentially redact
        field_name: Name of the field (used for field-based redaction)

    Returns:
        Redacted value or original if not sensitive
    """
    if value is None:
        return None

    field_lower = field_name.lower().replace("-", "_")

    if field_lower in SENSITIVE_FIELDS:
        return "[REDACTED]"

    if field_lower in USER_FIELDS and isinstance(value, str):
        return hash_user_id(value)

    if isinstance(value, str):
        return redact_string(value)

    if isinstance(value, dict):
        return {k: redact_value(v, k) for k, v in value.items()}

    if isinstance(value, list):
        return [redact_value(item) for item in value]

    return value


class CorrelationIDFormatter(jsonlogger.JsonFormatter):
    """
    JSON formatter that injects the correlation id and redacts secrets.
    """

    def __init__(self, *args, redact_pii: bool = True, **kwargs):
        """
        Initialize the formatter.

        Args:
            redact_pii: Whether to hash user ids and redact secrets
        """
        super().__init__(*args, **kwargs)
        self.redact_pii = redact_pii

    def add_fields(self, log_record: Dict, record: logging.LogRecord, message_dict: Dict) -> None:
        """Add correlation ids and apply redaction to log fields."""
        super().add_fields(log_record, record, message_dict)

        correlation_id = tracing.get_correlation_id()
        if correlation_id:
            log_record.setdefault("correlation_id", correlation_id)

        user_id = tracing.get_user_id()
        if user_id and "user_id" not in log_record:
            log_record["user_id"] = user_id

        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()

        if self.redact_pii:
            for key, value in list(log_record.items()):
                if key not in _UNREDACTED_FIELDS:
                    log_record[key] = redact_value(value, key)

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record with redaction on the message."""
        if self.redact_pii and isinstance(record.msg, str):
            record.msg = redact_string(record.msg)
        return super().format(record)
