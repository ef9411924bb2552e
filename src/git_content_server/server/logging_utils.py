"""
Logging helpers for the content server.

Error-level log lines carry a registered error code as a "[CODE]" prefix
and in the record's extra fields, together with the correlation id of the
request being served:

    logger.error(
        format_error_log("CONTENT-GIT-001", "git add failed", path="docs/a.md"),
        extra=get_log_extra("CONTENT-GIT-001")
    )
"""

import logging
from typing import Any, Dict

from git_content_server.server.middleware.correlation import get_correlation_id

REDACTED = "***REDACTED***"

# Keys whose values are replaced before a payload is logged
SENSITIVE_FIELDS = {
    "authorization",
    "api_key",
    "access_token",
    "content",
    "password",
    "secret",
    "token",
}

MAX_LOGGED_VALUE_LENGTH = 200

LOG_FORMAT = "%(asctime)s %(levelname)s [%(correlation_id)s] %(name)s: %(message)s"


def format_error_log(error_code: str, message: str, **context: Any) -> str:
    """
    Build "[CODE] message key=value ..." for an error-coded log line.

    Examples:
        >>> format_error_log("CONTENT-GIT-001", "git add failed", path="docs/a.md")
        '[CONTENT-GIT-001] git add failed path=docs/a.md'
        >>> format_error_log("CONTENT-FS-002", "Failed to delete file")
        '[CONTENT-FS-002] Failed to delete file'
    """
    line = f"[{error_code}] {message}"
    if context:
        line += " " + " ".join(f"{key}={value}" for key, value in context.items())
    return line


def get_log_extra(error_code: str) -> Dict[str, Any]:
    """Return the ``extra`` mapping for an error-coded log call."""
    correlation_id = get_correlation_id()
    if correlation_id:
        return {"error_code": error_code, "correlation_id": correlation_id}
    return {"error_code": error_code}


def sanitize_for_logging(data: Any) -> Any:
    """
    Return a copy of data that is safe to log.

    Values under sensitive keys are redacted at any nesting depth; file
    content counts as sensitive, so request bodies are logged for their
    shape only. Long strings are shortened.

    Examples:
        >>> sanitize_for_logging({"files": ["a.md"], "content": "secret draft"})
        {'files': ['a.md'], 'content': '***REDACTED***'}
    """
    if isinstance(data, dict):
        return {
            key: REDACTED
            if str(key).lower() in SENSITIVE_FIELDS
            else sanitize_for_logging(value)
            for key, value in data.items()
        }
    if isinstance(data, (list, tuple)):
        return type(data)(sanitize_for_logging(item) for item in data)
    if isinstance(data, str) and len(data) > MAX_LOGGED_VALUE_LENGTH:
        return data[:MAX_LOGGED_VALUE_LENGTH] + "..."
    return data


class CorrelationIdFilter(logging.Filter):
    """Stamps every record with the current correlation id ("-" outside a request)."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "correlation_id", None):
            record.correlation_id = get_correlation_id() or "-"
        return True


def configure_logging(log_level: str) -> None:
    """Configure root logging for the server process."""
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(CorrelationIdFilter())

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(log_level.upper())
