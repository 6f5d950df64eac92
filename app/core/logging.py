import contextvars
import json
import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict

from app.settings import get_settings

ROOT_LOGGER_NAME = "auditstream"

correlation_id_context: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    'correlation_id',
    default=None
)

request_metadata_context: contextvars.ContextVar[Dict[str, Any] | None] = contextvars.ContextVar(
    'request_metadata',
    default=None
)


class CorrelationFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        correlation_id = correlation_id_context.get()
        if correlation_id:
            record.correlation_id = correlation_id

        metadata = request_metadata_context.get()
        if metadata:
            record.request_method = metadata.get("method")
            record.request_path = metadata.get("path")
            if metadata.get("client"):
                record.client_host = metadata["client"].get("host")

        return True


class JSONFormatter(logging.Formatter):
    def _sanitize_sensitive_data(self, data: str) -> str:
        """Remove or mask sensitive information from log data."""
        patterns = [
            # Passwords and secrets in key/value form
            (r'(["\']?(?:password|passwd|pwd|secret)["\']?\s*[:=]\s*["\']?)([^"\',\s}]+)(["\']?)',
             r'\1***REDACTED***\3'),
            # Bearer tokens
            (r'(Bearer\s+)([A-Za-z0-9\-_.]+)', r'\1***BEARER_TOKEN_REDACTED***'),
            # JWT tokens
            (r'(eyJ[A-Za-z0-9\-_]+\.eyJ[A-Za-z0-9\-_]+\.[A-Za-z0-9\-_]+)', r'***JWT_REDACTED***'),
            # Database URLs with credentials
            (r'((?:mysql|postgresql|sqlite)(?:\+\w+)?://[^:/]+:)([^@]+)(@)', r'\1***DB_CREDS_REDACTED***\3'),
        ]

        for pattern, replacement in patterns:
            data = re.sub(pattern, replacement, data, flags=re.IGNORECASE)

        return data

    def format(self, record: logging.LogRecord) -> str:
        message = self._sanitize_sensitive_data(record.getMessage())

        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": message,
        }

        if hasattr(record, 'correlation_id'):
            log_data['correlation_id'] = record.correlation_id

        if hasattr(record, 'request_method'):
            log_data['request_method'] = record.request_method

        if hasattr(record, 'request_path'):
            log_data['request_path'] = record.request_path

        if hasattr(record, 'client_host'):
            log_data['client_host'] = record.client_host

        if record.exc_info:
            exc_text = self.formatException(record.exc_info)
            log_data['exc_info'] = self._sanitize_sensitive_data(exc_text)

        if hasattr(record, 'stack_info') and record.stack_info:
            stack_text = self.formatStack(record.stack_info)
            log_data['stack_info'] = self._sanitize_sensitive_data(stack_text)

        return json.dumps(log_data, ensure_ascii=False)


def setup_logger(log_level: str | None = None, log_file: str | None = None) -> logging.Logger:
    """Configure the project logger: JSON lines on stderr and, optionally, in a file.

    Child loggers (``auditstream.consumer``, ``auditstream.database``, ``auditstream.kafka``)
    inherit these handlers.
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.handlers.clear()

    settings = get_settings()
    formatter = JSONFormatter()
    correlation_filter = CorrelationFilter()

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    log_file = log_file or settings.LOG_FILE
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(correlation_filter)
        logger.addHandler(handler)

    log_level_name = (log_level or settings.LOG_LEVEL).upper()
    logger.setLevel(getattr(logging, log_level_name, logging.INFO))

    return logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


logger = setup_logger()
