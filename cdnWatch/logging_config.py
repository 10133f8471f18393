"""
Centralized logging configuration for cdnWatch.

Provides structured JSONL logging with rotation, context injection,
and component-specific loggers. Enabled by default with environment
variable configuration.

Domain Propagation:
    Use `set_domain()` to bind the domain currently being inspected in an
    async context. Every log record emitted from that context (including the
    fan-out worker tasks, which copy the context when they are created)
    carries the domain automatically.

    Example:
        from cdnWatch.logging_config import set_domain, reset_domain

        token = set_domain("static.example.com")
        try:
            logger.info("Inspecting", extra={"action": "detect"})
            # Log will include: "domain": "static.example.com"
        finally:
            reset_domain(token)
"""
import contextvars
import logging
import logging.handlers
import json
import os
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional
import traceback


# Context variable for domain propagation across async boundaries
_domain_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "domain", default=""
)


def set_domain(domain: str) -> contextvars.Token:
    """
    Set the domain under inspection for this async context.

    Args:
        domain: The domain name being inspected

    Returns:
        Token that can be used to reset the context variable
    """
    return _domain_var.set(domain)


def get_domain() -> str:
    """Return the domain bound to this async context, or an empty string."""
    return _domain_var.get()


def reset_domain(token: contextvars.Token) -> None:
    """Reset the domain context variable to its previous state."""
    _domain_var.reset(token)


class JSONLFormatter(logging.Formatter):
    """
    Custom formatter that outputs logs in JSON Lines format.
    Each log entry is a single-line JSON object with standardized fields.
    Automatically includes the domain from contextvars if set.
    """

    # Extra attributes copied onto the JSON line when present on the record
    EXTRA_ATTRS = (
        "domain", "endpoint", "action", "outcome", "state", "duration",
        "ip_count", "cname_count", "cname_source", "answered", "failed",
        "hops", "is_cdn", "kind", "matched_signature", "error_type",
        "batch_size", "concurrency",
    )

    def __init__(self, component: str = "cdnwatch"):
        super().__init__()
        self.component = component
        self.hostname = os.getenv("HOSTNAME", os.getenv("COMPUTERNAME", "unknown"))

    def format(self, record: logging.LogRecord) -> str:
        """
        Format a log record as a JSON line.

        Args:
            record: The log record to format

        Returns:
            JSON string representation of the log record
        """
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "component": self.component,
            "logger": record.name,
            "message": record.getMessage(),
            "hostname": self.hostname,
            "process_id": record.process,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        domain = get_domain()
        if domain:
            log_data["domain"] = domain

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": traceback.format_exception(*record.exc_info)
            }

        # These can be set using logger.info("msg", extra={"key": "value"})
        for attr in self.EXTRA_ATTRS:
            if hasattr(record, attr):
                log_data[attr] = getattr(record, attr)

        return json.dumps(log_data, default=str)


class ContextAdapter(logging.LoggerAdapter):
    """
    Logger adapter that automatically injects context into log records.
    Useful for pinning a resolver endpoint or batch name to every log line.
    """

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        extra = kwargs.get("extra", {})
        extra.update(self.extra)
        kwargs["extra"] = extra
        return msg, kwargs


def setup_logging(
    component: str = "cdnwatch",
    log_level: Optional[str] = None,
    log_file: Optional[str] = None,
    max_bytes: Optional[int] = None,
    backup_count: int = 5,
    enable_console: bool = True
) -> logging.Logger:
    """
    Set up logging configuration for a cdnWatch component.

    Args:
        component: Component name (detector, fanout, chain, runner, etc.)
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file (default: logs/cdnwatch.jsonl)
        max_bytes: Max bytes per log file before rotation (default: 20MB)
        backup_count: Number of backup files to keep (default: 5)
        enable_console: Whether to enable console logging (default: True)

    Returns:
        Configured logger instance
    """
    log_level = (log_level or os.getenv("CDNWATCH_LOG_LEVEL", "WARNING")).upper()
    log_file = log_file or os.getenv("CDNWATCH_LOG_FILE", "logs/cdnwatch.jsonl")
    max_bytes = max_bytes or int(os.getenv("CDNWATCH_LOG_MAX_BYTES", str(20 * 1024 * 1024)))  # 20MB

    numeric_level = getattr(logging, log_level, logging.WARNING)

    logger = logging.getLogger(f"cdnwatch.{component}")
    logger.setLevel(numeric_level)
    logger.propagate = False  # Don't propagate to root logger

    # Remove existing handlers to avoid duplicates
    logger.handlers.clear()

    log_dir = os.path.dirname(log_file)
    if log_dir and not os.path.exists(log_dir):
        os.makedirs(log_dir, exist_ok=True)

    formatter = JSONLFormatter(component=component)

    try:
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8"
        )
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
    except (IOError, OSError) as e:
        # If we can't write to file, log to stderr
        sys.stderr.write(f"Failed to set up file logging to {log_file}: {e}\n")

    # Console goes to stderr so result lines on stdout stay clean
    if enable_console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(numeric_level)
        console_formatter = logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )
        console_handler.setFormatter(console_formatter)
        logger.addHandler(console_handler)

    logger.debug(
        "Logging configured",
        extra={
            "state": "configured",
            "action": "setup_logging",
        }
    )

    return logger


def get_logger(component: str, context: Optional[Dict[str, Any]] = None) -> logging.Logger:
    """
    Get or create a logger for a component with optional context.

    Args:
        component: Component name (detector, fanout, chain, runner, etc.)
        context: Optional context dictionary to inject into all logs

    Returns:
        Logger or ContextAdapter if context is provided
    """
    logger = logging.getLogger(f"cdnwatch.{component}")

    if not logger.handlers:
        logger = setup_logging(component)

    if context:
        return ContextAdapter(logger, context)

    return logger


def sanitize_log_data(data: Dict[str, Any], sensitive_keys: Optional[list] = None) -> Dict[str, Any]:
    """
    Sanitize sensitive data from log dictionaries.

    Args:
        data: Dictionary containing log data
        sensitive_keys: List of keys to redact (case-insensitive)

    Returns:
        Sanitized dictionary with sensitive values replaced
    """
    sensitive_keys = sensitive_keys or [
        "password", "passwd", "pwd", "token", "secret", "api_key",
        "apikey", "auth", "authorization"
    ]

    sanitized = {}
    for key, value in data.items():
        if any(sensitive in key.lower() for sensitive in sensitive_keys):
            sanitized[key] = "***REDACTED***"
        elif isinstance(value, dict):
            sanitized[key] = sanitize_log_data(value, sensitive_keys)
        elif isinstance(value, list) and value and isinstance(value[0], dict):
            sanitized[key] = [sanitize_log_data(item, sensitive_keys) for item in value]
        else:
            sanitized[key] = value

    return sanitized
