"""
Structured logging for Regos.

structlog on top of stdlib logging, with a correlation id per call chain and
redaction of respondent PII (submitted form data, emails, phone numbers).
"""

import contextvars
import logging
import os
import secrets
import sys
import time
from typing import Any

import structlog

from regos.kernel.errors import RegosError

correlation_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "correlation_id", default=""
)


def generate_correlation_id() -> str:
    """
    Generate a new correlation ID using cryptographic randomness.

    One id follows a call chain through the stores, so every line logged
    for a single submit or transition can be pulled out together. Returns
    a 22-character URL-safe base64 string (128 bits of entropy).
    """
    return secrets.token_urlsafe(16)


def get_correlation_id() -> str:
    """Get the current correlation ID, or generate a new one if not set."""
    cid = correlation_id_var.get()
    if not cid:
        cid = generate_correlation_id()
        correlation_id_var.set(cid)
    return cid


def set_correlation_id(correlation_id: str) -> None:
    """Set the correlation ID for the current context (e.g. from a request header)."""
    correlation_id_var.set(correlation_id)


def add_correlation_id(
    logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """structlog processor adding the correlation ID to every event."""
    event_dict["correlation_id"] = get_correlation_id()
    return event_dict


def configure_logging(
    *,
    json_output: bool = False,
    log_level: str = "INFO",
) -> None:
    """
    Configure structured logging for the application.

    Args:
        json_output: Emit JSON lines (production) instead of console output
        log_level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    level = getattr(logging, log_level.upper())

    # stderr keeps stdout clean for CLI output
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=level,
    )
    logging.getLogger("werkzeug").setLevel(logging.WARNING)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        add_correlation_id,
    ]

    if json_output:
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared_processors + [
            structlog.processors.ExceptionRenderer(),
            structlog.dev.ConsoleRenderer(colors=False),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_from_env() -> None:
    """
    Configure logging from the environment.

    ENVIRONMENT=production switches to JSON lines; REGOS_LOG_LEVEL sets the
    level (default INFO).
    """
    configure_logging(
        json_output=is_production(),
        log_level=os.getenv("REGOS_LOG_LEVEL", "INFO"),
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger for the given module.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Structured logger instance
    """
    return structlog.get_logger(name)


def is_production() -> bool:
    """
    Determine if running in production environment.

    Checks the ENVIRONMENT variable. Returns True if it is 'production'
    (any case), False otherwise. Defaults to False (development) if not set,
    which keeps stack traces in failure logs.
    """
    return os.getenv("ENVIRONMENT", "development").lower() == "production"


# Respondent and account PII
REDACTED_FIELDS = {
    "email",
    "phone",
    "form_data",
    "files",
    "notes",
    "password",
    "token",
    "secret",
    "api_key",
}


def redact_context(context: dict[str, Any]) -> dict[str, Any]:
    """
    Redact sensitive fields from log context to prevent PII leakage.

    Respondents type names, emails and phone numbers into forms, so whole
    form_data payloads are dropped along with account contact details.

    Args:
        context: Dictionary of log context

    Returns:
        New dictionary with sensitive fields redacted

    Example:
        >>> redact_context({"email": "a@b.c", "registration_id": "reg_1"})
        {"email": "***REDACTED***", "registration_id": "reg_1"}
    """
    return {
        k: "***REDACTED***" if k in REDACTED_FIELDS else v
        for k, v in context.items()
    }


class LogOperation:
    """Context manager logging an operation's start, outcome and duration."""

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger,
        operation: str,
        **context: Any,
    ):
        """
        Initialize operation logger.

        Args:
            logger: Structured logger instance
            operation: Operation name (e.g., "sign_up", "delete_submission")
            **context: Additional context to include in logs, redacted
                before it is written
        """
        self.logger = logger
        self.operation = operation
        self.context = context
        self.start_time: float = 0.0

    def __enter__(self) -> "LogOperation":
        """Start timing; the start line is debug so INFO logs show one line per operation."""
        self.start_time = time.perf_counter()
        self.logger.debug(
            f"{self.operation} started",
            operation=self.operation,
            **redact_context(self.context),
        )
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        """
        Log the outcome with duration.

        Success logs at info. A RegosError such as a refused guard logs at
        warning without a stack trace. Anything else logs at error, with the
        stack trace outside production.
        """
        duration_ms = round((time.perf_counter() - self.start_time) * 1000, 2)
        redacted = redact_context(self.context)

        if exc_type is None:
            self.logger.info(
                f"{self.operation} completed",
                operation=self.operation,
                duration_ms=duration_ms,
                **redacted,
            )
            return

        # Business-rule outcomes are expected; only defects get a stack trace
        if issubclass(exc_type, RegosError):
            self.logger.warning(
                f"{self.operation} rejected",
                operation=self.operation,
                duration_ms=duration_ms,
                reason=type(exc_val).__name__,
                detail=str(exc_val),
                **redacted,
            )
        else:
            self.logger.error(
                f"{self.operation} failed",
                operation=self.operation,
                duration_ms=duration_ms,
                exc_info=not is_production(),
                **redacted,
            )
