"""
Structured logging for the Lightrate client.

The library only asks for loggers; applications that want the JSON output
call ``configure_logging`` once at startup.
"""

import sys
import structlog
import logging
import time
from typing import Any, Dict, Optional
from contextvars import ContextVar

from .config import get_config

# Context variables for correlation IDs
user_identifier_var: ContextVar[Optional[str]] = ContextVar('user_identifier', default=None)
application_id_var: ContextVar[Optional[str]] = ContextVar('application_id', default=None)


def configure_logging(service_name: str = "lightrate-client", log_level: Optional[str] = None) -> None:
    """Configure structured logging for an application using the client.

    ``log_level`` defaults to the configured ``LIGHTRATE_LOG_LEVEL``.
    """
    if log_level is None:
        log_level = get_config().log_level

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            add_service_context(service_name),
            add_correlation_context,
            add_timestamp,
            structlog.processors.JSONRenderer()
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )
    logging.getLogger("lightrate_client").setLevel(log_level.upper())


def add_service_context(service_name: str):
    """Build a processor stamping the service name on every event."""

    def processor(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
        event_dict.setdefault("service", service_name)
        return event_dict

    return processor


def add_correlation_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Add correlation context to log events."""
    user_identifier = user_identifier_var.get()
    if user_identifier:
        event_dict["user_identifier"] = user_identifier

    application_id = application_id_var.get()
    if application_id:
        event_dict["application_id"] = application_id

    return event_dict


def add_timestamp(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Add high-precision timestamp to log events."""
    event_dict["timestamp"] = time.time()
    return event_dict


def set_user_context(user_identifier: Optional[str] = None, application_id: Optional[str] = None):
    """Set user context in logging."""
    if user_identifier:
        user_identifier_var.set(user_identifier)
    if application_id:
        application_id_var.set(application_id)


def clear_context():
    """Clear all context variables."""
    user_identifier_var.set(None)
    application_id_var.set(None)


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)
