"""
Structured Logging

JSON or console logs through structlog with sensitive-field
redaction applied to every event.
"""

import logging
import sys

import structlog

from healthsync_compliance.security.redaction import REDACTED, is_sensitive, sanitize_for_logging


def redaction_processor(logger, method_name, event_dict):
    """Mask sensitive keys at the top level and inside nested values."""
    for key, value in list(event_dict.items()):
        if is_sensitive(key):
            event_dict[key] = REDACTED
        elif isinstance(value, (dict, list, tuple)):
            event_dict[key] = sanitize_for_logging(value)
    return event_dict


def configure_logging(level: str = "INFO", json_output: bool = True) -> None:
    """Configure stdlib logging and the structlog processor chain."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
    )
    
    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer()
    )
    
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            redaction_processor,
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
