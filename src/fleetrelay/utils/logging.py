"""
Logging utilities for Fleet Relay
"""

import sys
import logging
from typing import Optional

import structlog


# Field names shared by every component that logs about a notification
LOG_FIELD_NOTIFICATION = "notification"
LOG_FIELD_ALERTNAME = "alertname"
LOG_FIELD_MANAGEMENT_CLUSTER = "management_cluster_id"
LOG_FIELD_TARGET = "target_id"
LOG_FIELD_IS_FIRING = "is_firing"
LOG_FIELD_RESEND_INTERVAL = "resend_interval"


def setup_logging(level: str = "INFO", service_name: Optional[str] = None) -> None:
    """
    Setup structured logging for Fleet Relay.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        service_name: Optional service name to include in logs
    """
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="ISO", utc=True),
            structlog.processors.JSONRenderer()
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper())
    )

    if service_name:
        structlog.contextvars.bind_contextvars(service=service_name)

