"""
Fleet Relay Exceptions
"""

from .base import (
    FleetRelayError,
    ConfigurationError,
    ValidationError,
    TemplateResolutionError,
    StoreError,
    RecordNotFoundError,
    RecordAlreadyExistsError,
    RecordConflictError,
    StoreUnavailableError,
    SinkError,
    HealthCheckError,
)

__all__ = [
    "FleetRelayError",
    "ConfigurationError",
    "ValidationError",
    "TemplateResolutionError",
    "StoreError",
    "RecordNotFoundError",
    "RecordAlreadyExistsError",
    "RecordConflictError",
    "StoreUnavailableError",
    "SinkError",
    "HealthCheckError",
]
