"""
Fleet Relay - managed notification relay for Alertmanager

Relays alerts to OCM service logs and limited support reasons while making
sure a notification is not re-sent to a cluster more often than its resend
wait allows, across concurrent and redelivered alerts.
"""

from .core.catalog import NotificationCatalog
from .core.classifier import AlertClassifier
from .core.config import RelayConfig
from .core.coordinator import ResendCoordinator
from .stores import RecordStore, InMemoryRecordStore, DatabaseRecordStore
from .sinks import NotificationSink, OCMNotificationSink
from .exceptions.base import FleetRelayError, StoreError, SinkError

__version__ = "0.1.0"

__all__ = [
    # Core classes
    "NotificationCatalog",
    "AlertClassifier",
    "RelayConfig",
    "ResendCoordinator",

    # Collaborators
    "RecordStore",
    "InMemoryRecordStore",
    "DatabaseRecordStore",
    "NotificationSink",
    "OCMNotificationSink",

    # Exceptions
    "FleetRelayError",
    "StoreError",
    "SinkError",

    # Version info
    "__version__",
]
