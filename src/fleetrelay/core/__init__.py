"""
Core Fleet Relay components
"""

from .catalog import NotificationCatalog
from .classifier import AlertClassifier
from .config import RelayConfig
from .gate import permitted, resolve_permitted
from .schemas import Alert, AlertBatch, NotificationDefinition, Outcome, RoutingKey

__all__ = [
    "NotificationCatalog",
    "AlertClassifier",
    "RelayConfig",
    "permitted",
    "resolve_permitted",
    "Alert",
    "AlertBatch",
    "NotificationDefinition",
    "Outcome",
    "RoutingKey",
]
