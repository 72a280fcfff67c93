"""
Notification sinks for Fleet Relay
"""

from .base import NotificationSink
from .ocm import OCMClient, OCMNotificationSink

__all__ = [
    "NotificationSink",
    "OCMClient",
    "OCMNotificationSink",
]
