"""
Fleet Relay Database Layer

Persistent storage for notification records.
Supports PostgreSQL for production and SQLite for development.
"""

from .models import Base, NotificationRecordRow
from .session import DatabaseManager

__all__ = [
    "Base",
    "NotificationRecordRow",
    "DatabaseManager",
]
