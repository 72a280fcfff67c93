"""
SQLAlchemy Database Models for Fleet Relay

Defines the table backing the database record store.
"""

from datetime import datetime, timezone
from typing import Dict, Any

from sqlalchemy import Column, Integer, String, DateTime, JSON, Index, CheckConstraint
from sqlalchemy.orm import declarative_base, validates

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class NotificationRecordRow(Base):
    """Notification record of one management cluster"""
    __tablename__ = "notification_records"

    management_cluster_id = Column(String(255), primary_key=True)

    # Optimistic concurrency token, advanced on every write
    version = Column(Integer, nullable=False, default=1)

    # Serialized RecordByName entries, ordered by notification name
    records_by_name = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        Index("ix_notification_records_updated_at", "updated_at"),
        CheckConstraint("version >= 1", name="check_version_positive"),
    )

    @validates("records_by_name")
    def validate_records_by_name(self, key, records_by_name):
        if not isinstance(records_by_name, list):
            raise ValueError("records_by_name must be a list")
        return records_by_name

    def to_dict(self) -> Dict[str, Any]:
        return {
            "management_cluster_id": self.management_cluster_id,
            "records_by_name": self.records_by_name,
        }
