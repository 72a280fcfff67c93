"""
Core data schemas for Fleet Relay
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional
from enum import Enum

from pydantic import BaseModel, Field, ConfigDict


class AlertStatus(str, Enum):
    """Alertmanager alert status"""
    FIRING = "firing"
    RESOLVED = "resolved"


class NotificationSeverity(str, Enum):
    """Severity attached to an outbound notification"""
    DEBUG = "Debug"
    INFO = "Info"
    WARNING = "Warning"
    MAJOR = "Major"
    CRITICAL = "Critical"


class NotificationDefinition(BaseModel):
    """A notification template, loaded once from configuration"""
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    name: str = Field(..., min_length=1, description="Unique template name")
    summary: str = Field(..., description="Summary template with ${key} placeholders")
    message: str = Field(..., description="Firing message template with ${key} placeholders")
    resolved_message: Optional[str] = Field(None, alias="resolvedMessage")
    severity: NotificationSeverity = NotificationSeverity.INFO
    resend_wait_minutes: int = Field(default=0, ge=0, alias="resendWaitMinutes")
    references: List[str] = Field(default_factory=list)
    limited_support: bool = Field(default=False, alias="limitedSupport")
    log_type: Optional[str] = Field(None, alias="logType")

    @property
    def resend_wait(self) -> timedelta:
        return timedelta(minutes=self.resend_wait_minutes)

    @property
    def handles_resolve(self) -> bool:
        """Whether a resolved alert produces anything to forward"""
        return self.limited_support or self.resolved_message is not None


class Alert(BaseModel):
    """A single alert from an Alertmanager webhook batch"""
    model_config = ConfigDict(extra="allow")

    # Unknown statuses are dropped per alert by the classifier
    status: str = AlertStatus.FIRING.value
    labels: Dict[str, str] = Field(default_factory=dict)
    annotations: Dict[str, str] = Field(default_factory=dict)

    @property
    def firing(self) -> bool:
        return self.status == AlertStatus.FIRING.value

    @property
    def has_known_status(self) -> bool:
        return self.status in (AlertStatus.FIRING.value, AlertStatus.RESOLVED.value)


class AlertBatch(BaseModel):
    """Alertmanager webhook payload"""
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    receiver: Optional[str] = None
    status: Optional[str] = None
    alerts: List[Alert] = Field(default_factory=list)
    group_labels: Dict[str, str] = Field(default_factory=dict, alias="groupLabels")
    common_labels: Dict[str, str] = Field(default_factory=dict, alias="commonLabels")
    common_annotations: Dict[str, str] = Field(default_factory=dict, alias="commonAnnotations")


class RoutingKey(BaseModel):
    """Routing keys extracted from a valid alert"""
    model_config = ConfigDict(frozen=True)

    template_name: str
    management_cluster_id: str
    target_id: str
    firing: bool = True


class RecordItem(BaseModel):
    """Sending history of one notification for one target"""

    target_id: str
    last_sent_at: Optional[datetime] = None
    sent_count: int = Field(default=0, ge=0)
    last_resolved_at: Optional[datetime] = None
    resolved_sent_count: int = Field(default=0, ge=0)

    @property
    def unresolved(self) -> bool:
        """A firing notification went out and no resolve followed it yet"""
        return self.sent_count > self.resolved_sent_count


class RecordByName(BaseModel):
    """Sending history of one notification across targets"""

    notification_name: str
    resend_wait_minutes: int = Field(default=0, ge=0)
    items: List[RecordItem] = Field(default_factory=list)

    def get_item(self, target_id: str) -> Optional[RecordItem]:
        for item in self.items:
            if item.target_id == target_id:
                return item
        return None

    def add_item(self, target_id: str) -> RecordItem:
        if self.get_item(target_id) is not None:
            raise ValueError(
                f"record item for target {target_id} already exists in {self.notification_name}"
            )
        item = RecordItem(target_id=target_id)
        self.items.append(item)
        return item


class NotificationRecord(BaseModel):
    """Persisted sending record of one management cluster"""

    management_cluster_id: str
    records_by_name: List[RecordByName] = Field(default_factory=list)

    def get_record_by_name(self, notification_name: str) -> Optional[RecordByName]:
        for entry in self.records_by_name:
            if entry.notification_name == notification_name:
                return entry
        return None

    def add_record_by_name(self, entry: RecordByName) -> RecordByName:
        """Insert an entry, keeping entries ordered by notification name"""
        if self.get_record_by_name(entry.notification_name) is not None:
            raise ValueError(
                f"notification {entry.notification_name} is already tracked "
                f"for {self.management_cluster_id}"
            )
        self.records_by_name.append(entry)
        self.records_by_name.sort(key=lambda e: e.notification_name)
        return entry

    def get_item(self, notification_name: str, target_id: str) -> Optional[RecordItem]:
        entry = self.get_record_by_name(notification_name)
        if entry is None:
            return None
        return entry.get_item(target_id)


class NotificationMessage(BaseModel):
    """A notification rendered for one alert occurrence"""

    summary: str
    description: str
    severity: NotificationSeverity = NotificationSeverity.INFO
    references: List[str] = Field(default_factory=list)
    log_type: Optional[str] = None


class OutcomeStatus(str, Enum):
    """Result of processing one alert occurrence"""
    SENT = "sent"
    SUPPRESSED = "suppressed"
    FAILED = "failed"


class FailureReason(str, Enum):
    """Why processing an alert occurrence failed"""
    UNKNOWN_TEMPLATE = "unknown_template"
    TEMPLATE_RESOLUTION_ERROR = "template_resolution_error"
    STORE_UNAVAILABLE = "store_unavailable"
    STORE_WRITE_ERROR = "store_write_error"
    SINK_ERROR = "sink_error"
    TOO_MANY_CONFLICTS = "too_many_conflicts"
    CANCELLED = "cancelled"


# Failures that a redelivery of the same alert could fix
RETRYABLE_FAILURES = frozenset({
    FailureReason.STORE_UNAVAILABLE,
    FailureReason.STORE_WRITE_ERROR,
    FailureReason.SINK_ERROR,
    FailureReason.TOO_MANY_CONFLICTS,
    FailureReason.CANCELLED,
})


@dataclass(frozen=True)
class Outcome:
    """Outcome of a coordinator pass"""
    status: OutcomeStatus
    reason: Optional[FailureReason] = None
    detail: Optional[str] = None

    @classmethod
    def sent(cls, detail: Optional[str] = None) -> "Outcome":
        return cls(OutcomeStatus.SENT, detail=detail)

    @classmethod
    def suppressed(cls, detail: Optional[str] = None) -> "Outcome":
        return cls(OutcomeStatus.SUPPRESSED, detail=detail)

    @classmethod
    def failed(cls, reason: FailureReason, detail: Optional[str] = None) -> "Outcome":
        return cls(OutcomeStatus.FAILED, reason=reason, detail=detail)

    @property
    def is_sent(self) -> bool:
        return self.status == OutcomeStatus.SENT

    @property
    def is_suppressed(self) -> bool:
        return self.status == OutcomeStatus.SUPPRESSED

    @property
    def is_failed(self) -> bool:
        return self.status == OutcomeStatus.FAILED

    @property
    def retryable(self) -> bool:
        return self.reason in RETRYABLE_FAILURES

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "reason": self.reason.value if self.reason else None,
            "detail": self.detail,
        }
