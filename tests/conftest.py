"""
Shared fixtures for Fleet Relay tests
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

import pytest

from fleetrelay.core.catalog import NotificationCatalog
from fleetrelay.core.coordinator import ResendCoordinator
from fleetrelay.core.schemas import (
    Alert,
    NotificationDefinition,
    NotificationMessage,
    NotificationSeverity,
    RoutingKey,
)
from fleetrelay.sinks.base import NotificationSink
from fleetrelay.stores.memory import InMemoryRecordStore
from fleetrelay.utils.metrics import MetricsCollector


class FakeClock:
    """Settable UTC clock"""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, minutes: float) -> None:
        self.now += timedelta(minutes=minutes)


class RecordingSink(NotificationSink):
    """Sink that remembers every notification it was asked to send"""

    def __init__(self, error: Optional[Exception] = None, delay: float = 0.0):
        self.calls: List[Tuple[str, bool, str, NotificationMessage]] = []
        self.error = error
        self.delay = delay
        self.closed = False

    async def send(self, definition, firing, target_id, message):
        if self.delay:
            await asyncio.sleep(self.delay)
        self.calls.append((definition.name, firing, target_id, message))
        if self.error is not None:
            raise self.error

    async def close(self):
        self.closed = True


DEFINITIONS = [
    NotificationDefinition(
        name="DiskPressure",
        summary="Disk pressure on ${node}",
        message="Node ${node} of cluster ${_id} is running out of disk space",
        resolved_message="Node ${node} is no longer under disk pressure",
        severity=NotificationSeverity.WARNING,
        resend_wait_minutes=60,
        references=["https://docs.example.com/disk-pressure"],
        log_type="cluster-health",
    ),
    NotificationDefinition(
        name="ShortWindow",
        summary="Short window notification",
        message="Something happened",
        resend_wait_minutes=10,
    ),
    NotificationDefinition(
        name="NoWait",
        summary="Always sent",
        message="Sent on every occurrence",
        resend_wait_minutes=0,
    ),
    NotificationDefinition(
        name="StorageExhausted",
        summary="Cluster storage exhausted",
        message="Storage of cluster ${_id} is exhausted, the cluster is in limited support",
        resend_wait_minutes=0,
        limited_support=True,
    ),
]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def store():
    return InMemoryRecordStore()


@pytest.fixture
def metrics():
    return MetricsCollector("fleet-relay-test")


@pytest.fixture
def catalog():
    return NotificationCatalog(DEFINITIONS)


@pytest.fixture
def coordinator(catalog, store, sink, metrics, clock):
    return ResendCoordinator(catalog, store, sink, metrics, clock=clock)


@pytest.fixture
def make_alert():
    """Factory for fleet mode alerts"""

    def _make_alert(
        template: str = "DiskPressure",
        mc_id: str = "mc-1",
        target_id: str = "hc-1",
        status: str = "firing",
        **labels: str
    ) -> Alert:
        alert_labels = {
            "alertname": f"{template}Alert",
            "managed_notification_template": template,
            "send_managed_notification": "true",
            "source": "HCP",
            "_mc_id": mc_id,
            "_id": target_id,
            "node": "worker-0",
        }
        alert_labels.update(labels)
        return Alert(status=status, labels=alert_labels, annotations={"runbook": "https://runbooks.example.com"})

    return _make_alert


@pytest.fixture
def make_key():
    """Factory for routing keys"""

    def _make_key(
        template: str = "DiskPressure",
        mc_id: str = "mc-1",
        target_id: str = "hc-1",
        firing: bool = True
    ) -> RoutingKey:
        return RoutingKey(
            template_name=template,
            management_cluster_id=mc_id,
            target_id=target_id,
            firing=firing,
        )

    return _make_key


@pytest.fixture
def sink_factory():
    """Build sinks that fail or stall"""
    return RecordingSink
