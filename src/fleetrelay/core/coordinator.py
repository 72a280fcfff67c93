"""
Resend coordinator

Decides, per alert occurrence, whether a notification may go out, forwards
it and records the send in the management cluster's notification record.
Records are shared between relay replicas only through the record store, so
every write is a compare-and-swap retried on conflict. The sink is invoked
at most once per call; a conflicting commit is retried without sending again.
"""

import asyncio
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional, Tuple, TypeVar

import structlog

from .catalog import NotificationCatalog
from .gate import permitted, resolve_permitted
from .schemas import (
    Alert,
    FailureReason,
    NotificationDefinition,
    NotificationRecord,
    Outcome,
    RecordByName,
    RecordItem,
    RoutingKey,
)
from .templating import build_message
from ..exceptions.base import (
    RecordAlreadyExistsError,
    RecordConflictError,
    RecordNotFoundError,
    SinkError,
    StoreError,
    TemplateResolutionError,
)
from ..sinks.base import NotificationSink
from ..stores.base import RecordStore, VersionToken
from ..utils.logging import (
    LOG_FIELD_ALERTNAME,
    LOG_FIELD_IS_FIRING,
    LOG_FIELD_MANAGEMENT_CLUSTER,
    LOG_FIELD_NOTIFICATION,
    LOG_FIELD_RESEND_INTERVAL,
    LOG_FIELD_TARGET,
)
from ..utils.metrics import MetricsCollector, ocm_service_for

logger = structlog.get_logger(__name__)

T = TypeVar("T")

DEFAULT_MAX_CONFLICTS = 25


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _latest(recorded: Optional[datetime], sent_at: datetime) -> datetime:
    return sent_at if recorded is None else max(recorded, sent_at)


class _BudgetExhausted(Exception):
    """The per-call time budget ran out"""


class ResendCoordinator:
    """
    Gate, send and record notifications for routed alerts.

    Collaborators are injected so the coordinator holds no state of its
    own between calls:
    - catalog: notification definitions by name
    - store: versioned notification records
    - sink: the external notification service
    - metrics: Prometheus collector
    - clock: returns the current UTC time
    """

    def __init__(
        self,
        catalog: NotificationCatalog,
        store: RecordStore,
        sink: NotificationSink,
        metrics: Optional[MetricsCollector] = None,
        clock: Optional[Callable[[], datetime]] = None,
        max_conflicts: int = DEFAULT_MAX_CONFLICTS,
        default_timeout: Optional[float] = None
    ):
        if max_conflicts < 1:
            raise ValueError("max_conflicts must be at least 1")

        self.catalog = catalog
        self.store = store
        self.sink = sink
        self.metrics = metrics or MetricsCollector()
        self.clock = clock or utc_now
        self.max_conflicts = max_conflicts
        self.default_timeout = default_timeout

    async def process(
        self,
        key: RoutingKey,
        alert: Optional[Alert] = None,
        timeout: Optional[float] = None
    ) -> Outcome:
        """
        Handle one alert occurrence.

        Args:
            key: Routing keys of the occurrence
            alert: The alert itself, used to fill message placeholders
            timeout: Seconds the whole call may take; defaults to the
                coordinator's default timeout, unbounded when both are None

        Returns:
            SENT when the notification went out and was recorded,
            SUPPRESSED when it was held back, FAILED otherwise
        """
        alert_name = alert.labels.get("alertname", "") if alert else ""
        log = logger.bind(**{
            LOG_FIELD_NOTIFICATION: key.template_name,
            LOG_FIELD_ALERTNAME: alert_name,
            LOG_FIELD_MANAGEMENT_CLUSTER: key.management_cluster_id,
            LOG_FIELD_TARGET: key.target_id,
            LOG_FIELD_IS_FIRING: key.firing,
        })

        definition = self.catalog.lookup(key.template_name)
        if definition is None:
            log.error("an alert fired with a managed notification template definition that does not exist")
            return self._fail(key, FailureReason.UNKNOWN_TEMPLATE, f"unknown template {key.template_name}")

        log = log.bind(**{LOG_FIELD_RESEND_INTERVAL: definition.resend_wait_minutes})

        if not key.firing and not definition.handles_resolve:
            log.info("notification has no resolve message, nothing to send")
            self.metrics.record_suppressed(definition.name, key.firing)
            return Outcome.suppressed("no resolve notification defined")

        budget = timeout if timeout is not None else self.default_timeout
        deadline = None if budget is None else asyncio.get_running_loop().time() + budget
        state = _PassState()

        try:
            return await self._run(key, alert, alert_name, definition, deadline, state, log)
        except _BudgetExhausted:
            if state.sent_at is not None:
                log.critical("notification was sent but the time budget ran out before it was recorded")
            else:
                log.warning("time budget ran out before the notification could be sent")
            return self._fail(key, FailureReason.CANCELLED, "time budget exhausted")
        except asyncio.CancelledError:
            # Caller cancellation propagates; only an exhausted budget yields FAILED(CANCELLED)
            if state.sent_at is not None:
                log.critical("notification was sent but processing was cancelled before it was recorded")
            else:
                log.warning("processing was cancelled")
            raise

    async def _run(
        self,
        key: RoutingKey,
        alert: Optional[Alert],
        alert_name: str,
        definition: NotificationDefinition,
        deadline: Optional[float],
        state: "_PassState",
        log
    ) -> Outcome:
        ocm_service = ocm_service_for(definition.limited_support)

        while True:
            try:
                loaded = await self._load(key.management_cluster_id, deadline)
            except StoreError as e:
                if state.sent_at is not None:
                    log.critical("notification was sent but its record could not be reloaded", error=str(e))
                else:
                    log.error("unable to fetch notification record", error=str(e))
                return self._fail(key, FailureReason.STORE_UNAVAILABLE, str(e))

            if loaded is None:
                self.metrics.record_conflict(definition.name)
                if state.conflict(self.max_conflicts):
                    return self._too_many_conflicts(key, state, log)
                continue

            record, token = loaded
            entry, item = self._locate(record, definition, key.target_id)
            allowed = self._gate(definition, key.firing, item)

            if state.sent_at is None:
                if not allowed:
                    log.info("not sending a notification as one was already sent recently")
                    self.metrics.record_suppressed(definition.name, key.firing)
                    return Outcome.suppressed("resend window not elapsed" if key.firing else "nothing to resolve")

                try:
                    message = build_message(definition, key.firing, alert)
                except TemplateResolutionError as e:
                    log.error("unable to render notification", error=str(e))
                    return self._fail(key, FailureReason.TEMPLATE_RESOLUTION_ERROR, str(e))

                try:
                    await self._bounded(
                        self.sink.send(definition, key.firing, key.target_id, message),
                        deadline
                    )
                except SinkError as e:
                    log.error("unable to send notification", error=str(e), status_code=e.status_code)
                    self.metrics.set_response_failure(ocm_service, definition.name, alert_name)
                    self.metrics.record_send_failed(definition.name, definition.limited_support, key.firing)
                    return self._fail(key, FailureReason.SINK_ERROR, str(e))

                state.sent_at = self.clock()
                self.metrics.reset_response_failure(ocm_service, definition.name, alert_name)
                self.metrics.record_sent(definition.name, definition.limited_support, key.firing)
            elif not allowed:
                log.warning("notification was also sent by a concurrent delivery, recording this send too")

            item = self._apply(record, entry, item, key, state.sent_at)

            try:
                await self._bounded(self.store.update(key.management_cluster_id, record, token), deadline)
            except RecordConflictError:
                self.metrics.record_conflict(definition.name)
                if state.conflict(self.max_conflicts):
                    return self._too_many_conflicts(key, state, log)
                log.info("notification record changed concurrently, retrying", conflicts=state.conflicts)
                continue
            except StoreError as e:
                log.critical("notification was sent but could not be recorded", error=str(e))
                return self._fail(key, FailureReason.STORE_WRITE_ERROR, str(e))

            self.metrics.set_total_sent(definition.name, definition.limited_support, item.sent_count)
            log.info("notification sent and recorded", sent_count=item.sent_count)
            return Outcome.sent()

    async def _load(
        self,
        management_cluster_id: str,
        deadline: Optional[float]
    ) -> Optional[Tuple[NotificationRecord, VersionToken]]:
        """Fetch the record, creating it when missing; None when a concurrent create won"""
        try:
            return await self._bounded(self.store.get(management_cluster_id), deadline)
        except RecordNotFoundError:
            pass

        try:
            return await self._bounded(self.store.create(management_cluster_id), deadline)
        except RecordAlreadyExistsError:
            return None

    @staticmethod
    def _locate(
        record: NotificationRecord,
        definition: NotificationDefinition,
        target_id: str
    ) -> Tuple[RecordByName, Optional[RecordItem]]:
        entry = record.get_record_by_name(definition.name)
        if entry is None:
            entry = RecordByName(
                notification_name=definition.name,
                resend_wait_minutes=definition.resend_wait_minutes
            )
        return entry, entry.get_item(target_id)

    def _gate(self, definition: NotificationDefinition, firing: bool, item: Optional[RecordItem]) -> bool:
        if firing:
            return permitted(item, definition.resend_wait, self.clock(), definition.limited_support)
        return resolve_permitted(item)

    @staticmethod
    def _apply(
        record: NotificationRecord,
        entry: RecordByName,
        item: Optional[RecordItem],
        key: RoutingKey,
        sent_at: datetime
    ) -> RecordItem:
        if record.get_record_by_name(entry.notification_name) is None:
            record.add_record_by_name(entry)
        if item is None:
            item = entry.add_item(key.target_id)

        # A concurrent delivery may have recorded a later send; timestamps never move back
        if key.firing:
            item.last_sent_at = _latest(item.last_sent_at, sent_at)
            item.sent_count += 1
        else:
            item.last_resolved_at = _latest(item.last_resolved_at, sent_at)
            item.resolved_sent_count += 1
        return item

    async def _bounded(self, awaitable: Awaitable[T], deadline: Optional[float]) -> T:
        if deadline is None:
            return await awaitable

        remaining = deadline - asyncio.get_running_loop().time()
        if remaining <= 0:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise _BudgetExhausted()

        try:
            return await asyncio.wait_for(awaitable, timeout=remaining)
        except asyncio.TimeoutError:
            raise _BudgetExhausted()

    def _too_many_conflicts(self, key: RoutingKey, state: "_PassState", log) -> Outcome:
        if state.sent_at is not None:
            log.critical("notification was sent but could not be recorded after repeated conflicts")
        else:
            log.error("gave up after repeated notification record conflicts")
        return self._fail(key, FailureReason.TOO_MANY_CONFLICTS, f"{state.conflicts} conflicting writes")

    def _fail(self, key: RoutingKey, reason: FailureReason, detail: str) -> Outcome:
        self.metrics.record_failed(key.template_name, reason.value)
        return Outcome.failed(reason, detail)


class _PassState:
    """Mutable state of one process call"""

    def __init__(self):
        self.sent_at: Optional[datetime] = None
        self.conflicts = 0

    def conflict(self, limit: int) -> bool:
        """Count a conflict; True once the limit is reached"""
        self.conflicts += 1
        return self.conflicts >= limit
