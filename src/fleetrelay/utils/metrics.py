"""
Metrics collection utilities for Fleet Relay
"""

from typing import Optional

from prometheus_client import (
    Counter,
    Gauge,
    Info,
    generate_latest,
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
)


SERVICE_LOGS_SERVICE = "service_logs"
CLUSTERS_SERVICE = "clusters_mgmt"


def ocm_service_for(limited_support: bool) -> str:
    """OCM service a notification is delivered through"""
    return CLUSTERS_SERVICE if limited_support else SERVICE_LOGS_SERVICE


class MetricsCollector:
    """
    Prometheus metrics collector for the relay.

    Every collector owns its registry so several relays (or tests) can live
    in one process without colliding on metric names.

    Tracks:
    - Webhook requests and request failures
    - Notifications sent, suppressed and failed per template
    - Limited support posts and removals
    - Record write conflicts
    """

    def __init__(self, service_name: str = "fleet-relay", registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry or CollectorRegistry()

        self.requests_total = Counter(
            "fleet_relay_requests_total",
            "A count of total requests to the relay service",
            registry=self.registry
        )
        self.requests_by_service = Counter(
            "fleet_relay_requests_by_service",
            "A count of total requests to the relay based on path",
            ["path"],
            registry=self.registry
        )
        self.failed_requests_total = Counter(
            "fleet_relay_failed_requests_total",
            "A count of total failed requests received by the relay service",
            registry=self.registry
        )
        self.request_failure = Gauge(
            "fleet_relay_request_failure",
            "Indicates that the relay could not successfully process a request",
            ["path"],
            registry=self.registry
        )
        self.response_failure = Gauge(
            "fleet_relay_response_failure",
            "Indicates that the call to the OCM service endpoint failed",
            ["ocm_service", "notification_name", "alert_name"],
            registry=self.registry
        )
        self.service_log_sent = Counter(
            "fleet_relay_service_log_sent",
            "A count of service logs sent based on notification template for the current session",
            ["ocm_service", "template", "state"],
            registry=self.registry
        )
        self.failed_service_logs = Counter(
            "fleet_relay_failed_service_logs_total",
            "A count of service logs which failed to be sent, including ones which failed to be formatted",
            ["ocm_service", "template"],
            registry=self.registry
        )
        self.notifications_recorded = Gauge(
            "fleet_relay_notifications_recorded",
            "Total number of notifications recorded as sent based on notification template",
            ["ocm_service", "template"],
            registry=self.registry
        )
        self.limited_support_sent = Counter(
            "fleet_relay_limited_support_sent_total",
            "Total number of limited support reasons sent based on notification template",
            ["ocm_service", "template"],
            registry=self.registry
        )
        self.limited_support_removed = Counter(
            "fleet_relay_limited_support_removed_total",
            "Total number of limited support reasons removed based on notification template",
            ["ocm_service", "template"],
            registry=self.registry
        )
        self.failed_limited_support_sends = Counter(
            "fleet_relay_limited_support_send_failure_total",
            "Total number of failures for limited support posts based on notification template",
            ["ocm_service", "template"],
            registry=self.registry
        )
        self.failed_limited_support_removals = Counter(
            "fleet_relay_limited_support_removal_failure_total",
            "Total number of failures for limited support removals based on notification template",
            ["ocm_service", "template"],
            registry=self.registry
        )
        self.notifications_suppressed = Counter(
            "fleet_relay_notifications_suppressed_total",
            "Notifications not forwarded because one was sent within the resend window",
            ["template", "state"],
            registry=self.registry
        )
        self.notifications_failed = Counter(
            "fleet_relay_notifications_failed_total",
            "Alert occurrences whose processing failed",
            ["template", "reason"],
            registry=self.registry
        )
        self.record_conflicts = Counter(
            "fleet_relay_record_conflicts_total",
            "Optimistic concurrency conflicts while writing notification records",
            ["template"],
            registry=self.registry
        )
        self.invalid_alerts = Counter(
            "fleet_relay_invalid_alerts_total",
            "Alerts dropped because they lack required routing labels",
            registry=self.registry
        )
        self.service_info = Info(
            "fleet_relay_service",
            "Relay service information",
            registry=self.registry
        )
        self.service_info.info({"service_name": service_name, "version": "0.1.0"})

    def record_request(self, path: str) -> None:
        """Record a request received by the web service"""
        self.requests_total.inc()
        self.requests_by_service.labels(path=path).inc()

    def record_failed_request(self, path: str) -> None:
        """Record a request that was not answered with 200"""
        self.failed_requests_total.inc()
        self.request_failure.labels(path=path).set(1)

    def reset_request_failures(self) -> None:
        """Clear the request failure gauges after a successful request"""
        self.request_failure.clear()

    def set_response_failure(self, ocm_service: str, notification_name: str, alert_name: str) -> None:
        """Flag that a call to the OCM service failed"""
        self.response_failure.labels(
            ocm_service=ocm_service,
            notification_name=notification_name,
            alert_name=alert_name
        ).set(1)

    def reset_response_failure(self, ocm_service: str, notification_name: str, alert_name: str) -> None:
        """Clear the OCM call failure flag"""
        self.response_failure.labels(
            ocm_service=ocm_service,
            notification_name=notification_name,
            alert_name=alert_name
        ).set(0)

    def record_sent(self, template: str, limited_support: bool, firing: bool) -> None:
        """Record a notification delivered to OCM"""
        service = ocm_service_for(limited_support)
        if limited_support:
            counter = self.limited_support_sent if firing else self.limited_support_removed
            counter.labels(ocm_service=service, template=template).inc()
        else:
            self.service_log_sent.labels(
                ocm_service=service,
                template=template,
                state="firing" if firing else "resolved"
            ).inc()

    def record_send_failed(self, template: str, limited_support: bool, firing: bool) -> None:
        """Record a notification that OCM rejected or could not receive"""
        service = ocm_service_for(limited_support)
        if limited_support:
            counter = self.failed_limited_support_sends if firing else self.failed_limited_support_removals
            counter.labels(ocm_service=service, template=template).inc()
        else:
            self.failed_service_logs.labels(ocm_service=service, template=template).inc()

    def set_total_sent(self, template: str, limited_support: bool, count: int) -> None:
        """Set the number of sends recorded for a template on one target"""
        self.notifications_recorded.labels(
            ocm_service=ocm_service_for(limited_support),
            template=template
        ).set(count)

    def record_suppressed(self, template: str, firing: bool) -> None:
        self.notifications_suppressed.labels(
            template=template,
            state="firing" if firing else "resolved"
        ).inc()

    def record_failed(self, template: str, reason: str) -> None:
        self.notifications_failed.labels(template=template, reason=reason).inc()

    def record_conflict(self, template: str) -> None:
        self.record_conflicts.labels(template=template).inc()

    def record_invalid_alert(self) -> None:
        self.invalid_alerts.inc()

    def get_metrics(self) -> bytes:
        """Get metrics in Prometheus format"""
        return generate_latest(self.registry)

    @property
    def content_type(self) -> str:
        return CONTENT_TYPE_LATEST
