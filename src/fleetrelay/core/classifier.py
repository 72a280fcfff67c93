"""
Alert classification

Decides whether an Alertmanager alert warrants a managed notification and
extracts the keys used to route it.
"""

from typing import Optional

import structlog

from .schemas import Alert, RoutingKey
from ..exceptions.base import ConfigurationError
from ..utils.logging import LOG_FIELD_ALERTNAME

logger = structlog.get_logger(__name__)


LABEL_ALERT_NAME = "alertname"
LABEL_TEMPLATE_NAME = "managed_notification_template"
LABEL_MANAGED_NOTIFICATION = "send_managed_notification"
LABEL_SOURCE = "source"
LABEL_MANAGEMENT_CLUSTER_ID = "_mc_id"
LABEL_TARGET_ID = "_id"

SOURCE_HCP = "HCP"
SOURCE_DP = "DP"
VALID_SOURCES = (SOURCE_HCP, SOURCE_DP)


class AlertClassifier:
    """
    Validates alerts and extracts routing keys.

    In fleet mode every alert names its management cluster and hosted
    cluster. Outside fleet mode the relay serves a single cluster, which is
    used as both the record owner and the notification target.
    """

    def __init__(self, fleet_mode: bool = True, cluster_id: Optional[str] = None):
        if not fleet_mode and not cluster_id:
            raise ConfigurationError(
                "cluster_id is required when not running in fleet mode",
                "cluster_id"
            )
        self.fleet_mode = fleet_mode
        self.cluster_id = cluster_id

    def is_valid(self, alert: Alert) -> bool:
        """
        Whether the alert is one that should be processed for a notification.

        Invalid alerts indicate Alertmanager is forwarding alerts it should
        not, so they are logged and dropped.
        """
        labels = alert.labels

        alertname = labels.get(LABEL_ALERT_NAME)
        if alertname is None:
            logger.info("alertname missing for alert")
            return False

        if not alert.has_known_status:
            logger.error(
                "alert status is neither firing nor resolved",
                status=alert.status,
                **{LOG_FIELD_ALERTNAME: alertname}
            )
            return False

        value = labels.get(LABEL_MANAGED_NOTIFICATION)
        if value is None or value == "false":
            logger.error("alert has no send_managed_notification label", **{LOG_FIELD_ALERTNAME: alertname})
            return False

        if LABEL_TEMPLATE_NAME not in labels:
            logger.error("alert has no managed notification defined", **{LOG_FIELD_ALERTNAME: alertname})
            return False

        if self.fleet_mode:
            source = labels.get(LABEL_SOURCE)
            if source is None:
                logger.error("fleet mode alert has no source", **{LOG_FIELD_ALERTNAME: alertname})
                return False
            if source not in VALID_SOURCES:
                logger.error("fleet mode alert has no valid source", source=source, **{LOG_FIELD_ALERTNAME: alertname})
                return False

            if LABEL_MANAGEMENT_CLUSTER_ID not in labels:
                logger.error("fleet mode alert has no management cluster ID", **{LOG_FIELD_ALERTNAME: alertname})
                return False

            if LABEL_TARGET_ID not in labels:
                logger.error("fleet mode alert has no hosted cluster ID", **{LOG_FIELD_ALERTNAME: alertname})
                return False

        return True

    def classify(self, alert: Alert) -> Optional[RoutingKey]:
        """Return the routing key of a valid alert, or None if it must be dropped"""
        if not self.is_valid(alert):
            return None

        labels = alert.labels
        if self.fleet_mode:
            management_cluster_id = labels[LABEL_MANAGEMENT_CLUSTER_ID]
            target_id = labels[LABEL_TARGET_ID]
        else:
            management_cluster_id = self.cluster_id
            target_id = self.cluster_id

        return RoutingKey(
            template_name=labels[LABEL_TEMPLATE_NAME],
            management_cluster_id=management_cluster_id,
            target_id=target_id,
            firing=alert.firing,
        )
