"""
OCM notification sink

Delivers notifications as OCM service logs, or as limited support reasons
for notifications that put a cluster into limited support.
"""

from typing import Any, Dict, List, Optional

import httpx
import structlog
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from .base import NotificationSink
from ..core.config import RelayConfig
from ..core.schemas import NotificationDefinition, NotificationMessage
from ..exceptions.base import SinkError
from ..utils.logging import LOG_FIELD_NOTIFICATION, LOG_FIELD_TARGET

logger = structlog.get_logger(__name__)


SERVICE_LOGS_PATH = "/api/service_logs/v1/cluster_logs"
CLUSTERS_PATH = "/api/clusters_mgmt/v1/clusters"
OPERATION_ID_HEADER = "X-Operation-Id"
SERVICE_LOG_SERVICE_NAME = "SREManualAction"

_SERVICE_LOG_ERRORS = {
    400: "validation errors occurred",
    401: "invalid auth token",
    403: "unauthorized to perform operation",
    500: "internal server error",
}

# Only reads are retried; a repeated POST could post a notification twice
_retry_reads = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
    retry=retry_if_exception_type(httpx.TransportError),
    reraise=True
)


class OCMClient:
    """
    Client for the OCM service log and clusters management APIs.

    Provides methods for:
    - Posting service logs
    - Posting, listing and removing limited support reasons
    - Resolving external cluster IDs to internal ones
    """

    def __init__(self, config: RelayConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config
        self.base_url = config.ocm_base_url
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create HTTP client"""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=self.config.get_headers(),
                timeout=self.config.request_timeout,
                transport=self._transport
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client"""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    @_retry_reads
    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> httpx.Response:
        return await self.client.get(path, params=params)

    async def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        try:
            response = await self._get(path, params)
        except httpx.HTTPError as e:
            raise SinkError(f"HTTP error during GET {path}: {e}")

        if response.status_code < 200 or response.status_code >= 300:
            raise SinkError(
                f"unexpected status: {response.status_code}",
                status_code=response.status_code,
                operation_id=response.headers.get(OPERATION_ID_HEADER)
            )
        try:
            data = response.json()
        except ValueError as e:
            raise SinkError(f"malformed response from GET {path}: {e}", status_code=response.status_code)
        if not isinstance(data, dict):
            raise SinkError(f"malformed response from GET {path}: expected an object", status_code=response.status_code)
        return data

    @staticmethod
    def _items(data: Dict[str, Any], path: str) -> List[Dict[str, Any]]:
        items = data.get("items") or []
        if not isinstance(items, list) or not all(isinstance(item, dict) and "id" in item for item in items):
            raise SinkError(f"malformed response from GET {path}: items without ids")
        return items

    async def send_service_log(self, cluster_uuid: str, message: NotificationMessage) -> None:
        """Post a service log for a cluster"""
        body: Dict[str, Any] = {
            "service_name": SERVICE_LOG_SERVICE_NAME,
            "cluster_uuid": cluster_uuid,
            "summary": message.summary,
            "description": message.description,
            "internal_only": False,
            "severity": message.severity.value,
        }
        if message.log_type:
            body["log_type"] = message.log_type
        if message.references:
            body["doc_references"] = list(message.references)

        try:
            response = await self.client.post(SERVICE_LOGS_PATH, json=body)
        except httpx.HTTPError as e:
            raise SinkError(f"can't post service log: {e}")

        operation_id = response.headers.get(OPERATION_ID_HEADER)
        if response.status_code == 201:
            logger.info("service log sent succeeded", post_servicelog_operation_id=operation_id)
            return

        try:
            error = response.json()
        except ValueError:
            error = None
        reason = error.get("reason") if isinstance(error, dict) else response.text

        logger.error(
            "service log sent failed",
            post_servicelog_operation_id=operation_id,
            post_servicelog_failed_reason=reason
        )
        raise SinkError(
            _SERVICE_LOG_ERRORS.get(response.status_code, "unknown Service Log return code"),
            status_code=response.status_code,
            operation_id=operation_id
        )

    async def get_internal_id(self, external_id: str) -> str:
        """Resolve a cluster external ID to its OCM internal ID"""
        data = await self._get_json(CLUSTERS_PATH, {"search": f"external_id='{external_id}'"})
        items = self._items(data, CLUSTERS_PATH)
        if not items:
            raise SinkError(f"can't get internal id: cluster {external_id} not found")
        return items[0]["id"]

    async def send_limited_support(self, cluster_uuid: str, summary: str, details: str) -> None:
        """Put a cluster into limited support"""
        internal_id = await self.get_internal_id(cluster_uuid)
        body = {"summary": summary, "details": details, "detection_type": "manual"}

        try:
            response = await self.client.post(f"{CLUSTERS_PATH}/{internal_id}/limited_support_reasons", json=body)
        except httpx.HTTPError as e:
            raise SinkError(f"can't post limited support: {e}")

        if response.status_code < 200 or response.status_code >= 300:
            raise SinkError(
                f"unexpected status: {response.status_code}",
                status_code=response.status_code,
                operation_id=response.headers.get(OPERATION_ID_HEADER)
            )

    async def get_limited_support_reasons(self, cluster_uuid: str) -> List[Dict[str, Any]]:
        """List the limited support reasons of a cluster"""
        internal_id = await self.get_internal_id(cluster_uuid)
        path = f"{CLUSTERS_PATH}/{internal_id}/limited_support_reasons"
        return self._items(await self._get_json(path), path)

    async def remove_limited_support(self, cluster_uuid: str, reason_id: str) -> None:
        """Remove one limited support reason from a cluster"""
        internal_id = await self.get_internal_id(cluster_uuid)
        path = f"{CLUSTERS_PATH}/{internal_id}/limited_support_reasons/{reason_id}"

        try:
            response = await self.client.delete(path)
        except httpx.HTTPError as e:
            raise SinkError(
                f"can't delete limited support reason {reason_id} from cluster {cluster_uuid}: {e}"
            )

        if response.status_code < 200 or response.status_code >= 300:
            raise SinkError(
                f"unexpected status: {response.status_code}",
                status_code=response.status_code,
                operation_id=response.headers.get(OPERATION_ID_HEADER)
            )


class OCMNotificationSink(NotificationSink):
    """Sink routing notifications to service logs or limited support"""

    def __init__(self, client: OCMClient):
        self.ocm = client

    async def send(
        self,
        definition: NotificationDefinition,
        firing: bool,
        target_id: str,
        message: NotificationMessage
    ) -> None:
        log = logger.bind(**{LOG_FIELD_NOTIFICATION: definition.name, LOG_FIELD_TARGET: target_id})

        try:
            if not definition.limited_support:
                log.info("will send servicelog for notification", is_firing=firing)
                await self.ocm.send_service_log(target_id, message)
            elif firing:
                log.info("will send limited support for notification")
                await self.ocm.send_limited_support(target_id, message.summary, message.description)
            else:
                await self._remove_limited_support(log, target_id, message)
        except SinkError as e:
            e.notification_name = definition.name
            raise

    async def _remove_limited_support(self, log, target_id: str, message: NotificationMessage) -> None:
        reasons = await self.ocm.get_limited_support_reasons(target_id)
        for reason in reasons:
            # TODO: only remove reasons this relay posted once OCM records the poster
            if message.description in (reason.get("details") or ""):
                log.info("will remove limited support reason for notification", reason_id=reason.get("id"))
                await self.ocm.remove_limited_support(target_id, reason["id"])

    async def close(self) -> None:
        await self.ocm.close()
