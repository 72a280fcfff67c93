"""
Fleet Relay Webhook Service

FastAPI server receiving Alertmanager webhook batches and relaying the
managed notifications they carry through the resend coordinator.
"""

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError as PydanticValidationError
import uvicorn
import structlog

from ..core.catalog import NotificationCatalog
from ..core.classifier import AlertClassifier
from ..core.config import RelayConfig, get_config
from ..core.coordinator import ResendCoordinator
from ..core.health import URLAvailabilityChecker, check_store
from ..core.schemas import Alert, AlertBatch, Outcome
from ..exceptions.base import ConfigurationError, ValidationError
from ..sinks.base import NotificationSink
from ..sinks.ocm import OCMClient, OCMNotificationSink
from ..stores import RecordStore, create_record_store
from ..utils.logging import setup_logging
from ..utils.metrics import MetricsCollector

logger = structlog.get_logger(__name__)


WEBHOOK_RECEIVER_PATH = "/alertmanager-receiver"
LIVEZ_PATH = "/livez"
READYZ_PATH = "/readyz"
METRICS_PATH = "/metrics"

# Probe and scrape traffic is not counted as relay requests
UNCOUNTED_PATHS = frozenset({LIVEZ_PATH, READYZ_PATH, METRICS_PATH})


class WebhookService:
    """
    Fleet Relay webhook service

    Wires the catalog, classifier, record store, sink and metrics into a
    resend coordinator and turns webhook batches into per-alert outcomes.
    Any collaborator not given is built from configuration.
    """

    def __init__(
        self,
        config: Optional[RelayConfig] = None,
        catalog: Optional[NotificationCatalog] = None,
        store: Optional[RecordStore] = None,
        sink: Optional[NotificationSink] = None,
        metrics: Optional[MetricsCollector] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.config = config or get_config()
        self.metrics = metrics or MetricsCollector("fleet-relay")

        if catalog is None:
            if not self.config.notifications_path:
                raise ConfigurationError(
                    "notifications_path is required to load the notification catalog",
                    "notifications_path"
                )
            catalog = NotificationCatalog.from_yaml(self.config.notifications_path)

        self.catalog = catalog
        self.store = store or create_record_store(self.config)
        self.sink = sink or OCMNotificationSink(OCMClient(self.config))
        self.classifier = AlertClassifier(self.config.fleet_mode, self.config.cluster_id)
        self.coordinator = ResendCoordinator(
            catalog=self.catalog,
            store=self.store,
            sink=self.sink,
            metrics=self.metrics,
            clock=clock,
            max_conflicts=self.config.max_conflicts,
            default_timeout=self.config.process_timeout
        )

        logger.info(
            "Webhook service initialized",
            fleet_mode=self.config.fleet_mode,
            notifications=len(self.catalog),
            store_backend=type(self.store).__name__
        )

    async def start(self) -> None:
        await self.store.initialize()

    async def stop(self) -> None:
        await self.sink.close()
        await self.store.close()

    @staticmethod
    def parse_batch(payload: Any) -> AlertBatch:
        """Validate a decoded webhook body"""
        try:
            return AlertBatch.model_validate(payload)
        except PydanticValidationError as e:
            raise ValidationError(f"invalid Alertmanager webhook body: {e}", field="alerts") from e

    async def process_batch(self, batch: AlertBatch) -> Tuple[int, Dict[str, Any]]:
        """
        Process every alert of a batch concurrently.

        Returns:
            HTTP status code and response body. The status is 500 when any
            alert failed in a way a redelivery could fix, so Alertmanager
            sends the batch again.
        """
        logger.info("Process alert data", receiver=batch.receiver, alerts=len(batch.alerts))

        results: List[Optional[Dict[str, Any]]] = [None] * len(batch.alerts)
        pending = []

        for index, alert in enumerate(batch.alerts):
            key = self.classifier.classify(alert)
            if key is None:
                self.metrics.record_invalid_alert()
                results[index] = self._result(alert, None)
                continue
            pending.append((index, alert, self.coordinator.process(key, alert)))

        outcomes = await asyncio.gather(*(coro for _, _, coro in pending))

        retryable = False
        for (index, alert, _), outcome in zip(pending, outcomes):
            results[index] = self._result(alert, outcome)
            if outcome.retryable:
                retryable = True

        if retryable:
            return status.HTTP_500_INTERNAL_SERVER_ERROR, {
                "status": "some alerts could not be processed",
                "code": status.HTTP_500_INTERNAL_SERVER_ERROR,
                "results": results,
            }
        return status.HTTP_200_OK, {"status": "ok", "code": status.HTTP_200_OK, "results": results}

    @staticmethod
    def _result(alert: Alert, outcome: Optional[Outcome]) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "alertname": alert.labels.get("alertname"),
            "firing": alert.firing,
        }
        if outcome is None:
            result.update({"status": "invalid", "reason": None, "detail": None})
        else:
            result.update(outcome.to_dict())
        return result

    async def readiness(self) -> Tuple[bool, Dict[str, Any]]:
        store_health = await check_store(self.store)
        return store_health.healthy, {store_health.name: store_health.to_dict()}


def create_app(service: Optional[WebhookService] = None, config: Optional[RelayConfig] = None) -> FastAPI:
    """Create FastAPI application"""
    relay = service or WebhookService(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan management"""
        await relay.start()
        logger.info("Fleet relay started")
        try:
            yield
        finally:
            await relay.stop()
            logger.info("Fleet relay stopped")

    app = FastAPI(
        title="Fleet Relay",
        description="Relays Alertmanager alerts as managed notifications",
        version="0.1.0",
        lifespan=lifespan
    )
    app.state.relay = relay

    @app.middleware("http")
    async def record_request_metrics(request: Request, call_next):
        path = request.url.path
        response = await call_next(request)
        if path not in UNCOUNTED_PATHS:
            relay.metrics.record_request(path)
            if response.status_code == status.HTTP_200_OK:
                relay.metrics.reset_request_failures()
            else:
                relay.metrics.record_failed_request(path)
        return response

    @app.post(WEBHOOK_RECEIVER_PATH)
    async def alertmanager_receiver(request: Request):
        """Receive an Alertmanager webhook batch"""
        try:
            batch = relay.parse_batch(await request.json())
        except (ValueError, ValidationError) as e:
            logger.error("Failed to process request body", error=str(e))
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content={"status": "Bad request body", "code": status.HTTP_400_BAD_REQUEST}
            )

        code, body = await relay.process_batch(batch)
        return JSONResponse(status_code=code, content=body)

    @app.get(LIVEZ_PATH)
    async def livez():
        """Liveness probe"""
        return {"status": "ok"}

    @app.get(READYZ_PATH)
    async def readyz():
        """Readiness probe"""
        ready, components = await relay.readiness()
        if not ready:
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={"status": "unavailable", "components": components}
            )
        return {"status": "ok", "components": components}

    @app.get(METRICS_PATH)
    async def metrics():
        """Prometheus metrics endpoint"""
        return Response(content=relay.metrics.get_metrics(), media_type=relay.metrics.content_type)

    return app


async def run_server(config: Optional[RelayConfig] = None, check_ocm: bool = True):
    """Run the relay web service"""
    config_obj = config or get_config()
    setup_logging(config_obj.log_level, "fleet-relay")

    if check_ocm:
        checker = URLAvailabilityChecker(timeout=config_obj.request_timeout)
        try:
            await checker.check_with_retry(config_obj.ocm_base_url)
        finally:
            await checker.close()

    app = create_app(config=config_obj)

    uvicorn_config = uvicorn.Config(
        app,
        host=config_obj.host,
        port=config_obj.port,
        log_level=config_obj.log_level.lower(),
        access_log=config_obj.debug_mode
    )

    server = uvicorn.Server(uvicorn_config)
    logger.info(f"Starting Fleet Relay on {config_obj.host}:{config_obj.port}")
    await server.serve()
