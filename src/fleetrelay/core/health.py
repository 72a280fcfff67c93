"""
Health checks for the relay

Readiness of the record store and availability of the OCM API.
"""

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

import httpx
import structlog
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_random_exponential

from ..exceptions.base import HealthCheckError
from ..stores.base import RecordStore

logger = structlog.get_logger(__name__)


class ComponentStatus(str, Enum):
    """Individual component status"""
    UP = "up"
    DOWN = "down"


@dataclass
class ComponentHealth:
    """Health status of a relay component"""
    name: str
    status: ComponentStatus
    message: str = ""
    last_checked: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    response_time: float = 0.0

    @property
    def healthy(self) -> bool:
        return self.status == ComponentStatus.UP

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "message": self.message,
            "last_checked": self.last_checked.isoformat(),
            "response_time": round(self.response_time, 4),
        }


class URLAvailabilityChecker:
    """Checks that a URL answers a GET with a 2xx status"""

    def __init__(self, client: Optional[httpx.AsyncClient] = None, timeout: float = 10.0):
        self._client = client
        self._owns_client = client is None
        self.timeout = timeout

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        if self._client and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def check(self, url: str) -> None:
        """
        Raises:
            HealthCheckError: If the URL is unreachable or answers non-2xx
        """
        try:
            response = await self.client.get(url)
        except httpx.HTTPError as e:
            raise HealthCheckError(f"failed to connect to {url}: {e}", url=url)

        if not 200 <= response.status_code < 300:
            raise HealthCheckError(
                f"failed to connect to {url} with http response code: {response.status_code}",
                url=url
            )

    async def check_with_retry(self, url: str, attempts: int = 3, max_wait: float = 8.0) -> None:
        """Check a URL, retrying with jittered exponential backoff"""
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(attempts),
            wait=wait_random_exponential(multiplier=1, max=max_wait),
            retry=retry_if_exception_type(HealthCheckError),
            reraise=True
        ):
            with attempt:
                try:
                    await self.check(url)
                except HealthCheckError as e:
                    logger.error("connection check failed", url=url, error=str(e))
                    raise


async def check_store(store: RecordStore) -> ComponentHealth:
    """Ping the record store"""
    started = time.perf_counter()
    try:
        reachable = await store.ping()
    except Exception as e:
        logger.warning("Record store health check failed", error=str(e))
        return ComponentHealth(
            name="record_store",
            status=ComponentStatus.DOWN,
            message=str(e),
            response_time=time.perf_counter() - started
        )

    return ComponentHealth(
        name="record_store",
        status=ComponentStatus.UP if reachable else ComponentStatus.DOWN,
        message="" if reachable else "record store is not reachable",
        response_time=time.perf_counter() - started
    )
