"""
Tests for health checks
"""

from unittest.mock import AsyncMock

import httpx
import pytest

from fleetrelay.core.health import ComponentStatus, URLAvailabilityChecker, check_store
from fleetrelay.exceptions.base import HealthCheckError, StoreUnavailableError
from fleetrelay.stores.base import RecordStore
from fleetrelay.stores.memory import InMemoryRecordStore


def checker_for(handler):
    return URLAvailabilityChecker(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


class TestURLAvailabilityChecker:
    """Test URL availability checks"""

    @pytest.mark.asyncio
    async def test_available(self):
        checker = checker_for(lambda request: httpx.Response(200))
        await checker.check("https://ocm.example.com")

    @pytest.mark.asyncio
    async def test_error_status(self):
        checker = checker_for(lambda request: httpx.Response(503))

        with pytest.raises(HealthCheckError) as exc_info:
            await checker.check("https://ocm.example.com")
        assert "503" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_retry_until_available(self):
        attempts = []

        def handler(request):
            attempts.append(request)
            return httpx.Response(503 if len(attempts) == 1 else 200)

        checker = checker_for(handler)
        await checker.check_with_retry("https://ocm.example.com", attempts=3, max_wait=0.1)

        assert len(attempts) == 2

    @pytest.mark.asyncio
    async def test_retries_exhausted(self):
        checker = checker_for(lambda request: httpx.Response(500))

        with pytest.raises(HealthCheckError):
            await checker.check_with_retry("https://ocm.example.com", attempts=2, max_wait=0.1)


class TestCheckStore:
    """Test record store readiness"""

    @pytest.mark.asyncio
    async def test_store_up(self):
        health = await check_store(InMemoryRecordStore())

        assert health.status == ComponentStatus.UP
        assert health.healthy

    @pytest.mark.asyncio
    async def test_store_error(self):
        store = AsyncMock(spec=RecordStore)
        store.ping.side_effect = StoreUnavailableError("connection refused")

        health = await check_store(store)

        assert health.status == ComponentStatus.DOWN
        assert "connection refused" in health.message
        assert health.to_dict()["status"] == "down"
