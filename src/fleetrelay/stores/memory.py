"""
In-memory record store

Process-local store with integer versions. Suitable for a single relay
replica and for tests.
"""

import asyncio
from typing import Dict, List, Tuple

import structlog

from .base import RecordStore
from ..core.schemas import NotificationRecord
from ..exceptions.base import (
    RecordNotFoundError,
    RecordAlreadyExistsError,
    RecordConflictError,
)

logger = structlog.get_logger(__name__)


class InMemoryRecordStore(RecordStore):
    """Record store keeping deep copies of records in a dict"""

    def __init__(self):
        self._records: Dict[str, Tuple[NotificationRecord, int]] = {}
        self._lock = asyncio.Lock()

    async def get(self, management_cluster_id: str) -> Tuple[NotificationRecord, int]:
        async with self._lock:
            entry = self._records.get(management_cluster_id)
            if entry is None:
                raise RecordNotFoundError(
                    f"No notification record for {management_cluster_id}",
                    management_cluster_id
                )
            record, version = entry
            return record.model_copy(deep=True), version

    async def create(self, management_cluster_id: str) -> Tuple[NotificationRecord, int]:
        async with self._lock:
            if management_cluster_id in self._records:
                raise RecordAlreadyExistsError(
                    f"Notification record for {management_cluster_id} already exists",
                    management_cluster_id
                )
            record = NotificationRecord(management_cluster_id=management_cluster_id)
            self._records[management_cluster_id] = (record, 1)
            logger.debug("Notification record created", management_cluster_id=management_cluster_id)
            return record.model_copy(deep=True), 1

    async def update(
        self,
        management_cluster_id: str,
        record: NotificationRecord,
        version_token: int
    ) -> int:
        async with self._lock:
            entry = self._records.get(management_cluster_id)
            # A record deleted underneath the writer is a conflict: the next
            # read recreates it
            if entry is None or entry[1] != version_token:
                raise RecordConflictError(
                    f"Notification record for {management_cluster_id} changed since version {version_token}",
                    management_cluster_id,
                    version_token
                )
            new_version = version_token + 1
            self._records[management_cluster_id] = (record.model_copy(deep=True), new_version)
            return new_version

    async def delete(self, management_cluster_id: str) -> bool:
        """Remove a record; administrative use only"""
        async with self._lock:
            return self._records.pop(management_cluster_id, None) is not None

    def management_cluster_ids(self) -> List[str]:
        return sorted(self._records)
