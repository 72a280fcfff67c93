"""
Record store interface

A versioned key-value store of notification records, one per management
cluster. Every successful write advances an opaque version token; a write
carrying a stale token is rejected so concurrent writers never overwrite
each other's view.
"""

from abc import ABC, abstractmethod
from typing import Any, Tuple

from ..core.schemas import NotificationRecord


VersionToken = Any


class RecordStore(ABC):
    """Versioned storage of notification records"""

    async def initialize(self) -> None:
        """Prepare the backing storage"""

    @abstractmethod
    async def get(self, management_cluster_id: str) -> Tuple[NotificationRecord, VersionToken]:
        """
        Fetch the record of a management cluster.

        Raises:
            RecordNotFoundError: If no record exists
            StoreUnavailableError: If the store cannot be reached
        """

    @abstractmethod
    async def create(self, management_cluster_id: str) -> Tuple[NotificationRecord, VersionToken]:
        """
        Create an empty record for a management cluster.

        Raises:
            RecordAlreadyExistsError: If another writer created it first
            StoreUnavailableError: If the store cannot be reached
        """

    @abstractmethod
    async def update(
        self,
        management_cluster_id: str,
        record: NotificationRecord,
        version_token: VersionToken
    ) -> VersionToken:
        """
        Write a record if it still carries the given version.

        Returns:
            The new version token

        Raises:
            RecordConflictError: If the stored version moved on
            StoreError: For any other write failure
        """

    async def ping(self) -> bool:
        """Check the store is reachable"""
        return True

    async def close(self) -> None:
        """Release store resources"""
