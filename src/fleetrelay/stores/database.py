"""
Database record store

Notification records in a SQL table, with a version column providing
compare-and-swap writes.
"""

from datetime import datetime, timezone
from typing import Tuple

from sqlalchemy import update as sql_update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
import structlog

from .base import RecordStore
from ..core.schemas import NotificationRecord
from ..database.models import NotificationRecordRow
from ..database.session import DatabaseManager
from ..exceptions.base import (
    RecordNotFoundError,
    RecordAlreadyExistsError,
    RecordConflictError,
    StoreUnavailableError,
    StoreError,
)

logger = structlog.get_logger(__name__)


class DatabaseRecordStore(RecordStore):
    """Record store over SQLAlchemy async sessions"""

    def __init__(self, db_manager: DatabaseManager):
        self.db_manager = db_manager

    @classmethod
    def from_url(cls, database_url: str, echo: bool = False) -> "DatabaseRecordStore":
        return cls(DatabaseManager(database_url, echo=echo))

    async def initialize(self) -> None:
        try:
            await self.db_manager.create_tables()
        except SQLAlchemyError as e:
            raise StoreUnavailableError(f"Unable to create notification record tables: {e}", original_error=e)

    async def get(self, management_cluster_id: str) -> Tuple[NotificationRecord, int]:
        try:
            async with self.db_manager.get_async_session() as session:
                row = await session.get(NotificationRecordRow, management_cluster_id)
                if row is not None:
                    record = NotificationRecord.model_validate(row.to_dict())
                    version = row.version
        except SQLAlchemyError as e:
            raise StoreUnavailableError(
                f"Unable to read notification record for {management_cluster_id}: {e}",
                management_cluster_id,
                e
            )

        if row is None:
            raise RecordNotFoundError(
                f"No notification record for {management_cluster_id}",
                management_cluster_id
            )
        return record, version

    async def create(self, management_cluster_id: str) -> Tuple[NotificationRecord, int]:
        try:
            async with self.db_manager.get_async_session() as session:
                session.add(NotificationRecordRow(
                    management_cluster_id=management_cluster_id,
                    version=1,
                    records_by_name=[]
                ))
        except IntegrityError:
            raise RecordAlreadyExistsError(
                f"Notification record for {management_cluster_id} already exists",
                management_cluster_id
            )
        except SQLAlchemyError as e:
            raise StoreUnavailableError(
                f"Unable to create notification record for {management_cluster_id}: {e}",
                management_cluster_id,
                e
            )

        logger.debug("Notification record created", management_cluster_id=management_cluster_id)
        return NotificationRecord(management_cluster_id=management_cluster_id), 1

    async def update(
        self,
        management_cluster_id: str,
        record: NotificationRecord,
        version_token: int
    ) -> int:
        payload = [entry.model_dump(mode="json") for entry in record.records_by_name]
        new_version = version_token + 1

        statement = (
            sql_update(NotificationRecordRow)
            .where(
                NotificationRecordRow.management_cluster_id == management_cluster_id,
                NotificationRecordRow.version == version_token
            )
            .values(
                version=new_version,
                records_by_name=payload,
                updated_at=datetime.now(timezone.utc)
            )
            .execution_options(synchronize_session=False)
        )

        try:
            async with self.db_manager.get_async_session() as session:
                result = await session.execute(statement)
                updated = result.rowcount
        except SQLAlchemyError as e:
            raise StoreError(
                f"Unable to write notification record for {management_cluster_id}: {e}",
                management_cluster_id
            )

        if updated == 0:
            raise RecordConflictError(
                f"Notification record for {management_cluster_id} changed since version {version_token}",
                management_cluster_id,
                version_token
            )
        return new_version

    async def ping(self) -> bool:
        return await self.db_manager.test_connection()

    async def close(self) -> None:
        await self.db_manager.close()
