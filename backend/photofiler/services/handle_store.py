"""
PhotoFiler Backend: Directory Handle Store
============================================

What:  Persists one named DirectoryReference per key across restarts.
How:   One row per key in `directory_handles` (async SQLAlchemy session per
       operation). `value` holds the JSON record {"uri": ..., "name": ...}.
Who:   SaveOrchestrator only; it loads the root folder at startup, saves it
       on selection and clears it on revocation.

Failure policy:
    load()         fails soft. A missing, corrupt or unreadable record is
                   logged and reported as None, so startup never fails on it.
    save()/clear() raise DatabaseError; losing a selection must be visible.
"""

import logging
from typing import Optional

from pydantic import ValidationError
from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from photofiler.database import async_session_factory
from photofiler.exceptions import DatabaseError
from photofiler.models.directory_handle import DirectoryHandleRecord
from photofiler.schemas.storage import DirectoryReference

logger = logging.getLogger(__name__)


class DirectoryHandleStore:
    def __init__(self, session_factory: Optional[async_sessionmaker[AsyncSession]] = None):
        self.session_factory = session_factory or async_session_factory

    async def load(self, key: str) -> Optional[DirectoryReference]:
        try:
            async with self.session_factory() as session:
                record = await session.get(DirectoryHandleRecord, key)
        except SQLAlchemyError as e:
            logger.error("Failed to read directory handle '%s': %s", key, str(e))
            return None

        if record is None:
            return None
        try:
            return DirectoryReference.model_validate_json(record.value)
        except ValidationError as e:
            logger.warning("Discarding unreadable directory handle '%s': %s", key, str(e))
            return None

    async def save(self, key: str, ref: DirectoryReference) -> None:
        """Overwrites the record for `key` in a single transaction."""
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    await session.merge(DirectoryHandleRecord(key=key, value=ref.to_record()))
        except SQLAlchemyError as e:
            logger.error("Failed to save directory handle '%s': %s", key, str(e))
            raise DatabaseError(context={"key": key, "db_error": str(e)})
        logger.info("Directory handle saved: %s → %s", key, ref.display_name)

    async def clear(self, key: str) -> None:
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    await session.execute(
                        delete(DirectoryHandleRecord).where(DirectoryHandleRecord.key == key)
                    )
        except SQLAlchemyError as e:
            logger.error("Failed to clear directory handle '%s': %s", key, str(e))
            raise DatabaseError(context={"key": key, "db_error": str(e)})
        logger.info("Directory handle cleared: %s", key)
