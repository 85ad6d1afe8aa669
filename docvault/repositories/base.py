"""
Repository Base
Shared session handling and storage error translation
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from docvault.core.exceptions import StorageException
from docvault.core.logging import get_logger

logger = get_logger(__name__)


class BaseRepository:
    """Async SQLAlchemy repository bound to one session"""

    def __init__(self, session: AsyncSession):
        self.session = session

    @asynccontextmanager
    async def _storage(self, operation: str) -> AsyncIterator[None]:
        """Translate driver/ORM failures into StorageException"""
        try:
            yield
        except SQLAlchemyError as e:
            logger.error(f"Storage failure during {operation}: {e}")
            raise StorageException(
                message="Storage operation failed",
                operation=operation,
                details={"error": e.__class__.__name__},
            ) from e
