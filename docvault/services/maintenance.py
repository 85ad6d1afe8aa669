"""
Token Maintenance
Periodic sweep of expired download tokens
"""

import asyncio
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from docvault.core.config import settings
from docvault.core.exceptions import AppException
from docvault.core.logging import get_logger
from docvault.repositories.documents import DocumentRepository
from docvault.repositories.tokens import DownloadTokenRepository
from docvault.services.download_tokens import DownloadTokenService

logger = get_logger(__name__)


async def sweep_expired_tokens(session: AsyncSession) -> int:
    """Run one cleanup pass inside the given session"""
    service = DownloadTokenService(
        session=session,
        tokens=DownloadTokenRepository(session),
        documents=DocumentRepository(session),
        ttl=settings.DOWNLOAD_LINK_EXPIRES_IN,
    )
    return await service.cleanup()


class TokenCleanupScheduler:
    """Background task running the sweep on a fixed interval"""

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession],
        interval_seconds: int,
    ):
        self.session_factory = session_factory
        self.interval_seconds = interval_seconds
        self._stop_event = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.interval_seconds <= 0:
            logger.info("Token cleanup scheduler disabled")
            return
        if self.running:
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self._loop())
        logger.info(f"Token cleanup scheduler started (every {self.interval_seconds}s)")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._stop_event.set()
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Token cleanup scheduler stopped")

    async def run_once(self) -> int:
        async with self.session_factory() as session:
            return await sweep_expired_tokens(session)

    async def _loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval_seconds)
                break
            except asyncio.TimeoutError:
                pass

            try:
                await self.run_once()
            except asyncio.CancelledError:
                raise
            except AppException as e:
                logger.warning(f"Token cleanup sweep failed: {e.message}")
            except Exception as e:
                logger.error(f"Unexpected error in token cleanup sweep: {e}")
