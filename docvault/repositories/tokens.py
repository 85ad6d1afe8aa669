"""
Token Store
Opaque secret -> (document, expiry, used-at)
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import delete, select, update

from docvault.db.models import DownloadToken
from docvault.repositories.base import BaseRepository


class DownloadTokenRepository(BaseRepository):
    """Download token persistence with atomic consumption"""

    async def create(
        self,
        *,
        document_id: uuid.UUID,
        token: str,
        expires_at: datetime,
        created_by: uuid.UUID,
        created_at: datetime,
    ) -> DownloadToken:
        row = DownloadToken(
            document_id=document_id,
            token=token,
            expires_at=expires_at,
            created_by=created_by,
            created_at=created_at,
        )
        async with self._storage("token.create"):
            self.session.add(row)
            await self.session.flush()
        return row

    async def find_by_token(self, token: str) -> Optional[DownloadToken]:
        async with self._storage("token.find_by_token"):
            result = await self.session.execute(
                select(DownloadToken)
                .where(DownloadToken.token == token)
                .execution_options(populate_existing=True)
            )
            return result.scalar_one_or_none()

    async def consume(self, token: str, now: datetime) -> Optional[uuid.UUID]:
        """
        Mark an unused, unexpired token as used in one conditional UPDATE

        Returns:
            The token's document id, or None when no row qualified
        """
        stmt = (
            update(DownloadToken)
            .where(
                DownloadToken.token == token,
                DownloadToken.used_at.is_(None),
                DownloadToken.expires_at >= now,
            )
            .values(used_at=now)
            .returning(DownloadToken.document_id)
            .execution_options(synchronize_session=False)
        )
        async with self._storage("token.consume"):
            result = await self.session.execute(stmt)
            return result.scalar_one_or_none()

    async def delete_expired(self, now: datetime) -> int:
        """Remove every token whose expiry has passed, used or not"""
        async with self._storage("token.delete_expired"):
            result = await self.session.execute(
                delete(DownloadToken)
                .where(DownloadToken.expires_at < now)
                .execution_options(synchronize_session=False)
            )
            return result.rowcount
