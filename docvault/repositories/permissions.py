"""
Permission Store
(document, user) -> grant rows, independent of ownership
"""

import uuid
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError

from docvault.core.exceptions import ConflictException
from docvault.db.models import DocumentPermission, PermissionLevel
from docvault.repositories.base import BaseRepository


class PermissionRepository(BaseRepository):
    """Grant storage keyed by (document_id, user_id) uniqueness"""

    async def create(
        self,
        *,
        document_id: uuid.UUID,
        user_id: uuid.UUID,
        permission: PermissionLevel,
        granted_by: uuid.UUID,
    ) -> DocumentPermission:
        grant = DocumentPermission(
            document_id=document_id,
            user_id=user_id,
            permission=permission,
            granted_by=granted_by,
        )
        async with self._storage("permission.create"):
            try:
                self.session.add(grant)
                await self.session.flush()
            except IntegrityError as e:
                # Unique (document_id, user_id) lost a race with another grant
                await self.session.rollback()
                raise ConflictException(
                    message="Permission already exists for this user and document",
                    details={"document_id": str(document_id), "user_id": str(user_id)},
                ) from e
        return grant

    async def get(self, permission_id: uuid.UUID) -> Optional[DocumentPermission]:
        async with self._storage("permission.get"):
            result = await self.session.execute(
                select(DocumentPermission).where(DocumentPermission.id == permission_id)
            )
            return result.scalar_one_or_none()

    async def find_by_document(self, document_id: uuid.UUID) -> List[DocumentPermission]:
        async with self._storage("permission.find_by_document"):
            result = await self.session.execute(
                select(DocumentPermission)
                .where(DocumentPermission.document_id == document_id)
                .order_by(DocumentPermission.granted_at)
            )
            return list(result.scalars().all())

    async def find_by_user(self, user_id: uuid.UUID) -> List[DocumentPermission]:
        async with self._storage("permission.find_by_user"):
            result = await self.session.execute(
                select(DocumentPermission)
                .where(DocumentPermission.user_id == user_id)
                .order_by(DocumentPermission.granted_at)
            )
            return list(result.scalars().all())

    async def find_by_document_and_user(
        self,
        document_id: uuid.UUID,
        user_id: uuid.UUID,
    ) -> Optional[DocumentPermission]:
        async with self._storage("permission.find_by_document_and_user"):
            result = await self.session.execute(
                select(DocumentPermission).where(
                    DocumentPermission.document_id == document_id,
                    DocumentPermission.user_id == user_id,
                )
            )
            return result.scalar_one_or_none()

    async def update_level(
        self,
        grant: DocumentPermission,
        permission: PermissionLevel,
    ) -> DocumentPermission:
        async with self._storage("permission.update_level"):
            grant.permission = permission
            await self.session.flush()
        return grant

    async def delete(self, permission_id: uuid.UUID) -> bool:
        async with self._storage("permission.delete"):
            result = await self.session.execute(
                delete(DocumentPermission).where(DocumentPermission.id == permission_id)
            )
            return result.rowcount > 0
