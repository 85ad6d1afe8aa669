"""
Permission Service
Grant, list, update and revoke explicit document permissions
"""

import uuid
from typing import List

from sqlalchemy.ext.asyncio import AsyncSession

from docvault.core.exceptions import ConflictException, NotFoundException
from docvault.core.logging import get_logger
from docvault.db.models import DocumentPermission, PermissionLevel
from docvault.repositories.documents import DocumentRepository
from docvault.repositories.permissions import PermissionRepository
from docvault.repositories.users import UserRepository

logger = get_logger(__name__)


class PermissionService:
    """Grant lifecycle; authorization of the caller is the router's job"""

    def __init__(
        self,
        session: AsyncSession,
        permissions: PermissionRepository,
        documents: DocumentRepository,
        users: UserRepository,
    ):
        self.session = session
        self.permissions = permissions
        self.documents = documents
        self.users = users

    async def grant(
        self,
        document_id: uuid.UUID,
        user_id: uuid.UUID,
        permission: PermissionLevel,
        granted_by: uuid.UUID,
    ) -> DocumentPermission:
        """
        Create a grant for (document, user)

        Raises:
            NotFoundException: Unknown document or grantee
            ConflictException: A grant for the pair already exists
        """
        if await self.documents.get(document_id) is None:
            raise NotFoundException("Document", details={"document_id": str(document_id)})

        if await self.users.get(user_id) is None:
            raise NotFoundException("User", details={"user_id": str(user_id)})

        existing = await self.permissions.find_by_document_and_user(document_id, user_id)
        if existing is not None:
            raise ConflictException(
                message="Permission already exists for this user and document",
                details={
                    "document_id": str(document_id),
                    "user_id": str(user_id),
                    "permission_id": str(existing.id),
                },
            )

        grant = await self.permissions.create(
            document_id=document_id,
            user_id=user_id,
            permission=permission,
            granted_by=granted_by,
        )
        await self.session.commit()
        logger.info(
            f"Granted '{permission.value}' on document {document_id} to user {user_id} by {granted_by}"
        )
        return grant

    async def get(self, permission_id: uuid.UUID) -> DocumentPermission:
        grant = await self.permissions.get(permission_id)
        if grant is None:
            raise NotFoundException("Permission", details={"permission_id": str(permission_id)})
        return grant

    async def list_for_document(self, document_id: uuid.UUID) -> List[DocumentPermission]:
        return await self.permissions.find_by_document(document_id)

    async def list_for_user(self, user_id: uuid.UUID) -> List[DocumentPermission]:
        return await self.permissions.find_by_user(user_id)

    async def update_level(
        self,
        permission_id: uuid.UUID,
        permission: PermissionLevel,
    ) -> DocumentPermission:
        grant = await self.get(permission_id)
        grant = await self.permissions.update_level(grant, permission)
        await self.session.commit()
        logger.info(f"Permission {permission_id} changed to '{permission.value}'")
        return grant

    async def revoke(self, permission_id: uuid.UUID) -> None:
        if not await self.permissions.delete(permission_id):
            raise NotFoundException("Permission", details={"permission_id": str(permission_id)})
        await self.session.commit()
        logger.info(f"Revoked permission {permission_id}")
