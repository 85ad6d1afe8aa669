"""
Access Resolver
Document-level access control from role, ownership and explicit grants
"""

import uuid
from dataclasses import dataclass
from typing import Iterable, Union

from docvault.core.exceptions import AuthorizationException, StorageException
from docvault.core.logging import get_logger
from docvault.db.models import Document, PermissionLevel, UserRole
from docvault.monitoring import access_decisions_total
from docvault.repositories.documents import DocumentRepository
from docvault.repositories.permissions import PermissionRepository

logger = get_logger(__name__)

# Grant levels accepted by require_level() for each kind of mutation
WRITE_LEVELS = frozenset({PermissionLevel.WRITE, PermissionLevel.ADMIN})
DELETE_LEVELS = frozenset({PermissionLevel.DELETE, PermissionLevel.ADMIN})
SHARE_LEVELS = frozenset({PermissionLevel.ADMIN})


@dataclass(frozen=True)
class Principal:
    """Authenticated caller"""

    user_id: uuid.UUID
    role: UserRole = UserRole.USER

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @classmethod
    def from_user(cls, user) -> "Principal":
        return cls(user_id=user.id, role=UserRole(user.role))


class AccessResolver:
    """Decide whether a principal may act on a document"""

    def __init__(
        self,
        documents: DocumentRepository,
        permissions: PermissionRepository,
    ):
        self.documents = documents
        self.permissions = permissions

    async def authorize(
        self,
        principal: Principal,
        document: Union[Document, uuid.UUID],
    ) -> bool:
        """
        Check access; first matching rule wins

        1. admin role
        2. owner of the document
        3. any explicit grant on (document, principal), whatever its level

        Args:
            principal: Caller identity and role
            document: Loaded document, or its id

        Returns:
            True if allowed. Unknown documents and storage failures resolve
            to False; callers that need a 404 load the document first.
        """
        if principal.is_admin:
            logger.debug(f"Admin {principal.user_id} allowed on {_doc_id(document)}")
            access_decisions_total.labels(decision="allowed", rule="admin").inc()
            return True

        if isinstance(document, uuid.UUID):
            try:
                loaded = await self.documents.get(document)
            except StorageException:
                logger.warning(f"Document lookup failed for {document}; denying {principal.user_id}")
                access_decisions_total.labels(decision="denied", rule="error").inc()
                return False
            if loaded is None:
                logger.debug(f"Document {document} not found; denying {principal.user_id}")
                access_decisions_total.labels(decision="denied", rule="not_found").inc()
                return False
            document = loaded

        if document.owner_id == principal.user_id:
            logger.debug(f"Owner {principal.user_id} allowed on {document.id}")
            access_decisions_total.labels(decision="allowed", rule="owner").inc()
            return True

        try:
            grant = await self.permissions.find_by_document_and_user(document.id, principal.user_id)
        except Exception as e:
            logger.warning(
                f"Permission lookup failed for user {principal.user_id} on {document.id}; denying: {e}"
            )
            access_decisions_total.labels(decision="denied", rule="error").inc()
            return False

        if grant is not None:
            logger.debug(
                f"User {principal.user_id} allowed on {document.id} via '{grant.permission.value}' grant"
            )
            access_decisions_total.labels(decision="allowed", rule="grant").inc()
            return True

        logger.debug(f"User {principal.user_id} denied on {document.id} (no grant)")
        access_decisions_total.labels(decision="denied", rule="none").inc()
        return False

    async def require_access(
        self,
        principal: Principal,
        document: Union[Document, uuid.UUID],
    ) -> None:
        """
        Require access or raise exception

        Raises:
            AuthorizationException: If the resolver denies access
        """
        if not await self.authorize(principal, document):
            raise AuthorizationException(
                message="Access denied",
                details={"document_id": str(_doc_id(document))},
            )

    async def require_level(
        self,
        principal: Principal,
        document: Document,
        levels: Iterable[PermissionLevel],
    ) -> None:
        """
        Require access plus, for grantees, a grant at one of the given levels

        Admins and owners pass unconditionally. This is the caller-side
        level check for mutating operations; authorize() itself ignores levels.

        Raises:
            AuthorizationException: If access or the level requirement fails
        """
        await self.require_access(principal, document)
        if principal.is_admin or document.owner_id == principal.user_id:
            return

        allowed = set(levels)
        try:
            grant = await self.permissions.find_by_document_and_user(document.id, principal.user_id)
        except Exception as e:
            logger.warning(f"Permission lookup failed for level check on {document.id}; denying: {e}")
            grant = None

        if grant is None or grant.permission not in allowed:
            raise AuthorizationException(
                message="Insufficient permission level",
                details={
                    "document_id": str(document.id),
                    "required": sorted(level.value for level in allowed),
                },
            )


def _doc_id(document: Union[Document, uuid.UUID]) -> uuid.UUID:
    return document if isinstance(document, uuid.UUID) else document.id
