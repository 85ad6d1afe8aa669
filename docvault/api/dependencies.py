"""
API Dependencies
Common dependencies for API routes
"""

import uuid
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from docvault.core.config import settings
from docvault.core.exceptions import AuthenticationException, AuthorizationException
from docvault.core.permissions import AccessResolver, Principal
from docvault.core.security import verify_access_token
from docvault.db.models import User as UserModel
from docvault.db.session import get_db_session
from docvault.repositories.documents import DocumentRepository
from docvault.repositories.permissions import PermissionRepository
from docvault.repositories.tokens import DownloadTokenRepository
from docvault.repositories.users import UserRepository
from docvault.services.documents import DocumentService
from docvault.services.download_tokens import DownloadTokenService
from docvault.services.permissions import PermissionService
from docvault.services.search import SearchEngine


async def get_current_user(
    authorization: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db_session),
) -> UserModel:
    """
    Dependency to get current user from JWT token

    Args:
        authorization: Authorization header with Bearer token
        db: Database session

    Returns:
        Current authenticated user

    Raises:
        AuthenticationException: If token is invalid or user not found
    """
    if not authorization:
        raise AuthenticationException(message="Missing authorization header")

    if not authorization.startswith("Bearer "):
        raise AuthenticationException(message="Invalid authorization header format")

    token = authorization.split(" ", 1)[1].strip()

    payload = verify_access_token(token)

    try:
        user_id = uuid.UUID(str(payload["sub"]))
    except ValueError:
        raise AuthenticationException(message="Invalid token subject")

    user = await UserRepository(db).get(user_id)

    if not user or not user.is_active:
        raise AuthenticationException(message="Invalid token or user inactive")

    return user


async def get_principal(
    current_user: UserModel = Depends(get_current_user),
) -> Principal:
    return Principal.from_user(current_user)


async def require_admin(
    principal: Principal = Depends(get_principal),
) -> Principal:
    if not principal.is_admin:
        raise AuthorizationException(message="Admin access required")
    return principal


def get_access_resolver(db: AsyncSession = Depends(get_db_session)) -> AccessResolver:
    return AccessResolver(DocumentRepository(db), PermissionRepository(db))


def get_document_service(db: AsyncSession = Depends(get_db_session)) -> DocumentService:
    return DocumentService(
        session=db,
        documents=DocumentRepository(db),
        upload_dir=settings.UPLOAD_DIR,
        max_upload_size=settings.MAX_UPLOAD_SIZE_BYTES,
    )


def get_permission_service(db: AsyncSession = Depends(get_db_session)) -> PermissionService:
    return PermissionService(
        session=db,
        permissions=PermissionRepository(db),
        documents=DocumentRepository(db),
        users=UserRepository(db),
    )


def get_download_token_service(
    db: AsyncSession = Depends(get_db_session),
) -> DownloadTokenService:
    return DownloadTokenService(
        session=db,
        tokens=DownloadTokenRepository(db),
        documents=DocumentRepository(db),
        ttl=settings.DOWNLOAD_LINK_EXPIRES_IN,
    )


def get_search_engine(db: AsyncSession = Depends(get_db_session)) -> SearchEngine:
    return SearchEngine(DocumentRepository(db))
