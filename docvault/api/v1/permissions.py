"""
Permission Management API Routes
Grant, revoke, update and list document permissions
"""

from fastapi import APIRouter, Depends, status

from docvault.api.dependencies import (
    get_access_resolver,
    get_document_service,
    get_permission_service,
    get_principal,
)
from docvault.core.identifiers import (
    parse_document_id,
    parse_permission_id,
    parse_user_id,
)
from docvault.core.logging import get_logger
from docvault.core.permissions import SHARE_LEVELS, AccessResolver, Principal
from docvault.models.common import SuccessResponse
from docvault.models.permission import (
    GrantPermissionRequest,
    PermissionListResponse,
    PermissionResponse,
    UpdatePermissionRequest,
)
from docvault.services.documents import DocumentService
from docvault.services.permissions import PermissionService

logger = get_logger(__name__)
router = APIRouter(prefix="/api/v1", tags=["Permissions"])


@router.post(
    "/documents/{document_id}/permissions",
    response_model=PermissionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def grant_permission(
    document_id: str,
    request: GrantPermissionRequest,
    principal: Principal = Depends(get_principal),
    documents: DocumentService = Depends(get_document_service),
    permissions: PermissionService = Depends(get_permission_service),
    resolver: AccessResolver = Depends(get_access_resolver),
):
    """
    Grant a user access to a document

    Only the owner, an admin or a grantee holding `admin` level may share.
    A second grant for the same user is rejected with 409.
    """
    document = await documents.get(parse_document_id(document_id))
    await resolver.require_level(principal, document, SHARE_LEVELS)

    grant = await permissions.grant(
        document_id=document.id,
        user_id=parse_user_id(request.user_id),
        permission=request.permission,
        granted_by=principal.user_id,
    )
    return PermissionResponse.from_db_model(grant)


@router.get("/documents/{document_id}/permissions", response_model=PermissionListResponse)
async def list_document_permissions(
    document_id: str,
    principal: Principal = Depends(get_principal),
    documents: DocumentService = Depends(get_document_service),
    permissions: PermissionService = Depends(get_permission_service),
    resolver: AccessResolver = Depends(get_access_resolver),
):
    """List every grant on a document"""
    document = await documents.get(parse_document_id(document_id))
    await resolver.require_access(principal, document)

    grants = await permissions.list_for_document(document.id)
    return PermissionListResponse(
        permissions=[PermissionResponse.from_db_model(g) for g in grants]
    )


@router.get("/permissions/my", response_model=PermissionListResponse)
async def list_my_permissions(
    principal: Principal = Depends(get_principal),
    permissions: PermissionService = Depends(get_permission_service),
):
    """List grants held by the caller"""
    grants = await permissions.list_for_user(principal.user_id)
    return PermissionListResponse(
        permissions=[PermissionResponse.from_db_model(g) for g in grants]
    )


@router.put("/permissions/{permission_id}", response_model=PermissionResponse)
async def update_permission(
    permission_id: str,
    request: UpdatePermissionRequest,
    principal: Principal = Depends(get_principal),
    documents: DocumentService = Depends(get_document_service),
    permissions: PermissionService = Depends(get_permission_service),
    resolver: AccessResolver = Depends(get_access_resolver),
):
    """Change the level of an existing grant"""
    grant = await permissions.get(parse_permission_id(permission_id))
    document = await documents.get(grant.document_id)
    await resolver.require_level(principal, document, SHARE_LEVELS)

    grant = await permissions.update_level(grant.id, request.permission)
    return PermissionResponse.from_db_model(grant)


@router.delete("/permissions/{permission_id}", response_model=SuccessResponse)
async def revoke_permission(
    permission_id: str,
    principal: Principal = Depends(get_principal),
    documents: DocumentService = Depends(get_document_service),
    permissions: PermissionService = Depends(get_permission_service),
    resolver: AccessResolver = Depends(get_access_resolver),
):
    """Revoke a grant"""
    grant = await permissions.get(parse_permission_id(permission_id))
    document = await documents.get(grant.document_id)
    await resolver.require_level(principal, document, SHARE_LEVELS)

    await permissions.revoke(grant.id)
    return SuccessResponse(
        message="Permission revoked successfully",
        data={"permission_id": permission_id, "document_id": str(document.id)},
    )
