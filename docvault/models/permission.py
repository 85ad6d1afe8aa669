"""
Permission Pydantic Models
"""

from datetime import datetime
from typing import List

from pydantic import BaseModel, Field

from docvault.db.models import DocumentPermission, PermissionLevel


class GrantPermissionRequest(BaseModel):
    """Request model for granting permission"""
    user_id: str = Field(..., description="User ID to grant permission to")
    permission: PermissionLevel = Field(..., description="read, write, delete or admin")


class UpdatePermissionRequest(BaseModel):
    permission: PermissionLevel


class PermissionResponse(BaseModel):
    """Response model for permission"""
    permission_id: str
    document_id: str
    user_id: str
    permission: PermissionLevel
    granted_by: str
    granted_at: datetime

    @classmethod
    def from_db_model(cls, grant: DocumentPermission) -> "PermissionResponse":
        return cls(
            permission_id=str(grant.id),
            document_id=str(grant.document_id),
            user_id=str(grant.user_id),
            permission=grant.permission,
            granted_by=str(grant.granted_by),
            granted_at=grant.granted_at,
        )


class PermissionListResponse(BaseModel):
    permissions: List[PermissionResponse]
