"""
Document Pydantic Models
Request/response schemas for document endpoints
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from docvault.db.models import Document as DocumentSQLModel
from docvault.db.models import DocumentMetadata
from docvault.models.common import PaginationInfo


class DocumentResponse(BaseModel):
    """Document response schema"""
    document_id: str
    filename: str
    original_name: str
    content_type: str
    size_bytes: int
    owner_id: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_db_model(cls, doc: DocumentSQLModel) -> "DocumentResponse":
        """Create DocumentResponse from database model"""
        return cls(
            document_id=str(doc.id),
            filename=doc.filename,
            original_name=doc.original_name,
            content_type=doc.content_type,
            size_bytes=doc.size_bytes,
            owner_id=str(doc.owner_id),
            created_at=doc.created_at,
            updated_at=doc.updated_at,
        )


class DocumentDetailResponse(DocumentResponse):
    """Document with tags and metadata"""
    tags: List[str] = Field(default_factory=list)
    metadata: Dict[str, str] = Field(default_factory=dict)


class DocumentListResponse(BaseModel):
    """Paged document list / search response"""
    data: List[DocumentResponse]
    pagination: PaginationInfo


class RenameDocumentRequest(BaseModel):
    original_name: str = Field(..., min_length=1, max_length=512)


class AddTagRequest(BaseModel):
    tag: str = Field(..., min_length=1, max_length=100)


class AddMetadataRequest(BaseModel):
    key: str = Field(..., min_length=1, max_length=255)
    value: str = Field(..., min_length=1, max_length=1000)


class UpdateMetadataRequest(BaseModel):
    """Either field may be omitted; at least one is required"""
    key: Optional[str] = Field(None, min_length=1, max_length=255)
    value: Optional[str] = Field(None, min_length=1, max_length=1000)


class MetadataEntryResponse(BaseModel):
    metadata_id: str
    document_id: str
    key: str
    value: str
    created_at: datetime

    @classmethod
    def from_db_model(cls, entry: DocumentMetadata) -> "MetadataEntryResponse":
        return cls(
            metadata_id=str(entry.id),
            document_id=str(entry.document_id),
            key=entry.key,
            value=entry.value,
            created_at=entry.created_at,
        )


class MetadataListResponse(BaseModel):
    metadata: List[MetadataEntryResponse]
