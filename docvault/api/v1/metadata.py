"""
Metadata API Routes
List, update and delete individual metadata entries
"""

from fastapi import APIRouter, Depends

from docvault.api.dependencies import (
    get_access_resolver,
    get_document_service,
    get_principal,
)
from docvault.core.identifiers import parse_document_id, parse_metadata_id
from docvault.core.logging import get_logger
from docvault.core.permissions import WRITE_LEVELS, AccessResolver, Principal
from docvault.models.common import SuccessResponse
from docvault.models.document import (
    MetadataEntryResponse,
    MetadataListResponse,
    UpdateMetadataRequest,
)
from docvault.services.documents import DocumentService

logger = get_logger(__name__)
router = APIRouter(prefix="/api/v1", tags=["Metadata"])


@router.get("/documents/{document_id}/metadata", response_model=MetadataListResponse)
async def list_document_metadata(
    document_id: str,
    principal: Principal = Depends(get_principal),
    service: DocumentService = Depends(get_document_service),
    resolver: AccessResolver = Depends(get_access_resolver),
):
    """
    List a document's metadata entries

    Keys may repeat, so each entry is returned with its own id.
    """
    document = await service.get(parse_document_id(document_id))
    await resolver.require_access(principal, document)

    entries = await service.list_metadata(document)
    return MetadataListResponse(
        metadata=[MetadataEntryResponse.from_db_model(e) for e in entries]
    )


@router.put("/metadata/{metadata_id}", response_model=MetadataEntryResponse)
async def update_metadata(
    metadata_id: str,
    request: UpdateMetadataRequest,
    principal: Principal = Depends(get_principal),
    service: DocumentService = Depends(get_document_service),
    resolver: AccessResolver = Depends(get_access_resolver),
):
    """Change the key and/or value of one entry"""
    entry = await service.get_metadata(parse_metadata_id(metadata_id))
    document = await service.get(entry.document_id)
    await resolver.require_level(principal, document, WRITE_LEVELS)

    entry = await service.update_metadata(entry, key=request.key, value=request.value)
    return MetadataEntryResponse.from_db_model(entry)


@router.delete("/metadata/{metadata_id}", response_model=SuccessResponse)
async def delete_metadata(
    metadata_id: str,
    principal: Principal = Depends(get_principal),
    service: DocumentService = Depends(get_document_service),
    resolver: AccessResolver = Depends(get_access_resolver),
):
    """Remove one metadata entry"""
    entry = await service.get_metadata(parse_metadata_id(metadata_id))
    document = await service.get(entry.document_id)
    await resolver.require_level(principal, document, WRITE_LEVELS)

    await service.delete_metadata(entry)
    return SuccessResponse(
        message="Metadata deleted successfully",
        data={"metadata_id": metadata_id, "document_id": str(document.id)},
    )
