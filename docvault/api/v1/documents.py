"""
Documents API Routes
Upload, list, search, read, rename, annotate, download and delete documents
"""

import json
import math
from pathlib import Path
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from fastapi.responses import FileResponse

from docvault.api.dependencies import (
    get_access_resolver,
    get_document_service,
    get_principal,
    get_search_engine,
)
from docvault.core.exceptions import NotFoundException, ValidationException
from docvault.core.identifiers import parse_document_id, parse_user_id
from docvault.core.logging import get_logger
from docvault.core.permissions import (
    DELETE_LEVELS,
    WRITE_LEVELS,
    AccessResolver,
    Principal,
)
from docvault.models.common import PaginationInfo, SuccessResponse
from docvault.models.document import (
    AddMetadataRequest,
    AddTagRequest,
    DocumentDetailResponse,
    DocumentListResponse,
    DocumentResponse,
    RenameDocumentRequest,
)
from docvault.models.search import (
    MAX_PAGE_SIZE,
    Pagination,
    SearchCriteria,
    SortField,
    SortOptions,
    SortOrder,
)
from docvault.services.documents import DocumentDetails, DocumentService
from docvault.services.search import SearchEngine

logger = get_logger(__name__)
router = APIRouter(prefix="/api/v1/documents", tags=["Documents"])


def _split_tags(raw: Optional[List[str]]) -> List[str]:
    """Accept repeated and comma-separated tag parameters"""
    tags: List[str] = []
    for item in raw or []:
        tags.extend(part.strip() for part in item.split(",") if part.strip())
    return tags


def _parse_metadata(raw: Optional[str]) -> Dict[str, str]:
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValidationException(
            message="Metadata must be a JSON object",
            details={"error": str(e)},
        )
    if not isinstance(parsed, dict):
        raise ValidationException(message="Metadata must be a JSON object")
    return {str(key): str(value) for key, value in parsed.items()}


def _detail_response(details: DocumentDetails) -> DocumentDetailResponse:
    base = DocumentResponse.from_db_model(details.document)
    return DocumentDetailResponse(
        **base.model_dump(),
        tags=details.tags,
        metadata=details.metadata,
    )


async def _load_accessible(
    document_id: str,
    principal: Principal,
    service: DocumentService,
    resolver: AccessResolver,
):
    doc_id = parse_document_id(document_id)
    document = await service.get(doc_id)
    await resolver.require_access(principal, document)
    return document


@router.post("", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
async def upload_document(
    file: UploadFile = File(...),
    tags: Optional[str] = Form(None),
    metadata: Optional[str] = Form(None),
    principal: Principal = Depends(get_principal),
    service: DocumentService = Depends(get_document_service),
):
    """
    Upload a document

    - **file**: file content
    - **tags**: optional comma-separated tags
    - **metadata**: optional JSON object of string key/value pairs
    """
    content = await file.read()
    document = await service.upload(
        content=content,
        original_name=file.filename or "",
        content_type=file.content_type or "application/octet-stream",
        owner_id=principal.user_id,
        tags=_split_tags([tags] if tags else None),
        metadata=_parse_metadata(metadata),
    )
    return DocumentResponse.from_db_model(document)


@router.get("", response_model=DocumentListResponse)
async def list_my_documents(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=MAX_PAGE_SIZE),
    principal: Principal = Depends(get_principal),
    service: DocumentService = Depends(get_document_service),
):
    """List the caller's own documents, newest first"""
    pagination = Pagination.of(page, limit)
    items, total = await service.list_owned(principal.user_id, pagination)
    return DocumentListResponse(
        data=[DocumentResponse.from_db_model(doc) for doc in items],
        pagination=PaginationInfo(
            page=pagination.page,
            limit=pagination.limit,
            total=total,
            total_pages=math.ceil(total / pagination.limit),
        ),
    )


@router.get("/search", response_model=DocumentListResponse)
async def search_documents(
    filename: Optional[str] = Query(None),
    content_type: Optional[str] = Query(None),
    owner_id: Optional[str] = Query(None),
    tags: Optional[List[str]] = Query(None),
    metadata: Optional[str] = Query(None, description="JSON object of key -> value substring"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=MAX_PAGE_SIZE),
    sort_by: SortField = Query(SortField.CREATED_AT),
    sort_order: SortOrder = Query(SortOrder.DESC),
    principal: Principal = Depends(get_principal),
    engine: SearchEngine = Depends(get_search_engine),
):
    """
    Search documents

    Admins search everything (optionally scoped by owner_id); other users
    are always confined to their own documents.
    """
    if owner_id:
        parse_user_id(owner_id)
    scope = owner_id if principal.is_admin else str(principal.user_id)

    criteria = SearchCriteria(
        filename=filename,
        content_type=content_type,
        owner_id=scope,
        tags=_split_tags(tags),
        metadata=_parse_metadata(metadata),
    )
    result = await engine.search(
        criteria,
        Pagination.of(page, limit),
        SortOptions(sort_by=sort_by, sort_order=sort_order),
    )
    return DocumentListResponse(
        data=[DocumentResponse.from_db_model(doc) for doc in result.data],
        pagination=PaginationInfo(
            page=result.page,
            limit=result.limit,
            total=result.total,
            total_pages=result.total_pages,
        ),
    )


@router.get("/{document_id}", response_model=DocumentDetailResponse)
async def get_document(
    document_id: str,
    principal: Principal = Depends(get_principal),
    service: DocumentService = Depends(get_document_service),
    resolver: AccessResolver = Depends(get_access_resolver),
):
    """Get document details with tags and metadata"""
    document = await _load_accessible(document_id, principal, service, resolver)
    return _detail_response(await service.details(document))


@router.patch("/{document_id}", response_model=DocumentResponse)
async def rename_document(
    document_id: str,
    request: RenameDocumentRequest,
    principal: Principal = Depends(get_principal),
    service: DocumentService = Depends(get_document_service),
    resolver: AccessResolver = Depends(get_access_resolver),
):
    """Change the document's original (display) name"""
    document = await service.get(parse_document_id(document_id))
    await resolver.require_level(principal, document, WRITE_LEVELS)
    document = await service.rename(document, request.original_name)
    return DocumentResponse.from_db_model(document)


@router.delete("/{document_id}", response_model=SuccessResponse)
async def delete_document(
    document_id: str,
    principal: Principal = Depends(get_principal),
    service: DocumentService = Depends(get_document_service),
    resolver: AccessResolver = Depends(get_access_resolver),
):
    """Delete a document with its grants, tags, metadata and download tokens"""
    document = await service.get(parse_document_id(document_id))
    await resolver.require_level(principal, document, DELETE_LEVELS)
    await service.delete(document)
    return SuccessResponse(
        message="Document deleted successfully",
        data={"document_id": document_id},
    )


@router.get("/{document_id}/download")
async def download_document(
    document_id: str,
    principal: Principal = Depends(get_principal),
    service: DocumentService = Depends(get_document_service),
    resolver: AccessResolver = Depends(get_access_resolver),
):
    """Download document content (authenticated path)"""
    document = await _load_accessible(document_id, principal, service, resolver)
    return file_response(document)


@router.post(
    "/{document_id}/tags",
    response_model=DocumentDetailResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_tag(
    document_id: str,
    request: AddTagRequest,
    principal: Principal = Depends(get_principal),
    service: DocumentService = Depends(get_document_service),
    resolver: AccessResolver = Depends(get_access_resolver),
):
    document = await service.get(parse_document_id(document_id))
    await resolver.require_level(principal, document, WRITE_LEVELS)
    await service.add_tag(document, request.tag)
    return _detail_response(await service.details(document))


@router.delete("/{document_id}/tags/{tag}", response_model=DocumentDetailResponse)
async def remove_tag(
    document_id: str,
    tag: str,
    principal: Principal = Depends(get_principal),
    service: DocumentService = Depends(get_document_service),
    resolver: AccessResolver = Depends(get_access_resolver),
):
    document = await service.get(parse_document_id(document_id))
    await resolver.require_level(principal, document, WRITE_LEVELS)
    await service.remove_tag(document, tag)
    return _detail_response(await service.details(document))


@router.post(
    "/{document_id}/metadata",
    response_model=DocumentDetailResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_metadata(
    document_id: str,
    request: AddMetadataRequest,
    principal: Principal = Depends(get_principal),
    service: DocumentService = Depends(get_document_service),
    resolver: AccessResolver = Depends(get_access_resolver),
):
    document = await service.get(parse_document_id(document_id))
    await resolver.require_level(principal, document, WRITE_LEVELS)
    await service.add_metadata(document, request.key, request.value)
    return _detail_response(await service.details(document))


def stored_file(document) -> Path:
    """Path of the stored content; NotFoundException when the file is gone"""
    path = Path(document.storage_path)
    if not path.is_file():
        logger.error(f"Stored file missing for document {document.id}: {path}")
        raise NotFoundException("Document content", details={"document_id": str(document.id)})
    return path


def file_response(document) -> FileResponse:
    """Stream a stored document as an attachment"""
    return FileResponse(
        stored_file(document),
        media_type=document.content_type,
        filename=document.original_name,
    )
