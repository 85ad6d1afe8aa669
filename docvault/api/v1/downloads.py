"""
Download Link API Routes
Issue single-use download links and serve them anonymously
"""

from fastapi import APIRouter, Depends, status

from docvault.api.dependencies import (
    get_access_resolver,
    get_document_service,
    get_download_token_service,
    get_principal,
)
from docvault.api.v1.documents import file_response, stored_file
from docvault.core.exceptions import AuthorizationException
from docvault.core.identifiers import parse_document_id
from docvault.core.logging import get_logger
from docvault.core.permissions import AccessResolver, Principal
from docvault.models.download import DownloadLinkResponse
from docvault.services.documents import DocumentService
from docvault.services.download_tokens import DownloadTokenService

logger = get_logger(__name__)
router = APIRouter(prefix="/api/v1", tags=["Downloads"])

INVALID_TOKEN_MESSAGE = "Invalid, expired, or already used download token"


@router.post(
    "/documents/{document_id}/download-link",
    response_model=DownloadLinkResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_download_link(
    document_id: str,
    principal: Principal = Depends(get_principal),
    documents: DocumentService = Depends(get_document_service),
    tokens: DownloadTokenService = Depends(get_download_token_service),
    resolver: AccessResolver = Depends(get_access_resolver),
):
    """
    Issue a single-use download link

    Anyone holding the returned URL may download the document once before
    it expires, without authenticating.
    """
    document = await documents.get(parse_document_id(document_id))
    await resolver.require_access(principal, document)

    secret = await tokens.issue(document.id, principal.user_id)
    return DownloadLinkResponse(
        download_url=f"/api/v1/download/{secret}",
        token=secret,
        expires_in=tokens.ttl,
    )


@router.get("/download/{token}")
async def download_with_token(
    token: str,
    documents: DocumentService = Depends(get_document_service),
    tokens: DownloadTokenService = Depends(get_download_token_service),
):
    """
    Redeem a download token and stream the document

    The stored file is checked before the redemption commits, so a link to
    missing content answers 404 and stays usable.
    """

    async def require_content(document_id):
        stored_file(await documents.get(document_id))

    document_id = await tokens.redeem(token, before_commit=require_content)
    if document_id is None:
        raise AuthorizationException(message=INVALID_TOKEN_MESSAGE)

    document = await documents.get(document_id)
    return file_response(document)
