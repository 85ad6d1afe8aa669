"""
Admin API Routes
Maintenance endpoints restricted to administrators
"""

from fastapi import APIRouter, Depends, Response
from prometheus_client import CONTENT_TYPE_LATEST

from docvault.api.dependencies import get_download_token_service, require_admin
from docvault.core.logging import get_logger
from docvault.core.permissions import Principal
from docvault.models.download import CleanupResponse
from docvault.monitoring import get_metrics
from docvault.services.download_tokens import DownloadTokenService

logger = get_logger(__name__)
router = APIRouter(prefix="/api/v1/admin", tags=["Administration"])


@router.post("/cleanup-tokens", response_model=CleanupResponse)
async def cleanup_tokens(
    principal: Principal = Depends(require_admin),
    tokens: DownloadTokenService = Depends(get_download_token_service),
):
    """Delete every expired download token"""
    removed = await tokens.cleanup()
    logger.info(f"Admin {principal.user_id} removed {removed} expired download tokens")
    return CleanupResponse(
        removed=removed,
        message=f"Removed {removed} expired download tokens",
    )


@router.get("/metrics")
async def prometheus_metrics(principal: Principal = Depends(require_admin)):
    """
    Prometheus metrics endpoint

    Returns metrics in Prometheus exposition format.
    """
    return Response(content=get_metrics(), media_type=CONTENT_TYPE_LATEST)
