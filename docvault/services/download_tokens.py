"""
Download Token Service
Issue, redeem and garbage-collect single-use download capabilities

A token moves issued -> consumed (first successful redeem) or
issued -> expired (now > expires_at). Expiry is derived from the clock at
redemption time and never depends on the cleanup sweep having run.
"""

import re
import secrets
import uuid
from datetime import datetime, timedelta
from enum import Enum
from typing import Awaitable, Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from docvault.core.exceptions import NotFoundException
from docvault.core.logging import get_logger, redact_token
from docvault.db.base import utcnow
from docvault.monitoring import download_tokens_removed_total, download_tokens_total
from docvault.repositories.documents import DocumentRepository
from docvault.repositories.tokens import DownloadTokenRepository

logger = get_logger(__name__)

TOKEN_BYTES = 32
DEFAULT_TTL = timedelta(hours=1)

_TTL_PATTERN = re.compile(r"^(\d+)([smhd])$")
_TTL_UNITS = {
    "s": "seconds",
    "m": "minutes",
    "h": "hours",
    "d": "days",
}


def parse_ttl(expression: Optional[str]) -> timedelta:
    """
    Parse '<integer><unit>' with unit in s/m/h/d

    Anything unparsable falls back to one hour.
    """
    match = _TTL_PATTERN.match((expression or "").strip())
    if not match:
        logger.warning(f"Unparsable download link TTL {expression!r}; using 1h")
        return DEFAULT_TTL
    value, unit = match.groups()
    return timedelta(**{_TTL_UNITS[unit]: int(value)})


class TokenStatus(str, Enum):
    """Derived token state for diagnostics"""

    UNKNOWN = "unknown"
    ISSUED = "issued"
    CONSUMED = "consumed"
    EXPIRED = "expired"


class DownloadTokenService:
    """Single-use bearer tokens for anonymous document download"""

    def __init__(
        self,
        session: AsyncSession,
        tokens: DownloadTokenRepository,
        documents: DocumentRepository,
        ttl: str = "1h",
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session = session
        self.tokens = tokens
        self.documents = documents
        self.ttl = ttl
        self.clock = clock

    async def issue(self, document_id: uuid.UUID, issuer_id: uuid.UUID) -> str:
        """
        Create a download token for an existing document

        Returns:
            The hex secret (never the row id)

        Raises:
            NotFoundException: If the document does not exist
        """
        document = await self.documents.get(document_id)
        if document is None:
            raise NotFoundException("Document", details={"document_id": str(document_id)})

        secret = secrets.token_hex(TOKEN_BYTES)
        now = self.clock()
        expires_at = now + parse_ttl(self.ttl)

        await self.tokens.create(
            document_id=document.id,
            token=secret,
            expires_at=expires_at,
            created_by=issuer_id,
            created_at=now,
        )
        await self.session.commit()
        download_tokens_total.labels(outcome="issued").inc()

        logger.info(
            f"Issued download token {redact_token(secret)} for document {document.id} "
            f"by {issuer_id}, expires {expires_at.isoformat()}"
        )
        return secret

    async def redeem(
        self,
        secret: str,
        before_commit: Optional[Callable[[uuid.UUID], Awaitable[None]]] = None,
    ) -> Optional[uuid.UUID]:
        """
        Consume a token

        Unknown, already used and expired tokens all return None; callers
        cannot tell them apart.

        Args:
            secret: Token secret from the download URL
            before_commit: Awaited with the document id while the consumption
                is still uncommitted. If it raises, the token is left unused
                and the exception propagates.

        Returns:
            The document id on the first successful redemption, else None
        """
        if not secret:
            return None

        document_id = await self.tokens.consume(secret, self.clock())
        if document_id is not None and before_commit is not None:
            try:
                await before_commit(document_id)
            except Exception:
                await self.session.rollback()
                logger.warning(
                    f"Download token {redact_token(secret)} not consumed; document {document_id} unavailable"
                )
                raise
        await self.session.commit()

        if document_id is None:
            download_tokens_total.labels(outcome="rejected").inc()
            logger.warning(f"Rejected download token {redact_token(secret)}")
            return None

        download_tokens_total.labels(outcome="redeemed").inc()
        logger.info(f"Redeemed download token {redact_token(secret)} for document {document_id}")
        return document_id

    async def inspect(self, secret: str) -> TokenStatus:
        """Read-only state of a token; not for the anonymous download path"""
        row = await self.tokens.find_by_token(secret)
        if row is None:
            return TokenStatus.UNKNOWN
        if row.used_at is not None:
            return TokenStatus.CONSUMED
        expires_at = row.expires_at
        now = self.clock()
        if expires_at.tzinfo is None:
            # SQLite hands back naive values that were stored as UTC
            now = now.replace(tzinfo=None)
        if now > expires_at:
            return TokenStatus.EXPIRED
        return TokenStatus.ISSUED

    async def cleanup(self) -> int:
        """
        Delete every expired token, used or not

        Returns:
            Number of rows removed
        """
        removed = await self.tokens.delete_expired(self.clock())
        await self.session.commit()
        download_tokens_removed_total.inc(removed)
        logger.info(f"Cleaned up {removed} expired download tokens")
        return removed
