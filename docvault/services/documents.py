"""
Document Service
Upload, lookup, rename, annotate and delete documents
"""

import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

import aiofiles
import aiofiles.os

from sqlalchemy.ext.asyncio import AsyncSession

from docvault.core.exceptions import NotFoundException, ValidationException
from docvault.core.logging import get_logger
from docvault.db.models import Document, DocumentMetadata
from docvault.models.search import Pagination
from docvault.repositories.documents import (
    DocumentRepository,
    metadata_as_dict,
    normalize_tag,
)

logger = get_logger(__name__)


@dataclass
class DocumentDetails:
    """Document with its tags and metadata"""

    document: Document
    tags: List[str] = field(default_factory=list)
    metadata: Dict[str, str] = field(default_factory=dict)


class DocumentService:
    """Document lifecycle on top of the document index and local file storage"""

    def __init__(
        self,
        session: AsyncSession,
        documents: DocumentRepository,
        upload_dir: str,
        max_upload_size: int,
    ):
        self.session = session
        self.documents = documents
        self.upload_dir = Path(upload_dir)
        self.max_upload_size = max_upload_size

    async def upload(
        self,
        *,
        content: bytes,
        original_name: str,
        content_type: str,
        owner_id: uuid.UUID,
        tags: Optional[Iterable[str]] = None,
        metadata: Optional[Dict[str, str]] = None,
    ) -> Document:
        """
        Store file content and create the document with its annotations

        Raises:
            ValidationException: Empty file, missing name, size over the limit
                or an over-long tag
        """
        if not original_name or not original_name.strip():
            raise ValidationException(message="Filename is required")
        if not content:
            raise ValidationException(message="File is empty")
        if len(content) > self.max_upload_size:
            raise ValidationException(
                message="File too large",
                details={"max_size_bytes": self.max_upload_size, "size_bytes": len(content)},
            )
        upload_tags = _valid_tags(tags)

        document_id = uuid.uuid4()
        stored_name = f"{document_id}{Path(original_name).suffix.lower()}"
        path = self.upload_dir / stored_name

        await aiofiles.os.makedirs(self.upload_dir, exist_ok=True)
        async with aiofiles.open(path, "wb") as f:
            await f.write(content)

        try:
            document = await self.documents.create(
                document_id=document_id,
                filename=stored_name,
                original_name=original_name.strip(),
                content_type=content_type or "application/octet-stream",
                size_bytes=len(content),
                storage_path=str(path),
                owner_id=owner_id,
            )
            for tag in upload_tags:
                await self.documents.add_tag(document.id, tag)
            for key, value in (metadata or {}).items():
                if key.strip():
                    await self.documents.add_metadata(document.id, key, str(value))
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            await self._remove_file(path)
            raise

        logger.info(f"Document uploaded: {document.id} - {document.original_name} by user {owner_id}")
        return document

    async def get(self, document_id: uuid.UUID) -> Document:
        document = await self.documents.get(document_id)
        if document is None:
            raise NotFoundException("Document", details={"document_id": str(document_id)})
        return document

    async def details(self, document: Document) -> DocumentDetails:
        tags = await self.documents.list_tags(document.id)
        metadata = await self.documents.list_metadata(document.id)
        return DocumentDetails(
            document=document,
            tags=[t.tag for t in tags],
            metadata=metadata_as_dict(metadata),
        )

    async def list_owned(
        self, owner_id: uuid.UUID, pagination: Pagination
    ) -> Tuple[List[Document], int]:
        return await self.documents.list_by_owner(
            owner_id, limit=pagination.limit, offset=pagination.offset
        )

    async def rename(self, document: Document, original_name: str) -> Document:
        name = (original_name or "").strip()
        if not name:
            raise ValidationException(message="Filename is required")
        document = await self.documents.rename(document, name)
        await self.session.commit()
        return document

    async def add_tag(self, document: Document, tag: str) -> str:
        normalized = normalize_tag(tag or "")
        if not normalized:
            raise ValidationException(message="Tag must not be empty")
        _check_tag_length(normalized)
        await self.documents.add_tag(document.id, normalized)
        await self.session.commit()
        return normalized

    async def remove_tag(self, document: Document, tag: str) -> None:
        removed = await self.documents.remove_tag(document.id, tag)
        if not removed:
            raise NotFoundException("Tag", details={"tag": normalize_tag(tag)})
        await self.session.commit()

    async def add_metadata(self, document: Document, key: str, value: str) -> None:
        if not key or not key.strip():
            raise ValidationException(message="Metadata key must not be empty")
        if value is None or not str(value).strip():
            raise ValidationException(message="Metadata value must not be empty")
        await self.documents.add_metadata(document.id, key, str(value))
        await self.session.commit()

    async def list_metadata(self, document: Document) -> List[DocumentMetadata]:
        """Every entry in insertion order; repeated keys are kept apart"""
        return await self.documents.list_metadata(document.id)

    async def get_metadata(self, metadata_id: uuid.UUID) -> DocumentMetadata:
        entry = await self.documents.get_metadata(metadata_id)
        if entry is None:
            raise NotFoundException("Metadata", details={"metadata_id": str(metadata_id)})
        return entry

    async def update_metadata(
        self,
        entry: DocumentMetadata,
        key: Optional[str] = None,
        value: Optional[str] = None,
    ) -> DocumentMetadata:
        """
        Change an entry's key and/or value

        Raises:
            ValidationException: Nothing to change, or a blank key or value
        """
        if key is None and value is None:
            raise ValidationException(message="Provide a key or a value to update")
        if key is not None and not key.strip():
            raise ValidationException(message="Metadata key must not be empty")
        if value is not None and not value.strip():
            raise ValidationException(message="Metadata value must not be empty")
        entry = await self.documents.update_metadata(entry, key=key, value=value)
        await self.session.commit()
        logger.info(f"Metadata {entry.id} updated on document {entry.document_id}")
        return entry

    async def delete_metadata(self, entry: DocumentMetadata) -> None:
        await self.documents.delete_metadata(entry.id)
        await self.session.commit()
        logger.info(f"Metadata {entry.id} deleted from document {entry.document_id}")

    async def delete(self, document: Document) -> None:
        """Delete the row, its grants, tags, metadata and tokens, then the file"""
        path = Path(document.storage_path)
        await self.documents.delete(document.id)
        await self.session.commit()
        await self._remove_file(path)
        logger.info(f"Document deleted: {document.id}")

    async def _remove_file(self, path: Path) -> None:
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            logger.warning(f"File already gone: {path}")
        except OSError as e:
            logger.error(f"Failed to remove file {path}: {e}")


MAX_TAG_LENGTH = 100


def _check_tag_length(tag: str) -> None:
    if len(tag) > MAX_TAG_LENGTH:
        raise ValidationException(
            message="Tag too long",
            details={"tag": tag[:20], "max_length": MAX_TAG_LENGTH},
        )


def _valid_tags(tags: Optional[Iterable[str]]) -> List[str]:
    """Normalized non-blank upload tags; raises before anything is written"""
    normalized = [normalize_tag(tag) for tag in tags or []]
    normalized = [tag for tag in normalized if tag]
    for tag in normalized:
        _check_tag_length(tag)
    return normalized
