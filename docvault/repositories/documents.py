"""
Document Index
Document rows plus the tag and metadata side tables
"""

import uuid
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from sqlalchemy import and_, delete, func, or_, select

from docvault.db.base import utcnow
from docvault.db.models import (
    Document,
    DocumentMetadata,
    DocumentPermission,
    DocumentTag,
    DownloadToken,
)
from docvault.repositories.base import BaseRepository

SORT_COLUMNS = {
    "filename": Document.filename,
    "size": Document.size_bytes,
    "created_at": Document.created_at,
}


@dataclass
class DocumentFilter:
    """Primary filter over the documents table; all set fields are ANDed"""

    name_contains: Optional[str] = None
    content_type: Optional[str] = None
    owner_id: Optional[uuid.UUID] = None
    id_in: Optional[Set[uuid.UUID]] = None


class DocumentRepository(BaseRepository):
    """Document existence, ownership and side-table lookups"""

    async def get(self, document_id: uuid.UUID) -> Optional[Document]:
        async with self._storage("document.get"):
            result = await self.session.execute(
                select(Document).where(Document.id == document_id)
            )
            return result.scalar_one_or_none()

    async def create(
        self,
        *,
        filename: str,
        original_name: str,
        content_type: str,
        size_bytes: int,
        storage_path: str,
        owner_id: uuid.UUID,
        document_id: Optional[uuid.UUID] = None,
    ) -> Document:
        document = Document(
            id=document_id or uuid.uuid4(),
            filename=filename,
            original_name=original_name,
            content_type=content_type,
            size_bytes=size_bytes,
            storage_path=storage_path,
            owner_id=owner_id,
        )
        async with self._storage("document.create"):
            self.session.add(document)
            await self.session.flush()
        return document

    async def rename(self, document: Document, original_name: str) -> Document:
        async with self._storage("document.rename"):
            document.original_name = original_name
            document.updated_at = utcnow()
            await self.session.flush()
        return document

    async def delete(self, document_id: uuid.UUID) -> bool:
        """Delete a document and everything it owns in the current transaction"""
        async with self._storage("document.delete"):
            for model in (DocumentPermission, DocumentTag, DocumentMetadata, DownloadToken):
                await self.session.execute(
                    delete(model).where(model.document_id == document_id)
                )
            result = await self.session.execute(
                delete(Document).where(Document.id == document_id)
            )
            return result.rowcount > 0

    async def list_by_owner(
        self,
        owner_id: uuid.UUID,
        *,
        limit: int,
        offset: int,
    ) -> Tuple[List[Document], int]:
        doc_filter = DocumentFilter(owner_id=owner_id)
        total = await self.count(doc_filter)
        if total == 0:
            return [], 0
        items = await self.find(
            doc_filter,
            sort_by="created_at",
            descending=True,
            limit=limit,
            offset=offset,
        )
        return items, total

    # Filtered queries

    @staticmethod
    def _conditions(doc_filter: DocumentFilter) -> list:
        conditions = []
        if doc_filter.name_contains:
            term = doc_filter.name_contains
            conditions.append(
                or_(
                    Document.filename.icontains(term, autoescape=True),
                    Document.original_name.icontains(term, autoescape=True),
                )
            )
        if doc_filter.content_type:
            conditions.append(Document.content_type == doc_filter.content_type)
        if doc_filter.owner_id is not None:
            conditions.append(Document.owner_id == doc_filter.owner_id)
        if doc_filter.id_in is not None:
            conditions.append(Document.id.in_(doc_filter.id_in))
        return conditions

    async def count(self, doc_filter: DocumentFilter) -> int:
        async with self._storage("document.count"):
            result = await self.session.execute(
                select(func.count(Document.id)).where(*self._conditions(doc_filter))
            )
            return int(result.scalar_one())

    async def find(
        self,
        doc_filter: DocumentFilter,
        *,
        sort_by: str = "created_at",
        descending: bool = True,
        limit: int = 20,
        offset: int = 0,
    ) -> List[Document]:
        column = SORT_COLUMNS.get(sort_by, Document.created_at)
        order = column.desc() if descending else column.asc()
        stmt = (
            select(Document)
            .where(*self._conditions(doc_filter))
            .order_by(order, Document.id)
            .limit(limit)
            .offset(offset)
        )
        async with self._storage("document.find"):
            result = await self.session.execute(stmt)
            return list(result.scalars().all())

    # Tags

    async def add_tag(self, document_id: uuid.UUID, tag: str) -> DocumentTag:
        entry = DocumentTag(document_id=document_id, tag=normalize_tag(tag))
        async with self._storage("tag.create"):
            self.session.add(entry)
            await self.session.flush()
        return entry

    async def list_tags(self, document_id: uuid.UUID) -> List[DocumentTag]:
        async with self._storage("tag.list"):
            result = await self.session.execute(
                select(DocumentTag)
                .where(DocumentTag.document_id == document_id)
                .order_by(DocumentTag.created_at)
            )
            return list(result.scalars().all())

    async def remove_tag(self, document_id: uuid.UUID, tag: str) -> int:
        async with self._storage("tag.delete"):
            result = await self.session.execute(
                delete(DocumentTag).where(
                    DocumentTag.document_id == document_id,
                    DocumentTag.tag == normalize_tag(tag),
                )
            )
            return result.rowcount

    async def document_ids_with_any_tag(self, tags: Iterable[str]) -> Set[uuid.UUID]:
        """Distinct ids of documents carrying at least one of the tags"""
        tags = list(tags)
        if not tags:
            return set()
        async with self._storage("tag.lookup"):
            result = await self.session.execute(
                select(DocumentTag.document_id).where(DocumentTag.tag.in_(tags)).distinct()
            )
            return set(result.scalars().all())

    # Metadata

    async def add_metadata(self, document_id: uuid.UUID, key: str, value: str) -> DocumentMetadata:
        entry = DocumentMetadata(document_id=document_id, key=key.strip(), value=value)
        async with self._storage("metadata.create"):
            self.session.add(entry)
            await self.session.flush()
        return entry

    async def list_metadata(self, document_id: uuid.UUID) -> List[DocumentMetadata]:
        async with self._storage("metadata.list"):
            result = await self.session.execute(
                select(DocumentMetadata)
                .where(DocumentMetadata.document_id == document_id)
                .order_by(DocumentMetadata.created_at)
            )
            return list(result.scalars().all())

    async def get_metadata(self, metadata_id: uuid.UUID) -> Optional[DocumentMetadata]:
        async with self._storage("metadata.get"):
            result = await self.session.execute(
                select(DocumentMetadata).where(DocumentMetadata.id == metadata_id)
            )
            return result.scalar_one_or_none()

    async def update_metadata(
        self,
        entry: DocumentMetadata,
        *,
        key: Optional[str] = None,
        value: Optional[str] = None,
    ) -> DocumentMetadata:
        """Change key and/or value of one entry; None leaves a field as is"""
        async with self._storage("metadata.update"):
            if key is not None:
                entry.key = key.strip()
            if value is not None:
                entry.value = value
            await self.session.flush()
        return entry

    async def delete_metadata(self, metadata_id: uuid.UUID) -> bool:
        async with self._storage("metadata.delete"):
            result = await self.session.execute(
                delete(DocumentMetadata).where(DocumentMetadata.id == metadata_id)
            )
            return result.rowcount > 0

    async def document_ids_with_any_metadata(
        self, pairs: Sequence[Tuple[str, str]]
    ) -> Set[uuid.UUID]:
        """Distinct ids having an entry with equal key and value containing the term"""
        if not pairs:
            return set()
        matches = [
            and_(
                DocumentMetadata.key == key,
                DocumentMetadata.value.icontains(value, autoescape=True),
            )
            for key, value in pairs
        ]
        async with self._storage("metadata.lookup"):
            result = await self.session.execute(
                select(DocumentMetadata.document_id).where(or_(*matches)).distinct()
            )
            return set(result.scalars().all())


def normalize_tag(tag: str) -> str:
    return tag.strip().lower()


def metadata_as_dict(entries: Iterable[DocumentMetadata]) -> Dict[str, str]:
    """Collapse entries to a mapping; later entries win on repeated keys"""
    return {entry.key: entry.value for entry in entries}
