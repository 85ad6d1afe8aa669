"""
Search Engine
Multi-criteria document search with a significance gate

Tags and metadata are each OR-matched into a set of document ids; those
sets are intersected with each other and with the primary filter
(filename / content type / owner). Requests with no meaningful criterion
return an empty page without touching storage.
"""

import uuid
from typing import List, Optional, Set, Tuple

from docvault.core.identifiers import parse_user_id
from docvault.core.logging import get_logger
from docvault.models.search import Pagination, SearchCriteria, SearchPage, SortOptions
from docvault.monitoring import search_requests_total, track_search
from docvault.repositories.documents import (
    DocumentFilter,
    DocumentRepository,
    normalize_tag,
)

logger = get_logger(__name__)

MIN_TERM_LENGTH = 2


def meaningful_filename(criteria: SearchCriteria) -> Optional[str]:
    term = (criteria.filename or "").strip()
    return term if len(term) >= MIN_TERM_LENGTH else None


def meaningful_content_type(criteria: SearchCriteria) -> Optional[str]:
    value = (criteria.content_type or "").strip()
    return value or None


def meaningful_tags(criteria: SearchCriteria) -> List[str]:
    tags = []
    for tag in criteria.tags:
        normalized = normalize_tag(tag)
        if len(normalized) >= MIN_TERM_LENGTH and normalized not in tags:
            tags.append(normalized)
    return tags


def meaningful_metadata(criteria: SearchCriteria) -> List[Tuple[str, str]]:
    return [
        (key.strip(), value.strip())
        for key, value in criteria.metadata.items()
        if key.strip() and len(value.strip()) >= MIN_TERM_LENGTH
    ]


def is_significant(criteria: SearchCriteria) -> bool:
    """True when at least one criterion is worth a query; owner scope never counts"""
    return bool(
        meaningful_filename(criteria)
        or meaningful_content_type(criteria)
        or meaningful_tags(criteria)
        or meaningful_metadata(criteria)
    )


class SearchEngine:
    """Evaluate structured queries against the document index"""

    def __init__(self, documents: DocumentRepository):
        self.documents = documents

    async def search(
        self,
        criteria: SearchCriteria,
        pagination: Optional[Pagination] = None,
        sort: Optional[SortOptions] = None,
    ) -> SearchPage:
        """
        Run a search

        Args:
            criteria: Filters, ANDed together
            pagination: Page and limit (defaults: 1, 20)
            sort: Sort field and order (defaults: created_at, desc)

        Returns:
            SearchPage; empty for insignificant or non-matching requests

        Raises:
            ValidationException: Malformed owner scope, before storage access
            StorageException: Store failure, no partial results
        """
        pagination = pagination or Pagination()
        sort = sort or SortOptions()

        owner_id: Optional[uuid.UUID] = None
        if criteria.owner_id is not None and criteria.owner_id.strip():
            owner_id = parse_user_id(criteria.owner_id)

        if not is_significant(criteria):
            logger.debug("Search skipped: no meaningful criteria")
            search_requests_total.labels(outcome="gated").inc()
            return SearchPage.empty(pagination)

        with track_search():
            page = await self._run(criteria, owner_id, pagination, sort)
        search_requests_total.labels(outcome="matched" if page.total else "empty").inc()
        return page

    async def _run(
        self,
        criteria: SearchCriteria,
        owner_id: Optional[uuid.UUID],
        pagination: Pagination,
        sort: SortOptions,
    ) -> SearchPage:
        id_sets: List[Set[uuid.UUID]] = []

        if criteria.tags:
            tags = meaningful_tags(criteria)
            tag_ids = await self.documents.document_ids_with_any_tag(tags) if tags else set()
            if not tag_ids:
                logger.debug(f"Search short-circuit: no documents for tags {tags}")
                return SearchPage.empty(pagination)
            id_sets.append(tag_ids)

        if criteria.metadata:
            pairs = meaningful_metadata(criteria)
            metadata_ids = (
                await self.documents.document_ids_with_any_metadata(pairs) if pairs else set()
            )
            if not metadata_ids:
                logger.debug("Search short-circuit: no documents for metadata filter")
                return SearchPage.empty(pagination)
            id_sets.append(metadata_ids)

        id_in: Optional[Set[uuid.UUID]] = None
        if id_sets:
            id_in = set.intersection(*id_sets)
            if not id_in:
                return SearchPage.empty(pagination)

        doc_filter = DocumentFilter(
            name_contains=meaningful_filename(criteria),
            content_type=meaningful_content_type(criteria),
            owner_id=owner_id,
            id_in=id_in,
        )

        total = await self.documents.count(doc_filter)
        if total == 0:
            return SearchPage.empty(pagination)

        data = await self.documents.find(
            doc_filter,
            sort_by=sort.sort_by.value,
            descending=sort.descending,
            limit=pagination.limit,
            offset=pagination.offset,
        )
        logger.debug(f"Search matched {total} documents, returning page {pagination.page}")
        return SearchPage.build(data, total, pagination)
