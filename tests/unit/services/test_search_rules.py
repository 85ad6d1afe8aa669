"""
Unit Tests for Search Rules
Tests for the significance gate, pagination and result pages
"""

import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest

from docvault.core.exceptions import ValidationException
from docvault.models.search import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    Pagination,
    SearchCriteria,
    SearchPage,
    SortField,
    SortOptions,
    SortOrder,
)
from docvault.services.search import (
    SearchEngine,
    is_significant,
    meaningful_filename,
    meaningful_metadata,
    meaningful_tags,
)


def mock_repository():
    repo = MagicMock()
    for name in ("count", "find", "document_ids_with_any_tag", "document_ids_with_any_metadata"):
        setattr(repo, name, AsyncMock())
    return repo


class TestSignificance:
    """Test which criteria are worth a query"""

    def test_empty_criteria(self):
        assert is_significant(SearchCriteria()) is False

    def test_owner_scope_alone_not_significant(self):
        assert is_significant(SearchCriteria(owner_id=str(uuid.uuid4()))) is False

    @pytest.mark.parametrize("filename", ["", " ", "a", " b "])
    def test_short_filename_ignored(self, filename):
        criteria = SearchCriteria(filename=filename)
        assert meaningful_filename(criteria) is None
        assert is_significant(criteria) is False

    def test_two_char_filename_counts(self):
        assert meaningful_filename(SearchCriteria(filename=" ab ")) == "ab"

    def test_content_type_counts(self):
        assert is_significant(SearchCriteria(content_type="application/pdf")) is True

    def test_tags_normalized_and_deduplicated(self):
        criteria = SearchCriteria(tags=["Finance", "finance ", "x", "  "])
        assert meaningful_tags(criteria) == ["finance"]

    def test_single_char_tags_not_significant(self):
        assert is_significant(SearchCriteria(tags=["x", "y"])) is False

    def test_metadata_requires_key_and_value(self):
        criteria = SearchCriteria(metadata={"": "value", "dept": "a", "author": " Smith "})
        assert meaningful_metadata(criteria) == [("author", "Smith")]


class TestPagination:
    """Test pagination bounds and arithmetic"""

    def test_defaults(self):
        pagination = Pagination()
        assert pagination.page == 1
        assert pagination.limit == DEFAULT_PAGE_SIZE == 20
        assert pagination.offset == 0

    def test_offset(self):
        assert Pagination.of(3, 20).offset == 40

    @pytest.mark.parametrize("page, limit", [(0, 20), (-1, 20), (1, 0), (1, MAX_PAGE_SIZE + 1)])
    def test_out_of_range_rejected(self, page, limit):
        with pytest.raises(ValidationException) as exc_info:
            Pagination.of(page, limit)
        assert exc_info.value.details["page"] == page

    def test_max_limit_allowed(self):
        assert Pagination.of(1, 100).limit == 100

    def test_total_pages(self):
        page = SearchPage.build(data=[1] * 5, total=45, pagination=Pagination.of(3, 20))
        assert page.total_pages == 3
        assert page.total == 45

    def test_empty_page(self):
        page = SearchPage.empty(Pagination.of(2, 10))
        assert page.data == []
        assert page.total == 0
        assert page.total_pages == 0
        assert page.page == 2


class TestSortOptions:
    def test_default_is_created_at_desc(self):
        sort = SortOptions()
        assert sort.sort_by is SortField.CREATED_AT
        assert sort.descending is True

    def test_ascending(self):
        assert SortOptions(sort_order=SortOrder.ASC).descending is False


class TestSearchEngineGate:
    """Test engine paths that never reach storage"""

    @pytest.mark.asyncio
    async def test_insignificant_request_skips_storage(self):
        repo = mock_repository()
        engine = SearchEngine(repo)

        result = await engine.search(SearchCriteria(), Pagination.of(2, 20))

        assert result.data == []
        assert result.total == 0
        assert result.page == 2
        repo.count.assert_not_called()
        repo.find.assert_not_called()

    @pytest.mark.asyncio
    async def test_invalid_owner_rejected_before_storage(self):
        repo = mock_repository()
        engine = SearchEngine(repo)

        with pytest.raises(ValidationException):
            await engine.search(SearchCriteria(filename="report", owner_id="not-a-uuid"))
        repo.count.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_tag_matches_short_circuits(self):
        repo = mock_repository()
        repo.document_ids_with_any_tag.return_value = set()
        engine = SearchEngine(repo)

        result = await engine.search(SearchCriteria(tags=["missing"]))

        assert result.total == 0
        repo.count.assert_not_called()

    @pytest.mark.asyncio
    async def test_disjoint_tag_and_metadata_sets(self):
        repo = mock_repository()
        repo.document_ids_with_any_tag.return_value = {uuid.uuid4()}
        repo.document_ids_with_any_metadata.return_value = {uuid.uuid4()}
        engine = SearchEngine(repo)

        result = await engine.search(
            SearchCriteria(tags=["finance"], metadata={"author": "smith"})
        )

        assert result.total == 0
        repo.count.assert_not_called()
