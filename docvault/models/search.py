"""
Search Models
Criteria, pagination, sorting and result page for document search
"""

import math
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError

from docvault.core.exceptions import ValidationException

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 20


class SortField(str, Enum):
    FILENAME = "filename"
    SIZE = "size"
    CREATED_AT = "created_at"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class SearchCriteria(BaseModel):
    """Search filters, combined with AND; every field is optional"""

    filename: Optional[str] = Field(default=None, description="Case-insensitive filename substring")
    content_type: Optional[str] = Field(default=None, description="Exact content type")
    owner_id: Optional[str] = Field(default=None, description="Owner scope (UUID)")
    tags: List[str] = Field(default_factory=list, description="Match any of these tags")
    metadata: Dict[str, str] = Field(
        default_factory=dict, description="Metadata key -> value substring, match any pair"
    )


class Pagination(BaseModel):
    """1-indexed page with bounded page size"""

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    @classmethod
    def of(cls, page: int = 1, limit: int = DEFAULT_PAGE_SIZE) -> "Pagination":
        """Build pagination, reporting bad values as ValidationException"""
        try:
            return cls(page=page, limit=limit)
        except ValidationError as e:
            raise ValidationException(
                message="Invalid pagination parameters",
                details={"page": page, "limit": limit, "errors": e.errors(include_url=False)},
            )


class SortOptions(BaseModel):
    sort_by: SortField = SortField.CREATED_AT
    sort_order: SortOrder = SortOrder.DESC

    @property
    def descending(self) -> bool:
        return self.sort_order == SortOrder.DESC


class SearchPage(BaseModel):
    """One page of results with totals"""

    model_config = {"arbitrary_types_allowed": True}

    data: List[Any] = Field(default_factory=list)
    page: int
    limit: int
    total: int = 0
    total_pages: int = 0

    @classmethod
    def empty(cls, pagination: Pagination) -> "SearchPage":
        return cls(data=[], page=pagination.page, limit=pagination.limit)

    @classmethod
    def build(cls, data: List[Any], total: int, pagination: Pagination) -> "SearchPage":
        return cls(
            data=data,
            page=pagination.page,
            limit=pagination.limit,
            total=total,
            total_pages=math.ceil(total / pagination.limit),
        )
