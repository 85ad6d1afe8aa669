"""
Identifier Types
Parse-once UUID wrappers for documents, users, grants and metadata entries
"""

import uuid
from typing import NewType, Union

from docvault.core.exceptions import ValidationException

DocumentId = NewType("DocumentId", uuid.UUID)
UserId = NewType("UserId", uuid.UUID)
PermissionId = NewType("PermissionId", uuid.UUID)
MetadataId = NewType("MetadataId", uuid.UUID)


def _parse_uuid(value: Union[str, uuid.UUID], kind: str) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value).strip())
    except (ValueError, AttributeError, TypeError):
        raise ValidationException(
            message=f"Invalid {kind} format",
            details={kind: str(value), "expected_format": "UUID"},
        )


def parse_document_id(value: Union[str, uuid.UUID]) -> DocumentId:
    return DocumentId(_parse_uuid(value, "document_id"))


def parse_user_id(value: Union[str, uuid.UUID]) -> UserId:
    return UserId(_parse_uuid(value, "user_id"))


def parse_permission_id(value: Union[str, uuid.UUID]) -> PermissionId:
    return PermissionId(_parse_uuid(value, "permission_id"))




def parse_metadata_id(value: Union[str, uuid.UUID]) -> MetadataId:
    return MetadataId(_parse_uuid(value, "metadata_id"))
