"""
Unit Tests for the Access Resolver
Tests for docvault/core/permissions.py
"""

import uuid
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from docvault.core.exceptions import AuthorizationException, StorageException
from docvault.core.permissions import (
    DELETE_LEVELS,
    SHARE_LEVELS,
    WRITE_LEVELS,
    AccessResolver,
    Principal,
)
from docvault.db.models import PermissionLevel, UserRole


def make_document(owner_id=None):
    return SimpleNamespace(id=uuid.uuid4(), owner_id=owner_id or uuid.uuid4())


def make_resolver(document=None, grant=None):
    documents = MagicMock()
    documents.get = AsyncMock(return_value=document)
    permissions = MagicMock()
    permissions.find_by_document_and_user = AsyncMock(return_value=grant)
    return AccessResolver(documents, permissions), documents, permissions


def user(role=UserRole.USER):
    return Principal(user_id=uuid.uuid4(), role=role)


class TestPrincipal:
    """Test Principal construction"""

    def test_is_admin(self):
        assert user(UserRole.ADMIN).is_admin is True
        assert user().is_admin is False

    def test_from_user_accepts_string_role(self):
        """Test roles stored as plain strings are converted"""
        row = SimpleNamespace(id=uuid.uuid4(), role="admin")
        principal = Principal.from_user(row)
        assert principal.user_id == row.id
        assert principal.role is UserRole.ADMIN


class TestAuthorize:
    """Test AccessResolver.authorize decision order"""

    @pytest.mark.asyncio
    async def test_admin_allowed_without_lookups(self):
        """Test admin role short-circuits before any storage access"""
        resolver, documents, permissions = make_resolver()

        assert await resolver.authorize(user(UserRole.ADMIN), uuid.uuid4()) is True
        documents.get.assert_not_called()
        permissions.find_by_document_and_user.assert_not_called()

    @pytest.mark.asyncio
    async def test_owner_allowed_without_grant_lookup(self):
        principal = user()
        document = make_document(owner_id=principal.user_id)
        resolver, _, permissions = make_resolver(document=document)

        assert await resolver.authorize(principal, document) is True
        permissions.find_by_document_and_user.assert_not_called()

    @pytest.mark.asyncio
    async def test_owner_allowed_by_document_id(self):
        principal = user()
        document = make_document(owner_id=principal.user_id)
        resolver, documents, _ = make_resolver(document=document)

        assert await resolver.authorize(principal, document.id) is True
        documents.get.assert_awaited_once_with(document.id)

    @pytest.mark.asyncio
    async def test_stranger_without_grant_denied(self):
        document = make_document()
        resolver, _, _ = make_resolver(document=document, grant=None)

        assert await resolver.authorize(user(), document) is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("level", list(PermissionLevel))
    async def test_any_grant_level_allows(self, level):
        """Test every grant level satisfies the access check"""
        principal = user()
        document = make_document()
        grant = SimpleNamespace(permission=level)
        resolver, _, permissions = make_resolver(document=document, grant=grant)

        assert await resolver.authorize(principal, document) is True
        permissions.find_by_document_and_user.assert_awaited_once_with(
            document.id, principal.user_id
        )

    @pytest.mark.asyncio
    async def test_unknown_document_denies(self):
        """Test an id with no document behind it is a denial, not an error"""
        resolver, _, permissions = make_resolver(document=None)

        assert await resolver.authorize(user(), uuid.uuid4()) is False
        permissions.find_by_document_and_user.assert_not_called()

    @pytest.mark.asyncio
    async def test_require_access_on_unknown_document_is_forbidden(self):
        resolver, _, _ = make_resolver(document=None)

        with pytest.raises(AuthorizationException):
            await resolver.require_access(user(), uuid.uuid4())

    @pytest.mark.asyncio
    async def test_document_lookup_failure_denies(self):
        resolver, documents, _ = make_resolver()
        documents.get.side_effect = StorageException(operation="document.get")

        assert await resolver.authorize(user(), uuid.uuid4()) is False

    @pytest.mark.asyncio
    async def test_permission_lookup_failure_denies(self):
        """Test a failing grant lookup fails closed"""
        document = make_document()
        resolver, _, permissions = make_resolver(document=document)
        permissions.find_by_document_and_user.side_effect = RuntimeError("connection reset")

        assert await resolver.authorize(user(), document) is False

    @pytest.mark.asyncio
    async def test_repeated_calls_agree(self):
        """Test the decision is stable across calls with unchanged state"""
        principal = user()
        document = make_document()
        grant = SimpleNamespace(permission=PermissionLevel.READ)
        resolver, _, _ = make_resolver(document=document, grant=grant)

        results = [await resolver.authorize(principal, document) for _ in range(3)]
        assert results == [True, True, True]


class TestRequireAccess:
    """Test AccessResolver.require_access"""

    @pytest.mark.asyncio
    async def test_denied_raises_authorization(self):
        document = make_document()
        resolver, _, _ = make_resolver(document=document)

        with pytest.raises(AuthorizationException) as exc_info:
            await resolver.require_access(user(), document)

        assert exc_info.value.status_code == 403
        assert exc_info.value.details["document_id"] == str(document.id)

    @pytest.mark.asyncio
    async def test_allowed_returns_none(self):
        principal = user()
        document = make_document(owner_id=principal.user_id)
        resolver, _, _ = make_resolver(document=document)

        assert await resolver.require_access(principal, document) is None


class TestRequireLevel:
    """Test grant level checks for mutating operations"""

    @pytest.mark.asyncio
    async def test_owner_passes_every_level_set(self):
        principal = user()
        document = make_document(owner_id=principal.user_id)
        resolver, _, _ = make_resolver(document=document)

        for levels in (WRITE_LEVELS, DELETE_LEVELS, SHARE_LEVELS):
            await resolver.require_level(principal, document, levels)

    @pytest.mark.asyncio
    async def test_admin_passes(self):
        resolver, _, _ = make_resolver()
        await resolver.require_level(user(UserRole.ADMIN), make_document(), SHARE_LEVELS)

    @pytest.mark.asyncio
    async def test_read_grant_cannot_write(self):
        document = make_document()
        grant = SimpleNamespace(permission=PermissionLevel.READ)
        resolver, _, _ = make_resolver(document=document, grant=grant)

        with pytest.raises(AuthorizationException) as exc_info:
            await resolver.require_level(user(), document, WRITE_LEVELS)

        assert exc_info.value.message == "Insufficient permission level"
        assert exc_info.value.details["required"] == ["admin", "write"]

    @pytest.mark.asyncio
    async def test_matching_grant_passes(self):
        document = make_document()
        grant = SimpleNamespace(permission=PermissionLevel.DELETE)
        resolver, _, _ = make_resolver(document=document, grant=grant)

        await resolver.require_level(user(), document, DELETE_LEVELS)

    @pytest.mark.asyncio
    async def test_admin_grant_can_share(self):
        document = make_document()
        grant = SimpleNamespace(permission=PermissionLevel.ADMIN)
        resolver, _, _ = make_resolver(document=document, grant=grant)

        await resolver.require_level(user(), document, SHARE_LEVELS)

    @pytest.mark.asyncio
    async def test_stranger_gets_access_denied_first(self):
        document = make_document()
        resolver, _, _ = make_resolver(document=document, grant=None)

        with pytest.raises(AuthorizationException) as exc_info:
            await resolver.require_level(user(), document, WRITE_LEVELS)

        assert exc_info.value.message == "Access denied"
