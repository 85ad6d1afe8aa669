"""
Integration Tests for the Metadata API
Uses ASGI transport, so no server process is needed
"""

import uuid

import pytest


async def add_author(api, document_id, value):
    response = await api.client.post(
        f"/api/v1/documents/{document_id}/metadata",
        json={"key": "author", "value": value},
        headers=api.auth(api.owner),
    )
    assert response.status_code == 201, response.text


async def list_entries(api, document_id, user):
    response = await api.client.get(
        f"/api/v1/documents/{document_id}/metadata", headers=api.auth(user)
    )
    assert response.status_code == 200, response.text
    return response.json()["metadata"]


class TestMetadataEntries:
    @pytest.mark.asyncio
    async def test_repeated_keys_listed_with_ids(self, api):
        created = await api.upload(api.owner, metadata={"author": "smith"})
        await add_author(api, created["document_id"], "jones")

        entries = await list_entries(api, created["document_id"], api.owner)

        assert sorted((e["key"], e["value"]) for e in entries) == [
            ("author", "jones"),
            ("author", "smith"),
        ]
        assert len({e["metadata_id"] for e in entries}) == 2
        assert all(e["document_id"] == created["document_id"] for e in entries)

    @pytest.mark.asyncio
    async def test_update_value_and_key(self, api):
        created = await api.upload(api.owner, metadata={"author": "smith"})
        entry = (await list_entries(api, created["document_id"], api.owner))[0]
        url = f"/api/v1/metadata/{entry['metadata_id']}"

        value_only = await api.client.put(url, json={"value": "smythe"}, headers=api.auth(api.owner))
        key_only = await api.client.put(url, json={"key": "editor"}, headers=api.auth(api.owner))

        assert value_only.status_code == 200
        assert value_only.json()["value"] == "smythe"
        assert key_only.json()["key"] == "editor"
        assert key_only.json()["value"] == "smythe"

        detail = await api.client.get(
            f"/api/v1/documents/{created['document_id']}", headers=api.auth(api.owner)
        )
        assert detail.json()["metadata"] == {"editor": "smythe"}

    @pytest.mark.asyncio
    async def test_update_needs_a_field(self, api):
        created = await api.upload(api.owner, metadata={"author": "smith"})
        entry = (await list_entries(api, created["document_id"], api.owner))[0]

        response = await api.client.put(
            f"/api/v1/metadata/{entry['metadata_id']}", json={}, headers=api.auth(api.owner)
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_delete(self, api):
        created = await api.upload(api.owner, metadata={"author": "smith", "year": "2024"})
        entries = await list_entries(api, created["document_id"], api.owner)
        author = next(e for e in entries if e["key"] == "author")
        url = f"/api/v1/metadata/{author['metadata_id']}"

        deleted = await api.client.delete(url, headers=api.auth(api.owner))
        again = await api.client.delete(url, headers=api.auth(api.owner))

        assert deleted.status_code == 200
        assert deleted.json()["data"]["document_id"] == created["document_id"]
        assert again.status_code == 404
        remaining = await list_entries(api, created["document_id"], api.owner)
        assert [e["key"] for e in remaining] == ["year"]

    @pytest.mark.asyncio
    async def test_unknown_and_malformed_ids(self, api):
        missing = await api.client.delete(
            f"/api/v1/metadata/{uuid.uuid4()}", headers=api.auth(api.owner)
        )
        malformed = await api.client.put(
            "/api/v1/metadata/not-a-uuid", json={"value": "x"}, headers=api.auth(api.owner)
        )

        assert missing.status_code == 404
        assert malformed.status_code == 400


class TestMetadataAccess:
    @pytest.mark.asyncio
    async def test_stranger_cannot_list_or_change(self, api):
        created = await api.upload(api.owner, metadata={"author": "smith"})
        entry = (await list_entries(api, created["document_id"], api.owner))[0]

        listing = await api.client.get(
            f"/api/v1/documents/{created['document_id']}/metadata", headers=api.auth(api.other)
        )
        update = await api.client.put(
            f"/api/v1/metadata/{entry['metadata_id']}",
            json={"value": "mallory"},
            headers=api.auth(api.other),
        )

        assert listing.status_code == 403
        assert update.status_code == 403

    @pytest.mark.asyncio
    async def test_read_grantee_lists_but_needs_write_to_change(self, api):
        created = await api.upload(api.owner, metadata={"author": "smith"})
        grant = await api.client.post(
            f"/api/v1/documents/{created['document_id']}/permissions",
            json={"user_id": str(api.other.id), "permission": "read"},
            headers=api.auth(api.owner),
        )
        entry = (await list_entries(api, created["document_id"], api.other))[0]
        url = f"/api/v1/metadata/{entry['metadata_id']}"

        denied = await api.client.delete(url, headers=api.auth(api.other))
        await api.client.put(
            f"/api/v1/permissions/{grant.json()['permission_id']}",
            json={"permission": "write"},
            headers=api.auth(api.owner),
        )
        allowed = await api.client.delete(url, headers=api.auth(api.other))

        assert denied.status_code == 403
        assert allowed.status_code == 200
