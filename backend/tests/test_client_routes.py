"""
Client Records Backend — Client Route Tests
=============================================

What:  End-to-end HTTP tests through the FastAPI app (httpx ASGITransport).
How:   The app acts for ORG_ID=org1 (set in conftest); data for other
       organizations is inserted directly through the services.

What we test:
    ✅ camelCase wire format
    ✅ Status codes: 200 / 201 / 400 / 404 / 406 / 500
    ✅ Multipart photo upload (ClientImg + ClientId) and photo serving
"""

import os
import uuid
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from clientrecords.scope import OrgScope

from conftest import create_client, create_event

NEW_CLIENT = {
    "firstName": "Bob",
    "lastName": "Smith",
    "phoneNumber": {"primary": "940-555-0100"},
    "address": {"line1": "1 Elm St", "city": "Denton", "zip": "76201"},
    "orgs": ["someone-else"],
}


async def _post_client(test_client, auth_headers, **overrides):
    response = await test_client.post("/api/clients/", json={**NEW_CLIENT, **overrides}, headers=auth_headers)
    assert response.status_code == 200
    return response.json()["id"]


class TestClientCrudRoutes:

    @pytest.mark.asyncio
    async def test_create_then_get(self, test_client, auth_headers):
        response = await test_client.post("/api/clients/", json=NEW_CLIENT, headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "New client created successfully"

        response = await test_client.get(f"/api/clients/id/{body['id']}", headers=auth_headers)
        assert response.status_code == 200
        client = response.json()
        assert client["firstName"] == "Bob"
        assert client["phoneNumber"]["primary"] == "940-555-0100"
        assert client["address"]["zip"] == "76201"
        assert client["orgs"] == ["org1"]
        assert client["profileImg"] is None

    @pytest.mark.asyncio
    async def test_create_missing_required_field(self, test_client, auth_headers):
        payload = {k: v for k, v in NEW_CLIENT.items() if k != "phoneNumber"}

        response = await test_client.post("/api/clients/", json=payload, headers=auth_headers)

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_get_unknown_client_is_400(self, test_client, auth_headers):
        response = await test_client.get(f"/api/clients/id/{uuid.uuid4()}", headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["message"] == "Client not found"

    @pytest.mark.asyncio
    async def test_list_only_shows_own_org(self, test_client, auth_headers, session_factory):
        await _post_client(test_client, auth_headers)
        async with session_factory() as session:
            await create_client(session, OrgScope(org_id="org2"), first_name="Hidden")
            await session.commit()

        response = await test_client.get("/api/clients/", headers=auth_headers)

        assert response.status_code == 200
        assert [c["firstName"] for c in response.json()] == ["Bob"]

    @pytest.mark.asyncio
    async def test_update_returns_201_and_merges(self, test_client, auth_headers):
        client_id = await _post_client(test_client, auth_headers)

        response = await test_client.put(
            f"/api/clients/update/{client_id}",
            json={"lastName": "Smythe", "address": {"zip": "76205"}},
            headers=auth_headers,
        )

        assert response.status_code == 201
        assert response.json() == {"message": "Client updated successfully"}

        client = (await test_client.get(f"/api/clients/id/{client_id}", headers=auth_headers)).json()
        assert client["lastName"] == "Smythe"
        assert client["address"] == {
            "line1": "1 Elm St",
            "line2": None,
            "city": "Denton",
            "county": None,
            "zip": "76205",
        }

    @pytest.mark.asyncio
    async def test_update_unknown_client_is_400(self, test_client, auth_headers):
        response = await test_client.put(
            f"/api/clients/update/{uuid.uuid4()}", json={"firstName": "X"}, headers=auth_headers
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_delete_then_get_is_400(self, test_client, auth_headers):
        client_id = await _post_client(test_client, auth_headers)

        response = await test_client.delete(f"/api/clients/{client_id}", headers=auth_headers)
        assert response.status_code == 200
        assert response.json() == {"message": "Client deleted successfully"}

        response = await test_client.get(f"/api/clients/id/{client_id}", headers=auth_headers)
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_delete_registered_client_is_406(self, test_client, auth_headers, session_factory):
        client_id = await _post_client(test_client, auth_headers)
        async with session_factory() as session:
            await create_event(session, "org1", attendees=[uuid.UUID(client_id)])
            await session.commit()

        response = await test_client.delete(f"/api/clients/{client_id}", headers=auth_headers)

        assert response.status_code == 406
        assert response.json()["message"] == "Client is signed up for events and can't be deleted."
        response = await test_client.get(f"/api/clients/id/{client_id}", headers=auth_headers)
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_delete_unknown_client_is_400(self, test_client, auth_headers):
        response = await test_client.delete(f"/api/clients/{uuid.uuid4()}", headers=auth_headers)

        assert response.status_code == 400


class TestQueryRoutes:

    @pytest.mark.asyncio
    async def test_search_by_name(self, test_client, auth_headers):
        await _post_client(test_client, auth_headers)
        await _post_client(test_client, auth_headers, firstName="Alice")

        response = await test_client.get(
            "/api/clients/search",
            params={"searchBy": "name", "firstName": "bob", "lastName": ""},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert [c["firstName"] for c in response.json()] == ["Bob"]

    @pytest.mark.asyncio
    async def test_search_by_number(self, test_client, auth_headers):
        await _post_client(test_client, auth_headers)

        response = await test_client.get(
            "/api/clients/search",
            params={"searchBy": "number", "phoneNumber": "555-01"},
            headers=auth_headers,
        )

        assert len(response.json()) == 1

    @pytest.mark.asyncio
    async def test_search_invalid_mode_is_400(self, test_client, auth_headers):
        response = await test_client.get(
            "/api/clients/search", params={"searchBy": "email"}, headers=auth_headers
        )

        assert response.status_code == 400
        assert response.json()["message"] == "invalid searchBy"

    @pytest.mark.asyncio
    async def test_details(self, test_client, auth_headers, session_factory):
        client_id = await _post_client(test_client, auth_headers)
        async with session_factory() as session:
            await create_event(session, "org1", name="Registered", attendees=[uuid.UUID(client_id)])
            await create_event(session, "org1", name="Open")
            await session.commit()

        response = await test_client.get(f"/api/clients/details/{client_id}", headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["client"]["id"] == client_id
        assert [e["eventName"] for e in body["clientEvents"]] == ["Registered"]
        assert [e["eventName"] for e in body["eventsFiltered"]] == ["Open"]
        assert body["clientEvents"][0]["attendees"] == [client_id]

    @pytest.mark.asyncio
    async def test_byzip(self, test_client, auth_headers):
        await _post_client(test_client, auth_headers)
        await _post_client(test_client, auth_headers, address={"zip": "76201"})
        await _post_client(test_client, auth_headers, address={"zip": "76209"})

        response = await test_client.get("/api/clients/byzip", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == [{"zip": "76201", "count": 2}, {"zip": "76209", "count": 1}]


class TestPhotoRoutes:

    @pytest.mark.asyncio
    async def test_upload_serve_and_delete(self, test_client, auth_headers, sample_image_bytes):
        client_id = await _post_client(test_client, auth_headers)

        response = await test_client.post(
            "/api/clients/upload",
            files={"ClientImg": ("me.jpg", sample_image_bytes, "image/jpeg")},
            data={"ClientId": client_id},
            headers=auth_headers,
        )
        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "File uploaded!"
        stored = body["user"]["profileImg"]
        assert stored.endswith("-me.jpg")

        # served without a token, for <img> tags
        response = await test_client.get(f"/uploads/{stored}")
        assert response.status_code == 200
        assert response.content == sample_image_bytes

        response = await test_client.delete(f"/api/clients/delete/profile/{client_id}", headers=auth_headers)
        assert response.status_code == 200
        assert response.json() == {"message": "Profile image deleted successfully"}

        response = await test_client.get(f"/uploads/{stored}")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_upload_for_unknown_client(self, test_client, auth_headers, sample_image_bytes):
        response = await test_client.post(
            "/api/clients/upload",
            files={"ClientImg": ("me.jpg", sample_image_bytes, "image/jpeg")},
            data={"ClientId": str(uuid.uuid4())},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json() == {"message": "No Files were uploaded!", "user": None}

    @pytest.mark.asyncio
    async def test_upload_without_file_is_400(self, test_client, auth_headers):
        client_id = await _post_client(test_client, auth_headers)

        response = await test_client.post(
            "/api/clients/upload", data={"ClientId": client_id}, headers=auth_headers
        )

        assert response.status_code == 400
        assert response.json()["message"] == "No files were uploaded"

    @pytest.mark.asyncio
    async def test_upload_bad_type_is_400(self, test_client, auth_headers):
        client_id = await _post_client(test_client, auth_headers)

        response = await test_client.post(
            "/api/clients/upload",
            files={"ClientImg": ("notes.pdf", b"%PDF-1.4", "application/pdf")},
            data={"ClientId": client_id},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    @pytest.mark.asyncio
    async def test_delete_photo_unknown_client_is_404(self, test_client, auth_headers):
        response = await test_client.delete(
            f"/api/clients/delete/profile/{uuid.uuid4()}", headers=auth_headers
        )

        assert response.status_code == 404
        assert response.json()["message"] == "Client not found"

    @pytest.mark.asyncio
    async def test_serve_rejects_traversal(self, test_client):
        response = await test_client.get("/uploads/..%2F..%2Fetc%2Fpasswd")

        assert response.status_code == 404


class TestMalformedIds:

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "method, path",
        [
            ("GET", "/api/clients/id/not-a-uuid"),
            ("GET", "/api/clients/details/not-a-uuid"),
            ("DELETE", "/api/clients/not-a-uuid"),
        ],
    )
    async def test_record_routes_answer_400(self, test_client, auth_headers, method, path):
        response = await test_client.request(method, path, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["message"] == "Client not found"

    @pytest.mark.asyncio
    async def test_update_answers_400(self, test_client, auth_headers):
        response = await test_client.put(
            "/api/clients/update/not-a-uuid", json={"firstName": "X"}, headers=auth_headers
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_delete_photo_answers_404(self, test_client, auth_headers):
        response = await test_client.delete("/api/clients/delete/profile/not-a-uuid", headers=auth_headers)

        assert response.status_code == 404
        assert response.json()["message"] == "Client not found"


class TestStoreFailures:

    @pytest.mark.asyncio
    async def test_list_failure_is_500_without_internals(self, test_client, auth_headers):
        async def failing_execute(session, *args, **kwargs):
            raise OperationalError("SELECT", {}, Exception("connection refused"))

        with patch.object(AsyncSession, "execute", failing_execute):
            response = await test_client.get("/api/clients/", headers=auth_headers)

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "server_error"
        assert body["message"] == "Could not retrieve clients. Please try again."
        assert "details" not in body
        assert "connection refused" not in response.text

    @pytest.mark.asyncio
    async def test_failed_upload_commit_keeps_old_photo(
        self, test_client, auth_headers, file_service, sample_image_bytes
    ):
        client_id = await _post_client(test_client, auth_headers)
        response = await test_client.post(
            "/api/clients/upload",
            files={"ClientImg": ("old.jpg", sample_image_bytes, "image/jpeg")},
            data={"ClientId": client_id},
            headers=auth_headers,
        )
        old = response.json()["user"]["profileImg"]

        async def failing_commit(session):
            raise OperationalError("COMMIT", {}, Exception("database is locked"))

        with patch.object(AsyncSession, "commit", failing_commit):
            response = await test_client.post(
                "/api/clients/upload",
                files={"ClientImg": ("new.jpg", sample_image_bytes, "image/jpeg")},
                data={"ClientId": client_id},
                headers=auth_headers,
            )

        assert response.status_code == 500
        assert "database is locked" not in response.text

        client = (await test_client.get(f"/api/clients/id/{client_id}", headers=auth_headers)).json()
        assert client["profileImg"] == old
        assert os.listdir(file_service.uploads_dir) == [old]
