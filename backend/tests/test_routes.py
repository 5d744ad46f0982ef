"""
CampusNotes Backend: API Endpoint Tests
=========================================

What:  Exercises the HTTP surface through the real app (ASGITransport), with
       the test database and the in-memory object store.

What we test:
    ✅ Role checks: 401 without a token, 403 with the wrong role
    ✅ download-zip: headers, body, 400 on empty selection
    ✅ Cascade delete endpoint and its summary body
    ✅ Malformed ids and bodies → 400 with the standard error body
    ✅ Upload handshake, save, browse and delete round trip
    ✅ Unexpected 500s still carry the request id
"""

import io
import logging
import uuid
import zipfile

import pytest
from httpx import ASGITransport, AsyncClient

from campusnotes.main import create_app
from campusnotes.security import Role, create_access_token


def auth_header(user_id, role):
    return {"Authorization": f"Bearer {create_access_token(user_id, role)}"}


def _faculty_headers(faculty):
    return auth_header(faculty.id, Role.FACULTY)


async def _tree(seed):
    reg = await seed.regulation()
    branch = await seed.branch(reg)
    subject = await seed.subject(branch)
    return subject, branch, reg


class TestAuth:

    @pytest.mark.asyncio
    async def test_admin_route_without_token(self, test_client):
        response = await test_client.get("/api/admin/regulations")
        assert response.status_code == 401
        body = response.json()
        assert body["error"] == "unauthorized"
        assert "request_id" in body

    @pytest.mark.asyncio
    async def test_admin_route_with_faculty_token(self, test_client):
        headers = auth_header(uuid.uuid4(), Role.FACULTY)
        response = await test_client.get("/api/admin/regulations", headers=headers)
        assert response.status_code == 403
        assert response.json()["message"] == "Admin access required"

    @pytest.mark.asyncio
    async def test_unknown_role_cannot_upload(self, test_client):
        token = create_access_token(uuid.uuid4(), Role.OTHER)
        response = await test_client.post(
            "/api/notes/upload",
            json={"filesMeta": [{"originalName": "a.pdf"}]},
            headers={"Authorization": f"Bearer {token}"},
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_garbage_token(self, test_client):
        response = await test_client.get(
            "/api/notes/my-uploads", headers={"Authorization": "Bearer not-a-jwt"}
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, test_client):
        response = await test_client.get(
            "/api/meta/regulations", headers={"X-Request-ID": "trace-123"}
        )
        assert response.status_code == 200
        assert response.headers["X-Request-ID"] == "trace-123"

    @pytest.mark.asyncio
    async def test_access_log_names_caller(self, test_client, caplog):
        user_id = uuid.uuid4()
        caplog.set_level(logging.INFO, logger="campusnotes.access")

        await test_client.get("/api/notes/my-uploads", headers=auth_header(user_id, Role.FACULTY))
        await test_client.get("/api/meta/regulations")

        callers = [r.caller for r in caplog.records if r.name == "campusnotes.access"]
        assert callers == [f"faculty:{user_id}", "anonymous"]


class TestDownloadZip:

    @pytest.mark.asyncio
    async def test_zip_response(self, test_client, seed):
        tree = await _tree(seed)
        faculty = await seed.faculty()
        notes = [
            await seed.note(*tree, faculty, title=t, content=f"%PDF {t}".encode())
            for t in ("A", "B", "C")
        ]

        response = await test_client.post(
            "/api/notes/download-zip",
            json={"noteIds": [str(n.id) for n in notes]},
            headers={**auth_header(uuid.uuid4(), Role.OTHER), "Accept-Encoding": "identity"},
        )

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/zip"
        assert response.headers["content-disposition"] == "attachment; filename=notes.zip"
        assert int(response.headers["content-length"]) == len(response.content)
        with zipfile.ZipFile(io.BytesIO(response.content)) as archive:
            assert sorted(archive.namelist()) == ["A.pdf", "B.pdf", "C.pdf"]
            assert archive.read("B.pdf") == b"%PDF B"

    @pytest.mark.asyncio
    async def test_zip_not_gzipped(self, test_client, seed):
        tree = await _tree(seed)
        note = await seed.note(*tree, await seed.faculty(), content=b"%PDF " + b"x" * 4000)

        response = await test_client.post(
            "/api/notes/download-zip",
            json={"noteIds": [str(note.id)]},
            headers={**auth_header(uuid.uuid4(), Role.OTHER), "Accept-Encoding": "gzip"},
        )

        assert response.status_code == 200
        assert response.headers["content-encoding"] == "identity"
        assert int(response.headers["content-length"]) == len(response.content)
        with zipfile.ZipFile(io.BytesIO(response.content)) as archive:
            assert archive.namelist() == ["Unit 1.pdf"]

    @pytest.mark.asyncio
    async def test_empty_selection(self, test_client):
        response = await test_client.post(
            "/api/notes/download-zip",
            json={"noteIds": []},
            headers=auth_header(uuid.uuid4(), Role.OTHER),
        )
        assert response.status_code == 400
        assert response.json()["message"] == "No notes selected"

    @pytest.mark.asyncio
    async def test_unknown_notes(self, test_client):
        response = await test_client.post(
            "/api/notes/download-zip",
            json={"noteIds": [str(uuid.uuid4())]},
            headers=auth_header(uuid.uuid4(), Role.OTHER),
        )
        assert response.status_code == 404
        assert response.json()["message"] == "Notes not found"

    @pytest.mark.asyncio
    async def test_missing_blob(self, test_client, seed, object_store):
        tree = await _tree(seed)
        note = await seed.note(*tree, await seed.faculty())
        del object_store.blobs[note.file_key]

        response = await test_client.post(
            "/api/notes/download-zip",
            json={"noteIds": [str(note.id)]},
            headers=auth_header(uuid.uuid4(), Role.OTHER),
        )
        assert response.status_code == 500
        assert response.json()["message"] == "Error creating ZIP"

    @pytest.mark.asyncio
    async def test_malformed_id(self, test_client):
        response = await test_client.post(
            "/api/notes/download-zip",
            json={"noteIds": ["not-a-uuid"]},
            headers=auth_header(uuid.uuid4(), Role.OTHER),
        )
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"


class TestCascadeEndpoint:

    @pytest.mark.asyncio
    async def test_delete_regulation(self, test_client, seed, admin_headers, object_store):
        subject, branch, reg = await _tree(seed)
        note = await seed.note(subject, branch, reg, await seed.faculty())

        response = await test_client.delete(f"/api/admin/regulations/{reg.id}", headers=admin_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["deleted"] == {"branches": 1, "subjects": 1, "notes": 1}
        assert body["blobFailures"] == 0
        assert object_store.deleted == [note.file_key]

        again = await test_client.delete(f"/api/admin/regulations/{reg.id}", headers=admin_headers)
        assert again.status_code == 404

    @pytest.mark.asyncio
    async def test_malformed_id(self, test_client, admin_headers):
        response = await test_client.delete("/api/admin/branches/123", headers=admin_headers)
        assert response.status_code == 400


class TestNoteFlow:

    @pytest.mark.asyncio
    async def test_upload_save_browse_delete(self, test_client, seed, object_store):
        subject, branch, reg = await _tree(seed)
        faculty = await seed.faculty(name="Meera Iyer")
        headers = _faculty_headers(faculty)

        upload = await test_client.post(
            "/api/notes/upload",
            json={"filesMeta": [{"originalName": "Unit 1.pdf", "fileType": "application/pdf"}]},
            headers=headers,
        )
        assert upload.status_code == 200
        [location] = upload.json()["files"]
        assert location["fileKey"].startswith("uploads/")
        assert location["fileKey"].endswith("_Unit 1.pdf")

        saved = await test_client.post(
            "/api/notes/save-notes",
            json={
                "regulation": str(reg.id),
                "branch": str(branch.id),
                "subject": str(subject.id),
                "semester": "3",
                "uploadedFiles": [
                    {"fileKey": location["fileKey"], "originalName": "Unit 1.pdf"}
                ],
            },
            headers=headers,
        )
        assert saved.status_code == 201
        [note] = saved.json()["savedNotes"]
        assert note["title"] == "Unit 1"

        browse = await test_client.get(f"/api/notes/subject/{subject.id}")
        assert browse.status_code == 200
        [view] = browse.json()["notes"]
        assert view["uploadedBy"]["name"] == "Meera Iyer"
        assert view["fileUrl"].startswith("https://blobs.test/uploads/")

        mine = await test_client.get("/api/notes/my-uploads", headers=headers)
        assert [n["id"] for n in mine.json()] == [note["id"]]

        deleted = await test_client.delete(f"/api/notes/{note['id']}", headers=headers)
        assert deleted.status_code == 200
        assert object_store.deleted == [location["fileKey"]]

        empty = await test_client.get(f"/api/notes/subject/{subject.id}")
        assert empty.status_code == 404
        assert empty.json()["message"] == "No notes found for this subject"

    @pytest.mark.asyncio
    async def test_upload_without_files(self, test_client):
        response = await test_client.post(
            "/api/notes/upload",
            json={"filesMeta": []},
            headers=auth_header(uuid.uuid4(), Role.FACULTY),
        )
        assert response.status_code == 400


class TestAdminRoutes:

    @pytest.mark.asyncio
    async def test_taxonomy_crud(self, test_client, admin_headers):
        reg = await test_client.post(
            "/api/admin/regulations",
            json={"name": "R23", "numberOfSemesters": 8},
            headers=admin_headers,
        )
        assert reg.status_code == 201
        reg_id = reg.json()["id"]

        branch = await test_client.post(
            "/api/admin/branches",
            json={"name": "Computer Science", "code": "CSE", "regulation": reg_id},
            headers=admin_headers,
        )
        assert branch.status_code == 201
        assert branch.json()["regulation"]["name"] == "R23"

        subject = await test_client.post(
            "/api/admin/subjects",
            json={"name": "Compilers", "code": "CS401", "branch": branch.json()["id"], "semester": "7"},
            headers=admin_headers,
        )
        assert subject.status_code == 201

        renamed = await test_client.put(
            f"/api/admin/regulations/{reg_id}", json={"name": "R23-rev"}, headers=admin_headers
        )
        assert renamed.json()["name"] == "R23-rev"

        listed = await test_client.get(
            "/api/meta/subjects", params={"branch": branch.json()["id"], "semester": "7"}
        )
        assert [s["code"] for s in listed.json()] == ["CS401"]

    @pytest.mark.asyncio
    async def test_branch_with_unknown_regulation(self, test_client, admin_headers):
        response = await test_client.post(
            "/api/admin/branches",
            json={"name": "Civil", "code": "CE", "regulation": str(uuid.uuid4())},
            headers=admin_headers,
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_faculty_crud(self, test_client, admin_headers):
        payload = {
            "name": "Kiran Das",
            "email": "Kiran.Das@College.edu",
            "password": "secret123",
            "employeeId": "EMP-42",
            "designation": "Professor",
        }
        created = await test_client.post("/api/admin/faculty", json=payload, headers=admin_headers)
        assert created.status_code == 201
        body = created.json()
        assert body["email"] == "kiran.das@college.edu"
        assert "password" not in body and "passwordHash" not in body

        duplicate = await test_client.post("/api/admin/faculty", json=payload, headers=admin_headers)
        assert duplicate.status_code == 400
        assert duplicate.json()["message"] == "Email already exists"

        removed = await test_client.delete(f"/api/admin/faculty/{body['id']}", headers=admin_headers)
        assert removed.status_code == 200

    @pytest.mark.asyncio
    async def test_note_file_url(self, test_client, seed, admin_headers):
        tree = await _tree(seed)
        note = await seed.note(*tree, await seed.faculty())

        response = await test_client.get(f"/api/admin/notes/{note.id}/file", headers=admin_headers)

        assert response.status_code == 200
        assert response.json() == {"url": f"https://blobs.test/{note.file_key}"}


class TestHealth:

    @pytest.mark.asyncio
    async def test_health(self, test_client):
        response = await test_client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["database"] == "connected"
        assert body["object_store"] == "available"
        assert body["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_degraded_without_object_store(self, test_client, object_store):
        object_store.healthy = False
        response = await test_client.get("/health")
        assert response.json()["status"] == "degraded"


class TestUnexpectedErrors:

    @pytest.mark.asyncio
    async def test_request_id_in_500_body(self):
        app = create_app()

        @app.get("/explode")
        async def explode():
            raise RuntimeError("boom")

        transport = ASGITransport(app=app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/explode", headers={"X-Request-ID": "trace-500"})

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "internal_server_error"
        assert body["request_id"] == "trace-500"
