"""
Integration tests for resume management.

Tests:
- Upload validation (type, size, emptiness)
- First upload becomes primary, later uploads do not
- Promoting another resume
- Deleting the primary resume promotes the newest remaining one and removes the file
- Other users' resumes are not visible
"""

import pytest

from core.config import settings


def auth(body):
    return {"Authorization": f"Bearer {body['access_token']}"}


def upload(client, headers, title="Backend Engineer", level="MID_LEVEL",
           content=b"Jane Seeker - Python, SQL", content_type="text/plain",
           filename="resume.txt"):
    return client.post(
        "/api/v1/resumes",
        headers=headers,
        files={"file": (filename, content, content_type)},
        data={"title": title, "experience_level": level},
    )


@pytest.fixture
def seeker(client, register):
    body = register("jane@example.com", "EMPLOYEE", name="Jane Seeker")
    client.cookies.clear()
    return auth(body)


class TestUpload:
    """Test resume uploads."""

    def test_first_upload_is_primary(self, client, seeker, storage):
        response = upload(client, seeker)

        assert response.status_code == 201
        resume = response.json()
        assert resume["is_primary"] is True
        assert resume["original_name"] == "resume.txt"
        assert resume["mime_type"] == "text/plain"
        assert resume["file_size"] == len(b"Jane Seeker - Python, SQL")
        assert resume["filename"].startswith("Jane_Seeker_mid_level_")
        assert resume["filename"].endswith(".txt")
        assert resume["url"] == f"{settings.upload_url_prefix}/{resume['filename']}"
        assert storage.exists(resume["filename"])

    def test_second_upload_is_not_primary(self, client, seeker):
        upload(client, seeker, level="MID_LEVEL")

        response = upload(client, seeker, title="Lead", level="SENIOR_LEVEL")

        assert response.status_code == 201
        assert response.json()["is_primary"] is False

    def test_pdf_upload(self, client, seeker):
        response = upload(
            client, seeker,
            content=b"%PDF-1.4 fake", content_type="application/pdf", filename="cv.pdf",
        )

        assert response.status_code == 201
        assert response.json()["filename"].endswith(".pdf")

    def test_invalid_type_rejected(self, client, seeker, storage):
        response = upload(client, seeker, content=b"\x89PNG", content_type="image/png", filename="me.png")

        assert response.status_code == 400
        assert "Invalid file type" in response.json()["error"]["message"]
        assert list(storage.base_path.iterdir()) == []

    def test_empty_file_rejected(self, client, seeker):
        response = upload(client, seeker, content=b"")

        assert response.status_code == 400

    def test_oversized_file_rejected(self, client, seeker, monkeypatch):
        monkeypatch.setattr(settings, "max_resume_size", 10)

        response = upload(client, seeker, content=b"x" * 11)

        assert response.status_code == 400
        assert "File size" in response.json()["error"]["message"]

    def test_unknown_experience_level(self, client, seeker):
        response = upload(client, seeker, level="WIZARD")

        assert response.status_code == 422

    def test_requires_session(self, client):
        response = upload(client, {})

        assert response.status_code == 401


class TestPrimaryResume:
    """Test promotion and deletion."""

    def test_list_primary_first(self, client, seeker):
        first = upload(client, seeker, title="R1", level="ENTRY_LEVEL").json()
        second = upload(client, seeker, title="R2", level="MID_LEVEL").json()

        response = client.get("/api/v1/resumes", headers=seeker)

        assert response.status_code == 200
        resumes = response.json()
        assert [r["id"] for r in resumes] == [first["id"], second["id"]]
        assert [r["is_primary"] for r in resumes] == [True, False]

    def test_promote(self, client, seeker):
        first = upload(client, seeker, title="R1", level="ENTRY_LEVEL").json()
        second = upload(client, seeker, title="R2", level="MID_LEVEL").json()

        response = client.put(f"/api/v1/resumes/{second['id']}/primary", headers=seeker)

        assert response.status_code == 200
        assert response.json()["is_primary"] is True
        primaries = [r["id"] for r in client.get("/api/v1/resumes", headers=seeker).json() if r["is_primary"]]
        assert primaries == [second["id"]]
        assert first["id"] not in primaries

    def test_promote_missing(self, client, seeker):
        response = client.put("/api/v1/resumes/nonexistent-id/primary", headers=seeker)

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    def test_delete_primary_promotes_successor(self, client, seeker, storage):
        first = upload(client, seeker, title="R1", level="ENTRY_LEVEL").json()
        second = upload(client, seeker, title="R2", level="MID_LEVEL").json()

        response = client.delete(f"/api/v1/resumes/{first['id']}", headers=seeker)

        assert response.status_code == 200
        assert response.json()["message"] == "Resume deleted successfully"
        assert not storage.exists(first["filename"])
        resumes = client.get("/api/v1/resumes", headers=seeker).json()
        assert [(r["id"], r["is_primary"]) for r in resumes] == [(second["id"], True)]

        # Promoting the only resume is a no-op
        assert client.put(f"/api/v1/resumes/{second['id']}/primary", headers=seeker).status_code == 200

    def test_delete_last_resume(self, client, seeker):
        only = upload(client, seeker).json()

        client.delete(f"/api/v1/resumes/{only['id']}", headers=seeker)

        assert client.get("/api/v1/resumes", headers=seeker).json() == []

    def test_delete_when_file_already_gone(self, client, seeker, storage):
        only = upload(client, seeker).json()
        storage.delete(only["filename"])

        response = client.delete(f"/api/v1/resumes/{only['id']}", headers=seeker)

        assert response.status_code == 200

    def test_update_metadata(self, client, seeker):
        resume = upload(client, seeker).json()

        response = client.patch(
            f"/api/v1/resumes/{resume['id']}",
            headers=seeker,
            json={"title": "  Staff Engineer ", "experience_level": "SENIOR_LEVEL"},
        )

        assert response.status_code == 200
        assert response.json()["title"] == "Staff Engineer"
        assert response.json()["experience_level"] == "SENIOR_LEVEL"
        assert response.json()["is_primary"] is True


class TestOwnership:
    """Resumes of other users behave as if they do not exist."""

    @pytest.fixture
    def other(self, client, register):
        body = register("bob@example.com", "EMPLOYEE", name="Bob")
        client.cookies.clear()
        return auth(body)

    def test_other_users_resume_hidden(self, client, seeker, other):
        resume = upload(client, seeker).json()

        assert client.get("/api/v1/resumes", headers=other).json() == []
        assert client.put(f"/api/v1/resumes/{resume['id']}/primary", headers=other).status_code == 404
        assert client.delete(f"/api/v1/resumes/{resume['id']}", headers=other).status_code == 404
        assert client.patch(
            f"/api/v1/resumes/{resume['id']}", headers=other, json={"title": "Mine"}
        ).status_code == 404

    def test_each_user_has_own_primary(self, client, seeker, other):
        mine = upload(client, seeker).json()
        theirs = upload(client, other).json()

        assert mine["is_primary"] is True
        assert theirs["is_primary"] is True
