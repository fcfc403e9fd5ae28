"""
Design upload tests.

Verifies:
- Constraints endpoint publishes the server-side limit
- Only JPG/PNG/PDF accepted; empty and oversized files rejected
- Stored names are collision-free and path-safe
- Uploaded files are served back from /uploads/<stored_name>
"""

import io

import pytest

from tarpprint.models import UploadedFile


def _post_file(client, headers, content, name):
    return client.post(
        "/api/uploads",
        data={"file": (io.BytesIO(content), name)},
        headers=headers,
        content_type="multipart/form-data",
    )


class TestConstraints:

    def test_constraints_are_public(self, app, client, db_session):
        resp = client.get("/api/uploads/constraints")
        assert resp.status_code == 200
        assert resp.json["max_bytes"] == app.config["MAX_UPLOAD_BYTES"]
        assert set(resp.json["allowed_extensions"]) == {"jpg", "jpeg", "png", "pdf"}


class TestUpload:

    @pytest.mark.parametrize("name", ["banner.png", "banner.JPG", "proof.pdf", "photo.jpeg"])
    def test_accepts_allowed_types(self, client, customer_headers, name, db_session):
        resp = _post_file(client, customer_headers, b"design-bytes", name)
        assert resp.status_code == 201
        assert resp.json["file_name"] == name
        assert resp.json["file_url"].startswith("/uploads/")

    @pytest.mark.parametrize("name", ["virus.exe", "notes.txt", "noextension"])
    def test_rejects_other_types(self, client, customer_headers, name, db_session):
        resp = _post_file(client, customer_headers, b"data", name)
        assert resp.status_code == 400
        assert db_session.query(UploadedFile).count() == 0

    def test_rejects_empty_file(self, client, customer_headers):
        resp = _post_file(client, customer_headers, b"", "empty.png")
        assert resp.status_code == 400

    def test_rejects_missing_file(self, client, customer_headers):
        resp = client.post("/api/uploads", data={}, headers=customer_headers, content_type="multipart/form-data")
        assert resp.status_code == 400

    def test_rejects_over_limit(self, app, client, customer_headers, db_session):
        content = b"x" * (app.config["MAX_UPLOAD_BYTES"] + 1)
        resp = _post_file(client, customer_headers, content, "huge.png")
        assert resp.status_code == 413
        assert db_session.query(UploadedFile).count() == 0

    def test_rejects_body_over_content_length(self, app, client, customer_headers):
        content = b"x" * (app.config["MAX_UPLOAD_BYTES"] * 2)
        resp = _post_file(client, customer_headers, content, "huge.png")
        assert resp.status_code == 413
        assert "File too large" in resp.json["error"]

    def test_same_name_twice_does_not_collide(self, client, customer_headers, db_session):
        first = _post_file(client, customer_headers, b"one", "logo.png").json
        second = _post_file(client, customer_headers, b"two", "logo.png").json
        assert first["file_url"] != second["file_url"]
        assert db_session.query(UploadedFile).count() == 2

    def test_path_traversal_name_sanitized(self, app, client, customer_headers, db_session):
        resp = _post_file(client, customer_headers, b"data", "../../etc/evil.png")
        assert resp.status_code == 201
        stored = db_session.query(UploadedFile).one().stored_name
        assert "/" not in stored and ".." not in stored

    def test_requires_auth(self, client, db_session):
        resp = _post_file(client, {}, b"data", "banner.png")
        assert resp.status_code == 401

    def test_upload_owner_recorded(self, client, customer_headers, customer, db_session):
        _post_file(client, customer_headers, b"data", "banner.png")
        assert db_session.query(UploadedFile).one().owner_id == customer.id


class TestServeUpload:

    def test_uploaded_file_served(self, client, customer_headers):
        file_url = _post_file(client, customer_headers, b"design-bytes", "banner.png").json["file_url"]
        resp = client.get(file_url)
        assert resp.status_code == 200
        assert resp.data == b"design-bytes"

    def test_unknown_file_404(self, client, db_session):
        assert client.get("/uploads/does-not-exist.png").status_code == 404
