import io
import os
import time

import pytest
from itsdangerous import URLSafeTimedSerializer
from werkzeug.datastructures import FileStorage

from iiitm_portal.app.constants import BUCKET_DOCUMENTS, BUCKET_IMAGES, ROLE_ADMIN, ROLE_FACULTY, ROLE_STUDENT
from iiitm_portal.app.routes import files as files_routes
from iiitm_portal.app.services import file_service
from iiitm_portal.app.services.db_service import fetch_all, fetch_scalar
from iiitm_portal.app.services.errors import DataAccessError, PermissionDenied, ValidationError
from iiitm_portal.app.services.storage_service import SIGNED_URL_SALT, get_object_store


def make_file(name="notes.pdf", size=128, mimetype="application/pdf"):
    return FileStorage(stream=io.BytesIO(b"x" * size), filename=name, content_type=mimetype)


@pytest.fixture
def student_id(accounts):
    return accounts[ROLE_STUDENT]["user_id"]


def row_count():
    return fetch_scalar("SELECT COUNT(*) FROM file_uploads")


def test_upload_writes_object_then_row(ctx, student_id):
    result = file_service.upload(make_file(), BUCKET_DOCUMENTS, student_id)

    assert result["path"].startswith(f"{student_id}/")
    assert result["path"].endswith(".pdf")
    assert "public_url" not in result
    assert get_object_store().exists(BUCKET_DOCUMENTS, result["path"])
    [row] = file_service.list_files(student_id)
    assert row["original_name"] == "notes.pdf"
    assert row["file_size"] == 128


def test_public_bucket_returns_public_url(ctx, student_id):
    result = file_service.upload(make_file("pic.png", mimetype="image/png"), BUCKET_IMAGES, student_id)
    assert result["public_url"].startswith(f"/storage/public/{BUCKET_IMAGES}/")


def test_oversized_upload_writes_nothing(ctx, student_id):
    with pytest.raises(ValidationError):
        file_service.upload(make_file(size=2 * 1024 * 1024), BUCKET_DOCUMENTS, student_id, max_size_mb=1)
    assert row_count() == 0
    assert get_object_store().list(BUCKET_DOCUMENTS) == []


def test_disallowed_type_writes_nothing(ctx, student_id):
    with pytest.raises(ValidationError):
        file_service.upload(make_file(), BUCKET_DOCUMENTS, student_id, allowed_types=file_service.IMAGE_TYPES)
    assert row_count() == 0


def test_unknown_bucket_is_rejected(ctx, student_id):
    with pytest.raises(ValidationError):
        file_service.upload(make_file(), "secrets", student_id)


def test_failed_metadata_insert_removes_object(ctx, student_id, monkeypatch):
    def broken_insert(*args, **kwargs):
        raise DataAccessError("Constraint violation")

    monkeypatch.setattr(file_service, "insert_row", broken_insert)
    with pytest.raises(DataAccessError):
        file_service.upload(make_file(), BUCKET_DOCUMENTS, student_id)
    assert get_object_store().list(BUCKET_DOCUMENTS) == []


def test_upload_many_reports_each_failure(ctx, student_id):
    files = [make_file("a.pdf"), make_file("big.pdf", size=2 * 1024 * 1024), make_file("b.pdf")]
    uploaded, failed = file_service.upload_many(files, BUCKET_DOCUMENTS, student_id, max_size_mb=1)

    assert sorted(u["original_name"] for u in uploaded) == ["a.pdf", "b.pdf"]
    assert [f["name"] for f in failed] == ["big.pdf"]
    assert len({u["path"] for u in uploaded}) == 2
    assert row_count() == 2


def test_deleted_files_leave_listings(ctx, student_id):
    result = file_service.upload(make_file(), BUCKET_DOCUMENTS, student_id)
    file_service.delete(result["id"], actor_id=student_id, actor_role=ROLE_STUDENT)

    assert file_service.list_files(student_id) == []
    assert not get_object_store().exists(BUCKET_DOCUMENTS, result["path"])
    assert fetch_all("SELECT is_deleted FROM file_uploads")[0]["is_deleted"] == 1


def test_only_owner_or_admin_manage_files(ctx, accounts, student_id):
    result = file_service.upload(make_file(), BUCKET_DOCUMENTS, student_id)
    with pytest.raises(PermissionDenied):
        file_service.download(result["id"], actor_id=accounts[ROLE_FACULTY]["user_id"], actor_role=ROLE_FACULTY)

    row, data = file_service.download(result["id"], actor_id=accounts[ROLE_ADMIN]["user_id"], actor_role=ROLE_ADMIN)
    assert row["id"] == result["id"]
    assert data == b"x" * 128


def test_orphan_sweep_respects_minimum_age(ctx, student_id):
    store = get_object_store()
    kept = file_service.upload(make_file(), BUCKET_DOCUMENTS, student_id)
    store.put(BUCKET_DOCUMENTS, "stray/old.bin", b"old")
    store.put(BUCKET_DOCUMENTS, "stray/new.bin", b"new")
    past = time.time() - 3600
    os.utime(store.file_path(BUCKET_DOCUMENTS, "stray/old.bin"), (past, past))

    assert file_service.sweep_orphaned_objects(min_age_seconds=300) == 1
    assert store.exists(BUCKET_DOCUMENTS, kept["path"])
    assert store.exists(BUCKET_DOCUMENTS, "stray/new.bin")
    assert not store.exists(BUCKET_DOCUMENTS, "stray/old.bin")


def test_object_paths_cannot_escape_bucket(ctx):
    with pytest.raises(ValidationError):
        get_object_store().put(BUCKET_DOCUMENTS, "../../escape.txt", b"x")


def test_signed_url_serves_private_object(client, login_as, app):
    user = login_as(ROLE_STUDENT)
    with app.test_request_context():
        result = file_service.upload(make_file(), BUCKET_DOCUMENTS, user["user_id"])
        url = file_service.get_signed_url(result["id"], 60, actor_id=user["user_id"], actor_role=ROLE_STUDENT)

    client.get("/auth/logout")
    response = client.get(url)
    assert response.status_code == 200
    assert response.data == b"x" * 128


def test_expired_or_tampered_link_is_denied(client, accounts, app):
    with app.test_request_context():
        result = file_service.upload(make_file(), BUCKET_DOCUMENTS, accounts[ROLE_STUDENT]["user_id"])
        store = get_object_store()
        valid = store.sign(BUCKET_DOCUMENTS, result["path"], 60)

    serializer = URLSafeTimedSerializer(app.config["SECRET_KEY"], salt=SIGNED_URL_SALT)
    expired = serializer.dumps({"b": BUCKET_DOCUMENTS, "p": result["path"], "e": int(time.time()) - 10})

    assert client.get(f"/storage/signed/{expired}").status_code == 403
    tampered = client.get(f"/storage/signed/{valid[:-2]}xx")
    assert tampered.status_code == 403
    assert b"Access Denied" in tampered.data


def test_private_bucket_has_no_public_route(client, accounts, app):
    with app.test_request_context():
        result = file_service.upload(make_file(), BUCKET_DOCUMENTS, accounts[ROLE_STUDENT]["user_id"])
    assert client.get(f"/storage/public/{BUCKET_DOCUMENTS}/{result['path']}").status_code == 403


def test_upload_route_flashes_result(client, login_as, app):
    user = login_as(ROLE_STUDENT)
    response = client.post(
        "/files/upload",
        data={"bucket": BUCKET_DOCUMENTS, "files": (io.BytesIO(b"hello"), "hello.txt", "text/plain")},
        content_type="multipart/form-data",
    )
    assert response.status_code == 302
    with app.test_request_context():
        [row] = file_service.list_files(user["user_id"])
    assert row["original_name"] == "hello.txt"


@pytest.mark.parametrize("name, ext", [("成绩单.pdf", "pdf"), ("成绩单", "bin"), ("report.p d-f", "pdf")])
def test_non_ascii_names_are_kept(ctx, student_id, name, ext):
    result = file_service.upload(make_file(name), BUCKET_DOCUMENTS, student_id)

    assert result["original_name"] == name
    assert result["path"].endswith(f".{ext}")
    [row] = file_service.list_files(student_id)
    assert row["original_name"] == name


def test_download_store_error_is_flashed(client, login_as, monkeypatch):
    def broken_download(*args, **kwargs):
        raise DataAccessError("Store request failed: disk I/O error")

    login_as(ROLE_STUDENT)
    monkeypatch.setattr(files_routes, "download", broken_download)
    response = client.get("/files/some-id/download", follow_redirects=True)
    assert response.status_code == 200
    assert b"disk I/O error" in response.data
