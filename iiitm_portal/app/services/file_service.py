"""Uploads, downloads and deletion of user files.

An upload is two writes: the object put, then the ``file_uploads`` row. When
the row insert fails the object written a moment earlier is removed again;
objects left behind by a crash between the two steps are collected by
:func:`sweep_orphaned_objects`.
"""
from __future__ import annotations

import logging
import re
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Iterable

from flask import url_for

from ..constants import BUCKETS, PUBLIC_BUCKETS, ROLE_ADMIN
from .db_service import execute, fetch_all, fetch_one, insert_row
from .errors import NotFoundError, PermissionDenied, PortalError, ValidationError
from .storage_service import ObjectStore, get_object_store

logger = logging.getLogger(__name__)

DEFAULT_MAX_SIZE_MB = 10
_EXT_RE = re.compile(r"[^A-Za-z0-9]")
IMAGE_TYPES = ("image/jpeg", "image/png", "image/gif", "image/webp")


@dataclass
class PreparedUpload:
    original_name: str
    data: bytes
    mime_type: str
    ext: str


def _prepare(upload, max_size_mb: float, allowed_types: Iterable[str] | None) -> PreparedUpload:
    if upload is None:
        raise ValidationError("Please choose a file to upload.")
    original = (getattr(upload, "filename", None) or "").strip()
    if not original:
        raise ValidationError("Please choose a file to upload.")

    data = upload.read()
    limit = max_size_mb * 1024 * 1024
    if len(data) > limit:
        raise ValidationError(f"File size must be less than {max_size_mb:g}MB.")

    mime = (getattr(upload, "mimetype", None) or "").strip() or "application/octet-stream"
    if allowed_types is not None and mime not in set(allowed_types):
        raise ValidationError(f"File type {mime} is not allowed.")

    ext = _EXT_RE.sub("", PurePosixPath(original).suffix).lower() or "bin"
    return PreparedUpload(original_name=original, data=data, mime_type=mime, ext=ext)


def _check_bucket(bucket: str) -> None:
    if bucket not in BUCKETS:
        raise ValidationError(f"Unknown bucket: {bucket}")


def _object_path(uploaded_by: str, stamp: int, ext: str) -> str:
    return f"{uploaded_by}/{stamp}.{ext}"


def _record(
    store: ObjectStore,
    prepared: PreparedUpload,
    path: str,
    bucket: str,
    uploaded_by: str,
    category: str | None,
    related_id: str | None,
    related_type: str | None,
) -> dict:
    """Insert the metadata row for an object already written at ``path``."""
    try:
        row = insert_row(
            "file_uploads",
            {
                "filename": path,
                "original_name": prepared.original_name,
                "file_path": path,
                "file_size": len(prepared.data),
                "mime_type": prepared.mime_type,
                "bucket_name": bucket,
                "uploaded_by": uploaded_by,
                "category": category,
                "related_id": related_id,
                "related_type": related_type,
                "is_deleted": 0,
            },
            timestamps=("uploaded_at",),
        )
    except PortalError:
        logger.warning("Metadata insert failed for %s/%s; removing object", bucket, path)
        store.remove(bucket, path)
        raise
    result = {"id": row["id"], "path": path, "original_name": prepared.original_name}
    if bucket in PUBLIC_BUCKETS:
        result["public_url"] = store.public_url(bucket, path)
    return result


def upload(
    file,
    bucket: str,
    uploaded_by: str,
    max_size_mb: float = DEFAULT_MAX_SIZE_MB,
    category: str | None = None,
    related_id: str | None = None,
    related_type: str | None = None,
    allowed_types: Iterable[str] | None = None,
) -> dict:
    """Store one file and its metadata; returns ``{id, path, public_url?}``.

    Size, type and bucket are checked before anything is written.
    """
    _check_bucket(bucket)
    prepared = _prepare(file, max_size_mb, allowed_types)
    store = get_object_store()
    path = _object_path(uploaded_by, time.time_ns() // 1000, prepared.ext)
    store.put(bucket, path, prepared.data)
    result = _record(store, prepared, path, bucket, uploaded_by, category, related_id, related_type)
    logger.info("Uploaded %s to %s/%s", prepared.original_name, bucket, path)
    return result


def upload_many(
    files: list,
    bucket: str,
    uploaded_by: str,
    max_size_mb: float = DEFAULT_MAX_SIZE_MB,
    category: str | None = None,
    allowed_types: Iterable[str] | None = None,
) -> tuple[list[dict], list[dict]]:
    """Upload several files; object puts run in parallel, metadata inserts follow.

    Returns ``(uploaded, failed)``; each failure is ``{"name", "error"}``.
    Nothing is retried.
    """
    _check_bucket(bucket)
    uploaded: list[dict] = []
    failed: list[dict] = []

    ready: list[tuple[PreparedUpload, str]] = []
    base = time.time_ns() // 1000
    for i, f in enumerate(files):
        name = (getattr(f, "filename", None) or "").strip()
        try:
            prepared = _prepare(f, max_size_mb, allowed_types)
        except ValidationError as exc:
            failed.append({"name": name, "error": exc.message})
            continue
        ready.append((prepared, _object_path(uploaded_by, base + i, prepared.ext)))

    if not ready:
        return uploaded, failed

    store = get_object_store()
    with ThreadPoolExecutor(max_workers=len(ready)) as pool:
        futures = [pool.submit(store.put, bucket, path, p.data) for p, path in ready]
        outcomes = []
        for (prepared, path), future in zip(ready, futures):
            try:
                future.result()
                outcomes.append((prepared, path, None))
            except PortalError as exc:
                outcomes.append((prepared, path, exc))

    for prepared, path, error in outcomes:
        if error is not None:
            failed.append({"name": prepared.original_name, "error": error.message})
            continue
        try:
            uploaded.append(_record(store, prepared, path, bucket, uploaded_by, category, None, None))
        except PortalError as exc:
            failed.append({"name": prepared.original_name, "error": exc.message})

    logger.info("Batch upload to %s: %d stored, %d failed", bucket, len(uploaded), len(failed))
    return uploaded, failed


def get_file(file_id: str) -> dict:
    row = fetch_one("SELECT * FROM file_uploads WHERE id = ? AND is_deleted = 0", (file_id,))
    if row is None:
        raise NotFoundError("File not found.")
    return row


def _check_owner(row: dict, actor_id: str | None, actor_role: str | None) -> None:
    if actor_id is None:
        return
    if row["uploaded_by"] != actor_id and actor_role != ROLE_ADMIN:
        raise PermissionDenied("You can only manage your own files.")


def download(file_id: str, actor_id: str | None = None, actor_role: str | None = None) -> tuple[dict, bytes]:
    row = get_file(file_id)
    _check_owner(row, actor_id, actor_role)
    return row, get_object_store().get(row["bucket_name"], row["file_path"])


def delete(file_id: str, actor_id: str | None = None, actor_role: str | None = None) -> None:
    """Mark the row deleted, then remove the object."""
    row = get_file(file_id)
    _check_owner(row, actor_id, actor_role)
    execute("UPDATE file_uploads SET is_deleted = 1 WHERE id = ?", (file_id,))
    get_object_store().remove(row["bucket_name"], row["file_path"])
    logger.info("Deleted file %s (%s/%s)", file_id, row["bucket_name"], row["file_path"])


def get_signed_url(
    file_id: str,
    expiry_seconds: int = 3600,
    actor_id: str | None = None,
    actor_role: str | None = None,
) -> str:
    row = get_file(file_id)
    _check_owner(row, actor_id, actor_role)
    store = get_object_store()
    if row["bucket_name"] in PUBLIC_BUCKETS:
        return store.public_url(row["bucket_name"], row["file_path"])
    token = store.sign(row["bucket_name"], row["file_path"], expiry_seconds)
    return url_for("files.signed_object", token=token)


def list_files(uploaded_by: str, bucket: str | None = None, category: str | None = None) -> list[dict]:
    sql = "SELECT * FROM file_uploads WHERE uploaded_by = ? AND is_deleted = 0"
    params: list = [uploaded_by]
    if bucket:
        sql += " AND bucket_name = ?"
        params.append(bucket)
    if category:
        sql += " AND category = ?"
        params.append(category)
    sql += " ORDER BY uploaded_at DESC, rowid DESC"
    return fetch_all(sql, params)


def sweep_orphaned_objects(min_age_seconds: int = 300) -> int:
    """Remove objects that have no live metadata row and are older than ``min_age_seconds``."""
    store = get_object_store()
    live = {
        (r["bucket_name"], r["file_path"])
        for r in fetch_all("SELECT bucket_name, file_path FROM file_uploads WHERE is_deleted = 0")
    }
    cutoff = time.time() - min_age_seconds
    removed = 0
    for bucket in BUCKETS:
        for path in store.list(bucket):
            if (bucket, path) in live:
                continue
            if store.file_path(bucket, path).stat().st_mtime > cutoff:
                continue
            if store.remove(bucket, path):
                removed += 1
    if removed:
        logger.info("Removed %d orphaned objects", removed)
    return removed
