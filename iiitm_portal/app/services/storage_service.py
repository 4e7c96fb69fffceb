"""Bucketed object store on the local filesystem.

Each bucket is a directory under ``STORAGE_DIR``. Objects in public buckets
are served at a stable URL; objects in private buckets are only reachable
through a signed, expiring token.
"""
from __future__ import annotations

import logging
import shutil
import time
from pathlib import Path

from flask import current_app, g, url_for
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from ..config import STORAGE_DIR
from ..constants import BUCKETS, PUBLIC_BUCKETS
from .errors import DataAccessError, NotFoundError, PermissionDenied, ValidationError

logger = logging.getLogger(__name__)

SIGNED_URL_SALT = "storage-signed-url"


class ObjectStore:
    def __init__(self, root: Path | str, secret_key: str):
        self.root = Path(root)
        self._serializer = URLSafeTimedSerializer(secret_key, salt=SIGNED_URL_SALT)

    def _path(self, bucket: str, path: str) -> Path:
        if bucket not in BUCKETS:
            raise ValidationError(f"Unknown bucket: {bucket}")
        base = (self.root / bucket).resolve()
        target = (base / path).resolve()
        if base not in target.parents:
            raise ValidationError("Invalid object path.")
        return target

    def put(self, bucket: str, path: str, data: bytes) -> str:
        target = self._path(bucket, path)
        if target.exists():
            raise DataAccessError(f"Object already exists: {bucket}/{path}")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as exc:
            logger.exception("Object put failed: %s/%s", bucket, path)
            raise DataAccessError(f"Object put failed: {exc}") from exc
        return path

    def get(self, bucket: str, path: str) -> bytes:
        target = self._path(bucket, path)
        if not target.is_file():
            raise NotFoundError("File not found.")
        try:
            return target.read_bytes()
        except OSError as exc:
            logger.exception("Object get failed: %s/%s", bucket, path)
            raise DataAccessError(f"Object get failed: {exc}") from exc

    def file_path(self, bucket: str, path: str) -> Path:
        target = self._path(bucket, path)
        if not target.is_file():
            raise NotFoundError("File not found.")
        return target

    def exists(self, bucket: str, path: str) -> bool:
        return self._path(bucket, path).is_file()

    def remove(self, bucket: str, path: str) -> bool:
        target = self._path(bucket, path)
        try:
            target.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            logger.exception("Object remove failed: %s/%s", bucket, path)
            raise DataAccessError(f"Object remove failed: {exc}") from exc
        return True

    def list(self, bucket: str) -> list[str]:
        """All object paths in ``bucket``, relative to the bucket root."""
        base = self.root / bucket
        if bucket not in BUCKETS:
            raise ValidationError(f"Unknown bucket: {bucket}")
        if not base.is_dir():
            return []
        return sorted(p.relative_to(base).as_posix() for p in base.rglob("*") if p.is_file())

    def usage(self) -> dict[str, int]:
        totals = {}
        for bucket in BUCKETS:
            base = self.root / bucket
            totals[bucket] = sum(p.stat().st_size for p in base.rglob("*") if p.is_file()) if base.is_dir() else 0
        return totals

    def free_space(self) -> int:
        self.root.mkdir(parents=True, exist_ok=True)
        return shutil.disk_usage(self.root).free

    # ==========================================================
    # URLS
    # ==========================================================
    def public_url(self, bucket: str, path: str) -> str:
        if bucket not in PUBLIC_BUCKETS:
            raise PermissionDenied("This bucket is private.")
        return url_for("files.public_object", bucket=bucket, path=path)

    def sign(self, bucket: str, path: str, expires_in: int) -> str:
        """Token carrying the object address and its absolute expiry time."""
        self._path(bucket, path)
        return self._serializer.dumps({"b": bucket, "p": path, "e": int(time.time()) + int(expires_in)})

    def verify(self, token: str) -> tuple[str, str]:
        try:
            payload = self._serializer.loads(token)
        except SignatureExpired as exc:
            raise PermissionDenied("This link has expired.") from exc
        except BadSignature as exc:
            raise PermissionDenied("Invalid download link.") from exc
        if int(payload.get("e", 0)) < time.time():
            raise PermissionDenied("This link has expired.")
        return payload["b"], payload["p"]


def get_object_store() -> ObjectStore:
    if "object_store" not in g:
        g.object_store = ObjectStore(
            current_app.config.get("STORAGE_DIR") or STORAGE_DIR,
            current_app.config["SECRET_KEY"],
        )
    return g.object_store
