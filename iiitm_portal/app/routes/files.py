from __future__ import annotations

import io
import mimetypes

from flask import Blueprint, abort, current_app, flash, redirect, render_template, request, send_file, url_for

from ..constants import BUCKET_DOCUMENTS, BUCKETS, PUBLIC_BUCKETS
from ..services import authorization as authz
from ..services.auth_service import current_user, page_required
from ..services.errors import NotFoundError, PermissionDenied, PortalError, ValidationError
from ..services.file_service import delete, download, get_signed_url, list_files, upload, upload_many
from ..services.storage_service import get_object_store

bp = Blueprint("files", __name__)


@bp.get("/files")
@page_required(authz.PAGE_FILES)
def index():
    user = current_user()
    bucket = (request.args.get("bucket") or "").strip() or None
    try:
        rows = list_files(user.user_id, bucket=bucket)
    except PortalError as exc:
        flash(exc.message, "danger")
        rows = []
    return render_template(
        "files.html",
        page_title="File Manager",
        page_subtitle="Your uploaded documents",
        active_page="files",
        files=rows,
        buckets=BUCKETS,
        bucket=bucket,
        public_buckets=PUBLIC_BUCKETS,
        max_mb=current_app.config["MAX_UPLOAD_MB"],
    )


@bp.post("/files/upload")
@page_required(authz.PAGE_FILES)
def upload_post():
    user = current_user()
    bucket = (request.form.get("bucket") or BUCKET_DOCUMENTS).strip()
    category = (request.form.get("category") or "").strip() or None
    max_mb = current_app.config["MAX_UPLOAD_MB"]
    chosen = [f for f in request.files.getlist("files") if f and f.filename]

    try:
        if len(chosen) > 1:
            uploaded, failed = upload_many(chosen, bucket, user.user_id, max_size_mb=max_mb, category=category)
        else:
            uploaded = [upload(chosen[0] if chosen else None, bucket, user.user_id, max_size_mb=max_mb, category=category)]
            failed = []
    except PortalError as exc:
        flash(exc.message, "danger")
        return redirect(url_for("files.index"))

    if uploaded:
        flash(f"{len(uploaded)} file(s) uploaded successfully!", "success")
    for f in failed:
        flash(f"{f['name']}: {f['error']}", "danger")
    return redirect(url_for("files.index"))


@bp.get("/files/<file_id>/download")
@page_required(authz.PAGE_FILES)
def download_file(file_id: str):
    user = current_user()
    try:
        row, data = download(file_id, actor_id=user.user_id, actor_role=user.role)
    except NotFoundError:
        abort(404)
    except PermissionDenied:
        abort(403)
    except PortalError as exc:
        flash(exc.message, "danger")
        return redirect(url_for("files.index"))
    return send_file(
        io.BytesIO(data),
        as_attachment=True,
        download_name=row["original_name"],
        mimetype=row["mime_type"] or None,
    )


@bp.post("/files/<file_id>/delete")
@page_required(authz.PAGE_FILES)
def delete_file(file_id: str):
    user = current_user()
    try:
        delete(file_id, actor_id=user.user_id, actor_role=user.role)
    except PortalError as exc:
        flash(exc.message, "danger")
    else:
        flash("File deleted successfully!", "success")
    return redirect(url_for("files.index"))


@bp.get("/files/<file_id>/link")
@page_required(authz.PAGE_FILES)
def share_link(file_id: str):
    user = current_user()
    try:
        url = get_signed_url(
            file_id,
            current_app.config["SIGNED_URL_EXPIRY"],
            actor_id=user.user_id,
            actor_role=user.role,
        )
    except PortalError as exc:
        flash(exc.message, "danger")
        return redirect(url_for("files.index"))
    return redirect(url)


# ==========================================================
# OBJECT URLS
# ==========================================================
@bp.get("/storage/public/<bucket>/<path:path>")
def public_object(bucket: str, path: str):
    if bucket not in PUBLIC_BUCKETS:
        abort(403)
    try:
        target = get_object_store().file_path(bucket, path)
    except NotFoundError:
        abort(404)
    except ValidationError:
        abort(400)
    return send_file(target, mimetype=mimetypes.guess_type(path)[0])


@bp.get("/storage/signed/<token>")
def signed_object(token: str):
    store = get_object_store()
    try:
        bucket, path = store.verify(token)
        target = store.file_path(bucket, path)
    except PermissionDenied as exc:
        return render_template("access_denied.html", page_title="Access Denied", page_subtitle=exc.message), 403
    except NotFoundError:
        abort(404)
    except ValidationError:
        abort(400)
    return send_file(target, mimetype=mimetypes.guess_type(path)[0])
