# Overview: Local-disk image store; files land under UPLOAD_FOLDER and are served from UPLOAD_URL_PREFIX.

from __future__ import annotations

import os
import shutil
import uuid
from contextlib import contextmanager
from dataclasses import dataclass

from flask import current_app
from werkzeug.utils import secure_filename

from ..errors import UploadError


ALLOWED_IMAGE_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".gif", ".webp"})


@dataclass(frozen=True)
class StoredImage:
    url: str
    public_id: str


def _upload_folder() -> str:
    folder = current_app.config["UPLOAD_FOLDER"]
    os.makedirs(folder, exist_ok=True)
    return folder


def upload_image(local_path: str | None) -> StoredImage:
    """
    Move a locally saved file into the image store.

    The local file is consumed (moved, not copied). Any failure raises
    UploadError and leaves the store unchanged.
    """
    if not local_path or not os.path.isfile(local_path):
        raise UploadError("Image file not found")

    ext = os.path.splitext(local_path)[1].lower()
    if ext not in ALLOWED_IMAGE_EXTENSIONS:
        raise UploadError(f"Unsupported image type: {ext or 'none'}", status_code=400)

    public_id = f"{uuid.uuid4().hex}{ext}"
    target = os.path.join(_upload_folder(), public_id)
    try:
        shutil.move(local_path, target)
    except OSError:
        current_app.logger.exception("Image upload failed for %s", local_path)
        raise UploadError("Image Upload Failed")

    prefix = current_app.config.get("UPLOAD_URL_PREFIX", "/uploads").rstrip("/")
    return StoredImage(url=f"{prefix}/{public_id}", public_id=public_id)


def public_id_from_url(url: str | None) -> str | None:
    if not url:
        return None
    name = url.rstrip("/").rsplit("/", 1)[-1]
    return secure_filename(name) or None


def delete_image(public_id: str | None) -> bool:
    """Remove a stored image. Returns False when there was nothing to delete."""
    if not public_id:
        return False
    path = os.path.join(_upload_folder(), secure_filename(public_id))
    if not os.path.isfile(path):
        return False
    try:
        os.remove(path)
    except OSError:
        raise UploadError("Image Delete Failed")
    return True


def discard_images(urls) -> None:
    """Best-effort removal of replaced images; failures are logged, not raised."""
    for url in urls or []:
        try:
            delete_image(public_id_from_url(url))
        except UploadError:
            current_app.logger.warning("Could not delete old image %s", url)


def save_incoming(file_storage) -> str:
    """Persist an incoming upload (werkzeug FileStorage) to a temp path inside the store."""
    filename = secure_filename(file_storage.filename or "")
    if not filename:
        raise UploadError("Missing file name", status_code=400)
    tmp_dir = os.path.join(_upload_folder(), "tmp")
    os.makedirs(tmp_dir, exist_ok=True)
    path = os.path.join(tmp_dir, f"{uuid.uuid4().hex}-{filename}")
    try:
        file_storage.save(path)
    except OSError:
        current_app.logger.exception("Could not save incoming file %s", filename)
        raise UploadError("Image Upload Failed")
    return path


@contextmanager
def staged_files(*storages):
    """
    Save incoming uploads to temp paths for the duration of the block.

    Yields one path per storage (None where no file was sent). Whatever the
    service did not move into the store is removed on exit.
    """
    paths = []
    try:
        for storage in storages:
            if storage is not None and storage.filename:
                paths.append(save_incoming(storage))
            else:
                paths.append(None)
        yield paths
    finally:
        for path in paths:
            if path and os.path.exists(path):
                os.remove(path)
