import logging
import re
import secrets
import time
from pathlib import Path
from typing import Iterable, Tuple

from fastapi import UploadFile

from fabnest.shared.config import settings
from fabnest.shared.errors import ValidationFailed
from fabnest.files.models import FILE_TYPE_IMAGE, FILE_TYPE_MODEL

logger = logging.getLogger(__name__)

MIN_BYTES = 1
CHUNK = 1024 * 1024

# Allowlists per kind
IMAGE_MIME_TYPES = {"image/jpeg", "image/png", "image/webp", "image/jpg"}
IMAGE_EXTS = {"jpg", "jpeg", "png", "webp"}
MODEL_EXTS = {"stl", "obj", "3mf", "rar", "zip"}

# (file_type, destination) -> directory under STORAGE_DIR; doubles as the public URL prefix
DESTINATIONS = {
    (FILE_TYPE_MODEL, None): "uploads/model",
    (FILE_TYPE_IMAGE, "products"): "products",
    (FILE_TYPE_IMAGE, "gallery"): "gallery",
    (FILE_TYPE_IMAGE, None): "uploads/image",
}

def storage_root() -> Path:
    return Path(settings.STORAGE_DIR).resolve()

def extension_of(filename: str) -> str:
    return filename.rsplit(".", 1)[-1].lower() if "." in filename else ""

def sanitize_ext(ext: str) -> str:
    return re.sub(r"[^a-z0-9]", "", ext.lower())

def check_allowed(file_type: str, filename: str, content_type: str | None) -> None:
    """Raise ValidationFailed unless the name/MIME fits the allowlist for file_type."""
    ext = extension_of(filename)
    if file_type == FILE_TYPE_IMAGE:
        # browsers misreport MIME often enough that the extension is accepted on its own
        if (content_type or "").lower() not in IMAGE_MIME_TYPES and ext not in IMAGE_EXTS:
            raise ValidationFailed("Invalid image type. Use JPEG, PNG, or WebP")
    elif file_type == FILE_TYPE_MODEL:
        if ext not in MODEL_EXTS:
            raise ValidationFailed("Invalid model type. Use STL, OBJ, 3MF, RAR, or ZIP")
    else:
        raise ValidationFailed('Invalid fileType. Must be "image" or "model"')

def check_size(size: int) -> None:
    if size < MIN_BYTES:
        raise ValidationFailed("File is empty")
    if size > settings.MAX_UPLOAD_BYTES:
        raise ValidationFailed(f"File too large. Maximum size is {settings.MAX_UPLOAD_BYTES // (1024 * 1024)}MB")

def target_dir(file_type: str, destination: str | None) -> Tuple[Path, str]:
    """Return (directory, url_prefix) for an upload; models ignore destination."""
    if file_type == FILE_TYPE_MODEL:
        destination = None
    elif destination not in ("products", "gallery"):
        destination = None
    rel = DESTINATIONS[(file_type, destination)]
    return storage_root() / rel, f"/{rel}"

def new_stored_name(ext: str) -> str:
    return f"{int(time.time() * 1000)}-{secrets.token_hex(6)}.{ext}"

def resolve_inside(directory: Path, name: str) -> Path:
    directory = directory.resolve()
    path = (directory / name).resolve()
    if directory not in path.parents:
        raise ValidationFailed("Invalid file path")
    return path

async def read_upload(file: UploadFile) -> bytes:
    """
    Read an upload into memory, stopping as soon as it exceeds MAX_UPLOAD_BYTES.
    Raises ValidationFailed with user-friendly messages.
    """
    buf = bytearray()
    while True:
        chunk = await file.read(CHUNK)
        if not chunk:
            break
        buf.extend(chunk)
        if len(buf) > settings.MAX_UPLOAD_BYTES:
            await file.close()
            check_size(len(buf))
    await file.close()
    return bytes(buf)

def write_bytes(path: Path, data: bytes) -> None:
    """Write data to path; a partial file is removed if the write fails."""
    path.parent.mkdir(parents=True, exist_ok=True)
    try:
        with path.open("wb") as out:
            out.write(data)
    except OSError:
        delete_from_disk(str(path))
        raise

def delete_from_disk(path: str) -> bool:
    """
    Delete a file if it exists. A missing file counts as deleted, so callers
    can retry cleanup freely. Returns False only when the OS refused.
    """
    try:
        Path(path).unlink(missing_ok=True)
        return True
    except OSError as e:
        logger.warning("Failed to delete file %s: %s", path, e)
        return False

def delete_many_from_disk(paths: Iterable[str]) -> list[bool]:
    return [delete_from_disk(p) for p in paths]
