import logging
import mimetypes
from typing import Iterable, List

from fastapi import UploadFile
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from fabnest.catalog.models import GalleryImage, ProductImage
from fabnest.files import storage
from fabnest.files.imaging import image_dimensions
from fabnest.files.models import File, FILE_TYPE_IMAGE
from fabnest.quotes.models import CustomOrderFile
from fabnest.shared.errors import NotFound, ValidationFailed

logger = logging.getLogger(__name__)

def sniff_mime(filename: str, fallback: str | None) -> str:
    guess, _ = mimetypes.guess_type(filename)
    return fallback or guess or "application/octet-stream"

def store_upload(
    db: Session,
    user_id: str | None,
    data: bytes,
    filename: str,
    content_type: str | None,
    file_type: str,
    destination: str | None = None,
) -> File:
    """
    Validate, write the bytes under the storage root and record a File row.

    Everything that can be rejected is checked before touching the disk. Once
    the bytes are written, any failure (including the commit) removes them
    again before the error propagates.
    """
    filename = filename or "upload.bin"
    storage.check_allowed(file_type, filename, content_type)
    storage.check_size(len(data))
    ext = storage.sanitize_ext(storage.extension_of(filename))
    if not ext:
        raise ValidationFailed("Invalid file extension")

    directory, url_prefix = storage.target_dir(file_type, destination)
    stored_name = storage.new_stored_name(ext)
    path = storage.resolve_inside(directory, stored_name)

    try:
        storage.write_bytes(path, data)
        dims = image_dimensions(str(path)) if file_type == FILE_TYPE_IMAGE else None
        rec = File(
            filename=filename,
            path=str(path),
            url=f"{url_prefix}/{stored_name}",
            mime_type=sniff_mime(filename, content_type),
            file_type=file_type,
            size=len(data),
            width=dims[0] if dims else None,
            height=dims[1] if dims else None,
            uploaded_by=user_id,
        )
        db.add(rec)
        db.commit()
    except Exception:
        db.rollback()
        if not storage.delete_from_disk(str(path)):
            logger.error("Upload rolled back but %s could not be removed", path)
        else:
            logger.info("Upload of %s rolled back, removed %s", filename, path)
        raise
    db.refresh(rec)
    logger.info("Stored %s upload %s (%d bytes) at %s", file_type, rec.id, rec.size, rec.path)
    return rec

async def create_file_record(
    db: Session, user_id: str, uploaded: UploadFile, file_type: str, destination: str | None = None
) -> File:
    # reject bad types before reading the whole body
    storage.check_allowed(file_type, uploaded.filename or "", uploaded.content_type)
    data = await storage.read_upload(uploaded)
    return store_upload(db, user_id, data, uploaded.filename or "", uploaded.content_type, file_type, destination)

def get_file(db: Session, file_id: str) -> File:
    f = db.get(File, file_id)
    if not f:
        raise NotFound("File not found")
    return f

def count_references(db: Session, file_id: str) -> int:
    """How many custom orders, product images and gallery images still point at file_id."""
    total = 0
    for model in (CustomOrderFile, ProductImage, GalleryImage):
        total += db.scalar(select(func.count()).select_from(model).where(model.file_id == file_id)) or 0
    return total

def release_files(db: Session, file_ids: Iterable[str]) -> List[str]:
    """
    Delete File rows that nothing references any more, inside the caller's
    transaction. Returns the disk paths of the deleted rows; the caller removes
    them with storage.delete_many_from_disk only after committing.
    """
    db.flush()
    paths: List[str] = []
    for fid in dict.fromkeys(file_ids):
        f = db.get(File, fid)
        if not f:
            continue
        refs = count_references(db, fid)
        if refs:
            logger.info("Keeping file %s, still referenced %d time(s)", fid, refs)
            continue
        paths.append(f.path)
        db.delete(f)
    return paths

def remove_released(paths: List[str]) -> None:
    """Best-effort disk cleanup after the owning transaction committed."""
    results = storage.delete_many_from_disk(paths)
    failed = [p for p, done in zip(paths, results) if not done]
    if failed:
        logger.warning("Could not remove %d released file(s): %s", len(failed), failed)
