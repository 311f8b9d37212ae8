"""
Upload Service - validate and store issue photos on local disk.

Photos land in UPLOAD_DIR/issues and are served back under /uploads/issues.
Filenames are derived from the upload time in milliseconds plus the
position in the batch.
"""

import logging
import os
import time
from typing import Dict, List

from hydrowatch.core.errors import ValidationFailedError
from hydrowatch.core.settings import settings
from hydrowatch.utils.firestore_helpers import utcnow

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".jpeg", ".jpg", ".png"}
ALLOWED_CONTENT_TYPES = {"image/jpeg", "image/jpg", "image/png"}
ISSUE_PHOTO_SUBDIR = "issues"


def issue_photo_dir() -> str:
    return os.path.join(settings.UPLOAD_DIR, ISSUE_PHOTO_SUBDIR)


def photo_count_error() -> Dict[str, str]:
    return {
        "field": "photos",
        "message": f"At most {settings.MAX_PHOTOS_PER_ISSUE} photos may be uploaded",
    }


def photo_size_error(index: int) -> Dict[str, str]:
    return {
        "field": f"photos.{index}",
        "message": f"File exceeds the {settings.MAX_PHOTO_BYTES} byte limit",
    }


def validate_photos(files: List[Dict]) -> None:
    """
    Check count, type and size of uploaded photos.

    Args:
        files: [{"filename", "content_type", "content"}]

    Raises:
        ValidationFailedError: listing every rejected file
    """
    errors = []
    if len(files) > settings.MAX_PHOTOS_PER_ISSUE:
        errors.append(photo_count_error())

    for index, f in enumerate(files):
        field = f"photos.{index}"
        ext = os.path.splitext(f.get("filename") or "")[1].lower()
        content_type = (f.get("content_type") or "").lower()
        if ext not in ALLOWED_EXTENSIONS or content_type not in ALLOWED_CONTENT_TYPES:
            errors.append({"field": field, "message": "Images only (jpeg, jpg, png)"})
        if len(f.get("content") or b"") > settings.MAX_PHOTO_BYTES:
            errors.append(photo_size_error(index))

    if errors:
        raise ValidationFailedError(errors, message="Invalid photo upload")


def save_photos(files: List[Dict]) -> List[Dict]:
    """
    Validate, then write every photo to disk.

    Returns:
        Photo records [{"url", "caption", "uploaded_at"}] in upload order
    """
    validate_photos(files)
    if not files:
        return []

    target_dir = issue_photo_dir()
    os.makedirs(target_dir, exist_ok=True)

    stamp = int(time.time() * 1000)
    uploaded_at = utcnow()
    photos = []
    for index, f in enumerate(files):
        ext = os.path.splitext(f["filename"])[1].lower()
        filename = f"{stamp}-{index}{ext}"
        with open(os.path.join(target_dir, filename), "wb") as out:
            out.write(f["content"])
        photos.append({
            "url": f"/uploads/{ISSUE_PHOTO_SUBDIR}/{filename}",
            "caption": f.get("caption") or "",
            "uploaded_at": uploaded_at,
        })

    logger.info(f"Stored {len(photos)} issue photo(s) in {target_dir}")
    return photos


def delete_photos(photos: List[Dict]) -> None:
    """Remove stored photos, e.g. when the issue they belong to was never saved."""
    target_dir = issue_photo_dir()
    for photo in photos:
        path = os.path.join(target_dir, os.path.basename(photo["url"]))
        try:
            os.remove(path)
        except FileNotFoundError:
            continue
    if photos:
        logger.info(f"Removed {len(photos)} orphaned issue photo(s) from {target_dir}")
