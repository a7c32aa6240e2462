"""
Thin wrapper over the Cloudinary uploader.

CVs go to the private area (delivery type "private", raw resources) and are
only reachable through signed download URLs. Photos and logos go to the
public area (delivery type "upload", image resources).
"""
import logging
import time
from typing import Optional

import cloudinary.uploader
import cloudinary.utils

logger = logging.getLogger(__name__)

PRIVATE = "private"
PUBLIC = "upload"

DOWNLOAD_URL_TTL_SECONDS = 300


class StoredFile:
    def __init__(self, public_id: str, url: Optional[str]):
        self.public_id = public_id
        self.url = url


def store_private(content: bytes, folder: str, filename: Optional[str] = None) -> StoredFile:
    upload_result = cloudinary.uploader.upload(
        content,
        folder=folder,
        resource_type="raw",
        type=PRIVATE,
        use_filename=bool(filename),
        filename_override=filename,
        unique_filename=True
    )
    return StoredFile(upload_result.get("public_id"), None)


def store_public(content: bytes, folder: str) -> StoredFile:
    upload_result = cloudinary.uploader.upload(
        content,
        folder=folder,
        resource_type="image",
        type=PUBLIC,
        transformation=[
            {"width": 400, "height": 400, "crop": "limit"},
            {"quality": "auto"}
        ]
    )
    return StoredFile(upload_result.get("public_id"), upload_result.get("secure_url"))


def delete_file(public_id: Optional[str], private: bool = False) -> bool:
    """
    Remove a stored file. A file that is already gone is not an error.
    Returns True when something was deleted.
    """
    if not public_id:
        return False

    result = cloudinary.uploader.destroy(
        public_id,
        resource_type="raw" if private else "image",
        type=PRIVATE if private else PUBLIC,
        invalidate=True
    )
    outcome = (result or {}).get("result")
    if outcome == "not found":
        logger.info("Stored file %s already absent", public_id)
        return False
    return outcome == "ok"


def private_download_url(public_id: str) -> str:
    return cloudinary.utils.private_download_url(
        public_id,
        "",
        resource_type="raw",
        type=PRIVATE,
        attachment=True,
        expires_at=int(time.time()) + DOWNLOAD_URL_TTL_SECONDS
    )
