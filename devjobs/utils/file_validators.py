import os
from typing import Optional
from fastapi import UploadFile, HTTPException
from PIL import Image
import io

CV_EXTENSIONS = [".pdf", ".doc", ".docx"]
CV_MAX_SIZE = 5 * 1024 * 1024

IMAGE_EXTENSIONS = [".jpg", ".jpeg", ".png", ".webp"]
IMAGE_MAX_SIZE = 2 * 1024 * 1024

# OLE2 compound document header (legacy .doc)
DOC_MAGIC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"


def _get_file_extension(filename: Optional[str]) -> str:
    """Safely extract file extension"""
    if not filename:
        raise HTTPException(
            status_code=400,
            detail="No filename provided"
        )

    ext = os.path.splitext(filename)[1].lower()

    if not ext:
        raise HTTPException(
            status_code=400,
            detail="File has no extension"
        )

    return ext


def _check_size(content: bytes, max_size: int):
    file_size = len(content)
    if file_size > max_size:
        raise HTTPException(
            status_code=400,
            detail=f"File too large. Max {max_size // (1024 * 1024)}MB. Your file: {file_size / 1024 / 1024:.2f}MB"
        )


async def validate_image_file(file: UploadFile) -> bytes:
    """Validate image uploads (profile photos, company logos)"""

    file_ext = _get_file_extension(file.filename)

    if file_ext not in IMAGE_EXTENSIONS:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid file type. Allowed: JPG, PNG, WEBP. Got: {file_ext}"
        )

    content = await file.read()
    _check_size(content, IMAGE_MAX_SIZE)

    # Validate it's actually an image
    try:
        img = Image.open(io.BytesIO(content))
        img.verify()
    except Exception:
        raise HTTPException(status_code=400, detail="Invalid image file")

    return content


async def validate_cv_file(file: UploadFile) -> bytes:
    """Validate CV uploads"""

    file_ext = _get_file_extension(file.filename)

    if file_ext not in CV_EXTENSIONS:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid file type. Allowed: PDF, DOC, DOCX. Got: {file_ext}"
        )

    content = await file.read()
    _check_size(content, CV_MAX_SIZE)

    if file_ext == ".pdf" and not content.startswith(b"%PDF"):
        raise HTTPException(status_code=400, detail="Invalid PDF file")
    elif file_ext == ".docx" and not content.startswith(b"PK"):
        raise HTTPException(status_code=400, detail="Invalid DOCX file")
    elif file_ext == ".doc" and not content.startswith(DOC_MAGIC):
        raise HTTPException(status_code=400, detail="Invalid DOC file")

    return content
