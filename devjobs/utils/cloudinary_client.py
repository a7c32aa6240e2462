import logging

import cloudinary

from devjobs.config import CLOUDINARY_CLOUD_NAME, CLOUDINARY_API_KEY, CLOUDINARY_API_SECRET

logger = logging.getLogger(__name__)


def init_cloudinary():
    if not CLOUDINARY_CLOUD_NAME:
        logger.warning("Cloudinary is not configured; file uploads will fail")
        return

    cloudinary.config(
        cloud_name=CLOUDINARY_CLOUD_NAME,
        api_key=CLOUDINARY_API_KEY,
        api_secret=CLOUDINARY_API_SECRET,
        secure=True
    )
