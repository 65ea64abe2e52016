"""Cloudflare R2 (S3-compatible) object storage for uploaded images"""

import logging
import os
import uuid
from typing import Optional

import boto3
from botocore.config import Config
from fastapi import HTTPException

from .config import R2_ACCESS_KEY_ID, R2_ACCOUNT_ID, R2_BUCKET_NAME, R2_SECRET_ACCESS_KEY

logger = logging.getLogger(__name__)

# Presigned URL expiration time (1 hour)
PRESIGNED_URL_EXPIRATION = 3600

MAX_IMAGE_SIZE = 5 * 1024 * 1024  # 5MB

ALLOWED_IMAGE_TYPES = [
    "image/png",
    "image/jpeg",
    "image/jpg",
    "image/webp",
    "image/gif",
    "image/avif",
]
VALID_IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg", ".webp", ".gif", ".avif")


def is_storage_configured() -> bool:
    return bool(R2_ACCOUNT_ID and R2_ACCESS_KEY_ID and R2_SECRET_ACCESS_KEY)


def get_r2_client():
    """Create and return an R2 client."""
    return boto3.client(
        "s3",
        endpoint_url=f"https://{R2_ACCOUNT_ID}.r2.cloudflarestorage.com",
        aws_access_key_id=R2_ACCESS_KEY_ID,
        aws_secret_access_key=R2_SECRET_ACCESS_KEY,
        config=Config(signature_version="s3v4"),
    )


def generate_presigned_url(key: str, expiration: int = PRESIGNED_URL_EXPIRATION) -> str:
    """Generate a presigned URL for accessing a private object in R2."""
    r2 = get_r2_client()
    params = {"Bucket": R2_BUCKET_NAME, "Key": key, "ResponseContentDisposition": "inline"}
    try:
        url = r2.generate_presigned_url("get_object", Params=params, ExpiresIn=expiration)
        logger.debug(f"✅ Generated presigned URL for key: {key}")
        return url
    except Exception as e:
        logger.error(f"❌ Failed to generate presigned URL for key {key}: {e}")
        raise


def image_url_for(key: Optional[str]) -> Optional[str]:
    """Presigned URL for a stored key; None when there is no key or no storage"""
    if not key or not is_storage_configured():
        return None
    try:
        return generate_presigned_url(key)
    except Exception:
        return None


def validate_image_upload(filename: Optional[str], content_type: Optional[str], size: int) -> str:
    """
    Check an uploaded image and return its file extension.

    Raises:
        HTTPException: 400 on a disallowed type, unsafe filename or oversize file
    """
    if content_type not in ALLOWED_IMAGE_TYPES:
        raise HTTPException(
            status_code=400,
            detail="Invalid file type. Only PNG, JPEG, WebP, GIF and AVIF images are allowed.",
        )

    if filename:
        safe_filename = os.path.basename(filename)
        if safe_filename != filename or ".." in filename:
            logger.warning(f"❌ Unsafe filename rejected: '{filename}'")
            raise HTTPException(status_code=400, detail="Invalid filename")
        if not filename.lower().endswith(VALID_IMAGE_EXTENSIONS):
            raise HTTPException(
                status_code=400, detail="Invalid filename - must have a valid image extension"
            )

    if size > MAX_IMAGE_SIZE:
        raise HTTPException(
            status_code=400,
            detail=f"File size exceeds 5MB limit. Your file is {size / (1024 * 1024):.2f}MB.",
        )

    return filename.rsplit(".", 1)[-1].lower() if filename else "png"


def upload_image(prefix: str, contents: bytes, content_type: str, ext: str) -> str:
    """Upload image bytes under `prefix` and return the generated key"""
    key = f"{prefix}/{uuid.uuid4()}.{ext}"
    r2 = get_r2_client()
    r2.put_object(
        Bucket=R2_BUCKET_NAME,
        Key=key,
        Body=contents,
        ContentType=content_type,
    )
    logger.info(f"📤 Uploaded image to R2: {key}")
    return key
