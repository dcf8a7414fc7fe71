import os
import io
import logging
from datetime import datetime, timezone
from functools import lru_cache
from typing import Optional
from PIL import Image
import boto3
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)

BUCKET = os.getenv("R2_BUCKET")
PUBLIC_URL_BASE = os.getenv("S3_PUBLIC_URL_BASE")


class StorageError(Exception):
    pass


@lru_cache(maxsize=1)
def get_client():
    return boto3.client(
        service_name="s3",
        endpoint_url=f"https://{os.getenv('CLOUDFLARE_ACCOUNT_ID')}.r2.cloudflarestorage.com",
        aws_access_key_id=os.getenv("AWS_ACCESS_KEY_ID"),
        aws_secret_access_key=os.getenv("AWS_SECRET_ACCESS_KEY"),
        region_name="auto",
    )


def compress_image(data: bytes, max_width=1400, quality=80):
    img = Image.open(io.BytesIO(data))
    img = img.convert("RGB")

    # Resize while keeping aspect ratio
    w, h = img.size
    if w > max_width:
        new_height = int(h * (max_width / w))
        img = img.resize((max_width, new_height), Image.LANCZOS)

    buffer = io.BytesIO()

    try:
        img.save(buffer, format="WEBP", quality=quality, method=6)
        ext = "webp"
        mime = "image/webp"
    except (OSError, KeyError) as e:
        logger.warning("WebP encoding failed, falling back to JPEG: %s", e)

        buffer = io.BytesIO()
        img.save(buffer, format="JPEG", quality=quality, optimize=True)
        ext = "jpg"
        mime = "image/jpeg"

    buffer.seek(0)
    return buffer, ext, mime


def build_object_path(folder: str, user_id: str, original_name: Optional[str]) -> str:
    base = os.path.splitext(os.path.basename(original_name or "upload"))[0] or "upload"
    ts = int(datetime.now(timezone.utc).timestamp() * 1000)
    return f"{folder}/{user_id}/{base}-{ts}"


def upload(path: str, data: bytes) -> str:
    """Compress and store an image under ``path``; returns the object key."""
    buffer, ext, mime = compress_image(data)
    key = f"{path}.{ext}"

    try:
        get_client().upload_fileobj(buffer, BUCKET, key, ExtraArgs={"ContentType": mime})
    except (BotoCoreError, ClientError) as e:
        logger.exception("Upload of %s failed", key)
        raise StorageError(f"Could not store {key}") from e

    logger.info("Stored object %s", key)
    return key


def generate_signed_url(key: str, expires_in=3600):
    try:
        return get_client().generate_presigned_url(
            "get_object",
            Params={"Bucket": BUCKET, "Key": key},
            ExpiresIn=expires_in,
        )
    except (BotoCoreError, ClientError) as e:
        logger.warning("Error generating signed URL for %s: %s", key, e)
        return None


def get_public_url(ref: Optional[str]) -> Optional[str]:
    if not ref:
        return None

    # Already a URL (e.g. a Google avatar)
    if ref.startswith(("http://", "https://")):
        return ref

    if PUBLIC_URL_BASE:
        return f"{PUBLIC_URL_BASE.rstrip('/')}/{ref}"

    return generate_signed_url(ref)


def delete_object(ref: Optional[str]):
    if not ref or ref.startswith(("http://", "https://")):
        return

    try:
        get_client().delete_object(Bucket=BUCKET, Key=ref)
    except (BotoCoreError, ClientError) as e:
        logger.warning("Error deleting stored object %s: %s", ref, e)


def with_public_urls(db_items: list):
    items_response = []

    for item in db_items:
        data = item.model_dump()
        data["image_url"] = get_public_url(item.image_url)
        items_response.append(data)

    return items_response
