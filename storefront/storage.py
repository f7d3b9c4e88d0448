# storefront/storage.py
import logging
import mimetypes
import uuid

import httpx

from . import config

logger = logging.getLogger(__name__)

EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
}


class StorageNotConfigured(Exception):
    pass


class StorageError(Exception):
    pass


def is_configured() -> bool:
    return bool(config.OBJECT_STORAGE_URL)


def object_key(user_id: str, content_type: str) -> str:
    ext = EXTENSIONS.get(content_type) or mimetypes.guess_extension(content_type) or ""
    return f"messages/{user_id}/{uuid.uuid4().hex}{ext}"


def public_url(key: str) -> str:
    base = config.OBJECT_STORAGE_PUBLIC_URL or f"{config.OBJECT_STORAGE_URL.rstrip('/')}/{config.OBJECT_STORAGE_BUCKET}"
    return f"{base.rstrip('/')}/{key}"


def is_public_url(url: str, prefix: str = "") -> bool:
    """True when url points into the public image area, optionally under prefix."""
    if not is_configured():
        return False
    return url.startswith(public_url(prefix))


async def upload_image(data: bytes, content_type: str, user_id: str) -> str:
    """PUT the bytes into the message-images bucket and return their public URL."""
    if not is_configured():
        raise StorageNotConfigured("OBJECT_STORAGE_URL is not set")

    key = object_key(user_id, content_type)
    url = f"{config.OBJECT_STORAGE_URL.rstrip('/')}/{config.OBJECT_STORAGE_BUCKET}/{key}"
    headers = {"Content-Type": content_type}
    if config.OBJECT_STORAGE_TOKEN:
        headers["Authorization"] = f"Bearer {config.OBJECT_STORAGE_TOKEN}"
    try:
        async with httpx.AsyncClient(timeout=15) as client:
            r = await client.put(url, content=data, headers=headers)
        r.raise_for_status()
    except httpx.HTTPError as e:
        logger.error("[STORAGE] upload of %s failed: %s", key, e)
        raise StorageError(str(e)) from e
    logger.info("[STORAGE] stored %s (%d bytes)", key, len(data))
    return public_url(key)
