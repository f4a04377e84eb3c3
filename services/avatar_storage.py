"""
Profile photo storage on the local public disk.

Avatars arrive as base64 data URLs and are written under
``<AVATAR_STORAGE_DIR>/retreat-avatars/<retreat_id>/``.
"""
import base64
import binascii
import re
import time
from pathlib import Path
from typing import Optional

import config
from services.errors import InvalidAvatar

DATA_URL_PATTERN = re.compile(r"^data:image/(png|jpeg|jpg|webp);base64,([A-Za-z0-9+/=\r\n ]+)$")


def storage_root() -> Path:
    return Path(config.AVATAR_STORAGE_DIR)


def public_url(path: Optional[str]) -> Optional[str]:
    if not path:
        return None
    return f"{config.AVATAR_PUBLIC_PREFIX.rstrip('/')}/{path}"


def decode_data_url(payload: str) -> tuple[bytes, str]:
    """Return (raw bytes, file extension) or raise InvalidAvatar."""
    match = DATA_URL_PATTERN.match(payload)
    if not match:
        raise InvalidAvatar("Invalid image format")

    cleaned = re.sub(r"[\r\n ]", "", match.group(2))
    try:
        raw = base64.b64decode(cleaned, validate=True)
    except (binascii.Error, ValueError):
        raise InvalidAvatar("Invalid image encoding")

    if len(raw) > config.AVATAR_MAX_BYTES:
        raise InvalidAvatar(f"Image too large (max {config.AVATAR_MAX_BYTES // (1024 * 1024)}MB)")

    ext = match.group(1).lower()
    if ext == "jpeg":
        ext = "jpg"
    return raw, ext


def save_avatar(retreat_id: int, participant_id: int, raw: bytes, ext: str) -> str:
    """Write the image and return its path relative to the storage root."""
    relative = f"retreat-avatars/{retreat_id}/participant-{participant_id}-{int(time.time())}.{ext}"
    file_path = storage_root() / relative
    file_path.parent.mkdir(parents=True, exist_ok=True)
    with open(file_path, "wb") as buffer:
        buffer.write(raw)
    return relative


def delete_avatar(path: Optional[str]) -> None:
    if not path:
        return
    (storage_root() / path).unlink(missing_ok=True)
