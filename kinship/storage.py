import logging
import os
import random
import re
import shutil
import time
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional, Protocol
from urllib.parse import quote

from fastapi import UploadFile
from jose import jwt

from kinship.config import settings
from kinship.supabase_client import get_supabase

logger = logging.getLogger(__name__)


# ==========================================================
# STAGED FILE METADATA
# ==========================================================
@dataclass(frozen=True)
class StagedFile:
    """
    What the rest of the app knows about an upload. `path` is the temporary
    location until the file is relocated, then its storage key.
    """
    filename: str
    original_filename: str
    content_type: str
    size: int
    path: str


# ==========================================================
# VALIDATE FILE SIZE
# ==========================================================
def validate_file_size(file: UploadFile, max_bytes: int):
    file.file.seek(0, os.SEEK_END)
    size = file.file.tell()
    file.file.seek(0)

    if size > max_bytes:
        limit_mb = max_bytes // (1024 * 1024)
        return False, f"{file.filename} is too large (max {limit_mb}MB)."

    return True, None


# ==========================================================
# SAFE FOLDER NAMES
# ==========================================================
_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9_-]")


def safe_folder_name(name: str) -> str:
    return _UNSAFE_CHARS.sub("_", name or "")


def media_folder(person_name: str, media_type: str) -> str:
    return f"persons/{safe_folder_name(person_name)}/{media_type}s"


def person_image_folder(person_name: str) -> str:
    return f"persons/{safe_folder_name(person_name)}/ifath"


# ==========================================================
# STAGING
# ==========================================================
def _generated_name(prefix: str, original: str | None) -> str:
    ext = os.path.splitext(original or "")[1].lower()
    unique_suffix = f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}"
    return f"{prefix}-{unique_suffix}{ext}"


def stage_upload(file: UploadFile, prefix: str = "MEDIA") -> StagedFile:
    tmp_dir = Path(settings.UPLOAD_TMP_PATH)
    tmp_dir.mkdir(parents=True, exist_ok=True)

    filename = _generated_name(prefix, file.filename)
    tmp_path = tmp_dir / filename

    file.file.seek(0)
    try:
        with open(tmp_path, "wb") as buffer:
            shutil.copyfileobj(file.file, buffer)
    except Exception:
        tmp_path.unlink(missing_ok=True)
        raise

    return StagedFile(
        filename=filename,
        original_filename=file.filename or filename,
        content_type=file.content_type or "application/octet-stream",
        size=tmp_path.stat().st_size,
        path=str(tmp_path),
    )


def discard_staged(staged: StagedFile):
    try:
        os.remove(staged.path)
    except FileNotFoundError:
        pass


# ==========================================================
# RELOCATION (LOCAL or SUPABASE)
# ==========================================================
def relocate_staged(staged: StagedFile, folder: str) -> StagedFile:
    folder = folder.strip("/")
    storage_key = f"{folder}/{staged.filename}"

    # -----------------------------
    # LOCAL STORAGE
    # -----------------------------
    if settings.STORAGE_BACKEND == "local":
        folder_path = Path(settings.LOCAL_MEDIA_PATH) / folder
        folder_path.mkdir(parents=True, exist_ok=True)

        shutil.move(staged.path, folder_path / staged.filename)

    # -----------------------------
    # SUPABASE STORAGE
    # -----------------------------
    elif settings.STORAGE_BACKEND == "supabase":
        with open(staged.path, "rb") as f:
            contents = f.read()

        if not contents:
            raise RuntimeError("File is empty – nothing to upload")

        get_supabase().storage.from_(settings.SUPABASE_BUCKET).upload(
            storage_key,
            contents,
            {
                "content-type": staged.content_type,
                "upsert": "true",
            },
        )
        discard_staged(staged)
        logger.info("Supabase upload OK: %s", storage_key)

    else:
        raise ValueError("Invalid STORAGE_BACKEND")

    return replace(staged, path=storage_key)


# ==========================================================
# DELETE FILE (LOCAL or SUPABASE)
# ==========================================================
def delete_file(storage_key: str):
    if not storage_key:
        return

    if settings.STORAGE_BACKEND == "local":
        fs_path = Path(settings.LOCAL_MEDIA_PATH) / storage_key
        try:
            fs_path.unlink(missing_ok=True)
        except OSError:
            logger.exception("Local delete failed: %s", storage_key)

    elif settings.STORAGE_BACKEND == "supabase":
        try:
            get_supabase().storage.from_(settings.SUPABASE_BUCKET).remove([storage_key])
        except Exception:
            logger.exception("Supabase delete failed: %s", storage_key)


# ==========================================================
# SIGNED URLS
# ==========================================================
class MediaSigner(Protocol):
    """Turns a storage key into a time-limited URL, or raises."""

    def create_signed_url(self, path: str, expires_in: int) -> str:
        ...


class SupabaseMediaSigner:
    def __init__(self, bucket: str):
        self.bucket = bucket

    def create_signed_url(self, path: str, expires_in: int) -> str:
        res = get_supabase().storage.from_(self.bucket).create_signed_url(
            path, expires_in
        )
        url = (res or {}).get("signedURL") or (res or {}).get("signedUrl")
        if not url:
            raise RuntimeError(f"No signed URL returned for {path}")
        return url


MEDIA_TOKEN_ALGORITHM = "HS256"


class LocalMediaSigner:
    """
    Signs files under LOCAL_MEDIA_PATH with a JWT (`sub` = storage key,
    `exp` = expiry). The /media route only serves a file for a valid,
    unexpired token issued for that exact key.
    """

    def __init__(self, base_url: str, media_root: str, secret: str):
        self.base_url = base_url.rstrip("/")
        self.media_root = Path(media_root)
        self.secret = secret

    def create_token(self, key: str, expires_in: int) -> str:
        expires = int(time.time()) + expires_in
        return jwt.encode(
            {"sub": key, "exp": expires},
            self.secret,
            algorithm=MEDIA_TOKEN_ALGORITHM,
        )

    def read_token(self, token: str) -> Optional[str]:
        """Storage key the token was issued for. Raises JWTError when bad or expired."""
        payload = jwt.decode(token, self.secret, algorithms=[MEDIA_TOKEN_ALGORITHM])
        return payload.get("sub")

    def resolve(self, key: str) -> Optional[Path]:
        """Filesystem path of `key`, or None when it points outside the media root."""
        root = self.media_root.resolve()
        path = (root / key.lstrip("/")).resolve()
        if root not in path.parents:
            return None
        return path

    def create_signed_url(self, path: str, expires_in: int) -> str:
        key = path.lstrip("/")
        fs_path = self.resolve(key)
        if fs_path is None or not fs_path.is_file():
            raise FileNotFoundError(key)

        token = self.create_token(key, expires_in)
        return f"{self.base_url}/media/{quote(key)}?token={token}"
