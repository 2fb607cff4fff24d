"""
Dependency wiring for the FastAPI app.
"""

from kinship.config import settings
from kinship.storage import LocalMediaSigner, MediaSigner, SupabaseMediaSigner

_media_signer: MediaSigner | None = None
_local_media_signer: LocalMediaSigner | None = None


def get_local_media_signer() -> LocalMediaSigner:
    """
    Return a singleton signer for files kept under LOCAL_MEDIA_PATH.
    """
    global _local_media_signer
    if _local_media_signer:
        return _local_media_signer

    _local_media_signer = LocalMediaSigner(
        base_url=settings.BASE_URL,
        media_root=settings.LOCAL_MEDIA_PATH,
        secret=settings.SECRET_KEY,
    )
    return _local_media_signer


def get_media_signer() -> MediaSigner:
    """
    Return a singleton signer matching STORAGE_BACKEND.
    """
    global _media_signer
    if _media_signer:
        return _media_signer

    if settings.STORAGE_BACKEND == "supabase":
        _media_signer = SupabaseMediaSigner(settings.SUPABASE_BUCKET)
    else:
        _media_signer = get_local_media_signer()
    return _media_signer
