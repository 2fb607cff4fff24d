# kinship/routers/media_files_router.py

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse
from jose import JWTError

from kinship.dependencies import get_local_media_signer
from kinship.storage import LocalMediaSigner

router = APIRouter(tags=["Media Files"])


# ==========================================================
# SERVE LOCAL MEDIA (signed URLs only)
# ==========================================================
@router.get("/media/{key:path}")
def serve_media(
    key: str,
    token: Optional[str] = None,
    signer: LocalMediaSigner = Depends(get_local_media_signer),
):
    if not token:
        raise HTTPException(status_code=403, detail="Media token is required")

    try:
        signed_key = signer.read_token(token)
    except JWTError:
        raise HTTPException(status_code=403, detail="Invalid or expired media token")

    if signed_key != key:
        raise HTTPException(status_code=403, detail="Invalid or expired media token")

    path = signer.resolve(key)
    if path is None or not path.is_file():
        raise HTTPException(status_code=404, detail="Media not found")

    return FileResponse(path)
