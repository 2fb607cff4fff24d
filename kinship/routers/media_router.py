# kinship/routers/media_router.py

import logging
from typing import List, Optional

from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    Header,
    HTTPException,
    UploadFile,
)
from sqlalchemy.orm import Session

from kinship.config import settings
from kinship.core import person_repository as repo
from kinship.core.attachment import append_media
from kinship.core.errors import (
    AttachmentConflict,
    MediaValidationError,
    PersonNotFound,
)
from kinship.core.media_factory import (
    MediaFields,
    build_media_items,
    select_note_files,
    validate_media_request,
)
from kinship.database import get_db
from kinship.schemas.media_schema import MediaUploadOut
from kinship.storage import (
    StagedFile,
    delete_file,
    discard_staged,
    media_folder,
    relocate_staged,
    stage_upload,
    validate_file_size,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/persons", tags=["Person Media"])


# ==========================================================
# Helpers
# ==========================================================

def media_form(
    x_category: Optional[str] = Header(None),
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    tags: Optional[str] = Form(None),
    creator: Optional[str] = Form(None),
    text: Optional[str] = Form(None),
    lat: Optional[str] = Form(None),
    lng: Optional[str] = Form(None),
    remind: Optional[str] = Form(None),
) -> MediaFields:
    if not x_category or not x_category.strip():
        raise HTTPException(status_code=400, detail="x-category header is required")

    return MediaFields(
        category=x_category.strip(),
        title=title,
        description=description,
        tags=tags,
        creator=creator,
        text=text,
        lat=lat,
        lng=lng,
        remind=remind,
    )


def media_type_header(x_mediatype: Optional[str] = Header(None)) -> str:
    if not x_mediatype or not x_mediatype.strip():
        raise HTTPException(status_code=400, detail="x-mediatype header is required")
    return x_mediatype.strip().lower()


def _cleanup(stored: List[StagedFile]):
    for staged in stored:
        delete_file(staged.path)


def store_and_attach(
    db: Session,
    id_number: str,
    media_type: str,
    uploads: List[UploadFile],
    fields: MediaFields,
) -> MediaUploadOut:
    """
    Validate, move the files next to the person, build the items and
    append them. Any failure after files were moved removes them again and
    leaves the person untouched.
    """
    validate_media_request(media_type, uploads)
    person = repo.require_person(db, id_number)

    if media_type == "note":
        uploads = select_note_files(uploads)

    for upload in uploads:
        ok, error = validate_file_size(upload, settings.MAX_MEDIA_SIZE)
        if not ok:
            raise HTTPException(status_code=400, detail=error)

    folder = media_folder(person.name, media_type)
    stored: List[StagedFile] = []

    try:
        for upload in uploads:
            staged = stage_upload(upload)
            try:
                stored.append(relocate_staged(staged, folder))
            except Exception:
                discard_staged(staged)
                raise

        items = build_media_items(media_type, stored, fields)
        append_media(db, id_number, fields.category, items)

    except (PersonNotFound, MediaValidationError, AttachmentConflict):
        _cleanup(stored)
        raise
    except Exception:
        _cleanup(stored)
        logger.exception("Media upload failed for person %s", id_number)
        raise HTTPException(status_code=500, detail="Failed to upload media")

    logger.info(
        "Attached %d %s item(s) to %s under %s",
        len(items),
        media_type,
        id_number,
        fields.category,
    )
    return MediaUploadOut(category=fields.category, items=items)


# ==========================================================
# UPLOAD MULTIPLE FILES
# ==========================================================
@router.post("/media/{id_number}", response_model=MediaUploadOut)
def upload_media(
    id_number: str,
    files: Optional[List[UploadFile]] = File(None),
    media_type: str = Depends(media_type_header),
    fields: MediaFields = Depends(media_form),
    db: Session = Depends(get_db),
):
    uploads = [f for f in files or [] if f.filename]

    if len(uploads) > settings.MAX_UPLOAD_FILES:
        raise HTTPException(
            status_code=400,
            detail=f"Too many files (max {settings.MAX_UPLOAD_FILES})",
        )

    return store_and_attach(db, id_number, media_type, uploads, fields)


# ==========================================================
# UPLOAD ONE FILE
# ==========================================================
@router.post("/{id_number}/media", response_model=MediaUploadOut)
def upload_single_media(
    id_number: str,
    file: Optional[UploadFile] = File(None),
    media_type: str = Depends(media_type_header),
    fields: MediaFields = Depends(media_form),
    db: Session = Depends(get_db),
):
    uploads = [file] if file is not None and file.filename else []
    return store_and_attach(db, id_number, media_type, uploads, fields)
