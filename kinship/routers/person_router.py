# kinship/routers/person_router.py

import json
import logging
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    HTTPException,
    UploadFile,
)
from sqlalchemy.orm import Session

from kinship.config import settings
from kinship.core import family_graph
from kinship.core import person_repository as repo
from kinship.core.errors import PersonNotFound, PersonValidationError
from kinship.core.signed_urls import materialize_person, materialize_persons
from kinship.database import get_db
from kinship.dependencies import get_media_signer
from kinship.models.person import Person
from kinship.schemas.person_schema import (
    PersonCreate,
    PersonOut,
    PersonWithFamilyOut,
)
from kinship.storage import (
    MediaSigner,
    delete_file,
    discard_staged,
    person_image_folder,
    relocate_staged,
    stage_upload,
    validate_file_size,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/persons", tags=["Persons"])


# ---------------------------------------------------------------------
# INTERNAL UTILS
# ---------------------------------------------------------------------
def to_out(person: Person) -> PersonOut:
    return PersonOut.model_validate(person)


def parse_interests(raw: Optional[str]) -> list[str]:
    """Accepts a JSON array or a plain comma separated list."""
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        return [item.strip() for item in raw.split(",") if item.strip()]

    if isinstance(value, list):
        return [str(item) for item in value]
    return [str(value)]


def normalize_gender(raw: Optional[str]) -> str:
    value = (raw or "").strip().lower()
    return value if value in ("male", "female") else "unspecified"


# ---------------------------------------------------------------------
# CREATE PERSON (with image)
# ---------------------------------------------------------------------
@router.post("", response_model=PersonOut, status_code=201)
def create_person(
    name: str = Form(...),
    id_number: str = Form(...),
    gender: Optional[str] = Form(None),
    person_type: str = Form("", alias="type"),
    age: str = Form(""),
    emoji: str = Form(""),
    passport_number: Optional[str] = Form(None),
    interests: Optional[str] = Form(None),
    mother_id: Optional[str] = Form(None),
    father_id: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
):
    if image is None or not image.filename:
        raise HTTPException(status_code=400, detail="Image is required")

    if not (image.content_type or "").startswith("image/"):
        raise HTTPException(status_code=400, detail="Unsupported image type")

    ok, error = validate_file_size(image, settings.MAX_PERSON_IMAGE_SIZE)
    if not ok:
        raise HTTPException(status_code=400, detail=error)

    payload = PersonCreate(
        name=name,
        id_number=id_number,
        gender=normalize_gender(gender),
        type=person_type,
        age=age,
        emoji=emoji,
        passport_number=passport_number or None,
        interests=parse_interests(interests),
        mother_id=mother_id or None,
        father_id=father_id or None,
    )

    staged = stage_upload(image, prefix="IMAGE")
    try:
        stored = relocate_staged(staged, person_image_folder(payload.name))
    except Exception:
        discard_staged(staged)
        logger.exception("Storing image for person %s failed", id_number)
        raise HTTPException(status_code=500, detail="Failed to add person")

    ifath = {
        "name": stored.filename,
        "mime_type": stored.content_type,
        "date": datetime.now(timezone.utc).isoformat(),
        "path": stored.path,
    }

    try:
        person = repo.create_person(db, **payload.model_dump(), ifath=ifath)
    except (PersonNotFound, PersonValidationError):
        delete_file(stored.path)
        raise
    except Exception:
        db.rollback()
        delete_file(stored.path)
        logger.exception("Add person error for %s", id_number)
        raise HTTPException(status_code=500, detail="Failed to add person")

    logger.info("Created person %s", person.id_number)
    return to_out(person)


# ---------------------------------------------------------------------
# LISTS
# ---------------------------------------------------------------------
@router.get("", response_model=List[PersonOut])
def get_persons(
    db: Session = Depends(get_db),
    signer: MediaSigner = Depends(get_media_signer),
):
    persons = [to_out(p) for p in repo.list_persons(db)]
    return materialize_persons(persons, signer)


@router.get("/complete", response_model=List[PersonOut])
def get_persons_complete(
    db: Session = Depends(get_db),
    signer: MediaSigner = Depends(get_media_signer),
):
    return get_persons(db=db, signer=signer)


@router.get("/people", response_model=List[PersonOut])
def get_people(db: Session = Depends(get_db)):
    """Raw records, media paths left unsigned."""
    return [to_out(p) for p in repo.list_persons(db)]


# ---------------------------------------------------------------------
# GENEALOGY
# ---------------------------------------------------------------------
@router.get("/children/{parent_id}", response_model=List[PersonOut])
def get_children(parent_id: str, db: Session = Depends(get_db)):
    return [to_out(p) for p in family_graph.children(db, parent_id)]


@router.get("/cousins/{id_number}", response_model=List[PersonOut])
def get_cousins(id_number: str, db: Session = Depends(get_db)):
    return [to_out(p) for p in family_graph.cousins(db, id_number)]


@router.get("/siblings/{id_number}", response_model=List[PersonOut])
def get_siblings(id_number: str, db: Session = Depends(get_db)):
    person = repo.require_person(db, id_number)
    return [to_out(p) for p in family_graph.siblings(db, person)]


# ---------------------------------------------------------------------
# SINGLE PERSON
# ---------------------------------------------------------------------
@router.get("/{id_number}", response_model=PersonOut)
def get_person(
    id_number: str,
    db: Session = Depends(get_db),
    signer: MediaSigner = Depends(get_media_signer),
):
    person = repo.require_person(db, id_number)
    return materialize_person(to_out(person), signer)


@router.get("/{id_number}/with-children", response_model=PersonWithFamilyOut)
def get_person_with_children(id_number: str, db: Session = Depends(get_db)):
    children = family_graph.family(db, id_number)
    person = repo.require_person(db, id_number)

    return PersonWithFamilyOut(
        person=to_out(person),
        family=[to_out(p) for p in children],
    )
