from typing import Iterable, Optional

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from kinship.core.errors import DuplicatePerson, PersonNotFound, PersonValidationError
from kinship.models.person import Person

# Taken by fixed routes under /api/persons
RESERVED_ID_NUMBERS = ("complete", "people", "media")


def get_person(db: Session, id_number: str) -> Optional[Person]:
    return db.query(Person).filter(Person.id_number == id_number).first()


def require_person(db: Session, id_number: str) -> Person:
    person = get_person(db, id_number)
    if not person:
        raise PersonNotFound(id_number)
    return person


def list_persons(db: Session) -> list[Person]:
    return db.query(Person).order_by(Person.created_at.asc()).all()


def create_person(db: Session, **fields) -> Person:
    """
    Insert a new person.

    Parent references are checked once here; nothing keeps them valid
    afterwards.
    """
    id_number = fields["id_number"]

    if id_number in RESERVED_ID_NUMBERS:
        raise PersonValidationError(f"id_number {id_number} is reserved")

    if get_person(db, id_number):
        raise DuplicatePerson(f"Person with id_number {id_number} already exists")

    for field, label in (("mother_id", "Mother"), ("father_id", "Father")):
        parent_key = fields.get(field)
        if not parent_key:
            continue
        if parent_key == id_number:
            raise PersonValidationError(f"{label} cannot be the person itself")
        if not get_person(db, parent_key):
            raise PersonNotFound(parent_key, f"{label} not found")

    person = Person(**fields)
    db.add(person)
    try:
        db.commit()
    except IntegrityError:
        # another request inserted the same id_number after the check above
        db.rollback()
        raise DuplicatePerson(f"Person with id_number {id_number} already exists")
    db.refresh(person)
    return person


# ------------------------------------------------------------
# RELATIONAL LOOKUPS
# ------------------------------------------------------------

def find_by_mother(db: Session, mother_key: str) -> list[Person]:
    return (
        db.query(Person)
        .filter(Person.mother_id == mother_key)
        .order_by(Person.created_at.asc())
        .all()
    )


def find_by_father(db: Session, father_key: str) -> list[Person]:
    return (
        db.query(Person)
        .filter(Person.father_id == father_key)
        .order_by(Person.created_at.asc())
        .all()
    )


def find_by_any_parent(db: Session, parent_keys: Iterable[str]) -> list[Person]:
    keys = [key for key in parent_keys if key]
    if not keys:
        return []

    return (
        db.query(Person)
        .filter(or_(Person.mother_id.in_(keys), Person.father_id.in_(keys)))
        .order_by(Person.created_at.asc())
        .all()
    )


def find_siblings_of(db: Session, person: Person) -> list[Person]:
    """
    People sharing a present, equal mother_id or father_id with `person`.

    An absent reference never matches, so two parentless people are not
    siblings of each other.
    """
    shared = []
    if person.mother_id:
        shared.append(Person.mother_id == person.mother_id)
    if person.father_id:
        shared.append(Person.father_id == person.father_id)

    if not shared:
        return []

    return (
        db.query(Person)
        .filter(Person.id != person.id, or_(*shared))
        .order_by(Person.created_at.asc())
        .all()
    )


def lock_person(db: Session, id_number: str) -> Optional[Person]:
    # FOR UPDATE is dropped by dialects without row locks (SQLite)
    stmt = (
        select(Person)
        .where(Person.id_number == id_number)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return db.execute(stmt).scalar_one_or_none()
