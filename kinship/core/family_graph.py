from sqlalchemy.orm import Session

from kinship.core import person_repository as repo
from kinship.models.person import Person


def children(db: Session, parent_key: str) -> list[Person]:
    """Everyone whose mother_id or father_id is `parent_key`."""
    return repo.find_by_any_parent(db, [parent_key])


def family(db: Session, person_key: str) -> list[Person]:
    """
    Children of a person, followed through the reference that matches their
    gender. Raises PersonNotFound when the person does not exist; a person
    with unspecified gender simply has no family.
    """
    person = repo.require_person(db, person_key)

    if person.gender == "female":
        return repo.find_by_mother(db, person.id_number)
    if person.gender == "male":
        return repo.find_by_father(db, person.id_number)
    return []


def siblings(db: Session, person: Person) -> list[Person]:
    return repo.find_siblings_of(db, person)


def cousins(db: Session, person_key: str) -> list[Person]:
    """
    Children of the person's aunts and uncles.

    Unknown people and people without parents have no cousins. The person
    and their own siblings are never part of the result, even when the
    genealogy loops back on itself.
    """
    person = repo.get_person(db, person_key)
    if not person:
        return []

    aunts_and_uncles: dict[str, Person] = {}
    for parent_key in (person.mother_id, person.father_id):
        if not parent_key:
            continue
        parent = repo.get_person(db, parent_key)
        if not parent:
            continue
        for relative in siblings(db, parent):
            aunts_and_uncles[relative.id_number] = relative

    if not aunts_and_uncles:
        return []

    excluded = {person.id_number}
    excluded.update(sibling.id_number for sibling in siblings(db, person))

    results = []
    seen = set()
    for cousin in repo.find_by_any_parent(db, aunts_and_uncles.keys()):
        if cousin.id_number in excluded or cousin.id_number in seen:
            continue
        seen.add(cousin.id_number)
        results.append(cousin)

    return results
