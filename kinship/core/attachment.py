import logging
from typing import Iterable, Optional, Sequence

from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import flag_modified
from sqlalchemy.orm.exc import StaleDataError

from kinship.config import settings
from kinship.core import person_repository as repo
from kinship.core.errors import AttachmentConflict, PersonNotFound
from kinship.schemas.media_schema import (
    DEFAULT_SUB_CATEGORY,
    Category,
    MediaItem,
    SubCategory,
)

logger = logging.getLogger(__name__)


def load_categories(raw: Optional[Iterable[dict]]) -> list[Category]:
    return [Category.model_validate(entry) for entry in raw or []]


def dump_categories(categories: Sequence[Category]) -> list[dict]:
    return [category.model_dump(mode="json") for category in categories]


def attach(
    categories: list[Category],
    category_label: str,
    sub_category_label: str,
    new_items: Sequence[MediaItem],
) -> Category:
    """
    Append `new_items` under category → sub category, creating either node
    on first use. Keys are the list length at creation time; nodes are
    never removed so keys stay stable.
    """
    category = next((c for c in categories if c.val == category_label), None)
    if category is None:
        category = Category(key=len(categories), val=category_label)
        categories.append(category)

    sub_category = next(
        (s for s in category.sub_categories if s.val == sub_category_label),
        None,
    )
    if sub_category is None:
        sub_category = SubCategory(
            key=len(category.sub_categories),
            val=sub_category_label,
        )
        category.sub_categories.append(sub_category)

    sub_category.items.extend(new_items)
    return category


def append_media(
    db: Session,
    id_number: str,
    category_label: str,
    items: Sequence[MediaItem],
    sub_category_label: str = DEFAULT_SUB_CATEGORY,
    max_attempts: Optional[int] = None,
) -> Category:
    """
    Read-modify-write of the person's media tree in one transaction.

    The row is locked where the database supports it and the write is
    guarded by the version column. A concurrent writer makes the commit
    fail with StaleDataError; the whole attach is then redone from a fresh
    read. Nothing is committed unless every item made it in.
    """
    attempts = max_attempts or settings.ATTACH_MAX_RETRIES

    for attempt in range(1, attempts + 1):
        try:
            person = repo.lock_person(db, id_number)
            if not person:
                raise PersonNotFound(id_number)

            categories = load_categories(person.categories)
            category = attach(categories, category_label, sub_category_label, items)

            person.categories = dump_categories(categories)
            flag_modified(person, "categories")
            db.commit()
            return category

        except StaleDataError:
            db.rollback()
            logger.warning(
                "Concurrent update of person %s, retrying attach (%d/%d)",
                id_number,
                attempt,
                attempts,
            )
        except Exception:
            db.rollback()
            raise

    raise AttachmentConflict(
        f"Could not attach media to person {id_number} after {attempts} attempts"
    )
