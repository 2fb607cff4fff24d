import logging
from typing import Iterable, Optional

from kinship.config import settings
from kinship.schemas.person_schema import PersonOut
from kinship.storage import MediaSigner

logger = logging.getLogger(__name__)

# Item types whose own url is signed; embedded note media is always signed
SIGNED_ITEM_TYPES = ("audio", "video")


def sign_media_url(
    path: Optional[str],
    signer: MediaSigner,
    expires_in: Optional[int] = None,
) -> Optional[str]:
    if not path:
        return None

    # already signed or absolute?
    if path.startswith("http"):
        return path

    try:
        return signer.create_signed_url(
            path, expires_in or settings.SIGNED_URL_EXPIRES_SECONDS
        )
    except Exception as e:
        logger.error("Signed URL error for %s: %s", path, e)
        return None


def _sign_item(item, signer: MediaSigner):
    if item.type in SIGNED_ITEM_TYPES:
        item.url = sign_media_url(item.url, signer)

    for embedded_attr in ("image", "audio"):
        embedded = getattr(item, embedded_attr, None)
        if embedded is not None and embedded.url:
            embedded.url = sign_media_url(embedded.url, signer)


def materialize_person(person: PersonOut, signer: MediaSigner) -> PersonOut:
    """
    Return a copy of `person` with media URLs replaced by signed ones.
    The input is left untouched and nothing is written back.
    """
    signed = person.model_copy(deep=True)

    for category in signed.categories:
        for sub_category in category.sub_categories:
            for item in sub_category.items:
                _sign_item(item, signer)

    return signed


def materialize_persons(
    persons: Iterable[PersonOut],
    signer: MediaSigner,
) -> list[PersonOut]:
    return [materialize_person(person, signer) for person in persons]
