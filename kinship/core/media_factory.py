"""
Builds typed media items from uploaded file metadata and form fields.

Only metadata is consumed here: by the time a StagedFile reaches the
factory its `path` is the permanent storage key.
"""

import uuid
from dataclasses import dataclass
from typing import Optional, Sequence

from kinship.core.errors import MissingMediaFile, UnsupportedMediaType
from kinship.schemas.media_schema import (
    MEDIA_TYPES,
    AudioItem,
    ImageItem,
    MediaItem,
    NoteItem,
    NoteMedia,
    PdfItem,
    VideoItem,
)
from kinship.storage import StagedFile


@dataclass
class MediaFields:
    category: str
    title: Optional[str] = None
    description: Optional[str] = None
    tags: Optional[str] = None
    creator: Optional[str] = None
    text: Optional[str] = None
    lat: Optional[str] = None
    lng: Optional[str] = None
    remind: Optional[str | bool] = None


def parse_tags(raw: Optional[str]) -> list[str]:
    # empty entries ("a,,b") are dropped
    if not raw:
        return []
    return [tag.strip() for tag in raw.split(",") if tag.strip()]


def parse_remind(raw) -> bool:
    if raw is True:
        return True
    return isinstance(raw, str) and raw.strip().lower() == "true"


def new_media_id(media_type: str) -> str:
    return f"{media_type}-{uuid.uuid4()}"


def validate_media_request(media_type: Optional[str], files: Sequence) -> None:
    if media_type not in MEDIA_TYPES:
        raise UnsupportedMediaType(media_type)
    if media_type != "note" and not files:
        raise MissingMediaFile()


def _first_of_kind(files: Sequence, kind: str):
    for candidate in files:
        if (candidate.content_type or "").startswith(f"{kind}/"):
            return candidate
    return None


def select_note_files(files: Sequence) -> list:
    """
    The first audio and the first image of a batch, in upload order. Works
    on anything with a `content_type` (UploadFile or StagedFile).
    """
    audio = _first_of_kind(files, "audio")
    image = _first_of_kind(files, "image")
    return [f for f in files if f is audio or f is image]


def _build_note(files: Sequence[StagedFile], common: dict, fields: MediaFields) -> NoteItem:
    audio = _first_of_kind(files, "audio")
    image = _first_of_kind(files, "image")

    return NoteItem(
        **common,
        title=fields.title or "",
        text=fields.text or "",
        lat=fields.lat or "",
        lng=fields.lng or "",
        remind=parse_remind(fields.remind),
        audio=NoteMedia(type="audio", url=audio.path) if audio else None,
        image=NoteMedia(type="image", url=image.path) if image else None,
    )


def build_media_item(
    media_type: str,
    files: Sequence[StagedFile],
    fields: MediaFields,
) -> MediaItem:
    validate_media_request(media_type, files)

    common = {
        "id": new_media_id(media_type),
        "description": fields.description or "",
        "category": fields.category,
        "tags": parse_tags(fields.tags),
        "creator": fields.creator or "",
    }

    if media_type == "note":
        return _build_note(files, common, fields)

    source = files[0]
    common["title"] = fields.title or source.original_filename

    if media_type == "video":
        return VideoItem(**common, url=source.path)
    if media_type == "image":
        return ImageItem(**common, url=source.path)
    if media_type == "audio":
        return AudioItem(**common, url=source.path)
    return PdfItem(**common, url=source.path)


def build_media_items(
    media_type: str,
    files: Sequence[StagedFile],
    fields: MediaFields,
) -> list[MediaItem]:
    """One note for the whole batch, otherwise one item per file."""
    if media_type == "note":
        return [build_media_item(media_type, files, fields)]

    validate_media_request(media_type, files)
    return [build_media_item(media_type, [staged], fields) for staged in files]
