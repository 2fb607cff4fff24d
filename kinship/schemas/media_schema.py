# kinship/schemas/media_schema.py

from datetime import datetime, timezone
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field

MediaType = Literal["video", "image", "audio", "pdf", "note"]

MEDIA_TYPES = ("video", "image", "audio", "pdf", "note")

DEFAULT_SUB_CATEGORY = "Things"


def _now() -> datetime:
    return datetime.now(timezone.utc)


# -----------------------------------------------------
# COMMON MEDIA FIELDS
# -----------------------------------------------------
class MediaBase(BaseModel):
    id: str
    title: str = ""
    description: str = ""
    category: str = ""          # label of the owning category
    tags: List[str] = Field(default_factory=list)
    creator: str = ""
    created_at: datetime = Field(default_factory=_now)


class VideoItem(MediaBase):
    type: Literal["video"] = "video"
    url: Optional[str] = None
    thumbnail_url: str = ""
    duration: float = 0


class ImageItem(MediaBase):
    type: Literal["image"] = "image"
    url: Optional[str] = None


class AudioItem(MediaBase):
    type: Literal["audio"] = "audio"
    url: Optional[str] = None
    duration: float = 0


class PdfItem(MediaBase):
    type: Literal["pdf"] = "pdf"
    url: Optional[str] = None
    page_count: int = 0


# -----------------------------------------------------
# NOTE (text + at most one audio and one image)
# -----------------------------------------------------
class NoteMedia(BaseModel):
    type: Literal["audio", "image"]
    url: Optional[str] = None


class NoteItem(MediaBase):
    type: Literal["note"] = "note"
    text: str = ""
    lat: str = ""
    lng: str = ""
    remind: bool = False
    audio: Optional[NoteMedia] = None
    image: Optional[NoteMedia] = None


MediaItem = Annotated[
    Union[VideoItem, ImageItem, AudioItem, PdfItem, NoteItem],
    Field(discriminator="type"),
]


# -----------------------------------------------------
# NESTED TREE
# -----------------------------------------------------
class SubCategory(BaseModel):
    key: int
    val: str = DEFAULT_SUB_CATEGORY
    items: List[MediaItem] = Field(default_factory=list)


class Category(BaseModel):
    key: int
    val: str
    sub_categories: List[SubCategory] = Field(default_factory=list)


# -----------------------------------------------------
# UPLOAD RESPONSE
# -----------------------------------------------------
class MediaUploadOut(BaseModel):
    success: bool = True
    category: str
    items: List[MediaItem]
