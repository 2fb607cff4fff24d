# kinship/schemas/person_schema.py
from pydantic import BaseModel, Field
from typing import List, Literal, Optional
from datetime import datetime

from kinship.schemas.media_schema import Category

Gender = Literal["male", "female", "unspecified"]


class Ifath(BaseModel):
    """Provenance of the person's profile image."""
    name: str
    mime_type: Optional[str] = None
    date: str
    path: str


class PersonCreate(BaseModel):
    name: str
    id_number: str
    gender: Gender = "unspecified"
    type: str = ""
    age: str = ""
    emoji: str = ""
    passport_number: Optional[str] = None
    interests: List[str] = Field(default_factory=list)
    mother_id: Optional[str] = None
    father_id: Optional[str] = None


class PersonOut(BaseModel):
    id_number: str
    name: str
    gender: Gender
    type: str = ""
    age: str = ""
    emoji: str = ""
    ifath: Optional[Ifath] = None
    passport_number: Optional[str] = None
    interests: List[str] = Field(default_factory=list)
    mother_id: Optional[str] = None
    father_id: Optional[str] = None
    categories: List[Category] = Field(default_factory=list)
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class PersonWithFamilyOut(BaseModel):
    person: PersonOut
    family: List[PersonOut]
