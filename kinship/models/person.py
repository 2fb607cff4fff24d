import uuid
from sqlalchemy import Column, Integer, String, DateTime, JSON
from datetime import datetime

from kinship.database import Base


class Person(Base):
    """
    A person record. The nested media tree (categories → sub categories →
    items) lives inside the row as a single JSON document.
    """
    __tablename__ = "persons"

    # Storage-internal id, never used to link people together
    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))

    # Identity key; mother_id / father_id point at this
    id_number = Column(String, unique=True, index=True, nullable=False)

    name = Column(String, nullable=False)
    gender = Column(String, nullable=False, default="unspecified")
    type = Column(String, nullable=False, default="")
    age = Column(String, nullable=False, default="")
    emoji = Column(String, nullable=False, default="")

    # name / mime_type / date / path of the profile image
    ifath = Column(JSON, nullable=True)

    passport_number = Column(String, nullable=True)
    interests = Column(JSON, nullable=False, default=list)

    # -------------------------------------------------------
    # GENEALOGY
    # -------------------------------------------------------
    mother_id = Column(String, nullable=True, index=True)
    father_id = Column(String, nullable=True, index=True)

    # -------------------------------------------------------
    # MEDIA TREE
    # -------------------------------------------------------
    categories = Column(JSON, nullable=False, default=list)

    # Bumped on every UPDATE; a stale write raises StaleDataError
    version = Column(Integer, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __mapper_args__ = {"version_id_col": version}
