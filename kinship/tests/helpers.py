"""
Shared fixtures for the test suites: throwaway databases and people.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from kinship.database import Base
from kinship.models.person import Person


def memory_session_factory():
    """SQLite in memory, one shared connection so every session sees the same data."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


def file_session_factory(path: str):
    """SQLite on disk, separate connections per session (needed to race writers)."""
    engine = create_engine(
        f"sqlite:///{path}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


def add_person(
    db,
    id_number: str,
    name: str | None = None,
    gender: str = "unspecified",
    mother_id: str | None = None,
    father_id: str | None = None,
) -> Person:
    person = Person(
        id_number=id_number,
        name=name or id_number,
        gender=gender,
        mother_id=mother_id,
        father_id=father_id,
    )
    db.add(person)
    db.commit()
    db.refresh(person)
    return person
