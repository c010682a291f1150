"""
Shared test fixtures for the exam correction layer.
In-memory SQLite database, one fresh schema per test.
Zero network calls: the AI service is simulated with httpx.MockTransport.
"""
import os

# Must be set before database.database builds its engine
os.environ["DATABASE_URL"] = "sqlite://"

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database.database import Base
from database.models import User, Student
from ingestion import UploadedFile


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield session
    session.close()


@pytest.fixture
def owner(db):
    user = User(username="teacher", email="teacher@example.com")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def other_owner(db):
    user = User(username="colleague", email="colleague@example.com")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def student(db, owner):
    record = Student(owner_id=owner.id, registration_id="N874321", name="Ana Souza", email="ana@example.com")
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


@pytest.fixture
def make_upload():
    """Build an UploadedFile from text (encoded) or raw bytes."""
    def _make(content, filename="data.csv", encoding="utf-8"):
        if isinstance(content, str):
            content = content.encode(encoding)
        return UploadedFile(filename=filename, content=content)
    return _make
