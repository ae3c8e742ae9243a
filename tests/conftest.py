"""
Test configuration and fixtures.
"""
import os
import pytest
from typing import Generator
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

# Set test database URL before importing app
os.environ["DATABASE_URL"] = "sqlite://"

from csvhub.main import app
from csvhub.db.base import Base
from csvhub.db.session import get_db
import csvhub.models  # noqa: F401


# In-memory SQLite shared by every connection, rebuilt for each test
engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Create a database session on a fresh schema."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db: Session) -> Generator[TestClient, None, None]:
    """Create test client with database session override."""
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture
def sample_csv() -> bytes:
    """Small customer file with a duplicate email and an empty row."""
    return (
        b"name,email,age\n"
        b"Alice,alice@example.com,30\n"
        b"Bob,bob@example.com,25\n"
        b",,\n"
        b"Alice Again,ALICE@example.com ,31\n"
    )
