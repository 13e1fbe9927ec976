"""Pytest configuration and shared fixtures for the Campus Social API tests."""

import itertools
import sys
import uuid
from datetime import datetime, timedelta
from typing import Generator, Optional

import mongomock
import pytest
from bson import ObjectId
from fastapi.testclient import TestClient
from loguru import logger
from pymongo.errors import OperationFailure

import database
from database import create_document
from main import app


# =============================================================================
# Test Configuration
# =============================================================================


@pytest.fixture(scope="function", autouse=True)
def reset_loguru():
    """Reset loguru handlers before each test to keep output quiet."""
    logger.remove()
    logger.add(
        sys.stderr,
        level="ERROR",
        format="{time} {level} {message}",
        catch=True,
    )
    yield
    logger.remove()


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture
def mongo_db(monkeypatch: pytest.MonkeyPatch):
    """In-memory MongoDB database swapped in for the real one."""
    client = mongomock.MongoClient()
    db = client["campus_social_test"]
    monkeypatch.setattr(database, "db", db)
    yield db
    client.close()


@pytest.fixture
def client(mongo_db) -> Generator[TestClient, None, None]:
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_user(mongo_db):
    """Factory inserting a user document and returning its id."""

    def _make_user(
        first_name: str = "Ada",
        last_name: str = "Lovelace",
        email: Optional[str] = None,
        connections: Optional[list] = None,
    ) -> str:
        return create_document(
            "user",
            {
                "firstName": first_name,
                "lastName": last_name,
                "email": email or f"{uuid.uuid4().hex[:8]}@example.com",
                "passwordHash": "not-a-real-hash",
                "imageUrl": "/uploads/avatar.png",
                "isAdmin": False,
                "isWorkVerified": False,
                "isRecruiterVerified": False,
                "skills": ["python"],
                "connections": list(connections or []),
            },
        )

    return _make_user


@pytest.fixture
def make_post(mongo_db):
    """Factory inserting posts one minute apart, so later calls are newer."""
    base = datetime(2024, 1, 1, 12, 0, 0)
    counter = itertools.count()

    def _make_post(
        user_id: str,
        text: str = "hello",
        tags: tuple = ("general",),
        likes: Optional[list] = None,
        comments: Optional[list] = None,
    ) -> str:
        created = base + timedelta(minutes=next(counter))
        result = mongo_db["post"].insert_one(
            {
                "userId": ObjectId(user_id),
                "textContent": text,
                "imageContent": None,
                "tags": list(tags),
                "likes": list(likes or []),
                "comments": list(comments or []),
                "donatable": False,
                "createdAt": created,
                "updatedAt": created,
            }
        )
        return str(result.inserted_id)

    return _make_post


@pytest.fixture
def author(make_user) -> str:
    return make_user()


class FailingCollection:
    """Stands in for a pymongo collection whose every call fails."""

    def __getattr__(self, name):
        def fail(*args, **kwargs):
            raise OperationFailure(f"{name} failed")

        return fail


@pytest.fixture
def failing_collection():
    """Replacement for get_collection() returning a collection that always errors."""
    return lambda collection_name: FailingCollection()
