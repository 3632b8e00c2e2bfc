# tests/conftest.py

import os

os.environ.setdefault("RESULT_PORTAL_JWT_SECRET", "test-secret-that-is-long-enough-for-hs256")
os.environ.setdefault("RESULT_PORTAL_ENVIRONMENT", "testing")

import mongomock
import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from result_portal.core.database import STUDENTS, ensure_indexes, get_db
from result_portal.core.rate_limit import auth_limiter, general_limiter
from result_portal.core.security import create_access_token
from result_portal.main import activity_log, app
from result_portal.utils.helpers import utcnow

CS = "Computer Science"
EEE = "Electrical Engineering"


@pytest.fixture
def mongo_db():
    database = mongomock.MongoClient()["result_portal_test"]
    ensure_indexes(database)
    return database


@pytest.fixture
def client(mongo_db):
    app.dependency_overrides[get_db] = lambda: mongo_db
    general_limiter.reset()
    auth_limiter.reset()
    activity_log.clear()
    yield TestClient(app)
    app.dependency_overrides.clear()


def bearer(claims):
    return {"Authorization": f"Bearer {create_access_token(claims)}"}


@pytest.fixture
def admin_headers():
    return bearer({"sub": str(ObjectId()), "role": "admin", "username": "admin"})


@pytest.fixture
def teacher_headers():
    return bearer({
        "sub": str(ObjectId()),
        "role": "teacher",
        "email": "rahman@university.edu",
        "department": CS,
    })


@pytest.fixture
def other_teacher_headers():
    return bearer({
        "sub": str(ObjectId()),
        "role": "teacher",
        "email": "fatima@university.edu",
        "department": EEE,
    })


@pytest.fixture
def make_student(mongo_db):
    def _make(roll="1001", department=CS, **overrides):
        now = utcnow()
        doc = {
            "name": "Rafiq Hossain",
            "roll": roll,
            "registration_no": f"REG{roll}",
            "department": department,
            "semester": "3rd",
            "session": "2023-2024",
            "email": None,
            "phone": None,
            "created_at": now,
            "updated_at": now,
        }
        doc.update(overrides)
        doc["_id"] = mongo_db[STUDENTS].insert_one(doc).inserted_id
        return doc

    return _make


@pytest.fixture
def sample_subjects():
    return [
        {"subject_name": "Math", "marks": 80, "credits": 4},
        {"subject_name": "Physics", "marks": 75, "credits": 3},
        {"subject_name": "Chemistry", "marks": 70, "credits": 3},
    ]
