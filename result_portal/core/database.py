# result_portal/core/database.py
from pymongo import ASCENDING, MongoClient
from pymongo.database import Database

from result_portal.core.config import CONFIG
from result_portal.core.logger import get_logger

logger = get_logger("database")

# MongoClient connects lazily, so importing this module never blocks.
client = MongoClient(CONFIG.MONGODB_URI, serverSelectionTimeoutMS=5000)

db = client[CONFIG.MONGODB_DB]

STUDENTS = "students"
RESULTS = "results"
TEACHERS = "teachers"
ADMINS = "admins"
SETTINGS = "settings"


def get_db() -> Database:
    """FastAPI dependency; tests override it with an in-memory database."""
    return db


def ensure_indexes(database: Database) -> None:
    students = database[STUDENTS]
    students.create_index("roll", unique=True)
    students.create_index("registration_no", unique=True)
    students.create_index("department")
    students.create_index("session")
    students.create_index([("department", ASCENDING), ("semester", ASCENDING)])
    students.create_index([("session", ASCENDING), ("department", ASCENDING)])

    results = database[RESULTS]
    # One result per student per semester
    results.create_index(
        [("student_id", ASCENDING), ("semester", ASCENDING)], unique=True
    )
    results.create_index("student_id")
    results.create_index("cgpa")
    results.create_index("status")

    database[TEACHERS].create_index("email", unique=True)
    database[ADMINS].create_index("username", unique=True)

    logger.info("Indexes ensured on database '%s'", database.name)
