import csv
import io
from typing import Dict, Optional

from pydantic import ValidationError
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from result_portal.core.database import STUDENTS
from result_portal.core.logger import get_logger
from result_portal.core.security import is_teacher
from result_portal.models.student_schemas import StudentCreate
from result_portal.utils.helpers import utcnow
from result_portal.utils.validation import sanitize_object

logger = get_logger("student_ingest")

DEFAULT_SEMESTER = "1st"
DEFAULT_SESSION = "2023-2024"


def process_students_csv(db: Database, file_content: bytes, current_user: Optional[Dict] = None) -> dict:
    """
    Parses a CSV uploaded by a teacher/admin and creates the students in MongoDB.
    Expected headers: roll, name, department, registration_no, semester, session, email, phone
    Only roll, name and department are required; a roll that already exists
    is counted as a duplicate and left untouched. Teachers can only add
    students of their own department.
    """
    decoded = file_content.decode("utf-8-sig")
    reader = csv.DictReader(io.StringIO(decoded))

    success_count = 0
    duplicate_count = 0
    errors = []

    for raw_row in reader:
        # 1. Extract and clean row data
        row = sanitize_object(dict(raw_row))
        roll = (row.get("roll") or "").strip()
        name = (row.get("name") or "").strip()
        department = (row.get("department") or "").strip()

        if not roll or not name or not department:
            errors.append(f"Row missing required fields: {dict(row)}")
            continue

        if is_teacher(current_user) and current_user.get("department") != department:
            errors.append(f"Roll {roll}: Student belongs to different department")
            continue

        # 2. Skip students we already have
        if db[STUDENTS].find_one({"roll": roll}):
            duplicate_count += 1
            continue

        try:
            student = StudentCreate(
                name=name,
                roll=roll,
                registration_no=(row.get("registration_no") or "").strip() or f"REG{roll}",
                department=department,
                semester=(row.get("semester") or "").strip() or DEFAULT_SEMESTER,
                session=(row.get("session") or "").strip() or DEFAULT_SESSION,
                email=(row.get("email") or "").strip() or None,
                phone=(row.get("phone") or "").strip() or None,
            )
        except ValidationError as e:
            reasons = "; ".join(err["msg"] for err in e.errors())
            errors.append(f"Error adding roll {roll}: {reasons}")
            continue

        # 3. Insert
        now = utcnow()
        try:
            db[STUDENTS].insert_one({**student.model_dump(), "created_at": now, "updated_at": now})
        except DuplicateKeyError:
            errors.append(f"Error adding roll {roll}: registration number already exists")
            continue
        success_count += 1

    logger.info("Student upload: %d added, %d duplicates, %d errors", success_count, duplicate_count, len(errors))
    return {
        "message": "Bulk upload processed",
        "success_count": success_count,
        "duplicate_count": duplicate_count,
        "errors": errors,
    }
