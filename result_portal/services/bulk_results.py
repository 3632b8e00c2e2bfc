import csv
import io
from typing import Any, Dict, List, Sequence, Tuple

from pymongo.database import Database
from pymongo.errors import PyMongoError

from result_portal.core.database import RESULTS, STUDENTS
from result_portal.core.logger import get_logger
from result_portal.core.security import is_teacher
from result_portal.services.result_service import grade_submission, new_result_document
from result_portal.utils.helpers import utcnow
from result_portal.utils.validation import (
    is_valid_credits,
    is_valid_marks,
    is_valid_semester,
    normalize_semester,
    sanitize,
)

logger = get_logger("bulk_results")


def import_results(
    db: Database,
    items: Sequence[Dict[str, Any]],
    current_user: Dict,
    default_credits: int,
) -> Dict[str, Any]:
    """
    Create or replace one result per (roll, semester) item.

    Rows whose student is missing, or belongs to another department when the
    caller is a teacher, are skipped with an error message and never graded.
    """
    stats = {"success": 0, "failed": 0, "errors": []}

    for item in items:
        roll = item.get("roll")

        student = db[STUDENTS].find_one({"roll": roll})
        if not student:
            stats["failed"] += 1
            stats["errors"].append(f"Roll {roll}: Student not found")
            continue

        if is_teacher(current_user) and current_user.get("department") != student.get("department"):
            stats["failed"] += 1
            stats["errors"].append(f"Roll {roll}: Student belongs to different department")
            continue

        graded = grade_submission(item.get("subjects") or [], default_credits)

        try:
            existing = db[RESULTS].find_one({"student_id": student["_id"], "semester": item["semester"]})
            if existing:
                db[RESULTS].update_one(
                    {"_id": existing["_id"]},
                    {"$set": {**graded, "updated_at": utcnow()}},
                )
            else:
                db[RESULTS].insert_one(new_result_document(student["_id"], item["semester"], graded))
        except PyMongoError as e:
            logger.warning("Bulk import failed for roll %s: %s", roll, e)
            stats["failed"] += 1
            stats["errors"].append(f"Roll {roll}: {e}")
            continue

        stats["success"] += 1

    logger.info(
        "Bulk import by %s: %d saved, %d failed",
        current_user.get("email") or current_user.get("username"),
        stats["success"],
        stats["failed"],
    )
    return stats


def parse_results_csv(file_content: bytes) -> Tuple[List[Dict[str, Any]], List[str]]:
    """
    Parses a results CSV into bulk items.
    Expected headers: roll, semester, subject_name, marks, credits (optional)
    One row per subject; rows are grouped by (roll, semester) in the order
    they first appear.
    """
    decoded = file_content.decode("utf-8-sig")
    reader = csv.DictReader(io.StringIO(decoded))

    grouped: Dict[Tuple[str, str], Dict[str, Any]] = {}
    errors: List[str] = []

    # Line 1 is the header
    for line_no, row in enumerate(reader, start=2):
        roll = sanitize(row.get("roll") or "")
        semester = normalize_semester(row.get("semester") or "")
        subject = sanitize(row.get("subject_name") or "")
        raw_marks = sanitize(row.get("marks") or "")
        raw_credits = sanitize(row.get("credits") or "")

        if not roll or not semester or not subject:
            errors.append(f"Line {line_no}: roll, semester and subject_name are required")
            continue

        if not is_valid_semester(semester):
            errors.append(f"Line {line_no}: Invalid semester format (use 1st, 2nd, 3rd, etc.)")
            continue

        if not is_valid_marks(raw_marks):
            errors.append(f"Line {line_no}: Marks must be 0-100")
            continue

        credits = None
        if raw_credits:
            if not is_valid_credits(raw_credits):
                errors.append(f"Line {line_no}: Credits must be 1-6")
                continue
            credits = int(float(raw_credits))

        key = (roll, semester)
        if key not in grouped:
            grouped[key] = {"roll": roll, "semester": semester, "subjects": []}
        grouped[key]["subjects"].append({
            "subject_name": subject,
            "marks": float(raw_marks),
            "credits": credits,
        })

    return list(grouped.values()), errors
