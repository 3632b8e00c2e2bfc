from typing import Any, Dict, Iterable, List, Optional, Sequence

from bson import ObjectId
from pymongo.database import Database

from result_portal.core.database import RESULTS, STUDENTS
from result_portal.services.grading import aggregate, effective_credits
from result_portal.utils.helpers import result_out, utcnow


def grade_submission(subjects: Sequence[Dict[str, Any]], default_credits: int) -> Dict[str, Any]:
    """
    Run the grading engine and shape its output into the stored result fields.
    Each stored subject keeps the credits that were actually used for the cgpa.
    """
    enriched, summary = aggregate(subjects, default_credits=default_credits)

    stored_subjects: List[Dict[str, Any]] = []
    for sub in enriched:
        stored_subjects.append({
            "subject_name": sub["subject_name"],
            "marks": sub["marks"],
            "credits": effective_credits(sub, default_credits),
            "grade": sub["grade"],
            "point": sub["point"],
        })

    return {"subjects": stored_subjects, **summary}


def new_result_document(student_id: ObjectId, semester: str, graded: Dict[str, Any]) -> Dict[str, Any]:
    now = utcnow()
    return {
        "student_id": student_id,
        "semester": semester,
        **graded,
        "created_at": now,
        "updated_at": now,
    }


def attach_students(db: Database, docs: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Serialize result documents with a summary of their student embedded."""
    docs = list(docs)
    ids = list({d["student_id"] for d in docs if d.get("student_id") is not None})
    students = {s["_id"]: s for s in db[STUDENTS].find({"_id": {"$in": ids}})} if ids else {}
    return [result_out(d, students.get(d.get("student_id"))) for d in docs]


def department_student_ids(db: Database, department: Optional[str]) -> List[ObjectId]:
    return [s["_id"] for s in db[STUDENTS].find({"department": department}, {"_id": 1})]


def delete_orphan_results(db: Database) -> int:
    student_ids = {s["_id"] for s in db[STUDENTS].find({}, {"_id": 1})}
    deleted = 0
    for result in db[RESULTS].find({}, {"_id": 1, "student_id": 1}):
        if result.get("student_id") not in student_ids:
            db[RESULTS].delete_one({"_id": result["_id"]})
            deleted += 1
    return deleted
