import re
from typing import Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pymongo import ReturnDocument
from pymongo.database import Database

from result_portal.core.database import RESULTS, STUDENTS, get_db
from result_portal.core.logger import get_logger
from result_portal.core.security import (
    ensure_same_department,
    get_optional_user,
    is_teacher,
    require_role,
)
from result_portal.models.student_schemas import (
    StudentCreate,
    StudentListResponse,
    StudentMessage,
    StudentResponse,
)
from result_portal.services.result_service import delete_orphan_results
from result_portal.utils.helpers import (
    pagination,
    paging,
    parse_object_id,
    sort_spec,
    student_out,
    utcnow,
)
from result_portal.utils.validation import normalize_semester

logger = get_logger("students")

router = APIRouter(prefix="/api/students", tags=["Students"])

staff_only = require_role(["teacher", "admin"])

DUPLICATE_STUDENT = "Student with this Roll or Registration No already exists"


@router.post("", response_model=StudentMessage, status_code=status.HTTP_201_CREATED)
def add_student(
    student: StudentCreate,
    current_user: Dict = Depends(staff_only),
    db: Database = Depends(get_db),
):
    ensure_same_department(current_user, student.department, "add students")

    if db[STUDENTS].find_one({"$or": [{"roll": student.roll}, {"registration_no": student.registration_no}]}):
        raise HTTPException(status_code=400, detail=DUPLICATE_STUDENT)

    now = utcnow()
    doc = {**student.model_dump(), "created_at": now, "updated_at": now}
    doc["_id"] = db[STUDENTS].insert_one(doc).inserted_id
    logger.info("Student %s added to %s", student.roll, student.department)

    return {"message": "Student added successfully", "student": student_out(doc)}


@router.get("", response_model=StudentListResponse)
def get_students(
    page: Optional[int] = Query(None),
    limit: Optional[int] = Query(None),
    department: Optional[str] = None,
    semester: Optional[str] = None,
    session: Optional[str] = None,
    search: Optional[str] = None,
    sort_by: Optional[str] = None,
    sort_order: Optional[str] = None,
    current_user: Optional[Dict] = Depends(get_optional_user),
    db: Database = Depends(get_db),
):
    """
    Public listing (used by the result lookup page). Teachers only ever see
    their own department.
    """
    page, limit, skip = paging(page, limit)

    query: Dict = {}
    if department:
        query["department"] = department
    if semester:
        query["semester"] = normalize_semester(semester)
    if session:
        query["session"] = session
    if search:
        pattern = {"$regex": re.escape(search), "$options": "i"}
        query["$or"] = [{"name": pattern}, {"roll": pattern}, {"registration_no": pattern}]

    if is_teacher(current_user) and current_user.get("department"):
        query["department"] = current_user["department"]

    field, direction = sort_spec(sort_by, sort_order)
    cursor = db[STUDENTS].find(query).sort(field, direction).skip(skip).limit(limit)
    students = [student_out(doc) for doc in cursor]
    total = db[STUDENTS].count_documents(query)

    return {"students": students, "pagination": pagination(page, limit, total)}


@router.get("/{student_id}", response_model=StudentResponse)
def get_student(student_id: str, db: Database = Depends(get_db)):
    doc = db[STUDENTS].find_one({"_id": parse_object_id(student_id, "student")})
    if not doc:
        raise HTTPException(status_code=404, detail="Student not found")
    return student_out(doc)


@router.put("/{student_id}", response_model=StudentMessage)
def update_student(
    student_id: str,
    student: StudentCreate,
    current_user: Dict = Depends(staff_only),
    db: Database = Depends(get_db),
):
    oid = parse_object_id(student_id, "student")
    existing = db[STUDENTS].find_one({"_id": oid})
    if not existing:
        raise HTTPException(status_code=404, detail="Student not found")

    ensure_same_department(current_user, existing.get("department"), "update students")
    # Moving a student out of the teacher's department is not allowed either
    ensure_same_department(current_user, student.department, "update students")

    clash = db[STUDENTS].find_one({
        "_id": {"$ne": oid},
        "$or": [{"roll": student.roll}, {"registration_no": student.registration_no}],
    })
    if clash:
        raise HTTPException(status_code=400, detail=DUPLICATE_STUDENT)

    updated = db[STUDENTS].find_one_and_update(
        {"_id": oid},
        {"$set": {**student.model_dump(), "updated_at": utcnow()}},
        return_document=ReturnDocument.AFTER,
    )
    return {"message": "Student updated", "student": student_out(updated)}


@router.delete("/{student_id}")
def delete_student(
    student_id: str,
    current_user: Dict = Depends(staff_only),
    db: Database = Depends(get_db),
):
    oid = parse_object_id(student_id, "student")
    existing = db[STUDENTS].find_one({"_id": oid})
    if not existing:
        raise HTTPException(status_code=404, detail="Student not found")

    ensure_same_department(current_user, existing.get("department"), "delete students")

    db[STUDENTS].delete_one({"_id": oid})
    removed = db[RESULTS].delete_many({"student_id": oid}).deleted_count
    logger.info("Student %s deleted with %d result(s)", existing.get("roll"), removed)

    return {"message": "Student and associated results deleted"}


@router.post("/cleanup", dependencies=[Depends(require_role(["admin"]))])
def cleanup_orphans(db: Database = Depends(get_db)):
    """
    Remove results whose student record no longer exists.
    """
    deleted = delete_orphan_results(db)
    return {"message": f"Cleanup successful. Deleted {deleted} orphaned results.", "deleted": deleted}
