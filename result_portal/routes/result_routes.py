from typing import Dict, List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from result_portal.core.config import CONFIG
from result_portal.core.database import RESULTS, STUDENTS, get_db
from result_portal.core.logger import get_logger
from result_portal.core.security import ensure_same_department, is_teacher, require_role
from result_portal.models.result_schemas import (
    ResultCreate,
    ResultListResponse,
    ResultMessage,
    ResultResponse,
    ResultStatus,
    ResultUpdate,
)
from result_portal.services.notifications import send_result_email
from result_portal.services.result_service import (
    attach_students,
    department_student_ids,
    grade_submission,
    new_result_document,
)
from result_portal.utils.helpers import (
    pagination,
    paging,
    parse_object_id,
    result_out,
    sort_spec,
    utcnow,
)
from result_portal.utils.validation import is_valid_cgpa, normalize_semester

logger = get_logger("results")

router = APIRouter(prefix="/api/results", tags=["Results"])

staff_only = require_role(["teacher", "admin"])

DUPLICATE_RESULT = "Result already exists for this student in this semester"


def _load_result_with_student(db: Database, result_id: str):
    result = db[RESULTS].find_one({"_id": parse_object_id(result_id, "result")})
    if not result:
        raise HTTPException(status_code=404, detail="Result not found")
    student = db[STUDENTS].find_one({"_id": result["student_id"]})
    return result, student


@router.post("", response_model=ResultMessage, status_code=status.HTTP_201_CREATED)
def add_result(
    payload: ResultCreate,
    background_tasks: BackgroundTasks,
    current_user: Dict = Depends(staff_only),
    db: Database = Depends(get_db),
):
    student_oid = parse_object_id(payload.student_id, "student")
    student = db[STUDENTS].find_one({"_id": student_oid})
    if not student:
        raise HTTPException(status_code=404, detail="Student not found")

    ensure_same_department(current_user, student.get("department"), "add results for students")

    subjects = [s.model_dump() for s in payload.subjects]
    graded = grade_submission(subjects, CONFIG.DEFAULT_SUBJECT_CREDITS)
    doc = new_result_document(student_oid, payload.semester, graded)

    try:
        doc["_id"] = db[RESULTS].insert_one(doc).inserted_id
    except DuplicateKeyError:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=DUPLICATE_RESULT)

    logger.info(
        "Result for %s (%s) saved: cgpa=%.2f status=%s",
        student.get("roll"), payload.semester, doc["cgpa"], doc["status"],
    )

    if payload.send_notification and student.get("email"):
        background_tasks.add_task(send_result_email, db, student["email"], student.get("name", ""), doc)

    return {"message": "Result added successfully", "result": result_out(doc, student)}


@router.get("", response_model=ResultListResponse)
def get_results(
    page: Optional[int] = Query(None),
    limit: Optional[int] = Query(None),
    semester: Optional[str] = None,
    status_filter: Optional[ResultStatus] = Query(None, alias="status"),
    min_cgpa: Optional[float] = None,
    max_cgpa: Optional[float] = None,
    sort_by: Optional[str] = None,
    sort_order: Optional[str] = None,
    current_user: Dict = Depends(staff_only),
    db: Database = Depends(get_db),
):
    page, limit, skip = paging(page, limit)

    query: Dict = {}
    if semester:
        query["semester"] = normalize_semester(semester)
    if status_filter:
        query["status"] = status_filter.value
    if min_cgpa is not None or max_cgpa is not None:
        for bound in (min_cgpa, max_cgpa):
            if bound is not None and not is_valid_cgpa(bound):
                raise HTTPException(status_code=400, detail="CGPA must be between 0 and 4")
        cgpa_range = {}
        if min_cgpa is not None:
            cgpa_range["$gte"] = min_cgpa
        if max_cgpa is not None:
            cgpa_range["$lte"] = max_cgpa
        query["cgpa"] = cgpa_range

    if is_teacher(current_user) and current_user.get("department"):
        query["student_id"] = {"$in": department_student_ids(db, current_user["department"])}

    field, direction = sort_spec(sort_by, sort_order)
    cursor = db[RESULTS].find(query).sort(field, direction).skip(skip).limit(limit)
    results = attach_students(db, cursor)
    total = db[RESULTS].count_documents(query)

    return {"results": results, "pagination": pagination(page, limit, total)}


@router.get("/search/{roll}", response_model=List[ResultResponse])
def search_result(roll: str, db: Database = Depends(get_db)):
    """
    Public lookup so students can find their own results by roll number.
    """
    student = db[STUDENTS].find_one({"roll": roll.strip()})
    if not student:
        raise HTTPException(status_code=404, detail="Student not found")

    docs = db[RESULTS].find({"student_id": student["_id"]}).sort("semester", 1)
    return [result_out(doc, student) for doc in docs]


@router.get("/{result_id}", response_model=ResultResponse, dependencies=[Depends(staff_only)])
def get_result(result_id: str, db: Database = Depends(get_db)):
    result, student = _load_result_with_student(db, result_id)
    return result_out(result, student)


@router.put("/{result_id}", response_model=ResultMessage)
def update_result(
    result_id: str,
    payload: ResultUpdate,
    current_user: Dict = Depends(staff_only),
    db: Database = Depends(get_db),
):
    result, student = _load_result_with_student(db, result_id)
    ensure_same_department(current_user, (student or {}).get("department"), "update results for students")

    subjects = [s.model_dump() for s in payload.subjects]
    graded = grade_submission(subjects, CONFIG.DEFAULT_SUBJECT_CREDITS)
    changes = {"semester": payload.semester, **graded, "updated_at": utcnow()}

    try:
        db[RESULTS].update_one({"_id": result["_id"]}, {"$set": changes})
    except DuplicateKeyError:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=DUPLICATE_RESULT)

    result.update(changes)
    logger.info("Result %s updated: cgpa=%.2f status=%s", result_id, result["cgpa"], result["status"])
    return {"message": "Result updated successfully", "result": result_out(result, student)}


@router.delete("/{result_id}")
def delete_result(
    result_id: str,
    current_user: Dict = Depends(staff_only),
    db: Database = Depends(get_db),
):
    result, student = _load_result_with_student(db, result_id)
    ensure_same_department(current_user, (student or {}).get("department"), "delete results for students")

    db[RESULTS].delete_one({"_id": result["_id"]})
    logger.info("Result %s deleted", result_id)
    return {"message": "Result deleted successfully"}
