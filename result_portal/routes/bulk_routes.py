from typing import Dict

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from pymongo.database import Database

from result_portal.core.config import CONFIG
from result_portal.core.database import get_db
from result_portal.core.security import require_role
from result_portal.models.result_schemas import BulkResultRequest, BulkResultStats
from result_portal.models.student_schemas import StudentUploadReport
from result_portal.services.bulk_results import import_results, parse_results_csv
from result_portal.services.student_ingest import process_students_csv

router = APIRouter(prefix="/api", tags=["Bulk Import"])

staff_only = require_role(["teacher", "admin"])


async def _read_csv(file: UploadFile) -> bytes:
    if not file.filename or not file.filename.lower().endswith(".csv"):
        raise HTTPException(status_code=400, detail="Only CSV files are allowed.")
    content = await file.read()
    if not content.strip():
        raise HTTPException(status_code=400, detail="File is empty")
    return content


@router.post("/bulk-results")
def add_bulk_results(
    payload: BulkResultRequest,
    current_user: Dict = Depends(staff_only),
    db: Database = Depends(get_db),
):
    """
    Create or replace many results at once, one item per (roll, semester).
    """
    if not payload.results:
        raise HTTPException(status_code=400, detail="No results provided")

    items = [item.model_dump() for item in payload.results]
    stats = import_results(db, items, current_user, CONFIG.DEFAULT_SUBJECT_CREDITS)
    return {"message": "Bulk processing complete", "stats": BulkResultStats(**stats)}


@router.post("/upload/students", response_model=StudentUploadReport)
async def upload_students(
    file: UploadFile = File(...),
    current_user: Dict = Depends(staff_only),
    db: Database = Depends(get_db),
):
    """
    Endpoint for Admin/Teachers to bulk create students from a CSV file.
    """
    content = await _read_csv(file)
    return process_students_csv(db, content, current_user)


@router.post("/upload/results")
async def upload_results(
    file: UploadFile = File(...),
    current_user: Dict = Depends(staff_only),
    db: Database = Depends(get_db),
):
    """
    CSV flavour of /bulk-results: one row per subject.
    """
    content = await _read_csv(file)
    items, parse_errors = parse_results_csv(content)

    stats = import_results(db, items, current_user, CONFIG.DEFAULT_SUBJECT_CREDITS)
    stats["errors"] = parse_errors + stats["errors"]
    stats["failed"] += len(parse_errors)
    return {"message": "Bulk processing complete", "stats": BulkResultStats(**stats)}
