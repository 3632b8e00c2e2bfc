# result_portal/utils/helpers.py
import math
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import HTTPException


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_object_id(value: str, kind: str = "record") -> ObjectId:
    """
    Accepts a 24-char hex id; anything else is a 400.
    """
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise HTTPException(status_code=400, detail=f"Invalid {kind} ID")


def student_out(doc: Dict[str, Any]) -> Dict[str, Any]:
    out = {k: v for k, v in doc.items() if k != "_id"}
    out["id"] = str(doc["_id"])
    return out


def student_summary(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not doc:
        return None
    return {
        "id": str(doc["_id"]),
        "name": doc.get("name", ""),
        "roll": doc.get("roll", ""),
        "registration_no": doc.get("registration_no", ""),
        "department": doc.get("department", ""),
        "session": doc.get("session"),
    }


def result_out(doc: Dict[str, Any], student: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    out = {k: v for k, v in doc.items() if k != "_id"}
    out["id"] = str(doc["_id"])
    out["student_id"] = str(doc["student_id"])
    out["student"] = student_summary(student)
    return out


def paging(page: Optional[int], limit: Optional[int]) -> tuple[int, int, int]:
    """Returns (page, limit, skip); non-positive values fall back to 1 and 50."""
    page = page if page and page > 0 else 1
    limit = limit if limit and limit > 0 else 50
    return page, limit, (page - 1) * limit


def pagination(page: int, limit: int, total: int) -> Dict[str, Any]:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "total_pages": math.ceil(total / limit) if limit else 0,
        "has_next": page * limit < total,
        "has_prev": page > 1,
    }


def sort_spec(sort_by: Optional[str], sort_order: Optional[str]) -> tuple[str, int]:
    return sort_by or "created_at", 1 if sort_order == "asc" else -1
