from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from result_portal.utils.validation import is_valid_semester, normalize_semester, sanitize

SEMESTER_FORMAT_ERROR = "Invalid semester format (use 1st, 2nd, 3rd, etc.)"


def check_semester_label(value):
    """Shared by every schema that carries a semester; returns the stored form."""
    value = normalize_semester(value)
    if not isinstance(value, str) or not is_valid_semester(value):
        raise ValueError(SEMESTER_FORMAT_ERROR)
    return value


class ResultStatus(str, Enum):
    passed = "Passed"
    referred = "Referred"
    # Allowed in storage, never produced by the grading engine.
    failed = "Failed"


class SubjectIn(BaseModel):
    subject_name: str = Field(max_length=120)
    marks: float = Field(ge=0, le=100)
    credits: Optional[int] = Field(default=None, ge=1, le=6)

    @field_validator("subject_name", mode="before")
    @classmethod
    def clean_name(cls, v):
        v = sanitize(v)
        if isinstance(v, str) and len(v) < 2:
            raise ValueError("Subject name is required")
        return v


class SubjectOut(BaseModel):
    subject_name: str
    marks: float
    credits: Optional[int] = None
    grade: Optional[str] = None
    point: Optional[float] = None


class ResultUpdate(BaseModel):
    semester: str
    subjects: List[SubjectIn] = Field(min_length=1)

    @field_validator("semester", mode="before")
    @classmethod
    def check_semester(cls, v):
        return check_semester_label(v)


class ResultCreate(ResultUpdate):
    student_id: str
    send_notification: bool = False


class BulkResultItem(BaseModel):
    roll: str = Field(min_length=1)
    semester: str
    subjects: List[SubjectIn] = Field(min_length=1)

    @field_validator("roll", mode="before")
    @classmethod
    def strip(cls, v):
        return sanitize(str(v)) if v is not None else v

    @field_validator("semester", mode="before")
    @classmethod
    def check_semester(cls, v):
        return check_semester_label(v)


class BulkResultRequest(BaseModel):
    results: List[BulkResultItem]


class BulkResultStats(BaseModel):
    success: int = 0
    failed: int = 0
    errors: List[str] = []


class StudentSummary(BaseModel):
    id: str
    name: str
    roll: str
    registration_no: str
    department: str
    session: Optional[str] = None


class ResultResponse(BaseModel):
    id: str
    student_id: str
    student: Optional[StudentSummary] = None
    semester: str
    subjects: List[SubjectOut]
    cgpa: float
    status: ResultStatus
    failed_subjects: List[str] = []
    total_credits: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool


class ResultListResponse(BaseModel):
    results: List[ResultResponse]
    pagination: Pagination


class ResultMessage(BaseModel):
    message: str
    result: ResultResponse
