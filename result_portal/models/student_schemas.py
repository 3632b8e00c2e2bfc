from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, field_validator

from result_portal.models.result_schemas import Pagination, check_semester_label
from result_portal.utils.validation import (
    capitalize_words,
    is_valid_email,
    is_valid_phone,
    is_valid_roll,
    is_valid_session,
    sanitize,
)


class StudentCreate(BaseModel):
    name: str
    roll: str
    registration_no: str
    department: str
    semester: str
    session: str
    email: Optional[str] = None
    phone: Optional[str] = None

    @field_validator("*", mode="before")
    @classmethod
    def clean(cls, v):
        return sanitize(v)

    @field_validator("name")
    @classmethod
    def check_name(cls, v: str) -> str:
        if len(v) < 2 or len(v) > 100:
            raise ValueError("Name must be 2-100 characters")
        return capitalize_words(v)

    @field_validator("roll")
    @classmethod
    def check_roll(cls, v: str) -> str:
        if not is_valid_roll(v):
            raise ValueError("Roll number is required and must be 2-20 alphanumeric characters")
        return v

    @field_validator("registration_no", "department")
    @classmethod
    def check_required(cls, v: str) -> str:
        if len(v) < 2:
            raise ValueError("Field is required")
        return v

    @field_validator("semester")
    @classmethod
    def check_semester(cls, v: str) -> str:
        return check_semester_label(v)

    @field_validator("session")
    @classmethod
    def check_session(cls, v: str) -> str:
        if not is_valid_session(v):
            raise ValueError("Invalid session format (use e.g. 2024-2025)")
        return v

    @field_validator("email")
    @classmethod
    def check_email(cls, v: Optional[str]) -> Optional[str]:
        if not v:
            return None
        if not is_valid_email(v):
            raise ValueError("Invalid email format")
        return v.lower()

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v: Optional[str]) -> Optional[str]:
        if not v:
            return None
        if not is_valid_phone(v):
            raise ValueError("Phone must be 11 digits")
        return v


class StudentResponse(BaseModel):
    id: str
    name: str
    roll: str
    registration_no: str
    department: str
    semester: str
    session: str
    email: Optional[str] = None
    phone: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class StudentListResponse(BaseModel):
    students: List[StudentResponse]
    pagination: Pagination


class StudentMessage(BaseModel):
    message: str
    student: StudentResponse


class StudentUploadReport(BaseModel):
    message: str
    success_count: int
    duplicate_count: int
    errors: List[str]
