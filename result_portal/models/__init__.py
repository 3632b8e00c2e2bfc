# result_portal/models/__init__.py

from .result_schemas import ResultStatus, SubjectIn
from .student_schemas import StudentCreate
from .user_schemas import RoleEnum

__all__ = [
    "ResultStatus",
    "RoleEnum",
    "StudentCreate",
    "SubjectIn",
]
