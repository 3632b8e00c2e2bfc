from enum import Enum
from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class RoleEnum(str, Enum):
    admin = "admin"
    teacher = "teacher"


class LoginRequest(BaseModel):
    # Admins log in with their username, teachers with their email.
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)
    role: RoleEnum = RoleEnum.admin


class TeacherCreate(BaseModel):
    name: str = Field(min_length=2, max_length=100)
    email: EmailStr
    password: str = Field(min_length=6)
    department: str = Field(min_length=1)
    designation: str = "Lecturer"


class UserResponse(BaseModel):
    id: str
    role: RoleEnum
    username: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    department: Optional[str] = None
    designation: Optional[str] = None


class Token(BaseModel):
    message: str
    token: str
    token_type: str = "bearer"
    user: UserResponse


class TeacherMessage(BaseModel):
    message: str
    teacher: UserResponse


class AdminSMTPSettings(BaseModel):
    sender_email: str
    app_password: str
