from datetime import timedelta
from typing import Dict

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import APIRouter, Depends, HTTPException, status
from pymongo.database import Database

from result_portal.core.database import ADMINS, SETTINGS, TEACHERS, get_db
from result_portal.core.logger import get_logger
from result_portal.core.rate_limit import login_rate_limit
from result_portal.core.security import (
    ACCESS_TOKEN_EXPIRE_MINUTES,
    create_access_token,
    get_password_hash,
    require_role,
    verify_password,
)
from result_portal.models.user_schemas import (
    AdminSMTPSettings,
    LoginRequest,
    RoleEnum,
    TeacherCreate,
    TeacherMessage,
    Token,
    UserResponse,
)
from result_portal.services.notifications import SMTP_CONFIG_ID
from result_portal.utils.helpers import utcnow

logger = get_logger("auth")

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


def _teacher_response(doc: Dict) -> UserResponse:
    return UserResponse(
        id=str(doc["_id"]),
        role=RoleEnum.teacher,
        name=doc.get("name"),
        email=doc.get("email"),
        department=doc.get("department"),
        designation=doc.get("designation"),
    )


def _admin_response(doc: Dict) -> UserResponse:
    return UserResponse(id=str(doc["_id"]), role=RoleEnum.admin, username=doc.get("username"))


@router.post("/login", response_model=Token, dependencies=[Depends(login_rate_limit)])
def login(req: LoginRequest, db: Database = Depends(get_db)):
    username = req.username.strip()

    if req.role == RoleEnum.teacher:
        account = db[TEACHERS].find_one({"email": username.lower()})
        if not account:
            raise HTTPException(status_code=404, detail="Teacher not found")
        claims = {
            "sub": str(account["_id"]),
            "role": RoleEnum.teacher.value,
            "email": account["email"],
            "department": account["department"],
        }
        user = _teacher_response(account)
    else:
        account = db[ADMINS].find_one({"username": username})
        if not account:
            raise HTTPException(status_code=404, detail="Admin not found")
        claims = {"sub": str(account["_id"]), "role": RoleEnum.admin.value, "username": account["username"]}
        user = _admin_response(account)

    if not verify_password(req.password, account["password"]):
        logger.warning("Failed %s login for '%s'", req.role.value, username)
        raise HTTPException(status_code=400, detail="Invalid credentials")

    token = create_access_token(claims, expires_delta=timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    return Token(message="Login successful", token=token, user=user)


@router.post(
    "/register-teacher",
    response_model=TeacherMessage,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_role(["admin"]))],
)
def register_teacher(teacher: TeacherCreate, db: Database = Depends(get_db)):
    """
    Admin endpoint to create a teacher account bound to one department.
    """
    email = teacher.email.lower()
    if db[TEACHERS].find_one({"email": email}):
        raise HTTPException(status_code=400, detail="Teacher already exists with this email")

    doc = {
        "name": teacher.name.strip(),
        "email": email,
        "password": get_password_hash(teacher.password),
        "department": teacher.department.strip(),
        "designation": teacher.designation or "Lecturer",
        "created_at": utcnow(),
    }
    doc["_id"] = db[TEACHERS].insert_one(doc).inserted_id
    logger.info("Teacher %s registered for %s", email, doc["department"])

    return TeacherMessage(message="Teacher registered successfully", teacher=_teacher_response(doc))


@router.get("/me", response_model=UserResponse)
def get_me(
    current_user: Dict = Depends(require_role(["teacher", "admin"])),
    db: Database = Depends(get_db),
):
    collection = ADMINS if current_user["role"] == RoleEnum.admin.value else TEACHERS
    try:
        account = db[collection].find_one({"_id": ObjectId(current_user["sub"])})
    except InvalidId:
        account = None

    if not account:
        label = "Admin" if collection == ADMINS else "Teacher"
        raise HTTPException(status_code=404, detail=f"{label} not found")

    if collection == ADMINS:
        return _admin_response(account)
    return _teacher_response(account)


@router.get("/admin/settings/smtp", response_model=AdminSMTPSettings, dependencies=[Depends(require_role(["admin"]))])
def get_smtp_settings(db: Database = Depends(get_db)):
    """
    Fetch the sender account used for result notification emails.
    """
    config = db[SETTINGS].find_one({"_id": SMTP_CONFIG_ID})
    if not config:
        return AdminSMTPSettings(sender_email="", app_password="")
    return AdminSMTPSettings(
        sender_email=config.get("sender_email", ""),
        app_password=config.get("app_password", ""),
    )


@router.put("/admin/settings/smtp", response_model=AdminSMTPSettings, dependencies=[Depends(require_role(["admin"]))])
def update_smtp_settings(settings: AdminSMTPSettings, db: Database = Depends(get_db)):
    db[SETTINGS].update_one(
        {"_id": SMTP_CONFIG_ID},
        {"$set": {
            "sender_email": settings.sender_email,
            "app_password": settings.app_password,
        }},
        upsert=True,
    )
    return settings
