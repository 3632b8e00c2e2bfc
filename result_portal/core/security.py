# result_portal/core/security.py
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from result_portal.core.config import CONFIG

ACCESS_TOKEN_EXPIRE_MINUTES = CONFIG.ACCESS_TOKEN_EXPIRE_MINUTES

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
bearer_scheme = HTTPBearer(auto_error=False)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def _secret() -> str:
    if not CONFIG.JWT_SECRET:
        raise RuntimeError("JWT secret is not configured; call validate_config() first")
    return CONFIG.JWT_SECRET


def create_access_token(data: Dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = dict(data)
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode["exp"] = expire
    return jwt.encode(to_encode, _secret(), algorithm=CONFIG.JWT_ALGORITHM)


def decode_access_token(token: str) -> Dict:
    """Raises jose errors on bad or expired tokens."""
    return jwt.decode(token, _secret(), algorithms=[CONFIG.JWT_ALGORITHM])


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Dict:
    """
    The claims of a valid bearer token.
    Teacher tokens carry the department used for the per-department checks.
    """
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise _unauthorized("Access Denied. No token provided.")

    try:
        payload = decode_access_token(credentials.credentials)
    except ExpiredSignatureError:
        raise _unauthorized("Token expired. Please login again.")
    except JWTError:
        raise _unauthorized("Invalid token. Please login again.")

    if not payload.get("sub") or not payload.get("role"):
        raise _unauthorized("Invalid token. Please login again.")
    return payload


def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[Dict]:
    if credentials is None:
        return None
    try:
        return decode_access_token(credentials.credentials)
    except JWTError:
        return None


def require_role(roles: List[str]):
    def checker(current_user: Dict = Depends(get_current_user)) -> Dict:
        if current_user.get("role") not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Access Restricted. " + " and ".join(r.capitalize() + "s" for r in roles) + " only.",
            )
        return current_user

    return checker


def is_teacher(user: Optional[Dict]) -> bool:
    return bool(user) and user.get("role") == "teacher"


def ensure_same_department(user: Dict, department: Optional[str], action: str) -> None:
    """Teachers may only touch records of their own department; admins may touch all."""
    if is_teacher(user) and user.get("department") != department:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"You can only {action} in your department",
        )
