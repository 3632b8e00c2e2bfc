# result_portal/utils/validation.py
"""
Input checks shared by the request schemas and the CSV importers.
Everything here is a plain predicate or a string cleaner; raising is left to
the pydantic validators that call them.
"""
import math
import re
from typing import Any

PATTERNS = {
    "email": re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$"),
    "phone": re.compile(r"^[0-9]{11}$"),
    "roll": re.compile(r"^[A-Za-z0-9\-]+$"),
    "semester": re.compile(r"^(1st|2nd|3rd|4th|5th|6th|7th|8th)$", re.IGNORECASE),
    "session": re.compile(r"^\d{4}-\d{4}$"),
}

_WORD_START = re.compile(r"\b\w")


def sanitize(value: Any) -> Any:
    if not isinstance(value, str):
        return value
    return value.strip().replace("<", "").replace(">", "")


def sanitize_object(obj: Any) -> Any:
    """Apply `sanitize` to every string inside nested dicts/lists."""
    if isinstance(obj, dict):
        return {key: sanitize_object(value) for key, value in obj.items()}
    if isinstance(obj, list):
        return [sanitize_object(item) for item in obj]
    return sanitize(obj)


def capitalize_words(name: str) -> str:
    return _WORD_START.sub(lambda m: m.group(0).upper(), name)


def _to_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    try:
        num = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(num):
        return None
    return num


def is_valid_email(email: str | None) -> bool:
    if not email:
        return True  # optional
    return bool(PATTERNS["email"].match(email))


def is_valid_phone(phone: str | None) -> bool:
    if not phone:
        return True  # optional
    return bool(PATTERNS["phone"].match(phone))


def is_valid_roll(roll: str | None) -> bool:
    if not roll:
        return False
    return bool(PATTERNS["roll"].match(roll)) and 2 <= len(roll) <= 20


def is_valid_semester(semester: str | None) -> bool:
    if not semester:
        return False
    return bool(PATTERNS["semester"].match(semester))


def normalize_semester(semester: Any) -> Any:
    """Canonical stored form of a semester label: stripped and lowercased."""
    semester = sanitize(semester)
    return semester.lower() if isinstance(semester, str) else semester


def is_valid_session(session: str | None) -> bool:
    """Sessions look like 2024-2025 and span exactly one year."""
    if not session or not PATTERNS["session"].match(session):
        return False
    start, end = (int(part) for part in session.split("-"))
    return end == start + 1


def is_valid_marks(marks: Any) -> bool:
    num = _to_number(marks)
    return num is not None and 0 <= num <= 100


def is_valid_cgpa(cgpa: Any) -> bool:
    num = _to_number(cgpa)
    return num is not None and 0 <= num <= 4


def is_valid_credits(credits: Any) -> bool:
    """Credits are whole numbers from 1 to 6."""
    num = _to_number(credits)
    return num is not None and num.is_integer() and 1 <= num <= 6
