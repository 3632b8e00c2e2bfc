from typing import Any, Dict, Optional

from fastapi_mail import ConnectionConfig, FastMail, MessageSchema, MessageType
from pymongo.database import Database

from result_portal.core.config import CONFIG
from result_portal.core.database import SETTINGS
from result_portal.core.logger import get_logger

logger = get_logger("notifications")

SMTP_CONFIG_ID = "smtp_config"


def get_smtp_config(db: Database) -> Optional[Dict[str, str]]:
    """The admin-managed sender account, or None when it is incomplete."""
    config = db[SETTINGS].find_one({"_id": SMTP_CONFIG_ID})
    if not config or not config.get("sender_email") or not config.get("app_password"):
        return None
    return {"sender_email": config["sender_email"], "app_password": config["app_password"]}


def build_connection(smtp_config: Dict[str, str]) -> ConnectionConfig:
    return ConnectionConfig(
        MAIL_USERNAME=smtp_config["sender_email"],
        MAIL_PASSWORD=smtp_config["app_password"],
        MAIL_FROM=smtp_config["sender_email"],
        MAIL_FROM_NAME="Result Management System",
        MAIL_PORT=CONFIG.MAIL_PORT,
        MAIL_SERVER=CONFIG.MAIL_SERVER,
        MAIL_STARTTLS=True,
        MAIL_SSL_TLS=False,
        USE_CREDENTIALS=True,
        VALIDATE_CERTS=True,
    )


def build_result_email(student_name: str, result: Dict[str, Any]) -> str:
    total_marks = sum(sub.get("marks", 0) for sub in result.get("subjects", []))
    total_marks = int(total_marks) if float(total_marks).is_integer() else round(total_marks, 2)
    return f"""
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
        <h2 style="color: #2563eb; text-align: center;">Result Published</h2>
        <p>Dear <strong>{student_name}</strong>,</p>
        <p>Your result for <strong>{result.get("semester")}</strong> semester has been published.</p>
        <div style="background-color: #f3f4f6; padding: 15px; border-radius: 8px; margin: 20px 0;">
            <h3 style="margin-top: 0;">Summary</h3>
            <p><strong>CGPA:</strong> {result.get("cgpa", 0):.2f}</p>
            <p><strong>Status:</strong> {result.get("status")}</p>
            <p><strong>Total Marks:</strong> {total_marks}</p>
        </div>
        <p>Please visit the result portal to view the full detailed transcript.</p>
        <p><a href="{CONFIG.PORTAL_URL}">View Full Result</a></p>
        <p style="font-size: 12px; color: #6b7280;">This is an automated email. Please do not reply.</p>
    </div>
    """


async def send_result_email(
    db: Database,
    student_email: str,
    student_name: str,
    result: Dict[str, Any],
) -> bool:
    """
    Email a published result to the student.
    Never raises: a missing SMTP setup or a delivery error is logged and
    reported as False, the stored result is unaffected either way.
    """
    smtp_config = get_smtp_config(db)
    if smtp_config is None:
        logger.warning("SMTP not configured; result email to %s skipped", student_email)
        return False

    message = MessageSchema(
        subject="Your Result Has Been Published",
        recipients=[student_email],
        body=build_result_email(student_name, result),
        subtype=MessageType.html,
    )

    try:
        await FastMail(build_connection(smtp_config)).send_message(message)
    except Exception as e:
        logger.error("Failed to send result email to %s: %s", student_email, e)
        return False

    logger.info("Result email sent to %s", student_email)
    return True
