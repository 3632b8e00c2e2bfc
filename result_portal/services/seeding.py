from pymongo.database import Database

from result_portal.core.database import ADMINS
from result_portal.core.logger import get_logger
from result_portal.core.security import get_password_hash
from result_portal.utils.helpers import utcnow

logger = get_logger("seeding")


def seed_admin(db: Database, username: str, password: str) -> bool:
    """Create the admin account once. Returns False if it already exists."""
    if db[ADMINS].find_one({"username": username}):
        logger.info("Admin '%s' already exists, nothing to seed", username)
        return False

    db[ADMINS].insert_one({
        "username": username,
        "password": get_password_hash(password),
        "created_at": utcnow(),
    })
    logger.info("Admin '%s' created", username)
    return True
