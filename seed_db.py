import argparse
import os

from result_portal.core.config import CONFIG, validate_config
from result_portal.core.database import db, ensure_indexes
from result_portal.core.logger import set_level
from result_portal.services.seeding import seed_admin


def main():
    parser = argparse.ArgumentParser(description="Create indexes and the first admin account.")
    parser.add_argument("--username", default=os.getenv("RESULT_PORTAL_ADMIN_USERNAME", "admin"))
    parser.add_argument("--password", default=os.getenv("RESULT_PORTAL_ADMIN_PASSWORD"))
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args()

    if not args.password:
        parser.error("an admin password is required (--password or RESULT_PORTAL_ADMIN_PASSWORD)")

    set_level(args.log_level)
    validate_config(CONFIG)

    print(f"Ensuring indexes on {CONFIG.MONGODB_DB}...")
    ensure_indexes(db)

    if seed_admin(db, args.username, args.password):
        print(f"Admin '{args.username}' created.")
    else:
        print(f"Admin '{args.username}' already exists.")


if __name__ == "__main__":
    main()
