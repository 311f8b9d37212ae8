"""
Seed script for the HydroWatch mock DB or Firestore.

Usage:
  - Dry run (default): python scripts/seed_db.py
  - Apply to configured DB: python scripts/seed_db.py --apply
  - Force mock DB even if Firebase is configured: python scripts/seed_db.py --apply --force-mock
  - Also provision an administrator: add --admin-email you@example.org --admin-password secret

Behavior:
  - Loads `db_seed.json` from the working directory.
  - Writes each collection/document through `hydrowatch.config.firebase.get_db()`,
    which returns the mock DB or real Firestore depending on settings.
  - Administrators are created through the auth service so their passwords are
    hashed; falls back to ADMIN_EMAIL / ADMIN_PASSWORD from the environment.
"""

import argparse
import json
import logging
import os
from typing import Any

from hydrowatch.core.logging_config import configure_logging
from hydrowatch.core.settings import settings

logger = logging.getLogger("hydrowatch.seed")


def load_seed(path: str) -> dict:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def write_to_db(db: Any, seed: dict, apply: bool = False) -> int:
    """Write {collection: {doc_id: data}}; returns the number of documents written."""
    written = 0
    for collection, docs in seed.items():
        for doc_id, data in docs.items():
            logger.info(f"Preparing: {collection}/{doc_id}")
            if not apply:
                continue
            db.collection(collection).document(doc_id).set(data)
            written += 1
    return written


def main():
    parser = argparse.ArgumentParser(description="Seed the HydroWatch database")
    parser.add_argument("--apply", action="store_true", help="Write seed to the DB instead of dry-run")
    parser.add_argument("--force-mock", action="store_true", help="Force use of mock DB even if Firebase is configured")
    parser.add_argument("--seed-file", default=os.path.join(os.getcwd(), "db_seed.json"))
    parser.add_argument("--admin-email", default=settings.ADMIN_EMAIL)
    parser.add_argument("--admin-password", default=settings.ADMIN_PASSWORD)
    parser.add_argument("--admin-name", default=settings.ADMIN_NAME)
    args = parser.parse_args()

    configure_logging(settings.LOG_LEVEL)

    if not os.path.exists(args.seed_file):
        logger.error(f"Seed file not found: {args.seed_file}")
        raise SystemExit(1)

    if args.force_mock:
        logger.info("Forcing mock DB usage for this run.")
        # Settings are read once at import, so flipping the attribute is enough
        settings.USE_MOCK_DB = True

    # Imported after --force-mock so the DB choice sees the override
    from hydrowatch.config.firebase import get_db
    from hydrowatch.services.auth_service import get_auth_service

    written = write_to_db(get_db(), load_seed(args.seed_file), apply=args.apply)

    if args.apply and args.admin_email and args.admin_password:
        admin = get_auth_service().ensure_admin(args.admin_email, args.admin_password, args.admin_name)
        logger.info(f"Administrator ready: {admin['email']} ({admin['id']})")

    if args.apply:
        logger.info(f"Seeding completed: {written} document(s) written.")
    else:
        logger.info("Dry run complete. Re-run with --apply to write to DB.")


if __name__ == "__main__":
    main()
