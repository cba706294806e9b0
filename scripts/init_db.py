"""
Create the Kinship schema in the configured database and optionally seed it.

Reads DATABASE_URL from the environment (or .env) unless --database-url is given.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from kinship.config import get_settings
from kinship.db import PostgresDbClient
from kinship.seed import seed_sample_data

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Initialize the Kinship database")
    parser.add_argument(
        "--database-url",
        type=str,
        default=None,
        help="SQLAlchemy URL (defaults to DATABASE_URL)",
    )
    parser.add_argument(
        "--seed",
        action="store_true",
        help="Load the sample users, prompts and conversations into an empty database",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO)

    database_url = args.database_url or get_settings().database_url
    if not database_url:
        logger.error("No database URL: set DATABASE_URL or pass --database-url")
        return 1

    db = PostgresDbClient(database_url)
    logger.info("Schema created")
    if args.seed:
        if seed_sample_data(db):
            logger.info("Sample data loaded")
        else:
            logger.info("Database already has users; sample data not loaded")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
