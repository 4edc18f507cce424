"""Create the gamification tables in PostgreSQL"""
import argparse
import asyncio
import logging

from tutorhub.config import DATABASE_URL
from tutorhub.db.connection import Database
from tutorhub.db.schema import ensure_schema

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


async def main(database_url: str) -> None:
    """Apply the schema"""
    database = Database(database_url)
    try:
        logger.info("Initializing database connection...")
        await database.init_pool()
        await ensure_schema(database)
        logger.info("✅ Gamification schema is up to date")
    finally:
        await database.close_pool()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--database-url",
        default=DATABASE_URL,
        help="PostgreSQL connection string (defaults to DATABASE_URL)"
    )
    args = parser.parse_args()
    asyncio.run(main(args.database_url))
