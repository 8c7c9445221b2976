"""Create the recipe schema and, optionally, a small set of default data.

Usage:
    python scripts/initialize_db.py [--drop] [--seed]

The connection string comes from DATABASE_URL (or .env) like the API itself.
"""

import argparse
import asyncio
import logging
import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(os.path.abspath(__file__)), "..", "api"))

from core.config import settings  # noqa: E402
from db.db_core import Database  # noqa: E402
from db.executor import PooledExecutor  # noqa: E402
from db.schema import apply_schema  # noqa: E402

logger = logging.getLogger("initialize_db")

DEFAULT_CATEGORIES = ["Breakfast", "Lunch", "Dinner", "Snacks", "Desserts"]

DEFAULT_INGREDIENTS = [
    {"name": "Egg", "quantity_unit": "piece", "fodmap_level": "LOW"},
    {"name": "Oats", "quantity_unit": "g", "fodmap_level": "LOW"},
    {"name": "Spinach", "quantity_unit": "g", "fodmap_level": "LOW"},
    {"name": "Avocado", "quantity_unit": "g", "fodmap_level": "MODERATE"},
    {"name": "Garlic", "quantity_unit": "clove", "fodmap_level": "HIGH"},
    {"name": "Onion", "quantity_unit": "g", "fodmap_level": "HIGH"},
]

DEFAULT_TAGS = ["vegetarian", "gluten-free", "quick"]


async def add_default_data(db: Database) -> None:
    """Add default categories, ingredients and tags"""
    logger.info("Adding default categories...")
    for name in DEFAULT_CATEGORIES:
        await db.create_category(name)
    logger.info("Adding default ingredients...")
    for ingredient in DEFAULT_INGREDIENTS:
        await db.create_ingredient(ingredient)
    logger.info("Adding default tags...")
    for name in DEFAULT_TAGS:
        await db.create_tag(name)


async def initialize_database(drop: bool, seed: bool) -> None:
    executor = PooledExecutor.from_settings(settings)
    await executor.open()
    try:
        if drop:
            logger.info("Dropping all existing tables...")
            await executor.query(
                "DROP TABLE IF EXISTS recipe_tags, recipe_ingredients, recipes, tags, ingredients, categories CASCADE"
            )
        count = await apply_schema(executor)
        logger.info(f"Applied {count} schema statements")
        if seed:
            await add_default_data(Database(executor))
        logger.info("Database initialization completed successfully!")
    finally:
        await executor.close()


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--drop", action="store_true", help="Drop existing tables first")
    parser.add_argument("--seed", action="store_true", help="Insert default reference data")
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    asyncio.run(initialize_database(args.drop, args.seed))


if __name__ == "__main__":
    main()
