# storefront/seed_db.py
"""
Seed the catalog: categories, products, inventory rows and the default admin.

    python -m storefront.seed_db          # no-op when categories already exist
    python -m storefront.seed_db --reset  # drop and recreate every table first
"""
import argparse
import asyncio
import json
import logging
from pathlib import Path

from sqlalchemy import func, select

from . import config, crud
from .db import engine, AsyncSessionLocal, Base
from .models import Category, Inventory, Product

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parent / "data"
CATALOG_FILE = DATA_DIR / "catalog.json"


def load_catalog(path: Path = CATALOG_FILE) -> dict:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


async def seed_session(session, catalog: dict) -> bool:
    """Insert the catalog through an open session. Returns False when data already exists."""
    existing = await session.execute(select(func.count()).select_from(Category))
    if existing.scalar_one() > 0:
        logger.info("[SEED] categories already present, skipping")
        return False

    categories = {}
    for c in catalog["categories"]:
        category = Category(**c)
        session.add(category)
        categories[c["slug"]] = category
    await session.flush()

    stock = catalog.get("inventory", {})
    for p in catalog["products"]:
        data = dict(p)
        category = categories[data.pop("category")]
        product = Product(**data, category_id=category.id)
        session.add(product)
        await session.flush()
        session.add(Inventory(
            product_id=product.id,
            quantity=stock.get("quantity", 10) if product.in_stock else 0,
            minimum_stock_level=stock.get("minimum_stock_level", 5),
            location=stock.get("location", "main warehouse"),
        ))
    await session.commit()
    logger.info("[SEED] %d categories, %d products", len(catalog["categories"]), len(catalog["products"]))

    if not config.DEFAULT_ADMIN_PASSWORD:
        logger.warning("[SEED] ADMIN_PASSWORD not set, default admin not created")
    elif not await crud.admin_exists(session, config.DEFAULT_ADMIN_USERNAME, config.DEFAULT_ADMIN_EMAIL):
        await crud.create_admin(
            session, config.DEFAULT_ADMIN_USERNAME, config.DEFAULT_ADMIN_EMAIL, config.DEFAULT_ADMIN_PASSWORD
        )
        logger.info("[SEED] admin '%s' created", config.DEFAULT_ADMIN_USERNAME)
    return True


async def seed(reset: bool = False):
    async with engine.begin() as conn:
        if reset:
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as session:
        await seed_session(session, load_catalog())
    await engine.dispose()


def main():
    logging.basicConfig(level=logging.INFO)
    parser = argparse.ArgumentParser(description="Seed the storefront database")
    parser.add_argument("--reset", action="store_true", help="drop all tables before seeding")
    args = parser.parse_args()
    asyncio.run(seed(reset=args.reset))


if __name__ == "__main__":
    main()
