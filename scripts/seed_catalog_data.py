"""
Seed script: populate the catalog with the default categories and products.

Safe to run more than once; rows that already exist are skipped.

    python scripts/seed_catalog_data.py --create-tables
"""

# Add project root to sys.path so `app.*` imports work even if CWD changes
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import argparse
import logging

from app.database.database import Base, SessionLocal, engine
import app.modules.categories.models  # noqa: F401
import app.modules.products.models  # noqa: F401
from app.modules.products.seed_data import seed_catalog


def main():
    parser = argparse.ArgumentParser(description="Seed default catalog data")
    parser.add_argument("--create-tables", action="store_true", help="Create missing tables first")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO)

    if args.create_tables:
        print("Creating tables...")
        Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        created = seed_catalog(db)
        print(f"Seed completed. Rows created: {created}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
