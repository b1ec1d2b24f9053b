"""
Create the schema (if missing) and insert the sample customers into an empty database.

Usage:
  python scripts/init_db.py            # uses DATABASE_URL (default sqlite:///customers.db)
  python scripts/init_db.py --no-seed
"""

import argparse
import os
import sys
from contextlib import contextmanager
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

# Ensure repo root is on sys.path when running as a script (Windows-friendly).
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.custmgr.models import Base
from app.custmgr.modules.customers import models as _customer_models  # noqa: F401
from app.custmgr.seed import seed_sample_data


@contextmanager
def _session_scope(database_url: str):
    engine = create_engine(database_url, future=True)
    sm = sessionmaker(bind=engine, class_=Session, autoflush=False, autocommit=False, expire_on_commit=False, future=True)
    s: Session = sm()
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()
        engine.dispose()


def seed_only(*, database_url: str | None = None) -> bool:
    """
    Seed sample customers in an idempotent way (no-op when any customer exists).
    """
    db_url = (database_url or os.environ.get("DATABASE_URL") or "sqlite:///customers.db").strip()
    country = (os.environ.get("DEFAULT_COUNTRY") or "India").strip()
    with _session_scope(db_url) as s:
        return seed_sample_data(s, country=country)


def init_schema(*, database_url: str | None = None) -> None:
    db_url = (database_url or os.environ.get("DATABASE_URL") or "sqlite:///customers.db").strip()
    engine = create_engine(db_url, future=True)
    try:
        Base.metadata.create_all(bind=engine)
    finally:
        engine.dispose()


def main() -> None:
    parser = argparse.ArgumentParser(description="Create tables and seed sample customers.")
    parser.add_argument("--no-seed", action="store_true", help="only create the schema")
    args = parser.parse_args()

    init_schema()
    print("Schema ready.")
    if args.no_seed:
        return
    if seed_only():
        print("Seeded sample customers.")
    else:
        print("Customers already present; seed skipped.")


if __name__ == "__main__":
    main()
