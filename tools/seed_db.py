#!/usr/bin/env python3
import argparse
import logging
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parent.parent))

from agent.config import Settings
from backend.db import init_db, make_engine, make_session_factory
from backend.seed import seed_demo


def main():
    parser = argparse.ArgumentParser(description="Create tables and insert the TableTalk Bistro demo restaurant")
    parser.add_argument("--database-url", default=None, help="SQLAlchemy URL (defaults to DATABASE_URL)")
    parser.add_argument("--schema-only", action="store_true", help="Create tables without inserting demo data")
    args = parser.parse_args()

    settings = Settings.from_env()
    logging.basicConfig(level=settings.log_level, format="%(levelname)s %(name)s: %(message)s")

    engine = make_engine(args.database_url or settings.database_url)
    init_db(engine)
    if args.schema_only:
        print("Schema created")
        return 0

    restaurant_id = seed_demo(make_session_factory(engine))
    print(f"Seeded restaurant {restaurant_id}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
