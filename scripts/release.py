"""
Release phase: migrate the schema, then seed catalogs and the admin member.

- Refuses to run without DATABASE_URL, or against SQLite when ENV=production.
- Seeding is idempotent and never overwrites an existing password.

Usage:
  python scripts/release.py [revision]     # default revision: head
  SKIP_SEED=1 python scripts/release.py
"""

from __future__ import annotations

import os
import sys
from pathlib import Path


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def _database_url() -> str:
    db_url = (os.environ.get("DATABASE_URL") or "").strip()
    if not db_url:
        raise RuntimeError("Missing required environment variable DATABASE_URL.")
    env = (os.environ.get("ENV") or "").strip().lower()
    if env in ("prod", "production") and db_url.startswith("sqlite"):
        raise RuntimeError("Refusing to run release on sqlite DATABASE_URL in production. Set DATABASE_URL to Postgres.")
    return db_url


def migrate(db_url: str, revision: str = "head") -> None:
    from alembic import command
    from alembic.config import Config

    cfg = Config(str(ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(ROOT / "migrations"))
    cfg.set_main_option("sqlalchemy.url", db_url)
    command.upgrade(cfg, revision)


def run_release(revision: str = "head") -> None:
    db_url = _database_url()
    print(f"=== Taskboard release start (revision={revision}) ===", flush=True)
    migrate(db_url, revision)
    print("Migrations complete.", flush=True)

    if (os.environ.get("SKIP_SEED") or "").strip() == "1":
        print("SKIP_SEED=1; not seeding.", flush=True)
    else:
        from scripts import init_db

        init_db.seed_only(database_url=db_url)
        print("Seed complete.", flush=True)
    print("=== Taskboard release done ===", flush=True)


def main() -> None:
    run_release(sys.argv[1] if len(sys.argv) > 1 else "head")


if __name__ == "__main__":
    main()
