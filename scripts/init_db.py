import sys
from datetime import datetime
from pathlib import Path
import os

from werkzeug.security import generate_password_hash

# Ensure repo root is on sys.path when running as a script (Windows-friendly).
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.taskboard.constants import ROLE_LABELS
from app.taskboard.models import User
from app.taskboard.modules.catalogs.models import Priority, TaskManagementRole, TaskStatus
from scripts._db_utils import script_session

DEFAULT_STATUSES = (
    ("to_do", "To Do"),
    ("in_progress", "In Progress"),
    ("done", "Done"),
)
DEFAULT_PRIORITIES = (
    ("low", "Low"),
    ("medium", "Medium"),
    ("high", "High"),
)


def seed_only(*, database_url: str | None = None) -> None:
    """
    Seed catalogs and the initial pmo account in an idempotent way.
    Does NOT overwrite an existing admin member's password.
    """
    admin_email = (os.environ.get("ADMIN_EMAIL") or "admin@taskboard.local").strip().lower()
    admin_password = os.environ.get("ADMIN_PASSWORD") or "change-me-now"
    admin_name = (os.environ.get("ADMIN_NAME") or "Administrator").strip()

    db_url = (database_url or os.environ.get("DATABASE_URL") or "sqlite:///taskboard.db").strip()

    # Use a direct engine/session so this can run in release without importing app.wsgi.
    with script_session(db_url) as s:
        now = datetime.utcnow()

        def ensure_entry(model, code: str, name: str) -> None:
            row = s.query(model).filter(model.code == code).one_or_none()
            if not row:
                s.add(model(code=code, name=name, created_at=now, updated_at=now))

        for code, name in DEFAULT_STATUSES:
            ensure_entry(TaskStatus, code, name)
        for code, name in DEFAULT_PRIORITIES:
            ensure_entry(Priority, code, name)
        for code, name in ROLE_LABELS.items():
            ensure_entry(TaskManagementRole, code, name)

        user = (
            s.query(User)
            .filter(User.role == "pmo", User.email == admin_email, User.deleted_at.is_(None))
            .one_or_none()
        )
        if not user:
            s.add(
                User(
                    role="pmo",
                    email=admin_email,
                    name=admin_name,
                    password_hash=generate_password_hash(admin_password),
                    created_at=now,
                    updated_at=now,
                )
            )

    print("Initialized database (seed_only).")
    print(f"Admin (pmo) email: {admin_email}")
    print("Admin password: (from ADMIN_PASSWORD)")


def main() -> None:
    seed_only(database_url=None)


if __name__ == "__main__":
    main()
