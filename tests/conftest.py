import pytest

from app.taskboard import create_app
from app.taskboard import auth as auth_module
from app.taskboard.db import session_scope
from app.taskboard.models import Base
from app.taskboard.modules.catalogs.models import Priority, TaskStatus

PASSWORD = "correct-horse-battery"


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("JWT_SECRET_KEY", "test-jwt-secret-that-is-at-least-32-bytes")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    for k in ("DEFAULT_PAGE_LIMIT", "MAX_PAGE_LIMIT", "JWT_ACCESS_TTL_SECONDS", "JWT_REFRESH_TTL_SECONDS"):
        monkeypatch.delenv(k, raising=False)
    auth_module._login_attempts.clear()

    app = create_app()
    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)

    with session_scope(app) as s:
        s.add_all(
            [
                TaskStatus(code="to_do", name="To Do"),
                TaskStatus(code="in_progress", name="In Progress"),
                TaskStatus(code="done", name="Done"),
                Priority(code="low", name="Low"),
                Priority(code="high", name="High"),
            ]
        )
    return app


@pytest.fixture()
def client(app):
    return app.test_client()


def join(client, role: str, email: str, name: str | None = None, password: str = PASSWORD) -> dict:
    r = client.post(
        f"/auth/{role}/join",
        json={"email": email, "password": password, "name": name or email.split("@")[0]},
    )
    assert r.status_code == 201, r.json
    return r.json


def bearer(member: dict) -> dict:
    return {"Authorization": f"Bearer {member['token']['access']}"}


@pytest.fixture()
def catalog_ids(app):
    with session_scope(app) as s:
        statuses = {row.code: row.id for row in s.query(TaskStatus).all()}
        priorities = {row.code: row.id for row in s.query(Priority).all()}
    return {"status": statuses, "priority": priorities}
