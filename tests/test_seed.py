from scripts.init_db import seed_only

from app.taskboard.db import session_scope
from app.taskboard.models import User
from app.taskboard.modules.catalogs.models import Priority, TaskManagementRole, TaskStatus


def test_seed_is_idempotent_and_admin_can_log_in(app, client, monkeypatch):
    monkeypatch.setenv("ADMIN_EMAIL", "Boss@Example.com")
    monkeypatch.setenv("ADMIN_PASSWORD", "boss-password-1")
    url = app.config["DATABASE_URL"]

    seed_only(database_url=url)
    seed_only(database_url=url)

    with session_scope(app) as s:
        assert s.query(TaskStatus).count() == 3
        assert {p.code for p in s.query(Priority).all()} == {"low", "medium", "high"}
        assert s.query(TaskManagementRole).count() == 6
        assert s.query(User).filter(User.role == "pmo").count() == 1

    r = client.post("/auth/pmo/login", json={"email": "boss@example.com", "password": "boss-password-1"})
    assert r.status_code == 200
