import pytest

from app.taskboard import create_app


def test_health_ok(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json["ok"] is True


def test_healthz_and_ready(client):
    r = client.get("/healthz")
    assert r.status_code == 200
    assert r.data == b"ok"

    r = client.get("/ready")
    assert r.status_code == 200
    assert r.json["database"] == "ok"


def test_request_id_is_echoed(client):
    r = client.get("/health")
    assert len(r.headers["X-Request-ID"]) == 32


def test_unknown_route_is_json_404(client):
    r = client.get("/task-management/developer/nothing-here")
    assert r.status_code == 404
    assert r.json["error"]["code"] == 404


def test_production_refuses_sqlite(tmp_path, monkeypatch):
    monkeypatch.setenv("ENV", "production")
    monkeypatch.setenv("SECRET_KEY", "a-real-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'prod.db'}")
    with pytest.raises(RuntimeError, match="Postgres"):
        create_app()


def test_production_refuses_default_secret(monkeypatch):
    monkeypatch.setenv("ENV", "production")
    monkeypatch.setenv("DATABASE_URL", "postgresql+psycopg://u:p@localhost/taskboard")
    monkeypatch.setenv("SECRET_KEY", "change-me")
    with pytest.raises(RuntimeError, match="SECRET_KEY"):
        create_app()


def test_bad_integer_setting_fails_fast(tmp_path, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'x.db'}")
    monkeypatch.setenv("DEFAULT_PAGE_LIMIT", "twenty")
    with pytest.raises(RuntimeError, match="DEFAULT_PAGE_LIMIT"):
        create_app()


def test_integrity_error_is_json_409(app):
    from app.taskboard.db import db_session
    from app.taskboard.modules.catalogs.models import TaskStatus

    def _duplicate_status():
        s = db_session()
        s.add(TaskStatus(code="to_do", name="Again"))
        s.flush()
        return "", 204

    app.add_url_rule("/duplicate-status", "duplicate_status", _duplicate_status, methods=["POST"])
    r = app.test_client().post("/duplicate-status")
    assert r.status_code == 409
    assert r.json["error"]["code"] == 409
    assert r.json["error"]["request_id"] == r.headers["X-Request-ID"]
