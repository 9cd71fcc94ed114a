"""Task statuses, priorities and task-management roles share one catalog implementation."""
from conftest import bearer, join


def test_task_statuses_readable_by_every_role(client):
    dev = join(client, "developer", "dev@example.com")
    r = client.patch("/task-management/developer/task-statuses", json={}, headers=bearer(dev))
    assert r.status_code == 200
    codes = [row["code"] for row in r.json["data"]]
    assert codes == sorted(codes)
    assert {"to_do", "in_progress", "done"} <= set(codes)


def test_non_manager_cannot_write_statuses(client):
    dev = join(client, "developer", "dev@example.com")
    r = client.post(
        "/task-management/developer/task-statuses",
        json={"code": "blocked", "name": "Blocked"},
        headers=bearer(dev),
    )
    assert r.status_code == 403


def test_priorities_limited_to_tpm_and_pmo(client):
    pm = join(client, "pm", "pm@example.com")
    tpm = join(client, "tpm", "tpm@example.com")
    assert client.patch("/task-management/pm/priorities", json={}, headers=bearer(pm)).status_code == 403
    r = client.patch("/task-management/tpm/priorities", json={}, headers=bearer(tpm))
    assert r.status_code == 200
    assert r.json["pagination"]["records"] == 2


def test_path_role_must_match_token_role(client):
    dev = join(client, "developer", "dev@example.com")
    r = client.patch("/task-management/pmo/task-statuses", json={}, headers=bearer(dev))
    assert r.status_code == 403


def test_catalog_crud_round(client):
    pmo = join(client, "pmo", "pmo@example.com")
    h = bearer(pmo)
    base = "/task-management/pmo/task-management-roles"

    r = client.post(base, json={"code": "lead", "name": "Team Lead", "description": "Leads a squad"}, headers=h)
    assert r.status_code == 201
    entry = r.json

    assert client.post(base, json={"code": "lead", "name": "Again"}, headers=h).status_code == 409
    assert client.post(base, json={"name": "No code"}, headers=h).status_code == 400

    r = client.put(f"{base}/{entry['id']}", json={"name": "Squad Lead"}, headers=h)
    assert r.status_code == 200
    assert r.json["name"] == "Squad Lead"
    assert r.json["code"] == "lead"

    r = client.patch(base, json={"search": "squad"}, headers=h)
    assert [row["id"] for row in r.json["data"]] == [entry["id"]]

    assert client.delete(f"{base}/{entry['id']}", headers=h).status_code == 204
    assert client.get(f"{base}/{entry['id']}", headers=h).status_code == 404
    r = client.patch(base, json={"code": "lead"}, headers=h)
    assert r.json["data"] == []


def test_update_to_existing_code_conflicts(client):
    tpm = join(client, "tpm", "tpm@example.com")
    h = bearer(tpm)
    base = "/task-management/tpm/task-statuses"
    r = client.post(base, json={"code": "blocked", "name": "Blocked"}, headers=h)
    r = client.put(f"{base}/{r.json['id']}", json={"code": "done"}, headers=h)
    assert r.status_code == 409


def test_unknown_id_is_404(client):
    tpm = join(client, "tpm", "tpm@example.com")
    r = client.get(
        "/task-management/tpm/task-statuses/00000000-0000-0000-0000-000000000000",
        headers=bearer(tpm),
    )
    assert r.status_code == 404
