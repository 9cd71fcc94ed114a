"""Member directory visibility and self-service updates."""
from conftest import PASSWORD, bearer, join


def test_visibility_matrix(client):
    designer = join(client, "designer", "des@example.com")
    qa = join(client, "qa", "qa@example.com")
    pmo = join(client, "pmo", "pmo@example.com")

    assert client.patch("/task-management/designer/designers", json={}, headers=bearer(designer)).status_code == 200
    assert client.patch("/task-management/designer/qas", json={}, headers=bearer(designer)).status_code == 403
    assert client.patch("/task-management/qa/designers", json={}, headers=bearer(qa)).status_code == 200
    assert client.patch("/task-management/qa/developers", json={}, headers=bearer(qa)).status_code == 403
    assert client.patch("/task-management/pmo/pms", json={}, headers=bearer(pmo)).status_code == 403
    assert client.patch("/task-management/pmo/pmos", json={}, headers=bearer(pmo)).status_code == 200


def test_index_filters_and_sort(client):
    tpm = join(client, "tpm", "tpm@example.com")
    join(client, "developer", "zed@example.com", name="Zed")
    join(client, "developer", "amy@example.com", name="Amy")
    join(client, "developer", "bob@corp.io", name="Bob")

    r = client.patch("/task-management/tpm/developers", json={"sort": "-name"}, headers=bearer(tpm))
    assert [m["name"] for m in r.json["data"]] == ["Zed", "Bob", "Amy"]

    r = client.patch("/task-management/tpm/developers", json={"email": "example.com"}, headers=bearer(tpm))
    assert r.json["pagination"]["records"] == 2


def test_member_updates_only_self(client):
    dev = join(client, "developer", "dev@example.com")
    other = join(client, "developer", "other@example.com")

    r = client.put(
        f"/task-management/developer/developers/{other['id']}",
        json={"name": "Hacked"},
        headers=bearer(dev),
    )
    assert r.status_code == 403

    r = client.put(
        f"/task-management/developer/developers/{dev['id']}",
        json={"name": "Renamed", "password": "new-password-123"},
        headers=bearer(dev),
    )
    assert r.status_code == 200
    assert r.json["name"] == "Renamed"

    assert client.post("/auth/developer/login", json={"email": "dev@example.com", "password": PASSWORD}).status_code == 401
    assert (
        client.post("/auth/developer/login", json={"email": "dev@example.com", "password": "new-password-123"}).status_code
        == 200
    )


def test_pmo_may_erase_visible_members(client):
    pmo = join(client, "pmo", "pmo@example.com")
    dev = join(client, "developer", "dev@example.com")
    other = join(client, "developer", "other@example.com")

    r = client.delete(f"/task-management/developer/developers/{other['id']}", headers=bearer(dev))
    assert r.status_code == 403

    r = client.delete(f"/task-management/pmo/developers/{other['id']}", headers=bearer(pmo))
    assert r.status_code == 204
    r = client.get(f"/task-management/pmo/developers/{other['id']}", headers=bearer(pmo))
    assert r.status_code == 404


def test_member_looked_up_under_wrong_directory_is_404(client):
    tpm = join(client, "tpm", "tpm@example.com")
    qa = join(client, "qa", "qa@example.com")
    r = client.get(f"/task-management/tpm/developers/{qa['id']}", headers=bearer(tpm))
    assert r.status_code == 404


def test_manager_creates_member_accounts(client):
    tpm = join(client, "tpm", "tpm@example.com")
    r = client.post(
        "/task-management/tpm/developers",
        json={"email": "New.Dev@example.com", "name": "New Dev", "password": PASSWORD},
        headers=bearer(tpm),
    )
    assert r.status_code == 201
    assert r.json["role"] == "developer"
    assert r.json["email"] == "new.dev@example.com"
    assert "token" not in r.json

    # the new account can sign in under its role
    r = client.post("/auth/developer/login", json={"email": "new.dev@example.com", "password": PASSWORD})
    assert r.status_code == 200

    r = client.post(
        "/task-management/tpm/developers",
        json={"email": "new.dev@example.com", "name": "Again", "password": PASSWORD},
        headers=bearer(tpm),
    )
    assert r.status_code == 409

    r = client.post("/task-management/tpm/tpms", json={"email": "x@example.com", "name": "X", "password": "short"}, headers=bearer(tpm))
    assert r.status_code == 400


def test_member_create_requires_manager_and_visibility(client):
    tpm = join(client, "tpm", "tpm@example.com")
    dev = join(client, "developer", "dev@example.com")
    body = {"email": "someone@example.com", "name": "Someone", "password": PASSWORD}

    assert client.post("/task-management/developer/developers", json=body, headers=bearer(dev)).status_code == 403
    assert client.post("/task-management/tpm/pmos", json=body, headers=bearer(tpm)).status_code == 403
