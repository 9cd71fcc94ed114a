"""Notifications are private to their recipient; preferences gate delivery."""
from conftest import bearer, join

API = "/task-management"


def _assign(client, catalog_ids, creator, assignee, role="developer"):
    task = client.post(
        f"{API}/{role}/tasks",
        json={
            "title": "Review PR",
            "status_id": catalog_ids["status"]["to_do"],
            "priority_id": catalog_ids["priority"]["low"],
        },
        headers=bearer(creator),
    ).json
    r = client.post(
        f"{API}/{role}/tasks/{task['id']}/assignments",
        json={"assignee_id": assignee["id"]},
        headers=bearer(creator),
    )
    assert r.status_code == 201
    return task


def test_mark_read_and_filter(client, catalog_ids):
    dev = join(client, "developer", "dev@example.com")
    qa = join(client, "qa", "qa@example.com")
    _assign(client, catalog_ids, dev, qa)

    n = client.patch(f"{API}/qa/notifications", json={}, headers=bearer(qa)).json["data"][0]
    assert n["is_read"] is False

    url = f"{API}/qa/notifications/{n['id']}"
    assert client.put(url, json={"is_read": "yes"}, headers=bearer(qa)).status_code == 400
    r = client.put(url, json={"is_read": True}, headers=bearer(qa))
    assert r.status_code == 200
    assert r.json["is_read"] is True
    assert r.json["read_at"]

    r = client.patch(f"{API}/qa/notifications", json={"is_read": False}, headers=bearer(qa))
    assert r.json["pagination"]["records"] == 0
    r = client.patch(f"{API}/qa/notifications", json={"is_read": True}, headers=bearer(qa))
    assert r.json["pagination"]["records"] == 1


def test_other_members_notification_is_404(client, catalog_ids):
    dev = join(client, "developer", "dev@example.com")
    qa = join(client, "qa", "qa@example.com")
    _assign(client, catalog_ids, dev, qa)
    n = client.patch(f"{API}/qa/notifications", json={}, headers=bearer(qa)).json["data"][0]

    assert client.get(f"{API}/developer/notifications/{n['id']}", headers=bearer(dev)).status_code == 404
    assert client.delete(f"{API}/developer/notifications/{n['id']}", headers=bearer(dev)).status_code == 404
    assert client.delete(f"{API}/qa/notifications/{n['id']}", headers=bearer(qa)).status_code == 204
    assert client.get(f"{API}/qa/notifications/{n['id']}", headers=bearer(qa)).status_code == 404


def test_preferences_crud_and_uniqueness(client):
    dev = join(client, "developer", "dev@example.com")
    base = f"{API}/developer/notification-preferences"
    h = bearer(dev)

    r = client.post(base, json={"preference_key": "comment", "delivery_method": "email"}, headers=h)
    assert r.status_code == 201
    pref = r.json
    assert pref["enabled"] is True

    assert client.post(base, json={"preference_key": "comment"}, headers=h).status_code == 409
    assert client.post(base, json={"preference_key": "x", "delivery_method": "pigeon"}, headers=h).status_code == 400

    r = client.put(f"{base}/{pref['id']}", json={"delivery_method": "push", "enabled": False}, headers=h)
    assert r.status_code == 200
    assert r.json["delivery_method"] == "push"
    assert r.json["enabled"] is False

    r = client.patch(base, json={"enabled": False}, headers=h)
    assert [p["id"] for p in r.json["data"]] == [pref["id"]]

    assert client.delete(f"{base}/{pref['id']}", headers=h).status_code == 204
    # key can be reused after removal
    assert client.post(base, json={"preference_key": "comment"}, headers=h).status_code == 201


def test_preferences_scoped_to_caller(client):
    dev = join(client, "developer", "dev@example.com")
    qa = join(client, "qa", "qa@example.com")
    pref = client.post(
        f"{API}/developer/notification-preferences",
        json={"preference_key": "assignment"},
        headers=bearer(dev),
    ).json
    assert client.get(f"{API}/qa/notification-preferences/{pref['id']}", headers=bearer(qa)).status_code == 404
    r = client.patch(f"{API}/qa/notification-preferences", json={}, headers=bearer(qa))
    assert r.json["data"] == []


def test_disabled_preference_suppresses_notification(client, catalog_ids):
    dev = join(client, "developer", "dev@example.com")
    qa = join(client, "qa", "qa@example.com")
    client.post(
        f"{API}/qa/notification-preferences",
        json={"preference_key": "assignment", "enabled": False},
        headers=bearer(qa),
    )
    _assign(client, catalog_ids, dev, qa)
    r = client.patch(f"{API}/qa/notifications", json={}, headers=bearer(qa))
    assert r.json["pagination"]["records"] == 0
