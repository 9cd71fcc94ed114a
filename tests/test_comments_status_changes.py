"""Task comments and status-change history."""
from conftest import bearer, join

API = "/task-management"


def _setup(client, catalog_ids):
    dev = join(client, "developer", "dev@example.com", name="Dev")
    qa = join(client, "qa", "qa@example.com", name="Quinn")
    designer = join(client, "designer", "des@example.com", name="Dee")
    task = client.post(
        f"{API}/developer/tasks",
        json={
            "title": "Checkout flow",
            "status_id": catalog_ids["status"]["to_do"],
            "priority_id": catalog_ids["priority"]["high"],
        },
        headers=bearer(dev),
    ).json
    client.post(f"{API}/developer/tasks/{task['id']}/assignments", json={"assignee_id": qa["id"]}, headers=bearer(dev))
    return dev, qa, designer, task


def test_comment_notifies_creator_and_assignees_except_commenter(client, catalog_ids):
    dev, qa, designer, task = _setup(client, catalog_ids)
    r = client.post(
        f"{API}/qa/tasks/{task['id']}/comments",
        json={"comment_body": "Found an edge case"},
        headers=bearer(qa),
    )
    assert r.status_code == 201
    assert r.json["commenter_id"] == qa["id"]

    r = client.patch(f"{API}/developer/notifications", json={"notification_type": "comment"}, headers=bearer(dev))
    assert r.json["pagination"]["records"] == 1
    assert "Quinn" in r.json["data"][0]["message"]

    r = client.patch(f"{API}/qa/notifications", json={"notification_type": "comment"}, headers=bearer(qa))
    assert r.json["pagination"]["records"] == 0


def test_comment_body_required(client, catalog_ids):
    dev, qa, designer, task = _setup(client, catalog_ids)
    r = client.post(f"{API}/developer/tasks/{task['id']}/comments", json={"comment_body": "   "}, headers=bearer(dev))
    assert r.status_code == 400


def test_only_commenter_edits_and_manager_may_erase(client, catalog_ids):
    dev, qa, designer, task = _setup(client, catalog_ids)
    tpm = join(client, "tpm", "tpm@example.com")
    c = client.post(
        f"{API}/qa/tasks/{task['id']}/comments",
        json={"comment_body": "first"},
        headers=bearer(qa),
    ).json
    qa_url = f"{API}/qa/tasks/{task['id']}/comments/{c['id']}"
    dev_url = f"{API}/developer/tasks/{task['id']}/comments/{c['id']}"

    assert client.put(dev_url, json={"comment_body": "changed"}, headers=bearer(dev)).status_code == 403
    r = client.put(qa_url, json={"comment_body": "edited"}, headers=bearer(qa))
    assert r.status_code == 200
    assert r.json["comment_body"] == "edited"

    assert client.delete(dev_url, headers=bearer(dev)).status_code == 403
    tpm_url = f"{API}/tpm/tasks/{task['id']}/comments/{c['id']}"
    assert client.delete(tpm_url, headers=bearer(tpm)).status_code == 204
    assert client.get(qa_url, headers=bearer(qa)).status_code == 404


def test_comment_index_filters(client, catalog_ids):
    dev, qa, designer, task = _setup(client, catalog_ids)
    base = f"{API}/developer/tasks/{task['id']}/comments"
    client.post(base, json={"comment_body": "needs design review"}, headers=bearer(dev))
    client.post(f"{API}/qa/tasks/{task['id']}/comments", json={"comment_body": "tested ok"}, headers=bearer(qa))

    r = client.patch(base, json={"commenter_id": qa["id"]}, headers=bearer(dev))
    assert [c["comment_body"] for c in r.json["data"]] == ["tested ok"]
    r = client.patch(base, json={"search": "DESIGN"}, headers=bearer(dev))
    assert [c["comment_body"] for c in r.json["data"]] == ["needs design review"]
    r = client.patch(base, json={"created_to": "2000-01-01T00:00:00"}, headers=bearer(dev))
    assert r.json["data"] == []


def test_status_change_moves_task(client, catalog_ids):
    dev, qa, designer, task = _setup(client, catalog_ids)
    base = f"{API}/developer/tasks/{task['id']}/status-changes"

    r = client.post(base, json={"new_status_id": catalog_ids["status"]["done"], "comment": "shipped"}, headers=bearer(dev))
    assert r.status_code == 201
    change = r.json
    assert change["changed_by_id"] == dev["id"]
    assert change["changed_at"]

    r = client.get(f"{API}/developer/tasks/{task['id']}", headers=bearer(dev))
    assert r.json["status_name"] == "Done"

    r = client.post(base, json={"new_status_id": "00000000-0000-0000-0000-000000000000"}, headers=bearer(dev))
    assert r.status_code == 400
    assert client.post(base, json={}, headers=bearer(dev)).status_code == 400

    r = client.put(f"{base}/{change['id']}", json={"comment": "shipped to prod"}, headers=bearer(dev))
    assert r.status_code == 200
    assert r.json["comment"] == "shipped to prod"

    assert client.delete(f"{base}/{change['id']}", headers=bearer(dev)).status_code == 204
    r = client.patch(base, json={}, headers=bearer(dev))
    assert r.json["pagination"]["records"] == 0


def test_status_change_index_filters_and_sort(client, catalog_ids):
    dev, qa, designer, task = _setup(client, catalog_ids)
    base = f"{API}/developer/tasks/{task['id']}/status-changes"
    client.post(
        base,
        json={"new_status_id": catalog_ids["status"]["in_progress"], "changed_at": "2030-01-01T00:00:00"},
        headers=bearer(dev),
    )
    client.post(
        base,
        json={"new_status_id": catalog_ids["status"]["done"], "changed_at": "2030-02-01T00:00:00"},
        headers=bearer(dev),
    )

    r = client.patch(base, json={"orderBy": "-changed_at"}, headers=bearer(dev))
    assert [c["changed_at"] for c in r.json["data"]] == ["2030-02-01T00:00:00", "2030-01-01T00:00:00"]

    r = client.patch(base, json={"new_status_id": catalog_ids["status"]["done"]}, headers=bearer(dev))
    assert r.json["pagination"]["records"] == 1

    r = client.patch(base, json={"changed_from": "2030-01-15T00:00:00"}, headers=bearer(dev))
    assert r.json["pagination"]["records"] == 1


def test_status_change_of_other_task_is_404(client, catalog_ids):
    dev, qa, designer, task = _setup(client, catalog_ids)
    other = client.post(
        f"{API}/developer/tasks",
        json={
            "title": "Other",
            "status_id": catalog_ids["status"]["to_do"],
            "priority_id": catalog_ids["priority"]["low"],
        },
        headers=bearer(dev),
    ).json
    change = client.post(
        f"{API}/developer/tasks/{task['id']}/status-changes",
        json={"new_status_id": catalog_ids["status"]["done"]},
        headers=bearer(dev),
    ).json
    r = client.get(f"{API}/developer/tasks/{other['id']}/status-changes/{change['id']}", headers=bearer(dev))
    assert r.status_code == 404
