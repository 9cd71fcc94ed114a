"""Tasks, assignments and their notification side effects."""
from conftest import bearer, join

API = "/task-management"


def _task(client, member, role, catalog_ids, **overrides):
    payload = {
        "title": "Write release notes",
        "status_id": catalog_ids["status"]["to_do"],
        "priority_id": catalog_ids["priority"]["low"],
    }
    payload.update(overrides)
    r = client.post(f"{API}/{role}/tasks", json=payload, headers=bearer(member))
    assert r.status_code == 201, r.json
    return r.json


def test_create_task_defaults_creator(client, catalog_ids):
    dev = join(client, "developer", "dev@example.com")
    task = _task(client, dev, "developer", catalog_ids, due_date="2030-01-31T12:00:00Z")
    assert task["creator_id"] == dev["id"]
    assert task["status_name"] == "To Do"
    assert task["priority_name"] == "Low"
    assert task["due_date"] == "2030-01-31T12:00:00"
    assert task["assignee_ids"] == []


def test_creator_id_must_be_caller(client, catalog_ids):
    dev = join(client, "developer", "dev@example.com")
    other = join(client, "developer", "other@example.com")
    r = client.post(
        f"{API}/developer/tasks",
        json={
            "title": "t",
            "status_id": catalog_ids["status"]["to_do"],
            "priority_id": catalog_ids["priority"]["low"],
            "creator_id": other["id"],
        },
        headers=bearer(dev),
    )
    assert r.status_code == 403


def test_unknown_references_are_400(client, catalog_ids):
    dev = join(client, "developer", "dev@example.com")
    r = client.post(
        f"{API}/developer/tasks",
        json={
            "title": "t",
            "status_id": "00000000-0000-0000-0000-000000000000",
            "priority_id": catalog_ids["priority"]["low"],
        },
        headers=bearer(dev),
    )
    assert r.status_code == 400
    r = client.post(f"{API}/developer/tasks", json={"title": "missing refs"}, headers=bearer(dev))
    assert r.status_code == 400
    assert len(r.json["error"]["details"]) == 2


def test_board_must_belong_to_project(client, catalog_ids):
    pm = join(client, "pm", "pm@example.com")
    p1 = client.post(f"{API}/pm/projects", json={"code": "P1", "name": "One"}, headers=bearer(pm)).json
    p2 = client.post(f"{API}/pm/projects", json={"code": "P2", "name": "Two"}, headers=bearer(pm)).json
    board = client.post(
        f"{API}/pm/projects/{p1['id']}/boards",
        json={"project_id": p1["id"], "code": "B", "name": "Board"},
        headers=bearer(pm),
    ).json

    r = client.post(
        f"{API}/pm/tasks",
        json={
            "title": "t",
            "status_id": catalog_ids["status"]["to_do"],
            "priority_id": catalog_ids["priority"]["low"],
            "project_id": p2["id"],
            "board_id": board["id"],
        },
        headers=bearer(pm),
    )
    assert r.status_code == 400

    task = _task(client, pm, "pm", catalog_ids, board_id=board["id"])
    assert task["project_id"] == p1["id"]


def test_status_update_appends_history(client, catalog_ids):
    dev = join(client, "developer", "dev@example.com")
    task = _task(client, dev, "developer", catalog_ids)
    r = client.put(
        f"{API}/developer/tasks/{task['id']}",
        json={"status_id": catalog_ids["status"]["in_progress"]},
        headers=bearer(dev),
    )
    assert r.status_code == 200
    assert r.json["status_name"] == "In Progress"

    r = client.patch(f"{API}/developer/tasks/{task['id']}/status-changes", json={}, headers=bearer(dev))
    assert r.json["pagination"]["records"] == 1
    assert r.json["data"][0]["new_status_id"] == catalog_ids["status"]["in_progress"]

    # same status again is not a change
    client.put(
        f"{API}/developer/tasks/{task['id']}",
        json={"status_id": catalog_ids["status"]["in_progress"]},
        headers=bearer(dev),
    )
    r = client.patch(f"{API}/developer/tasks/{task['id']}/status-changes", json={}, headers=bearer(dev))
    assert r.json["pagination"]["records"] == 1


def test_update_and_erase_permissions(client, catalog_ids):
    dev = join(client, "developer", "dev@example.com")
    qa = join(client, "qa", "qa@example.com")
    tpm = join(client, "tpm", "tpm@example.com")
    task = _task(client, dev, "developer", catalog_ids)

    assert client.put(f"{API}/qa/tasks/{task['id']}", json={"title": "x"}, headers=bearer(qa)).status_code == 403
    assert client.delete(f"{API}/qa/tasks/{task['id']}", headers=bearer(qa)).status_code == 403
    assert client.put(f"{API}/tpm/tasks/{task['id']}", json={"title": "Triage"}, headers=bearer(tpm)).status_code == 200
    assert client.delete(f"{API}/tpm/tasks/{task['id']}", headers=bearer(tpm)).status_code == 204
    assert client.get(f"{API}/developer/tasks/{task['id']}", headers=bearer(dev)).status_code == 404


def test_index_filters(client, catalog_ids):
    dev = join(client, "developer", "dev@example.com")
    qa = join(client, "qa", "qa@example.com")
    a = _task(client, dev, "developer", catalog_ids, title="Fix login bug", due_date="2030-01-01T00:00:00")
    b = _task(
        client,
        dev,
        "developer",
        catalog_ids,
        title="Write docs",
        priority_id=catalog_ids["priority"]["high"],
        due_date="2030-06-01T00:00:00",
    )
    client.post(f"{API}/developer/tasks/{a['id']}/assignments", json={"assignee_id": qa["id"]}, headers=bearer(dev))
    h = bearer(dev)

    r = client.patch(f"{API}/developer/tasks", json={"title": "LOGIN"}, headers=h)
    assert [t["id"] for t in r.json["data"]] == [a["id"]]

    r = client.patch(f"{API}/developer/tasks", json={"priority_id": catalog_ids["priority"]["high"]}, headers=h)
    assert [t["id"] for t in r.json["data"]] == [b["id"]]
    assert r.json["data"][0]["priority_name"] == "High"

    r = client.patch(f"{API}/developer/tasks", json={"assignee_id": qa["id"]}, headers=h)
    assert [t["id"] for t in r.json["data"]] == [a["id"]]

    r = client.patch(f"{API}/developer/tasks", json={"due_from": "2030-03-01T00:00:00"}, headers=h)
    assert [t["id"] for t in r.json["data"]] == [b["id"]]

    r = client.patch(f"{API}/developer/tasks", json={"sortBy": "due_date", "sortDirection": "desc"}, headers=h)
    assert [t["id"] for t in r.json["data"]] == [b["id"], a["id"]]


def test_assignments(client, catalog_ids):
    dev = join(client, "developer", "dev@example.com")
    qa = join(client, "qa", "qa@example.com")
    task = _task(client, dev, "developer", catalog_ids)
    base = f"{API}/developer/tasks/{task['id']}/assignments"

    r = client.post(base, json={"assignee_id": qa["id"]}, headers=bearer(dev))
    assert r.status_code == 201
    assignment = r.json
    assert client.post(base, json={"assignee_id": qa["id"]}, headers=bearer(dev)).status_code == 409
    assert client.post(base, json={"assignee_id": "not-a-uuid"}, headers=bearer(dev)).status_code == 400

    r = client.patch(base, json={}, headers=bearer(dev))
    assert isinstance(r.json, list)
    assert [a["assignee_id"] for a in r.json] == [qa["id"]]

    # the assignee was notified
    r = client.patch(f"{API}/qa/notifications", json={}, headers=bearer(qa))
    assert r.json["pagination"]["records"] == 1
    assert r.json["data"][0]["notification_type"] == "assignment"
    assert r.json["data"][0]["task_id"] == task["id"]

    # assignees may edit the task
    assert client.put(f"{API}/qa/tasks/{task['id']}", json={"title": "QA pass"}, headers=bearer(qa)).status_code == 200

    assert client.delete(f"{base}/{assignment['id']}", headers=bearer(dev)).status_code == 204
    assert client.get(f"{base}/{assignment['id']}", headers=bearer(dev)).status_code == 404
    assert client.patch(base, json={}, headers=bearer(dev)).json == []


def test_child_of_other_task_is_404(client, catalog_ids):
    dev = join(client, "developer", "dev@example.com")
    qa = join(client, "qa", "qa@example.com")
    t1 = _task(client, dev, "developer", catalog_ids)
    t2 = _task(client, dev, "developer", catalog_ids, title="Second")
    a = client.post(
        f"{API}/developer/tasks/{t1['id']}/assignments",
        json={"assignee_id": qa["id"]},
        headers=bearer(dev),
    ).json
    r = client.get(f"{API}/developer/tasks/{t2['id']}/assignments/{a['id']}", headers=bearer(dev))
    assert r.status_code == 404


def test_moving_task_onto_board_takes_its_project(client, catalog_ids):
    pm = join(client, "pm", "pm@example.com")
    project = client.post(f"{API}/pm/projects", json={"code": "P1", "name": "One"}, headers=bearer(pm)).json
    board = client.post(
        f"{API}/pm/projects/{project['id']}/boards",
        json={"project_id": project["id"], "code": "B", "name": "Board"},
        headers=bearer(pm),
    ).json
    task = _task(client, pm, "pm", catalog_ids)
    assert task["project_id"] is None

    r = client.put(f"{API}/pm/tasks/{task['id']}", json={"board_id": board["id"]}, headers=bearer(pm))
    assert r.status_code == 200
    assert r.json["board_id"] == board["id"]
    assert r.json["project_id"] == project["id"]


def test_task_due_date_offset_is_stored_as_utc(client, catalog_ids):
    dev = join(client, "developer", "dev@example.com")
    task = _task(client, dev, "developer", catalog_ids, due_date="2030-01-31T14:30:00+02:00")
    assert task["due_date"] == "2030-01-31T12:30:00"


def test_due_range_bounds_are_inclusive(client, catalog_ids):
    dev = join(client, "developer", "dev@example.com")
    a = _task(client, dev, "developer", catalog_ids, title="Early", due_date="2030-01-01T00:00:00")
    b = _task(client, dev, "developer", catalog_ids, title="Late", due_date="2030-06-01T00:00:00")
    h = bearer(dev)

    r = client.patch(f"{API}/developer/tasks", json={"due_from": "2030-01-01T00:00:00Z"}, headers=h)
    assert {t["id"] for t in r.json["data"]} == {a["id"], b["id"]}

    r = client.patch(
        f"{API}/developer/tasks",
        json={"due_from": "2030-01-01T00:00:00", "due_to": "2030-06-01T02:00:00+02:00"},
        headers=h,
    )
    assert {t["id"] for t in r.json["data"]} == {a["id"], b["id"]}

    r = client.patch(f"{API}/developer/tasks", json={"due_to": "2030-05-31T23:59:59"}, headers=h)
    assert [t["id"] for t in r.json["data"]] == [a["id"]]
