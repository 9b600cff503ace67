def test_create_list_and_get_todo(isolated_client):
    created = isolated_client.post("/v1/todos", json={"text": "buy milk", "priority": "high", "tags": ["home"]})
    assert created.status_code == 200
    todo = created.json()["todo"]
    assert todo["priority"] == "high"
    assert todo["status"] == "pending"
    assert todo["completed"] is False

    listed = isolated_client.get("/v1/todos")
    assert [item["id"] for item in listed.json()["todos"]] == [todo["id"]]

    fetched = isolated_client.get(f"/v1/todos/{todo['id']}")
    assert fetched.json()["todo"] == todo


def test_patch_clears_due_date_only_when_sent(isolated_client):
    todo = isolated_client.post("/v1/todos", json={"text": "pay rent", "due_date": "2026-11-01"}).json()["todo"]

    renamed = isolated_client.patch(f"/v1/todos/{todo['id']}", json={"text": "pay the rent"}).json()["todo"]
    assert renamed["due_date"] == "2026-11-01"

    cleared = isolated_client.patch(f"/v1/todos/{todo['id']}", json={"due_date": None}).json()["todo"]
    assert cleared["due_date"] is None
    assert cleared["text"] == "pay the rent"


def test_filters_statistics_and_delete_completed(isolated_client):
    isolated_client.post("/v1/todos/batch", json={"todos": [{"text": "one"}, {"text": "two"}, {"text": "three"}]})
    todos = isolated_client.get("/v1/todos").json()["todos"]
    isolated_client.patch(f"/v1/todos/{todos[0]['id']}", json={"completed": True, "status": "completed"})

    pending = isolated_client.get("/v1/todos", params={"completed": "false"}).json()["todos"]
    assert len(pending) == 2

    stats = isolated_client.get("/v1/todos/statistics").json()["statistics"]
    assert stats["total"] == 3
    assert stats["completed"] == 1

    deleted = isolated_client.delete("/v1/todos/completed").json()
    assert deleted == {"deleted_count": 1}
    assert len(isolated_client.get("/v1/todos").json()["todos"]) == 2


def test_delete_and_missing_todo(isolated_client):
    todo = isolated_client.post("/v1/todos", json={"text": "temp"}).json()["todo"]

    assert isolated_client.delete(f"/v1/todos/{todo['id']}").json() == {"deleted": True, "id": todo["id"]}

    missing = isolated_client.get(f"/v1/todos/{todo['id']}")
    assert missing.status_code == 404
    assert missing.json()["error"]["code"] == "E_TODO_NOT_FOUND"


def test_empty_text_is_rejected(isolated_client):
    response = isolated_client.post("/v1/todos", json={"text": ""})

    assert response.status_code == 422
    assert response.json()["error"]["code"] == "E_SCHEMA_INVALID"
