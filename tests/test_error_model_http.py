def test_not_found_returns_aideo_error_shape(isolated_client):
    response = isolated_client.get("/v1/todos/does-not-exist")

    assert response.status_code == 404
    payload = response.json()
    assert "error" in payload
    error = payload["error"]
    assert isinstance(error.get("code"), str)
    assert isinstance(error.get("message"), str)
    assert isinstance(error.get("trace_id"), str)
    assert isinstance(error.get("retryable"), bool)
    assert response.headers.get("X-Trace-Id") == error["trace_id"]


def test_incoming_trace_id_is_echoed(isolated_client):
    response = isolated_client.get("/v1/health", headers={"X-Trace-Id": "trace-from-client"})

    assert response.status_code == 200
    assert response.json()["ok"] is True
    assert response.headers.get("X-Trace-Id") == "trace-from-client"


def test_metrics_snapshot_shape(isolated_client):
    snapshot = isolated_client.get("/v1/metrics").json()

    assert set(snapshot) == {
        "chats_total",
        "chats_failed_total",
        "streams_total",
        "streams_failed_total",
        "text_fallback_total",
        "function_calls_total",
    }
