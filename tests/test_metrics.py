from fastapi.testclient import TestClient

from src.pagegen.api.main import app
from src.pagegen.observability.metrics import sanitize_path


client = TestClient(app)


def test_metrics_endpoint_exposes_histogram():
    # Trigger a request to ensure histogram has an observation
    r = client.get("/health")
    assert r.status_code == 200

    m = client.get("/metrics")
    assert m.status_code == 200
    body = m.text

    assert "# HELP pagegen_request_latency_seconds" in body
    assert "# TYPE pagegen_request_latency_seconds histogram" in body
    assert 'path="/health"' in body


def test_session_counters_exported():
    client.post("/assistant/prompt", json={"prompt": "登录"})
    body = client.get("/metrics").text
    assert 'pagegen_generation_sessions_total{outcome="success",fallback="no"}' in body
    assert 'pagegen_stream_events_total{kind="complete"}' in body


def test_sanitize_path_collapses_ids():
    assert sanitize_path("/preview/abc123") == "/preview"
    assert sanitize_path("/assistant/prompt?x=1") == "/assistant"
    assert sanitize_path("") == "/"
