import json
import types

from src.pagegen.infrastructure import events


class FakeRedisClient:
    attempt = 0
    published = []
    publish_should_fail = False

    def ping(self):
        if FakeRedisClient.attempt == 0:
            FakeRedisClient.attempt += 1
            raise Exception("connect failed")

    def publish(self, channel, payload):
        FakeRedisClient.published.append((channel, payload))
        if FakeRedisClient.publish_should_fail:
            FakeRedisClient.publish_should_fail = False
            raise Exception("publish failed")


def _install_fake_redis(monkeypatch):
    FakeRedisClient.attempt = 0
    FakeRedisClient.published = []
    FakeRedisClient.publish_should_fail = False

    def from_url(url, socket_timeout=0.5):
        return FakeRedisClient()

    monkeypatch.setattr(events, "redis", types.SimpleNamespace(Redis=types.SimpleNamespace(from_url=from_url)))
    monkeypatch.setenv("REDIS_URL", "redis://localhost")


def test_publish_event_no_url_returns_quietly():
    assert events._get_publisher() is None
    events.publish_event("session.completed", {"payload": "ignored"})


def test_redis_publisher_recovers_after_connection_failure(monkeypatch):
    _install_fake_redis(monkeypatch)
    publisher = events.load_event_client()
    assert publisher is not None
    assert FakeRedisClient.attempt == 1  # first ping failed once

    events.publish_event("session.completed", {"value": 1})
    assert FakeRedisClient.published == [("pagegen.events.session.completed", '{"value": 1}')]

    FakeRedisClient.publish_should_fail = True
    events.publish_event("session.completed", {"value": 2})
    events.publish_event("session.completed", {"value": 3})
    assert len(FakeRedisClient.published) == 3


def test_session_and_reconciliation_payloads(monkeypatch):
    _install_fake_redis(monkeypatch)
    events.publish_session_completed(
        entry_id="abc", status="success", mode="standard", used_fallback=True, pending_count=2
    )
    events.publish_reconciliation(applied=False, discarded=0, error="rejected")

    (channel, raw), (channel2, raw2) = FakeRedisClient.published
    assert channel == "pagegen.events.session.completed"
    assert json.loads(raw)["used_fallback"] is True
    assert channel2 == "pagegen.events.reconciliation.failed"
    assert json.loads(raw2) == {"discarded": 0, "error": "rejected"}
