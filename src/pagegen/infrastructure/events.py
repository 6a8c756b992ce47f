from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, Optional

try:  # pragma: no cover - optional dependency
    import redis  # type: ignore
except Exception:  # pragma: no cover - optional dependency
    redis = None  # type: ignore

LOG = logging.getLogger("pagegen.events")


class _RedisPublisher:
    def __init__(self, url: str) -> None:
        self._url = url
        self._client = None
        self._connect()

    def _connect(self) -> None:
        if redis is None:
            return
        try:
            self._client = redis.Redis.from_url(self._url, socket_timeout=0.5)
            self._client.ping()
        except Exception as exc:
            LOG.debug("event_publisher_connect_failed", extra={"err": str(exc)})
            self._client = None

    def publish(self, channel: str, payload: Dict[str, Any]) -> None:
        if not self._client:
            self._connect()
        if not self._client:
            return
        try:
            self._client.publish(channel, json.dumps(payload, ensure_ascii=False))
        except Exception as exc:
            LOG.debug("event_publish_failed", extra={"channel": channel, "err": str(exc)})
            self._client = None


_publisher: Optional[_RedisPublisher] = None


def _get_publisher() -> Optional[_RedisPublisher]:
    global _publisher
    if _publisher is not None:
        return _publisher
    url = os.getenv("REDIS_URL")
    if not url:
        return None
    _publisher = _RedisPublisher(url)
    return _publisher


def publish_event(event_type: str, payload: Dict[str, Any]) -> None:
    """Best-effort fan-out of assistant events; a missing broker is not an error."""
    publisher = _get_publisher()
    if not publisher:
        return
    publisher.publish(f"pagegen.events.{event_type}", payload)


def load_event_client() -> Optional[_RedisPublisher]:
    return _get_publisher()


def publish_session_completed(
    *,
    entry_id: str,
    status: str,
    mode: str,
    used_fallback: bool,
    pending_count: int,
    error: Optional[str] = None,
) -> None:
    publish_event(
        "session.completed",
        {
            "entry_id": entry_id,
            "status": status,
            "mode": mode,
            "used_fallback": used_fallback,
            "pending_count": pending_count,
            "error": error,
        },
    )


def publish_reconciliation(*, applied: bool, discarded: int, error: Optional[str] = None) -> None:
    event_type = "reconciliation.applied" if applied else "reconciliation.failed"
    publish_event(event_type, {"discarded": discarded, "error": error})
