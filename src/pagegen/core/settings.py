"""Runtime configuration for the assistant.

Values come from environment variables (optionally loaded from ``.env`` by
the entry points). ``from_env`` accepts an explicit mapping so tests do not
need to touch ``os.environ``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

DEFAULT_SERVICE_URL = "http://localhost:3001"


def _env_flag(env: Mapping[str, str], key: str, default: bool) -> bool:
    raw = (env.get(key) or "").strip().lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes", "on")


def _env_float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = (env.get(key) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class AssistantSettings:
    service_url: str = DEFAULT_SERVICE_URL
    connect_timeout: float = 3.0
    read_timeout: float = 120.0
    streaming: bool = True
    throttle_ms: float = 100.0
    transport: str = "http"
    assets_path: Optional[str] = None

    @property
    def throttle_interval(self) -> float:
        return max(0.0, self.throttle_ms) / 1000.0

    @property
    def timeout(self) -> tuple[float, float]:
        return (self.connect_timeout, self.read_timeout)

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "AssistantSettings":
        env = env if env is not None else os.environ
        transport = (env.get("PAGEGEN_TRANSPORT") or "http").strip().lower()
        if transport not in ("http", "offline"):
            transport = "http"
        return cls(
            service_url=(env.get("PAGEGEN_SERVICE_URL") or DEFAULT_SERVICE_URL).rstrip("/"),
            connect_timeout=_env_float(env, "PAGEGEN_CONNECT_TIMEOUT", 3.0),
            read_timeout=_env_float(env, "PAGEGEN_READ_TIMEOUT", 120.0),
            streaming=_env_flag(env, "PAGEGEN_STREAMING", True),
            throttle_ms=_env_float(env, "PAGEGEN_STREAM_THROTTLE_MS", 100.0),
            transport=transport,
            assets_path=(env.get("PAGEGEN_ASSETS_PATH") or None),
        )
