from __future__ import annotations

import copy
from threading import RLock
from typing import Any, Dict, List, Optional


class PendingResultStore:
    """Completed results waiting for the user to apply them, oldest first."""

    def __init__(self) -> None:
        self._items: List[Dict[str, Any]] = []
        self._lock = RLock()

    def append(self, payload: Dict[str, Any]) -> None:
        with self._lock:
            self._items.append(copy.deepcopy(payload))

    def latest(self) -> Optional[Dict[str, Any]]:
        with self._lock:
            if not self._items:
                return None
            return copy.deepcopy(self._items[-1])

    def items(self) -> List[Dict[str, Any]]:
        with self._lock:
            return copy.deepcopy(self._items)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def __bool__(self) -> bool:
        return len(self) > 0
