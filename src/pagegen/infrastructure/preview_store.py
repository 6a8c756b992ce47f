from __future__ import annotations

import copy
import uuid
from collections import OrderedDict
from threading import RLock
from typing import Any, Dict, Optional

_MAX_PREVIEWS = 20


class PreviewStore:
    """Keeps the most recent serialized project schemas opened for preview."""

    def __init__(self, max_items: int = _MAX_PREVIEWS) -> None:
        self._items: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()
        self._max = max(1, max_items)
        self._lock = RLock()

    def save(self, project_schema: Dict[str, Any]) -> str:
        with self._lock:
            preview_id = uuid.uuid4().hex
            self._items[preview_id] = copy.deepcopy(project_schema)
            while len(self._items) > self._max:
                self._items.popitem(last=False)
            return preview_id

    def get(self, preview_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            item = self._items.get(preview_id)
            return copy.deepcopy(item) if item is not None else None


_store: Optional[PreviewStore] = None


def get_preview_store() -> PreviewStore:
    global _store
    if _store is None:
        _store = PreviewStore()
    return _store
