from __future__ import annotations

from threading import RLock
from typing import Any, Dict, Iterator, List, Optional

from ..domain.errors import TimelineError
from ..domain.timeline_models import InFlightEntry, TimelineEntry


class ChatTimeline:
    """Append-only transcript; only the active in-flight entry may change."""

    def __init__(self) -> None:
        self._entries: List[TimelineEntry] = []
        self._index: Dict[str, int] = {}
        self._active_id: Optional[str] = None
        self._lock = RLock()

    def append(self, entry: TimelineEntry) -> TimelineEntry:
        with self._lock:
            if entry.entry_id in self._index:
                raise TimelineError(f"Duplicate timeline entry {entry.entry_id}")
            if isinstance(entry, InFlightEntry) and not entry.is_complete:
                if self._active_id is not None:
                    raise TimelineError("An in-flight entry is already open")
                self._active_id = entry.entry_id
            self._index[entry.entry_id] = len(self._entries)
            self._entries.append(entry.model_copy(deep=True))
            return entry.model_copy(deep=True)

    def open_in_flight(self, text: str = "") -> InFlightEntry:
        return self.append(InFlightEntry(streaming_text=text))  # type: ignore[return-value]

    def active_in_flight(self) -> Optional[InFlightEntry]:
        with self._lock:
            if self._active_id is None:
                return None
            return self._entries[self._index[self._active_id]].model_copy(deep=True)  # type: ignore[return-value]

    def update_in_flight(self, entry_id: str, streaming_text: str) -> None:
        with self._lock:
            entry = self._require_active(entry_id)
            entry.streaming_text = streaming_text

    def finalize_in_flight(
        self,
        entry_id: str,
        streaming_text: str,
        final_result: Optional[Dict[str, Any]] = None,
        *,
        used_fallback: bool = False,
        is_error: bool = False,
    ) -> InFlightEntry:
        with self._lock:
            entry = self._require_active(entry_id)
            entry.streaming_text = streaming_text
            entry.final_result = final_result
            entry.used_fallback = used_fallback
            entry.is_error = is_error
            entry.is_complete = True
            self._active_id = None
            return entry.model_copy(deep=True)

    def get(self, entry_id: str) -> Optional[TimelineEntry]:
        with self._lock:
            idx = self._index.get(entry_id)
            if idx is None:
                return None
            return self._entries[idx].model_copy(deep=True)

    def entries(self) -> Iterator[TimelineEntry]:
        with self._lock:
            snapshot = list(self._entries)
        for entry in snapshot:
            yield entry.model_copy(deep=True)

    def clear(self) -> None:
        with self._lock:
            if self._active_id is not None:
                raise TimelineError("Cannot clear the timeline while a session is running")
            self._entries.clear()
            self._index.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _require_active(self, entry_id: str) -> InFlightEntry:
        idx = self._index.get(entry_id)
        if idx is None:
            raise TimelineError("Timeline entry not found")
        if entry_id != self._active_id:
            raise TimelineError("Timeline entry is finalized")
        return self._entries[idx]  # type: ignore[return-value]
