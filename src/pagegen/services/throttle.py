from __future__ import annotations

import time
from typing import Callable, Optional


class ThrottledAccumulator:
    """Accumulates streamed text and limits how often it is pushed to the UI.

    The buffer is always updated synchronously; only the emission of partial
    text is rate limited. ``flush`` always emits the complete buffer.
    """

    def __init__(
        self,
        emit: Callable[[str], None],
        interval: float = 0.1,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._emit = emit
        self._interval = interval
        self._clock = clock
        self._buffer = ""
        self._last_emitted_at: Optional[float] = None
        self._last_emitted_text: Optional[str] = None

    @property
    def text(self) -> str:
        return self._buffer

    @property
    def last_emitted(self) -> Optional[str]:
        return self._last_emitted_text

    def reset(self, text: str) -> None:
        self._buffer = text
        self._push()

    def append(self, fragment: str, partial: bool = True) -> None:
        if not fragment:
            return
        self._buffer += fragment
        if not partial or self._due():
            self._push()

    def append_line(self, line: str) -> None:
        if self._buffer and not self._buffer.endswith("\n"):
            self._buffer += "\n"
        self._buffer += line
        self._push()

    def flush(self) -> None:
        self._push()

    def _due(self) -> bool:
        if self._last_emitted_at is None:
            return True
        return self._clock() - self._last_emitted_at >= self._interval

    def _push(self) -> None:
        self._last_emitted_at = self._clock()
        self._last_emitted_text = self._buffer
        self._emit(self._buffer)
