from __future__ import annotations

import json
import logging
from typing import Iterable, Iterator

from pydantic import ValidationError

from ..domain.host_ports import Frame
from ..domain.stream_events import STREAM_EVENT_ADAPTER, ErrorEvent, StreamEvent

LOG = logging.getLogger("pagegen.stream")

_DATA_PREFIX = "data:"


def _decode_failure(reason: str, frame: str) -> ErrorEvent:
    LOG.warning("stream_frame_malformed", extra={"reason": reason, "frame": frame[:200]})
    return ErrorEvent(
        message="无法解析生成服务返回的数据",
        error=f"decode failure: {reason}",
        decode_failure=True,
    )


class StreamEventDecoder:
    """Turns raw SSE frames into typed stream events, one event per frame."""

    def decode(self, frames: Iterable[Frame]) -> Iterator[StreamEvent]:
        for frame in frames:
            yield self.decode_frame(frame)

    def decode_frame(self, frame: Frame) -> StreamEvent:
        if isinstance(frame, bytes):
            try:
                line = frame.decode("utf-8")
            except UnicodeDecodeError as exc:
                return _decode_failure(f"invalid utf-8 ({exc.reason})", repr(frame))
        else:
            line = frame
        text = line.strip()
        if text.startswith(_DATA_PREFIX):
            text = text[len(_DATA_PREFIX):].strip()
        if not text:
            return _decode_failure("empty frame", line)
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError as exc:
            return _decode_failure(f"invalid json ({exc.msg})", line)
        if not isinstance(parsed, dict):
            return _decode_failure("frame is not a json object", line)
        parsed.pop("decode_failure", None)
        try:
            return STREAM_EVENT_ADAPTER.validate_python(parsed)
        except ValidationError as exc:
            first = exc.errors()[0] if exc.errors() else {}
            loc = ".".join(str(part) for part in first.get("loc", ())) or "type"
            return _decode_failure(f"{loc}: {first.get('msg', 'invalid event')}", line)
