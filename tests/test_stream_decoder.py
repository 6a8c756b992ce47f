from src.pagegen.domain.stream_events import (
    CompleteEvent,
    ErrorEvent,
    IterationEvent,
    ProgressEvent,
    StartEvent,
)
from src.pagegen.services.stream_decoder import StreamEventDecoder

from tests.utils import frame


decoder = StreamEventDecoder()


def test_decodes_each_event_kind():
    frames = [
        frame({"type": "start", "message": "开始"}),
        frame({"type": "progress", "message": "片段", "isStreaming": True, "iteration": 2}),
        frame({"type": "iteration", "iteration": 1, "completed": True, "hasSchema": True, "schemaSize": 42}),
        frame({"type": "complete", "message": "完成", "schema": {"componentName": "Page"}}),
        frame({"type": "error", "error": "超时"}),
    ]
    events = list(decoder.decode(frames))
    assert [type(e) for e in events] == [StartEvent, ProgressEvent, IterationEvent, CompleteEvent, ErrorEvent]

    progress = events[1]
    assert progress.is_streaming is True and progress.iteration == 2

    iteration = events[2]
    assert iteration.has_schema is True
    assert iteration.schema_size == 42

    assert events[3].payload() == {"componentName": "Page"}
    assert events[4].description() == "超时"
    assert events[4].decode_failure is False


def test_accepts_bytes_and_frames_without_prefix():
    event = decoder.decode_frame(b'{"type": "start"}')
    assert isinstance(event, StartEvent)
    assert event.message is None


def test_complete_payload_falls_back_to_nested_schema():
    event = decoder.decode_frame(frame({"type": "complete", "data": {"schema": {"componentName": "Page", "id": "p"}}}))
    assert event.payload() == {"componentName": "Page", "id": "p"}


def test_complete_without_any_result_has_no_payload():
    event = decoder.decode_frame(frame({"type": "complete", "schema": {}}))
    assert event.payload() is None


def test_invalid_json_becomes_decode_failure():
    event = decoder.decode_frame("data: {not json")
    assert isinstance(event, ErrorEvent)
    assert event.decode_failure is True
    assert event.error.startswith("decode failure")


def test_unknown_type_and_non_object_become_decode_failures():
    unknown = decoder.decode_frame(frame({"type": "heartbeat"}))
    listing = decoder.decode_frame("data: [1, 2]")
    empty = decoder.decode_frame("data:   ")
    for event in (unknown, listing, empty):
        assert isinstance(event, ErrorEvent)
        assert event.decode_failure is True


def test_invalid_field_values_are_rejected():
    event = decoder.decode_frame(frame({"type": "iteration", "iteration": 0}))
    assert isinstance(event, ErrorEvent) and event.decode_failure


def test_wire_cannot_spoof_decode_failure_flag():
    event = decoder.decode_frame(frame({"type": "error", "error": "x", "decode_failure": True}))
    assert isinstance(event, ErrorEvent)
    assert event.decode_failure is False


def test_invalid_utf8_bytes():
    event = decoder.decode_frame(b"data: \xff\xfe")
    assert isinstance(event, ErrorEvent) and event.decode_failure
