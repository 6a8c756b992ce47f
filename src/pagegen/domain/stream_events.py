"""Typed events decoded from the generation service stream.

Wire frames are JSON objects tagged by ``type``; field names on the wire are
camelCase (``isStreaming``, ``hasSchema``, ``schemaSize``).
"""

from __future__ import annotations

from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from .generation_models import extract_result_payload


class _EventBase(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    message: Optional[str] = None
    iteration: Optional[int] = Field(default=None, ge=1)
    is_streaming: bool = Field(default=False, alias="isStreaming")


class StartEvent(_EventBase):
    type: Literal["start"] = "start"


class ProgressEvent(_EventBase):
    type: Literal["progress"] = "progress"


class IterationEvent(_EventBase):
    type: Literal["iteration"] = "iteration"
    completed: Optional[bool] = None
    has_schema: Optional[bool] = Field(default=None, alias="hasSchema")
    schema_size: Optional[int] = Field(default=None, ge=0, alias="schemaSize")
    reasoning: Optional[str] = None


class CompleteEvent(_EventBase):
    type: Literal["complete"] = "complete"
    result: Optional[Dict[str, Any]] = Field(default=None, alias="schema")
    data: Optional[Dict[str, Any]] = None

    def payload(self) -> Optional[Dict[str, Any]]:
        return extract_result_payload(self.result, self.data)


class ErrorEvent(_EventBase):
    type: Literal["error"] = "error"
    error: Optional[str] = None
    # Set by the decoder for frames it could not parse; never read from the wire.
    decode_failure: bool = Field(default=False, exclude=True)

    def description(self) -> str:
        return self.error or self.message or "unknown error"


StreamEvent = Annotated[
    Union[StartEvent, ProgressEvent, IterationEvent, CompleteEvent, ErrorEvent],
    Field(discriminator="type"),
]

STREAM_EVENT_ADAPTER: TypeAdapter[StreamEvent] = TypeAdapter(StreamEvent)
