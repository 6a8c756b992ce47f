from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated, Any, Dict, Literal, Optional, Union
import uuid

from pydantic import BaseModel, ConfigDict, Field


def _now_iso() -> str:
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


def _new_id() -> str:
    return uuid.uuid4().hex


class IterationRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    iteration_index: int = Field(ge=1)
    completed: bool = False
    produced_result: bool = False
    result_size: int = Field(default=0, ge=0)
    reasoning: Optional[str] = None


class _EntryBase(BaseModel):
    entry_id: str = Field(default_factory=_new_id)
    created_at: str = Field(default_factory=_now_iso)


class UserTurn(_EntryBase):
    model_config = ConfigDict(frozen=True)

    kind: Literal["user_turn"] = "user_turn"
    content: str


class AssistantTurn(_EntryBase):
    model_config = ConfigDict(frozen=True)

    kind: Literal["assistant_turn"] = "assistant_turn"
    content: str
    is_error: bool = False


class IterationMarker(_EntryBase):
    model_config = ConfigDict(frozen=True)

    kind: Literal["iteration_marker"] = "iteration_marker"
    record: IterationRecord


class InFlightEntry(_EntryBase):
    """Live output of the running session; frozen by the timeline once complete."""

    kind: Literal["in_flight"] = "in_flight"
    streaming_text: str = ""
    is_complete: bool = False
    final_result: Optional[Dict[str, Any]] = None
    used_fallback: bool = False
    is_error: bool = False


TimelineEntry = Annotated[
    Union[UserTurn, AssistantTurn, IterationMarker, InFlightEntry],
    Field(discriminator="kind"),
]
