from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .generation_models import AssistantMode


class PromptCreate(BaseModel):
    prompt: str = Field(min_length=1)


class ModeUpdate(BaseModel):
    mode: AssistantMode


class SessionStateView(BaseModel):
    input_text: str
    is_busy: bool
    mode: AssistantMode
    conversation_ended: bool
    pending_count: int


class SessionOutcomeView(BaseModel):
    status: str
    entry_id: str
    used_fallback: bool = False
    has_result: bool = False
    error: Optional[str] = None
    pending_count: int = 0


class PendingResultsView(BaseModel):
    count: int
    items: List[Dict[str, Any]]


class PreviewCreated(BaseModel):
    preview_id: str
    url: str
