from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class AssistantMode(str, Enum):
    STANDARD = "standard"
    SMART_MATERIAL_SELECTION = "smart_material_selection"


def extract_result_payload(result: Any, data: Any) -> Optional[Dict[str, Any]]:
    """Pick the generated page out of a reply: top-level first, then ``data.schema``."""
    if isinstance(result, dict) and result:
        return result
    if isinstance(data, dict):
        nested = data.get("schema")
        if isinstance(nested, dict) and nested:
            return nested
    return None


class GenerationRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    prompt: str = Field(min_length=1)
    current_document: Optional[Dict[str, Any]] = None
    available_components: Tuple[str, ...] = ()
    mode: AssistantMode = AssistantMode.STANDARD
    component_metadata: Tuple[Dict[str, Any], ...] = ()

    @property
    def smart(self) -> bool:
        return self.mode == AssistantMode.SMART_MATERIAL_SELECTION

    def to_payload(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "prompt": self.prompt,
            "currentSchema": self.current_document,
            "materials": list(self.available_components),
        }
        if self.smart:
            body["materialsMeta"] = [dict(meta) for meta in self.component_metadata]
            body["smartMaterialSelection"] = True
        return body


class GenerationResponse(BaseModel):
    """Reply of the synchronous generate-schema endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = False
    message: str = ""
    result: Optional[Dict[str, Any]] = Field(default=None, alias="schema")
    data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    def payload(self) -> Optional[Dict[str, Any]]:
        return extract_result_payload(self.result, self.data)


class SessionState(BaseModel):
    input_text: str = ""
    is_busy: bool = False
    mode: AssistantMode = AssistantMode.STANDARD
    conversation_ended: bool = False


class ReconciliationOutcome(BaseModel):
    applied: bool
    discarded: int = 0
    error: Optional[str] = None
