from __future__ import annotations

import json
import queue
import threading
from typing import Any, Dict, Iterator, List, Optional

from fastapi import APIRouter, HTTPException, status
from fastapi.responses import StreamingResponse

from ...domain.api_models import (
    ModeUpdate,
    PendingResultsView,
    PromptCreate,
    SessionOutcomeView,
    SessionStateView,
)
from ...domain.errors import SessionBusyError
from ...domain.generation_models import ReconciliationOutcome
from ...services.assistant_controller import AssistantController, get_controller
from ...services.generation_session import SessionOutcome

router = APIRouter(prefix="/assistant", tags=["assistant"])


def _state_view(controller: AssistantController) -> SessionStateView:
    state = controller.snapshot()
    return SessionStateView(**state.model_dump(), pending_count=len(controller.pending))


def _outcome_view(controller: AssistantController, outcome: SessionOutcome) -> SessionOutcomeView:
    return SessionOutcomeView(
        status=outcome.status,
        entry_id=outcome.entry_id,
        used_fallback=outcome.used_fallback,
        has_result=outcome.result is not None,
        error=outcome.error,
        pending_count=len(controller.pending),
    )


def _busy() -> HTTPException:
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail="A generation session is already running")


def _sse(data: Dict[str, Any]) -> str:
    return f"data: {json.dumps(data, ensure_ascii=False, separators=(',', ':'))}\n\n"


@router.get("/state", response_model=SessionStateView)
def get_state() -> SessionStateView:
    return _state_view(get_controller())


@router.put("/mode", response_model=SessionStateView)
def put_mode(payload: ModeUpdate) -> SessionStateView:
    controller = get_controller()
    try:
        controller.set_mode(payload.mode)
    except SessionBusyError as exc:
        raise _busy() from exc
    return _state_view(controller)


@router.post("/prompt", response_model=SessionOutcomeView)
def post_prompt(payload: PromptCreate) -> SessionOutcomeView:
    controller = get_controller()
    try:
        outcome = controller.submit_prompt(payload.prompt)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except SessionBusyError as exc:
        raise _busy() from exc
    return _outcome_view(controller, outcome)


@router.post("/prompt/stream")
def post_prompt_stream(payload: PromptCreate) -> StreamingResponse:
    """Runs a session on a worker thread and relays in-flight text as SSE."""
    controller = get_controller()
    if not payload.prompt.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Prompt must not be empty")
    if controller.snapshot().is_busy:
        raise _busy()

    updates: "queue.Queue[Optional[Dict[str, Any]]]" = queue.Queue()

    def worker() -> None:
        try:
            outcome = controller.submit_prompt(payload.prompt, on_update=lambda text: updates.put({"type": "update", "text": text}))
            updates.put({"type": "done", **_outcome_view(controller, outcome).model_dump()})
        except SessionBusyError:
            updates.put({"type": "error", "message": "A generation session is already running"})
        except Exception as exc:
            updates.put({"type": "error", "message": str(exc)})
        finally:
            updates.put(None)

    threading.Thread(target=worker, name="pagegen-session", daemon=True).start()

    def event_stream() -> Iterator[str]:
        while True:
            item = updates.get()
            if item is None:
                break
            yield _sse(item)

    headers = {
        "Cache-Control": "no-cache, no-transform",
        "Connection": "keep-alive",
        "X-Accel-Buffering": "no",
    }
    return StreamingResponse(event_stream(), media_type="text/event-stream", headers=headers)


@router.get("/timeline")
def get_timeline() -> List[Dict[str, Any]]:
    return [entry.model_dump() for entry in get_controller().timeline.entries()]


@router.get("/pending", response_model=PendingResultsView)
def get_pending() -> PendingResultsView:
    items = get_controller().pending.items()
    return PendingResultsView(count=len(items), items=items)


@router.post("/confirm", response_model=Optional[ReconciliationOutcome])
def post_confirm() -> Optional[ReconciliationOutcome]:
    try:
        return get_controller().confirm_and_apply()
    except SessionBusyError as exc:
        raise _busy() from exc


@router.post("/clear", response_model=SessionStateView)
def post_clear() -> SessionStateView:
    controller = get_controller()
    try:
        controller.clear_chat()
    except SessionBusyError as exc:
        raise _busy() from exc
    return _state_view(controller)


@router.get("/document")
def get_document() -> Dict[str, Any]:
    controller = get_controller()
    return {
        "document": controller.host.get_current_document(),
        "schema": controller.host.export_current_schema(),
    }
