from __future__ import annotations

from enum import Enum
from typing import Dict, List

from ..domain.errors import SessionStateError


class SessionPhase(str, Enum):
    IDLE = "idle"
    ISSUING = "issuing"
    STREAMING = "streaming"
    FINALIZING_SUCCESS = "finalizing_success"
    FINALIZING_ERROR = "finalizing_error"
    DONE = "done"


# Generation session lifecycle. A synchronous (non-streaming) request goes
# straight from issuing to finalization.
SESSION_TRANSITIONS: Dict[SessionPhase, List[SessionPhase]] = {
    SessionPhase.IDLE: [SessionPhase.ISSUING],
    SessionPhase.ISSUING: [
        SessionPhase.STREAMING,
        SessionPhase.FINALIZING_SUCCESS,
        SessionPhase.FINALIZING_ERROR,
    ],
    SessionPhase.STREAMING: [SessionPhase.FINALIZING_SUCCESS, SessionPhase.FINALIZING_ERROR],
    SessionPhase.FINALIZING_SUCCESS: [SessionPhase.DONE],
    SessionPhase.FINALIZING_ERROR: [SessionPhase.DONE],
    SessionPhase.DONE: [],
}


def is_valid_transition(current: SessionPhase, target: SessionPhase) -> bool:
    return target in SESSION_TRANSITIONS.get(current, [])


def ensure_transition(current: SessionPhase, target: SessionPhase) -> SessionPhase:
    if not is_valid_transition(current, target):
        raise SessionStateError(current.value, target.value)
    return target


def is_terminal(phase: SessionPhase) -> bool:
    return phase in (SessionPhase.FINALIZING_SUCCESS, SessionPhase.FINALIZING_ERROR, SessionPhase.DONE)
