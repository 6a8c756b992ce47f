"""Error taxonomy for the generation assistant."""

from __future__ import annotations

from typing import Optional


class AssistantError(Exception):
    """Base class for assistant failures that are surfaced to the user."""


class DecodeError(AssistantError):
    """A stream frame could not be parsed into an event."""

    def __init__(self, message: str, frame: Optional[str] = None) -> None:
        super().__init__(message)
        self.frame = frame


class TransportError(AssistantError):
    """The generation service could not be reached or the stream broke."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class GenerationError(AssistantError):
    """The generation service reported a failure and produced no result."""


class ReconciliationError(AssistantError):
    """The document host rejected the import or the re-render."""


class SessionBusyError(AssistantError):
    def __init__(self) -> None:
        super().__init__("A generation session is already running")


class SessionStateError(AssistantError):
    def __init__(self, current: str, target: str) -> None:
        super().__init__(f"Invalid session transition {current} -> {target}")
        self.current = current
        self.target = target


class TimelineError(AssistantError):
    pass


class PreviewError(AssistantError):
    pass
