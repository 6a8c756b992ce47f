"""One prompt -> one generation session.

The session opens the in-flight timeline entry, consumes the service stream,
and finalizes exactly once: as success (the result is queued for the user to
apply) or as error. A broken stream gets one synchronous retry before the
session gives up.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, Optional, Set

from ..core.state_machine import SessionPhase, ensure_transition, is_terminal
from ..domain.errors import AssistantError, DecodeError, GenerationError, TransportError
from ..domain.generation_models import GenerationRequest, GenerationResponse
from ..domain.host_ports import GenerationTransport
from ..domain.stream_events import (
    CompleteEvent,
    ErrorEvent,
    IterationEvent,
    ProgressEvent,
    StartEvent,
    StreamEvent,
)
from ..domain.timeline_models import IterationMarker, IterationRecord
from ..infrastructure.pending_results import PendingResultStore
from ..infrastructure.timeline import ChatTimeline
from ..observability.metrics import record_session, record_stream_event
from .stream_decoder import StreamEventDecoder
from .throttle import ThrottledAccumulator

LOG = logging.getLogger("pagegen.session")

DEFAULT_START_TEXT = "AI正在为您生成页面..."
COMPLETION_MARKER = "✅ 生成完成"
FAILURE_MARKER = "❌ 生成失败"
FALLBACK_NOTE = "⚠️ 流式连接中断，已改用普通请求重新生成"
INTERRUPTED_TEXT = "生成过程被中断"


def iteration_header(index: int) -> str:
    return f"\n🔄 第 {index} 轮迭代\n"


@dataclass
class SessionOutcome:
    status: str
    entry_id: str
    result: Optional[Dict[str, Any]] = None
    used_fallback: bool = False
    error: Optional[str] = None
    failure: Optional[AssistantError] = None

    @property
    def succeeded(self) -> bool:
        return self.status == "success"


class GenerationSession:
    def __init__(
        self,
        request: GenerationRequest,
        transport: GenerationTransport,
        timeline: ChatTimeline,
        pending: PendingResultStore,
        *,
        streaming: bool = True,
        throttle_interval: float = 0.1,
        clock: Callable[[], float] = time.monotonic,
        decoder: Optional[StreamEventDecoder] = None,
        on_update: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.request = request
        self.phase = SessionPhase.IDLE
        self._transport = transport
        self._timeline = timeline
        self._pending = pending
        self._streaming = streaming
        self._throttle_interval = throttle_interval
        self._clock = clock
        self._decoder = decoder or StreamEventDecoder()
        self._on_update = on_update
        self._entry_id: Optional[str] = None
        self._acc: Optional[ThrottledAccumulator] = None
        self._iteration_headers: Set[int] = set()
        self._recorded_iterations: Set[int] = set()
        self._outcome: Optional[SessionOutcome] = None

    @property
    def entry_id(self) -> Optional[str]:
        return self._entry_id

    @property
    def outcome(self) -> Optional[SessionOutcome]:
        return self._outcome

    @property
    def text(self) -> str:
        return self._acc.text if self._acc else ""

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def run(self) -> SessionOutcome:
        self._begin()
        LOG.info(
            "session_started",
            extra={"mode": self.request.mode.value, "streaming": self._streaming, "prompt_chars": len(self.request.prompt)},
        )
        try:
            if self._streaming:
                self._consume_stream()
            else:
                self._run_synchronous()
        finally:
            if not is_terminal(self.phase):
                self._abort()
        return self._done()

    def _abort(self) -> None:
        LOG.warning("session_interrupted", extra={"phase": self.phase.value})
        self._on_update = None
        self._fail(INTERRUPTED_TEXT)
        self._advance(SessionPhase.DONE)

    def _begin(self) -> None:
        self._advance(SessionPhase.ISSUING)
        entry = self._timeline.open_in_flight("")
        self._entry_id = entry.entry_id
        self._acc = ThrottledAccumulator(self._emit, self._throttle_interval, self._clock)

    def _consume_stream(self) -> None:
        frames: Optional[Iterator[Any]] = None
        events: Optional[Iterator[StreamEvent]] = None
        try:
            frames = iter(self._transport.issue_streaming(self.request))
            self._advance(SessionPhase.STREAMING)
            events = self._decoder.decode(frames)
            for event in events:
                record_stream_event(event.type)
                self._handle(event)
                if is_terminal(self.phase):
                    break
            if not is_terminal(self.phase):
                raise TransportError("stream ended before the service reported completion")
        except (TransportError, DecodeError) as exc:
            LOG.warning("stream_transport_failed", extra={"err": str(exc), "kind": exc.__class__.__name__})
            self._run_fallback(exc)
        except Exception as exc:
            LOG.exception("stream_consumption_failed")
            self._run_fallback(TransportError(str(exc) or exc.__class__.__name__))
        finally:
            for it in (events, frames):
                close = getattr(it, "close", None)
                if close is not None:
                    close()

    def _run_synchronous(self) -> None:
        assert self._acc is not None
        self._acc.reset(DEFAULT_START_TEXT)
        try:
            response = self._transport.issue_synchronous(self.request)
        except Exception as exc:
            LOG.warning("sync_generation_failed", extra={"err": str(exc)})
            self._fail(str(exc) or exc.__class__.__name__)
            return
        self._apply_response(response, used_fallback=False, prior_error=None)

    def _run_fallback(self, cause: Exception) -> None:
        assert self._acc is not None
        stream_error = str(cause) or cause.__class__.__name__
        self._acc.append_line(FALLBACK_NOTE)
        try:
            response = self._transport.issue_synchronous(self.request)
        except Exception as exc:
            LOG.warning("session_fallback_failed", extra={"err": str(exc)})
            self._fail(f"{stream_error}; 备用请求也失败: {exc}", used_fallback=True)
            return
        self._apply_response(response, used_fallback=True, prior_error=stream_error)

    def _apply_response(self, response: GenerationResponse, *, used_fallback: bool, prior_error: Optional[str]) -> None:
        assert self._acc is not None
        if not response.success:
            reason = response.error or response.message or "生成服务未返回结果"
            if prior_error:
                reason = f"{prior_error}; 备用请求也失败: {reason}"
            self._fail(reason, used_fallback=used_fallback)
            return
        if used_fallback:
            LOG.info("session_fallback_succeeded")
        self._acc.append_line(self._completion_line(response.message))
        self._finalize(SessionPhase.FINALIZING_SUCCESS, response.payload(), used_fallback=used_fallback)

    def _done(self) -> SessionOutcome:
        self._advance(SessionPhase.DONE)
        assert self._outcome is not None
        record_session(self._outcome.status, self._outcome.used_fallback)
        LOG.info(
            "session_finished",
            extra={
                "status": self._outcome.status,
                "used_fallback": self._outcome.used_fallback,
                "has_result": self._outcome.result is not None,
            },
        )
        return self._outcome

    # ------------------------------------------------------------------
    # Event handling
    # ------------------------------------------------------------------
    def _handle(self, event: StreamEvent) -> None:
        assert self._acc is not None
        if isinstance(event, StartEvent):
            self._acc.reset(event.message or DEFAULT_START_TEXT)
        elif isinstance(event, ProgressEvent):
            self._handle_progress(event)
        elif isinstance(event, IterationEvent):
            self._handle_iteration(event)
        elif isinstance(event, CompleteEvent):
            self._acc.append_line(self._completion_line(event.message))
            self._finalize(SessionPhase.FINALIZING_SUCCESS, event.payload())
        elif isinstance(event, ErrorEvent):
            if event.decode_failure:
                raise DecodeError(event.description())
            self._fail(event.description())
        else:
            raise TypeError(f"Unhandled stream event {type(event).__name__}")

    def _handle_progress(self, event: ProgressEvent) -> None:
        assert self._acc is not None
        if event.iteration is not None:
            self._ensure_iteration_header(event.iteration)
        if not event.message:
            return
        if event.is_streaming:
            self._acc.append(event.message, partial=True)
        else:
            self._acc.append_line(event.message)

    def _handle_iteration(self, event: IterationEvent) -> None:
        assert self._acc is not None
        if event.is_streaming:
            index = event.iteration or self._current_iteration_index()
            self._ensure_iteration_header(index)
            if event.message:
                self._acc.append(event.message, partial=True)
            return
        index = event.iteration or self._next_iteration_index()
        if event.message:
            self._acc.append_line(event.message)
        if index in self._recorded_iterations:
            LOG.debug("iteration_marker_duplicate", extra={"iteration": index})
            return
        self._recorded_iterations.add(index)
        record = IterationRecord(
            iteration_index=index,
            completed=bool(event.completed),
            produced_result=bool(event.has_schema),
            result_size=event.schema_size or 0,
            reasoning=event.reasoning,
        )
        self._timeline.append(IterationMarker(record=record))

    def _ensure_iteration_header(self, index: int) -> None:
        assert self._acc is not None
        if index in self._iteration_headers:
            return
        self._iteration_headers.add(index)
        self._acc.append(iteration_header(index), partial=False)

    def _current_iteration_index(self) -> int:
        seen = self._iteration_headers | self._recorded_iterations
        return max(seen) if seen else 1

    def _next_iteration_index(self) -> int:
        seen = self._iteration_headers | self._recorded_iterations
        return max(seen) + 1 if seen else 1

    # ------------------------------------------------------------------
    # Finalization
    # ------------------------------------------------------------------
    @staticmethod
    def _completion_line(message: Optional[str]) -> str:
        return f"{COMPLETION_MARKER}: {message}" if message else COMPLETION_MARKER

    def _fail(self, reason: str, *, used_fallback: bool = False) -> None:
        assert self._acc is not None
        self._acc.append_line(f"{FAILURE_MARKER}: {reason}")
        self._finalize(SessionPhase.FINALIZING_ERROR, None, used_fallback=used_fallback, error=reason)

    def _finalize(
        self,
        target: SessionPhase,
        payload: Optional[Dict[str, Any]],
        *,
        used_fallback: bool = False,
        error: Optional[str] = None,
    ) -> None:
        assert self._acc is not None and self._entry_id is not None
        self._acc.flush()
        self._advance(target)
        succeeded = target == SessionPhase.FINALIZING_SUCCESS
        self._timeline.finalize_in_flight(
            self._entry_id,
            self._acc.text,
            payload if succeeded else None,
            used_fallback=used_fallback,
            is_error=not succeeded,
        )
        if succeeded and payload is not None:
            self._pending.append(payload)
        self._outcome = SessionOutcome(
            status="success" if succeeded else "error",
            entry_id=self._entry_id,
            result=payload if succeeded else None,
            used_fallback=used_fallback,
            error=error,
            failure=None if succeeded else GenerationError(error or "generation failed"),
        )

    def _advance(self, target: SessionPhase) -> None:
        self.phase = ensure_transition(self.phase, target)

    def _emit(self, text: str) -> None:
        if self._entry_id is None:
            return
        self._timeline.update_in_flight(self._entry_id, text)
        if self._on_update is None:
            return
        try:
            self._on_update(text)
        except Exception:
            LOG.exception("session_update_callback_failed")
            self._on_update = None
