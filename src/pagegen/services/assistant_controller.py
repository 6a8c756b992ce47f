from __future__ import annotations

import logging
import time
from threading import Lock
from typing import Callable, List, Optional

from ..core.settings import AssistantSettings
from ..domain.errors import SessionBusyError
from ..domain.generation_models import AssistantMode, GenerationRequest, ReconciliationOutcome, SessionState
from ..domain.host_ports import ComponentRegistry, DocumentHost, GenerationTransport
from ..domain.timeline_models import AssistantTurn, UserTurn
from ..infrastructure.assets import load_asset_bundle
from ..infrastructure.document_host import AssetComponentRegistry, InMemoryDocumentHost
from ..infrastructure.events import publish_reconciliation, publish_session_completed
from ..infrastructure.pending_results import PendingResultStore
from ..infrastructure.timeline import ChatTimeline
from .generation_client import get_transport
from .generation_session import FAILURE_MARKER, GenerationSession, SessionOutcome
from .reconciliation import ReconciliationApplier

LOG = logging.getLogger("pagegen.assistant")


class AssistantController:
    """Owns the chat state of one assistant panel.

    Only one generation session runs at a time; results pile up in the
    pending store until the user applies them.
    """

    def __init__(
        self,
        transport: GenerationTransport,
        host: DocumentHost,
        registry: ComponentRegistry,
        *,
        settings: Optional[AssistantSettings] = None,
        timeline: Optional[ChatTimeline] = None,
        pending: Optional[PendingResultStore] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.settings = settings or AssistantSettings.from_env()
        self.state = SessionState()
        self.timeline = timeline or ChatTimeline()
        self.pending = pending or PendingResultStore()
        self.host = host
        self._transport = transport
        self._registry = registry
        self._applier = ReconciliationApplier(host, registry, self.timeline, self.pending)
        self._clock = clock
        self._lock = Lock()

    def snapshot(self) -> SessionState:
        with self._lock:
            return self.state.model_copy()

    def set_input(self, text: str) -> None:
        self.state.input_text = text

    def set_mode(self, mode: AssistantMode) -> None:
        with self._lock:
            if self.state.is_busy:
                raise SessionBusyError()
            self.state.mode = AssistantMode(mode)

    def _materials(self) -> List[str]:
        names = self._registry.list_available_component_names()
        if names:
            return list(names)
        return self._transport.fetch_available_materials()

    def build_request(self, prompt: str) -> GenerationRequest:
        mode = self.state.mode
        metadata = self._registry.list_component_metadata() if mode == AssistantMode.SMART_MATERIAL_SELECTION else []
        return GenerationRequest(
            prompt=prompt,
            current_document=self.host.export_current_schema(),
            available_components=tuple(self._materials()),
            mode=mode,
            component_metadata=tuple(metadata),
        )

    def submit_prompt(
        self,
        prompt: Optional[str] = None,
        on_update: Optional[Callable[[str], None]] = None,
    ) -> SessionOutcome:
        text = (prompt if prompt is not None else self.state.input_text).strip()
        if not text:
            raise ValueError("Prompt must not be empty")
        with self._lock:
            if self.state.is_busy:
                raise SessionBusyError()
            self.state.is_busy = True
        try:
            self.state.input_text = ""
            self.state.conversation_ended = False
            self.timeline.append(UserTurn(content=text))
            try:
                request = self.build_request(text)
            except Exception as exc:
                LOG.exception("generation_request_build_failed")
                turn = self.timeline.append(AssistantTurn(content=f"{FAILURE_MARKER}: {exc}", is_error=True))
                return SessionOutcome(status="error", entry_id=turn.entry_id, error=str(exc))
            session = GenerationSession(
                request,
                self._transport,
                self.timeline,
                self.pending,
                streaming=self.settings.streaming,
                throttle_interval=self.settings.throttle_interval,
                clock=self._clock,
                on_update=on_update,
            )
            outcome = session.run()
        finally:
            with self._lock:
                self.state.is_busy = False

        publish_session_completed(
            entry_id=outcome.entry_id,
            status=outcome.status,
            mode=request.mode.value,
            used_fallback=outcome.used_fallback,
            pending_count=len(self.pending),
            error=outcome.error,
        )
        return outcome

    def confirm_and_apply(self) -> Optional[ReconciliationOutcome]:
        with self._lock:
            if self.state.is_busy:
                raise SessionBusyError()
            outcome = self._applier.confirm_and_apply()
            if outcome is None:
                return None
            if outcome.applied:
                self.state.conversation_ended = True
        publish_reconciliation(applied=outcome.applied, discarded=outcome.discarded, error=outcome.error)
        return outcome

    def clear_chat(self) -> None:
        with self._lock:
            if self.state.is_busy:
                raise SessionBusyError()
            self.timeline.clear()
            self.pending.clear()
            self.state.conversation_ended = False


_controller: Optional[AssistantController] = None


def build_controller(settings: Optional[AssistantSettings] = None) -> AssistantController:
    settings = settings or AssistantSettings.from_env()
    registry = AssetComponentRegistry(load_asset_bundle(settings.assets_path))
    return AssistantController(
        get_transport(settings),
        InMemoryDocumentHost(),
        registry,
        settings=settings,
    )


def get_controller() -> AssistantController:
    global _controller
    if _controller is None:
        _controller = build_controller()
    return _controller
