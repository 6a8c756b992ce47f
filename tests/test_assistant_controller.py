import pytest

from src.pagegen.core.settings import AssistantSettings
from src.pagegen.domain.asset_models import AssetBundle
from src.pagegen.domain.errors import SessionBusyError
from src.pagegen.domain.generation_models import AssistantMode, GenerationResponse
from src.pagegen.domain.timeline_models import InFlightEntry, UserTurn
from src.pagegen.infrastructure.assets import default_asset_bundle
from src.pagegen.infrastructure.document_host import AssetComponentRegistry, InMemoryDocumentHost
from src.pagegen.services import assistant_controller as ac
from src.pagegen.services.assistant_controller import AssistantController
from src.pagegen.services.offline_generator import OfflineTemplateTransport

from tests.utils import ScriptedTransport, frame, page


def _controller(transport=None, bundle=None, **settings):
    transport = transport or ScriptedTransport([frame({"type": "complete", "schema": page()})])
    registry = AssetComponentRegistry(bundle if bundle is not None else default_asset_bundle())
    return AssistantController(
        transport,
        InMemoryDocumentHost(),
        registry,
        settings=AssistantSettings(throttle_ms=0, **settings),
    )


def test_submit_records_user_turn_and_queues_result():
    controller = _controller()
    outcome = controller.submit_prompt("  创建一个按钮  ")
    assert outcome.succeeded
    entries = list(controller.timeline.entries())
    assert isinstance(entries[0], UserTurn) and entries[0].content == "创建一个按钮"
    assert isinstance(entries[1], InFlightEntry) and entries[1].is_complete
    assert len(controller.pending) == 1
    assert controller.snapshot().is_busy is False


def test_submit_uses_and_clears_input_text():
    transport = ScriptedTransport([frame({"type": "complete", "schema": page()})])
    controller = _controller(transport)
    controller.set_input("登录页")
    controller.submit_prompt()
    assert transport.stream_requests[0].prompt == "登录页"
    assert controller.snapshot().input_text == ""


def test_blank_prompt_rejected():
    controller = _controller()
    with pytest.raises(ValueError):
        controller.submit_prompt("   ")
    assert len(controller.timeline) == 0


def test_busy_controller_rejects_everything():
    controller = _controller()
    controller.state.is_busy = True
    with pytest.raises(SessionBusyError):
        controller.submit_prompt("hi")
    with pytest.raises(SessionBusyError):
        controller.confirm_and_apply()
    with pytest.raises(SessionBusyError):
        controller.clear_chat()
    with pytest.raises(SessionBusyError):
        controller.set_mode(AssistantMode.SMART_MATERIAL_SELECTION)


def test_controller_is_busy_while_session_runs():
    controller = _controller()
    seen = []
    controller.submit_prompt("hi", on_update=lambda _text: seen.append(controller.snapshot().is_busy))
    assert seen and all(seen)
    assert controller.snapshot().is_busy is False


def test_request_carries_document_and_materials():
    transport = ScriptedTransport([frame({"type": "complete", "schema": page()})])
    controller = _controller(transport)
    controller.submit_prompt("x")
    body = transport.stream_requests[0].to_payload()
    assert body["currentSchema"] is None
    assert "NextButton" in body["materials"]
    assert "smartMaterialSelection" not in body


def test_smart_mode_sends_component_metadata():
    transport = ScriptedTransport([frame({"type": "complete", "schema": page()})])
    controller = _controller(transport)
    controller.set_mode(AssistantMode.SMART_MATERIAL_SELECTION)
    controller.submit_prompt("x")
    body = transport.stream_requests[0].to_payload()
    assert body["smartMaterialSelection"] is True
    assert body["materialsMeta"][0]["componentName"] == "NextButton"


def test_empty_registry_falls_back_to_service_materials():
    transport = ScriptedTransport([frame({"type": "complete", "schema": page()})], materials=["Custom"])
    controller = _controller(transport, bundle=AssetBundle())
    controller.submit_prompt("x")
    assert transport.stream_requests[0].available_components == ("Custom",)


def test_confirm_applies_latest_and_ends_conversation():
    controller = _controller(OfflineTemplateTransport())
    controller.submit_prompt("创建一个用户登录页面")
    controller.submit_prompt("做一个用户列表")
    outcome = controller.confirm_and_apply()
    assert outcome.applied and outcome.discarded == 1
    assert controller.host.export_current_schema()["componentsTree"][0]["title"] == "列表页面"
    assert controller.snapshot().conversation_ended is True

    controller.submit_prompt("再来一个")
    assert controller.snapshot().conversation_ended is False


def test_confirm_with_nothing_pending():
    controller = _controller()
    assert controller.confirm_and_apply() is None
    assert controller.snapshot().conversation_ended is False


def test_clear_chat_resets_timeline_and_pending():
    controller = _controller()
    controller.submit_prompt("x")
    controller.clear_chat()
    assert len(controller.timeline) == 0
    assert len(controller.pending) == 0


def test_streaming_disabled_uses_synchronous_request():
    transport = ScriptedTransport(sync_response=GenerationResponse(success=True, result=page()))
    controller = _controller(transport, streaming=False)
    outcome = controller.submit_prompt("x")
    assert outcome.succeeded
    assert transport.stream_requests == []


def test_session_events_are_published(monkeypatch):
    published = []
    monkeypatch.setattr(ac, "publish_session_completed", lambda **kw: published.append(kw))
    controller = _controller()
    controller.submit_prompt("x")
    assert published[0]["status"] == "success"
    assert published[0]["pending_count"] == 1
    assert published[0]["mode"] == "standard"


def test_get_controller_is_a_singleton():
    first = ac.get_controller()
    assert ac.get_controller() is first
    assert isinstance(first._transport, OfflineTemplateTransport)


def test_failing_update_callback_does_not_block_next_prompt():
    controller = _controller(OfflineTemplateTransport())

    def broken_ui(_text):
        raise RuntimeError("widget gone")

    outcome = controller.submit_prompt("登录", on_update=broken_ui)
    assert outcome.succeeded
    assert controller.timeline.active_in_flight() is None

    second = controller.submit_prompt("列表")
    assert second.succeeded
    assert len(controller.pending) == 2
    controller.clear_chat()
    assert len(controller.timeline) == 0


class ScriptInterrupted(BaseException):
    """Raised by the UI runtime to abandon a script run."""


def test_interrupted_session_is_finalized_and_controller_recovers():
    controller = _controller(OfflineTemplateTransport())
    calls = []

    def rerun(_text):
        calls.append(_text)
        raise ScriptInterrupted()

    with pytest.raises(ScriptInterrupted):
        controller.submit_prompt("登录", on_update=rerun)

    assert len(calls) == 1
    assert controller.snapshot().is_busy is False
    assert controller.timeline.active_in_flight() is None
    entry = [e for e in controller.timeline.entries() if isinstance(e, InFlightEntry)][0]
    assert entry.is_complete and entry.is_error
    assert len(controller.pending) == 0

    assert controller.submit_prompt("列表").succeeded
    controller.clear_chat()
