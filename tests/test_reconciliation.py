from src.pagegen.domain.timeline_models import AssistantTurn
from src.pagegen.infrastructure.assets import default_asset_bundle
from src.pagegen.infrastructure.document_host import AssetComponentRegistry, InMemoryDocumentHost
from src.pagegen.infrastructure.pending_results import PendingResultStore
from src.pagegen.infrastructure.timeline import ChatTimeline
from src.pagegen.services.reconciliation import (
    APPLIED_MESSAGE,
    APPLY_FAILED_PREFIX,
    NEW_DOCUMENT_DESCRIPTOR,
    ReconciliationApplier,
    build_project_schema,
)

from tests.utils import page


def _applier(host=None):
    host = host or InMemoryDocumentHost()
    registry = AssetComponentRegistry(default_asset_bundle())
    timeline = ChatTimeline()
    pending = PendingResultStore()
    return ReconciliationApplier(host, registry, timeline, pending), host, timeline, pending


def test_empty_store_is_a_no_op():
    applier, host, timeline, _ = _applier()
    assert applier.confirm_and_apply() is None
    assert host.get_current_document() is None
    assert host.render_count == 0
    assert len(timeline) == 0


def test_latest_result_wins_and_store_is_cleared():
    applier, host, timeline, pending = _applier()
    pending.append(page("第一版"))
    pending.append(page("第二版"))

    outcome = applier.confirm_and_apply()

    assert outcome.applied is True
    assert outcome.discarded == 1
    assert len(pending) == 0
    schema = host.export_current_schema()
    assert schema["componentsTree"] == [page("第二版")]
    assert schema["version"] == "1.0.0"
    assert schema["i18n"] == {}
    assert {"componentName": "NextButton"}.items() <= schema["componentsMap"][0].items()
    assert host.render_count == 1
    entries = list(timeline.entries())
    assert isinstance(entries[-1], AssistantTurn)
    assert entries[-1].content == APPLIED_MESSAGE


def test_opens_new_document_when_none_is_open():
    applier, host, _, pending = _applier()
    pending.append(page())
    applier.confirm_and_apply()
    doc = host.get_current_document()
    assert doc["fileName"] == NEW_DOCUMENT_DESCRIPTOR["fileName"]
    assert doc["componentName"] == "Page"


def test_keeps_existing_document():
    host = InMemoryDocumentHost(build_project_schema(page("旧页面", id="node_old"), []))
    applier, _, _, pending = _applier(host)
    before = host.get_current_document()
    pending.append(page("新页面"))
    applier.confirm_and_apply()
    assert host.get_current_document() == before
    assert host.export_current_schema()["componentsTree"][0]["title"] == "新页面"


def test_rejected_import_keeps_pending_results():
    applier, host, timeline, pending = _applier()
    pending.append(page())
    pending.append({"title": "没有根组件"})

    outcome = applier.confirm_and_apply()

    assert outcome.applied is False
    assert outcome.discarded == 0
    assert "componentName" in outcome.error
    assert len(pending) == 2
    assert host.render_count == 0
    last = list(timeline.entries())[-1]
    assert last.is_error and last.content.startswith(APPLY_FAILED_PREFIX)


def test_unexpected_host_failure_is_reported():
    class BrokenHost(InMemoryDocumentHost):
        def trigger_rerender(self):
            raise RuntimeError("designer crashed")

    applier, _, _, pending = _applier(BrokenHost())
    pending.append(page())
    outcome = applier.confirm_and_apply()
    assert outcome.applied is False
    assert outcome.error == "designer crashed"
    assert len(pending) == 1
