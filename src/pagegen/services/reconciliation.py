from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from ..domain.errors import ReconciliationError
from ..domain.generation_models import ReconciliationOutcome
from ..domain.host_ports import ComponentRegistry, DocumentHost
from ..domain.timeline_models import AssistantTurn
from ..infrastructure.pending_results import PendingResultStore
from ..infrastructure.timeline import ChatTimeline

LOG = logging.getLogger("pagegen.reconcile")

PROJECT_SCHEMA_VERSION = "1.0.0"
NEW_DOCUMENT_DESCRIPTOR: Dict[str, Any] = {"componentName": "Page", "fileName": "ai-generated-page"}
APPLIED_MESSAGE = "✅ 已成功应用生成结果，请查看设计器中的变化。"
APPLY_FAILED_PREFIX = "❌ 应用失败"


def build_project_schema(page: Dict[str, Any], components_map: Any) -> Dict[str, Any]:
    """Wrap a generated page into the project document shape the host imports."""
    return {
        "componentsTree": [page],
        "componentsMap": components_map,
        "version": PROJECT_SCHEMA_VERSION,
        "i18n": {},
    }


class ReconciliationApplier:
    """Applies the most recent pending result to the host document.

    Older pending results are dropped (last write wins); they remain visible
    in the timeline. A host failure keeps the store intact for a retry.
    """

    def __init__(
        self,
        host: DocumentHost,
        registry: ComponentRegistry,
        timeline: ChatTimeline,
        pending: PendingResultStore,
    ) -> None:
        self._host = host
        self._registry = registry
        self._timeline = timeline
        self._pending = pending

    def confirm_and_apply(self) -> Optional[ReconciliationOutcome]:
        page = self._pending.latest()
        if page is None:
            return None
        discarded = len(self._pending) - 1
        try:
            self._apply(page)
        except ReconciliationError as exc:
            LOG.warning("reconciliation_failed", extra={"err": str(exc), "pending": len(self._pending)})
            self._timeline.append(AssistantTurn(content=f"{APPLY_FAILED_PREFIX}: {exc}", is_error=True))
            return ReconciliationOutcome(applied=False, discarded=0, error=str(exc))

        self._timeline.append(AssistantTurn(content=APPLIED_MESSAGE))
        self._pending.clear()
        LOG.info("reconciliation_applied", extra={"discarded": discarded})
        return ReconciliationOutcome(applied=True, discarded=discarded)

    def _apply(self, page: Dict[str, Any]) -> None:
        try:
            project_schema = build_project_schema(page, self._registry.components_map())
            if self._host.get_current_document() is None:
                LOG.info("reconciliation_open_document")
                self._host.open_document(dict(NEW_DOCUMENT_DESCRIPTOR))
            self._host.import_schema(project_schema)
            self._host.trigger_rerender()
        except ReconciliationError:
            raise
        except Exception as exc:
            raise ReconciliationError(str(exc) or exc.__class__.__name__) from exc
