from __future__ import annotations

import copy
import uuid
from threading import RLock
from typing import Any, Dict, List, Optional

from ..domain.asset_models import AssetBundle
from ..domain.errors import ReconciliationError


class InMemoryDocumentHost:
    """Process-local stand-in for the page-builder project API."""

    def __init__(self, project_schema: Optional[Dict[str, Any]] = None) -> None:
        self._document: Optional[Dict[str, Any]] = None
        self._project: Optional[Dict[str, Any]] = copy.deepcopy(project_schema) if project_schema else None
        self.render_count = 0
        self._lock = RLock()
        if self._project:
            tree = self._project.get("componentsTree") or []
            if tree:
                self._document = self._describe(tree[0])

    @staticmethod
    def _describe(page: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "id": page.get("id") or uuid.uuid4().hex,
            "componentName": page.get("componentName", "Page"),
            "fileName": page.get("fileName", "/"),
        }

    def get_current_document(self) -> Optional[Dict[str, Any]]:
        with self._lock:
            return copy.deepcopy(self._document)

    def open_document(self, descriptor: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            doc = {"id": uuid.uuid4().hex, **descriptor}
            self._document = doc
            return copy.deepcopy(doc)

    def import_schema(self, project_schema: Dict[str, Any]) -> None:
        tree = project_schema.get("componentsTree") if isinstance(project_schema, dict) else None
        if not isinstance(tree, list) or not tree or not isinstance(tree[0], dict):
            raise ReconciliationError("project schema has no componentsTree")
        if not tree[0].get("componentName"):
            raise ReconciliationError("root node is missing componentName")
        with self._lock:
            self._project = copy.deepcopy(project_schema)
            if self._document is None:
                self._document = self._describe(tree[0])

    def trigger_rerender(self) -> None:
        with self._lock:
            self.render_count += 1

    def export_current_schema(self) -> Optional[Dict[str, Any]]:
        with self._lock:
            return copy.deepcopy(self._project)


class AssetComponentRegistry:
    """Component registry backed by an asset bundle."""

    def __init__(self, bundle: AssetBundle) -> None:
        self._bundle = bundle

    @property
    def bundle(self) -> AssetBundle:
        return self._bundle

    def list_available_component_names(self) -> List[str]:
        return [c.component_name for c in self._bundle.components]

    def list_component_metadata(self) -> List[Dict[str, Any]]:
        return [c.metadata() for c in self._bundle.components]

    def components_map(self) -> List[Dict[str, Any]]:
        return [c.map_entry() for c in self._bundle.components]
