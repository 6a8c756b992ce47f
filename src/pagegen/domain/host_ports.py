"""Capabilities the assistant needs from its collaborators.

The page-builder host, its component registry and the generation service
are all external; anything that satisfies these protocols can be plugged in
(including test stubs).
"""

from __future__ import annotations

from typing import Any, Dict, Iterator, List, Optional, Protocol, Union

from .generation_models import GenerationRequest, GenerationResponse

Frame = Union[str, bytes]


class GenerationTransport(Protocol):
    def issue_streaming(self, request: GenerationRequest) -> Iterator[Frame]: ...

    def issue_synchronous(self, request: GenerationRequest) -> GenerationResponse: ...

    def fetch_available_materials(self) -> List[str]: ...


class DocumentHost(Protocol):
    def get_current_document(self) -> Optional[Dict[str, Any]]: ...

    def open_document(self, descriptor: Dict[str, Any]) -> Dict[str, Any]: ...

    def import_schema(self, project_schema: Dict[str, Any]) -> None: ...

    def trigger_rerender(self) -> None: ...

    def export_current_schema(self) -> Optional[Dict[str, Any]]: ...


class ComponentRegistry(Protocol):
    def list_available_component_names(self) -> List[str]: ...

    def list_component_metadata(self) -> List[Dict[str, Any]]: ...

    def components_map(self) -> List[Dict[str, Any]]: ...
