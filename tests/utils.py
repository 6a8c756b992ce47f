import json
from typing import Any, Dict, Iterable, Iterator, List, Optional

from src.pagegen.domain.errors import TransportError
from src.pagegen.domain.generation_models import GenerationRequest, GenerationResponse


def frame(payload: Dict[str, Any]) -> str:
    return "data: " + json.dumps(payload, ensure_ascii=False)


def page(title: str = "页面", **extra: Any) -> Dict[str, Any]:
    node = {"componentName": "Page", "id": "node_page", "title": title, "children": []}
    node.update(extra)
    return node


class ScriptedTransport:
    """Generation transport that replays canned frames and replies."""

    def __init__(
        self,
        frames: Optional[Iterable[Any]] = None,
        *,
        break_after: Optional[int] = None,
        stream_error: Optional[Exception] = None,
        sync_response: Optional[GenerationResponse] = None,
        sync_error: Optional[Exception] = None,
        materials: Optional[List[str]] = None,
    ) -> None:
        self.frames = list(frames or [])
        self.break_after = break_after
        self.stream_error = stream_error
        self.sync_response = sync_response
        self.sync_error = sync_error
        self.materials = materials if materials is not None else ["NextButton"]
        self.stream_requests: List[GenerationRequest] = []
        self.sync_requests: List[GenerationRequest] = []
        self.closed = False

    def issue_streaming(self, request: GenerationRequest) -> Iterator[Any]:
        self.stream_requests.append(request)
        if self.stream_error is not None:
            raise self.stream_error
        try:
            for i, f in enumerate(self.frames):
                if self.break_after is not None and i >= self.break_after:
                    raise TransportError("connection reset")
                yield f
        finally:
            self.closed = True

    def issue_synchronous(self, request: GenerationRequest) -> GenerationResponse:
        self.sync_requests.append(request)
        if self.sync_error is not None:
            raise self.sync_error
        if self.sync_response is None:
            raise AssertionError("unexpected synchronous request")
        return self.sync_response

    def fetch_available_materials(self) -> List[str]:
        return list(self.materials)
