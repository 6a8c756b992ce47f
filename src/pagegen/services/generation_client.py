from __future__ import annotations

import logging
from typing import Iterator, List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry
from pydantic import ValidationError

from ..core.settings import AssistantSettings
from ..domain.errors import TransportError
from ..domain.generation_models import GenerationRequest, GenerationResponse
from ..domain.host_ports import Frame, GenerationTransport

LOG = logging.getLogger("pagegen.stream")

DEFAULT_MATERIALS: List[str] = [
    "NextButton",
    "NextInput",
    "NextForm",
    "NextFormItem",
    "NextSelect",
    "NextCheckbox",
    "NextRadio",
    "NextTable",
    "NextCard",
    "NextTabs",
    "NextDialog",
    "NextRow",
    "NextCol",
    "NextBox",
]


def _build_session() -> requests.Session:
    session = requests.Session()
    # Retries cover connection setup and gateway errors only; a broken stream is
    # handled by the synchronous fallback instead.
    retry = Retry(
        total=2,
        backoff_factor=0.5,
        status_forcelist=(502, 503, 504),
        allowed_methods=frozenset(["POST", "GET"]),
    )
    adapter = HTTPAdapter(max_retries=retry, pool_connections=4, pool_maxsize=4)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


def _error_message(resp: requests.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        data = {}
    message = data.get("message") if isinstance(data, dict) else None
    return message or f"HTTP error! status: {resp.status_code}"


class HttpGenerationTransport:
    """Client for the remote generate-schema service."""

    def __init__(self, settings: AssistantSettings, session: Optional[requests.Session] = None) -> None:
        self.base_url = settings.service_url.rstrip("/")
        self._timeout = settings.timeout
        self._session = session or _build_session()

    def _endpoint(self, request: GenerationRequest, streaming: bool) -> str:
        path = "/api/ai/generate-schema-smart" if request.smart else "/api/ai/generate-schema"
        if streaming:
            path += "/stream"
        return f"{self.base_url}{path}"

    def issue_streaming(self, request: GenerationRequest) -> Iterator[Frame]:
        url = self._endpoint(request, streaming=True)
        LOG.debug("generation_stream_open", extra={"url": url, "mode": request.mode.value})
        try:
            with self._session.post(
                url,
                json=request.to_payload(),
                headers={"Accept": "text/event-stream"},
                timeout=self._timeout,
                stream=True,
            ) as resp:
                if not resp.ok:
                    raise TransportError(_error_message(resp), status_code=resp.status_code)
                # Raw bytes; StreamEventDecoder does the UTF-8 decoding
                for raw_line in resp.iter_lines(decode_unicode=False):
                    if not raw_line:
                        continue
                    # SSE comments are keep-alives
                    if raw_line.startswith(b":" if isinstance(raw_line, bytes) else ":"):
                        continue
                    yield raw_line
        except requests.exceptions.RequestException as exc:
            raise TransportError(f"stream connection failed: {exc}") from exc

    def issue_synchronous(self, request: GenerationRequest) -> GenerationResponse:
        url = self._endpoint(request, streaming=False)
        LOG.debug("generation_sync_request", extra={"url": url, "mode": request.mode.value})
        try:
            resp = self._session.post(url, json=request.to_payload(), timeout=self._timeout)
        except requests.exceptions.RequestException as exc:
            raise TransportError(f"request failed: {exc}") from exc
        if not resp.ok:
            raise TransportError(_error_message(resp), status_code=resp.status_code)
        try:
            return GenerationResponse.model_validate(resp.json())
        except (ValueError, ValidationError) as exc:
            raise TransportError(f"invalid response body: {exc}") from exc

    def fetch_available_materials(self) -> List[str]:
        try:
            resp = self._session.get(f"{self.base_url}/api/ai/materials", timeout=self._timeout)
            resp.raise_for_status()
            data = resp.json()
        except (requests.exceptions.RequestException, ValueError) as exc:
            LOG.warning("materials_fetch_failed_using_defaults", extra={"err": str(exc)})
            return list(DEFAULT_MATERIALS)
        materials = data.get("materials") if isinstance(data, dict) else None
        if not isinstance(materials, list):
            return []
        return [str(m) for m in materials if m]


def get_transport(settings: Optional[AssistantSettings] = None) -> GenerationTransport:
    settings = settings or AssistantSettings.from_env()
    if settings.transport == "offline":
        from .offline_generator import OfflineTemplateTransport

        return OfflineTemplateTransport()
    return HttpGenerationTransport(settings)
