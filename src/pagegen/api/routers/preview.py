from __future__ import annotations

from functools import lru_cache
from typing import Any, Dict

from fastapi import APIRouter, Body, HTTPException, status
from fastapi.responses import HTMLResponse

from ...core.settings import AssistantSettings
from ...domain.api_models import PreviewCreated
from ...domain.asset_models import AssetBundle
from ...domain.errors import PreviewError
from ...infrastructure.assets import load_asset_bundle
from ...infrastructure.preview_store import get_preview_store
from ...services.assistant_controller import get_controller
from ...services.preview_renderer import build_preview, render_preview_html

router = APIRouter(prefix="/preview", tags=["preview"])


@lru_cache(maxsize=1)
def _assets() -> AssetBundle:
    return load_asset_bundle(AssistantSettings.from_env().assets_path)


def _save(project_schema: Dict[str, Any]) -> PreviewCreated:
    try:
        build_preview(project_schema, _assets())
    except PreviewError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    preview_id = get_preview_store().save(project_schema)
    return PreviewCreated(preview_id=preview_id, url=f"/preview/{preview_id}")


@router.post("", response_model=PreviewCreated, status_code=status.HTTP_201_CREATED)
def create_preview(project_schema: Dict[str, Any] = Body(...)) -> PreviewCreated:
    return _save(project_schema)


@router.post("/current", response_model=PreviewCreated, status_code=status.HTTP_201_CREATED)
def create_preview_from_document() -> PreviewCreated:
    schema = get_controller().host.export_current_schema()
    if not schema:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No document to preview")
    return _save(schema)


@router.get("/{preview_id}", response_class=HTMLResponse)
def get_preview(preview_id: str) -> HTMLResponse:
    project_schema = get_preview_store().get(preview_id)
    if project_schema is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Preview not found")
    try:
        page = build_preview(project_schema, _assets())
    except PreviewError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    return HTMLResponse(render_preview_html(page))
