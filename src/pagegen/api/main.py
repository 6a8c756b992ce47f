from __future__ import annotations

from datetime import UTC, datetime
from dotenv import load_dotenv
import logging
from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, generate_latest

from .routers.assistant import router as assistant_router
from .routers.preview import router as preview_router
from ..core.settings import AssistantSettings
from ..observability.metrics import metrics_middleware_factory

load_dotenv()  # PAGEGEN_SERVICE_URL, PAGEGEN_TRANSPORT, ... from .env if present

app = FastAPI(title="Page Generation Assistant API", version="0.1.0")

logging.basicConfig(level=logging.INFO)

app.middleware("http")(metrics_middleware_factory())

app.include_router(assistant_router)
app.include_router(preview_router)

# Same routers under /api for hosts that proxy everything through one prefix
app.include_router(assistant_router, prefix="/api")
app.include_router(preview_router, prefix="/api")

# CORS for the designer dev server
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:8000", "http://127.0.0.1:8000", "http://localhost:5556"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
def root():
    return {"name": "Page Generation Assistant API", "version": "0.1.0"}


@app.get("/health")
def health():
    settings = AssistantSettings.from_env()
    return {
        "status": "ok",
        "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
        "components": {
            "api": "ok",
            "transport": settings.transport,
            "streaming": settings.streaming,
        },
    }


@app.get("/metrics")
def metrics() -> Response:
    data = generate_latest(REGISTRY)
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)
