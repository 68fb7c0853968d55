"""Application factory for the FastAPI service."""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from .chat import ContentRewriter, MediaResolver, ProviderRegistry
from .config import Settings, get_settings
from .routers.chat import router as chat_router
from .routers.uploads import router as uploads_router
from .services.uploads import UploadStore
from .upstream import StreamingRelay

_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


def _configure_logging() -> None:
    """Configure logging based on LOG_LEVEL environment variable."""
    # Load .env file first to ensure LOG_FILE is available
    load_dotenv()

    log_level_str = os.getenv("LOG_LEVEL", "INFO").upper()
    log_level = getattr(logging, log_level_str, logging.INFO)

    formatter = logging.Formatter(_LOG_FORMAT, datefmt=_LOG_DATEFMT)
    handlers: list[logging.Handler] = []

    log_file = os.getenv("LOG_FILE")
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    handlers.append(console_handler)

    logging.basicConfig(level=log_level, handlers=handlers, force=True)

    logging.getLogger("chat_gateway").setLevel(log_level)
    logging.getLogger("uvicorn").setLevel(log_level)
    logging.getLogger("uvicorn.access").setLevel(log_level)
    logging.getLogger("uvicorn.error").setLevel(log_level)

    # Request bodies carry base64 images; keep httpx quiet unless debugging
    if log_level > logging.DEBUG:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    # Configure logging first thing
    _configure_logging()

    settings = settings or get_settings()
    logger = logging.getLogger(__name__)

    uploads_dir = settings.resolve_path(settings.uploads_dir)
    uploads_dir.mkdir(parents=True, exist_ok=True)
    public_dir = settings.resolve_path(settings.public_dir)

    providers = ProviderRegistry.from_settings(settings)
    if not providers.vision_available:
        logger.warning(
            "Vision provider not configured; image conversations will use %s",
            providers.text.model,
        )

    resolver = MediaResolver(uploads_dir, settings.uploads_url_prefix)
    rewriter = ContentRewriter(
        resolver,
        missing_image_policy=settings.missing_image_policy,
    )
    relay = StreamingRelay(connect_timeout=settings.upstream_connect_timeout)
    upload_store = UploadStore(
        uploads_dir,
        url_prefix=settings.uploads_url_prefix,
        max_size_bytes=settings.upload_max_size_bytes,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            yield
        finally:
            await relay.aclose()

    app = FastAPI(
        title="Vision Chat Gateway",
        version="0.1.0",
        description="Streaming chat gateway that routes image conversations "
        "to a vision model.",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.providers = providers
    app.state.content_rewriter = rewriter
    app.state.streaming_relay = relay
    app.state.upload_store = upload_store

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(chat_router)
    app.include_router(uploads_router)

    @app.get("/health", tags=["health"])
    async def healthcheck() -> dict[str, str | bool]:
        return {
            "status": "ok",
            "text_model": providers.text.model,
            "vision_model": settings.vision_model,
            "vision_enabled": providers.vision_available,
        }

    prefix = settings.uploads_url_prefix.rstrip("/") or "/uploads"
    app.mount(prefix, StaticFiles(directory=uploads_dir), name="uploads")
    if public_dir.is_dir():
        app.mount("/", StaticFiles(directory=public_dir, html=True), name="public")

    return app


__all__ = ["create_app"]
