"""FastAPI application serving the content tree."""

from __future__ import annotations

import logging
import mimetypes
from contextlib import asynccontextmanager
from typing import AsyncIterator
from urllib.parse import unquote, urlsplit

import anyio.to_thread
from fastapi import FastAPI, Request, Response
from fastapi.responses import HTMLResponse, RedirectResponse

from mdserve import __version__
from mdserve.config import AppConfig
from mdserve.index.storage import ReloadController, SnapshotStore
from mdserve.rendering.markdown import Renderer
from mdserve.web.router import Resolution, ResolutionKind, resolve

LOGGER = logging.getLogger(__name__)

DEFAULT_MEDIA_TYPE = "application/octet-stream"


def request_path(request: Request) -> str | None:
    """Decoded request path, or ``None`` when the request is malformed.

    The ``Host`` header is required, and host plus target must form a valid
    ``http`` URL.
    """
    host = request.headers.get("host", "").strip()
    if not host:
        return None

    raw_path = request.scope.get("raw_path") or request.scope.get("path", "/").encode("utf-8")
    target = raw_path.decode("latin-1")
    url = f"http://{host}{target}"
    try:
        parts = urlsplit(url)
        parts.port  # raises ValueError on a bad port
    except ValueError as exc:
        LOGGER.error('Invalid URL "%s": %s', url, exc)
        return None
    if not parts.hostname or parts.netloc != host:
        LOGGER.error('Invalid URL "%s": bad host %r', url, host)
        return None
    return unquote(parts.path) or "/"


def _guess_type(filename: str | None) -> str:
    if not filename:
        return DEFAULT_MEDIA_TYPE
    media_type, _ = mimetypes.guess_type(filename)
    return media_type or DEFAULT_MEDIA_TYPE


def to_response(resolution: Resolution) -> Response:
    kind = resolution.kind
    if kind is ResolutionKind.REDIRECT:
        return RedirectResponse(resolution.location or "/", status_code=308)
    if kind in (ResolutionKind.INDEX, ResolutionKind.DOCUMENT):
        return HTMLResponse(content=resolution.body)
    if kind in (ResolutionKind.ASSET, ResolutionKind.RAW):
        return Response(content=resolution.body, media_type=_guess_type(resolution.filename))
    if kind is ResolutionKind.DROPPED:
        return Response(status_code=500)
    return Response(status_code=404)


def create_app(
    config: AppConfig,
    store: SnapshotStore,
    *,
    renderer: Renderer | None = None,
    controller: ReloadController | None = None,
) -> FastAPI:
    """Build the web application around a snapshot store."""
    content_root = config.resolve_content_path()
    renderer = renderer or Renderer()

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        # Sync endpoints run on this pool: it is the fixed set of workers.
        anyio.to_thread.current_default_thread_limiter().total_tokens = max(1, config.serve_threads)
        if controller is not None:
            controller.start()
        try:
            yield
        finally:
            if controller is not None:
                controller.stop(timeout=5)

    app = FastAPI(
        title="mdserve",
        version=__version__,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.store = store
    app.state.content_root = content_root

    @app.api_route("/{full_path:path}", methods=["GET", "HEAD"], include_in_schema=False)
    def serve(request: Request) -> Response:
        path = request_path(request)
        if path is None:
            return Response(status_code=400)
        resolution = resolve(path, store.current(), content_root, renderer)
        return to_response(resolution)

    return app
