"""FastAPI download server: resolves slugs to converted books.

WHY: Converted books must stay downloadable after the chat upload, e.g.
straight from an e-reader's browser. Users get a short link of the form
http://<host>/<slug>; this server turns the slug back into a file.

HOW: create_app() builds a FastAPI app around an injected SlugRegistry.
GET /{slug} looks the slug up and streams the file with a FileResponse;
misses are answered with a plain-text 404. run_server() starts uvicorn.

RULES:
- Handlers are plain def so FastAPI runs them in its thread pool; the
  registry's blocking lock never runs on the event loop
- Content-Type is always application/x-mobipocket-ebook
- Content-Disposition names the file on disk: plain filename=<name> for
  ASCII names (quoted when they hold spaces or separators), RFC 5987
  filename*=utf-8''<name> otherwise
- Unknown slug, empty slug, nested path, or a vanished file → 404 "Not Found"
- No authentication, no range support, no expiry
"""

from __future__ import annotations

import logging
from pathlib import Path

from fastapi import FastAPI
from fastapi.responses import FileResponse, PlainTextResponse, Response

from mobi_bridge import __version__
from mobi_bridge.config import MOBI_MEDIA_TYPE
from mobi_bridge.core.errors import SlugNotFoundError
from mobi_bridge.core.registry import SlugRegistry
from mobi_bridge.server.models import HealthResponse

logger = logging.getLogger(__name__)


def _not_found() -> PlainTextResponse:
    return PlainTextResponse("Not Found", status_code=404)


def _needs_quoting(name: str) -> bool:
    return any(ch in name for ch in ' \t;,"\\')


def _file_response(path: Path) -> FileResponse:
    """Build the download response for *path*.

    RULES:
    - Header values go out as latin-1, so non-ASCII names must use the
      filename* form or the response fails to encode
    """
    name = path.name
    if not name.isascii():
        return FileResponse(
            path,
            media_type=MOBI_MEDIA_TYPE,
            filename=name,
            content_disposition_type="attachment",
        )

    if _needs_quoting(name):
        value = 'attachment; filename="{}"'.format(name.replace("\\", "\\\\").replace('"', '\\"'))
    else:
        value = "attachment; filename={}".format(name)
    return FileResponse(path, media_type=MOBI_MEDIA_TYPE, headers={"Content-Disposition": value})


def create_app(registry: SlugRegistry) -> FastAPI:
    """Create the download server app bound to *registry*.

    WHY: Factory function so the registry is passed in explicitly and
    tests get a fresh app per registry, with no module-level singleton.
    """
    app = FastAPI(
        title="MOBI Bridge Downloads",
        description="Download converted MOBI books by their short link.",
        version=__version__,
        docs_url=None,
        redoc_url=None,
    )
    app.state.registry = registry

    @app.get(
        "/health",
        response_model=HealthResponse,
        tags=["health"],
        summary="Health check",
    )
    def health_check() -> HealthResponse:
        return HealthResponse(status="ok", version=__version__, registered=len(registry))

    @app.get("/", include_in_schema=False)
    def empty_slug() -> Response:
        return _not_found()

    @app.get(
        "/{slug:path}",
        tags=["downloads"],
        summary="Download a converted book",
        responses={
            200: {"content": {MOBI_MEDIA_TYPE: {}}, "description": "The MOBI file"},
            404: {"content": {"text/plain": {}}, "description": "Unknown slug"},
        },
    )
    def download(slug: str) -> Response:
        try:
            path = registry.lookup(slug)
        except SlugNotFoundError:
            logger.info("Unknown slug requested: %r", slug)
            return _not_found()

        if not path.is_file():
            logger.warning("Slug %s points at missing file %s", slug, path)
            return _not_found()

        return _file_response(path)

    return app


def run_server(app: FastAPI, port: int, host: str = "0.0.0.0") -> None:
    """Serve *app* with uvicorn, blocking until the server stops."""
    import uvicorn

    logger.info("Starting HTTP server on port %s", port)
    uvicorn.run(app, host=host, port=port, log_level="info")
