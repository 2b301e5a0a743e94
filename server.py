"""
server.py — aiohttp web server for spool label analysis.

Endpoints:
  POST /api/analyze  → multipart upload (field "image", ≤ 20 MiB) → OpenSpool JSON
  GET  /health       → "OK" while the server process is up

Errors never echo internal detail back to the caller — the full story
goes to the log, the client gets a short generic message.
"""
from __future__ import annotations

import logging

from aiohttp import hdrs, web
from aiohttp.http_exceptions import HttpProcessingError

from analyzers.base import Analyzer

logger = logging.getLogger(__name__)

MAX_IMAGE_SIZE       = 20 * 1024 * 1024   # 20 MiB
DEFAULT_CONTENT_TYPE = "image/jpeg"
IMAGE_FIELD          = "image"
_CHUNK_SIZE          = 2 ** 16

ANALYZER_KEY = web.AppKey("analyzer", Analyzer)


class MalformedRequest(ValueError):
    """Upload is not a usable multipart form."""


# ── Upload parsing ────────────────────────────────────────────────────────────

async def _find_image_part(request: web.Request):
    """Return (reader, image part). Raises MalformedRequest."""
    if request.content_type != "multipart/form-data":
        raise MalformedRequest("invalid multipart form")
    try:
        reader = await request.multipart()
        part = await reader.next()
        # Nested multipart parts have no name — skipped like any other field
        while part is not None and getattr(part, "name", None) != IMAGE_FIELD:
            part = await reader.next()
    except (ValueError, HttpProcessingError) as exc:
        raise MalformedRequest("invalid multipart form") from exc

    if part is None:
        raise MalformedRequest("missing image field")
    return reader, part


async def _finish_form(reader) -> None:
    """Skip any remaining parts; the form must end with its closing boundary."""
    try:
        while await reader.next() is not None:
            pass
    # aiohttp asserts when a part is read past the end of a cut-off stream
    except (ValueError, AssertionError, HttpProcessingError) as exc:
        raise MalformedRequest("invalid multipart form") from exc
    if not reader.at_eof():
        raise MalformedRequest("invalid multipart form")


async def _read_image(part) -> bytes:
    """Read the whole part, enforcing MAX_IMAGE_SIZE."""
    data = bytearray()
    while True:
        chunk = await part.read_chunk(size=_CHUNK_SIZE)
        if not chunk:
            break
        data.extend(part.decode(chunk))
        if len(data) > MAX_IMAGE_SIZE:
            raise web.HTTPRequestEntityTooLarge(
                max_size=MAX_IMAGE_SIZE,
                actual_size=len(data),
                text="image too large",
            )
    return bytes(data)


# ── Request handlers ──────────────────────────────────────────────────────────

async def handle_analyze(request: web.Request) -> web.Response:
    """
    Read the uploaded label photo, hand it to the analyzer, return the record.
    400 for a bad form, 413 for an oversized image, 500 for everything else.
    """
    try:
        reader, part = await _find_image_part(request)
    except MalformedRequest as exc:
        logger.info("Rejected upload: %s", exc)
        raise web.HTTPBadRequest(text=str(exc)) from exc

    try:
        image_bytes = await _read_image(part)
    except (ValueError, OSError, HttpProcessingError) as exc:
        logger.error("Failed to read uploaded image: %s", exc)
        raise web.HTTPInternalServerError(text="failed to read image") from exc

    # A body cut off before the closing boundary leaves a truncated image
    try:
        await _finish_form(reader)
    except MalformedRequest as exc:
        logger.info("Rejected upload: %s", exc)
        raise web.HTTPBadRequest(text=str(exc)) from exc

    content_type = part.headers.get(hdrs.CONTENT_TYPE) or DEFAULT_CONTENT_TYPE

    analyzer = request.app[ANALYZER_KEY]
    try:
        spool = await analyzer.analyze(image_bytes, content_type)
    except Exception as exc:
        logger.error("analyze error: %s", exc, exc_info=True)
        raise web.HTTPInternalServerError(text="analysis failed") from exc

    logger.info("Analyzed %s spool: %s %s (%d-%d°C)",
                spool.brand, spool.type, spool.color_hex, spool.min_temp, spool.max_temp)
    return web.json_response(spool.to_dict())


async def handle_health(request: web.Request) -> web.Response:
    """Liveness probe for the container; does not call the model."""
    return web.Response(text="OK", content_type="text/plain")


# ── App factory ───────────────────────────────────────────────────────────────

def build_web_app(analyzer: Analyzer) -> web.Application:
    app = web.Application()
    app[ANALYZER_KEY] = analyzer
    app.router.add_post("/api/analyze", handle_analyze)
    app.router.add_get("/health",       handle_health)
    return app


async def start_server(analyzer: Analyzer, host: str, port: int) -> web.AppRunner:
    """Start the web server. Returns runner so caller can shut it down cleanly."""
    app    = build_web_app(analyzer)
    # Client disconnect cancels the handler — and with it the outbound model call
    runner = web.AppRunner(app, access_log=logger, handler_cancellation=True)
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()
    logger.info("🧵 SpoolToTag listening on %s:%d", host, port)
    return runner
