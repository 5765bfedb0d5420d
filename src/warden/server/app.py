"""
FastAPI application exposing ``POST /warden/v1/trigger``.

Errors are rendered as::

    {"code": "<error code>", "message": "<text>", "data": {"status": <http status>}}

with ``retry_after`` added (and a ``Retry-After`` header set) for 429.
The route hands authentication and the forced cycle to the thread pool so
they never block the event loop.
"""

from __future__ import annotations

import ipaddress
import json
import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from warden import __version__
from warden.core.agent import WardenAgent
from warden.core.constants import TRIGGER_PATH
from warden.core.exceptions import RateLimitError, WardenError
from warden.protocol.trigger import client_identity_key

logger = logging.getLogger(__name__)

_FORWARDING_HEADERS = ("cf-connecting-ip", "x-forwarded-for", "x-real-ip")


def _valid_ip(value: str) -> str | None:
    value = value.strip()
    try:
        ipaddress.ip_address(value)
    except ValueError:
        return None
    return value


def client_ip(headers: Any, peer: str | None) -> str:
    """Caller address: proxy headers first, then the socket peer."""
    for name in _FORWARDING_HEADERS:
        raw = headers.get(name)
        if raw:
            first_hop = raw.split(",")[0] if name == "x-forwarded-for" else raw
            return _valid_ip(first_hop) or "unknown"
    if peer:
        return _valid_ip(peer) or "unknown"
    return "unknown"


def error_body(exc: WardenError) -> dict[str, Any]:
    body: dict[str, Any] = {
        "code": exc.code,
        "message": exc.message,
        "data": {"status": exc.http_status},
    }
    if isinstance(exc, RateLimitError):
        body["retry_after"] = exc.retry_after
    return body


def create_app(agent: WardenAgent) -> FastAPI:
    app = FastAPI(title="Warden", version=__version__, docs_url=None, redoc_url=None)
    app.state.agent = agent

    @app.exception_handler(WardenError)
    async def warden_error_handler(request: Request, exc: WardenError) -> JSONResponse:
        headers: dict[str, str] = {}
        if isinstance(exc, RateLimitError):
            headers["Retry-After"] = str(exc.retry_after)
        return JSONResponse(error_body(exc), status_code=exc.http_status, headers=headers)

    @app.post(TRIGGER_PATH)
    async def trigger(request: Request) -> dict[str, Any]:
        raw = await request.body()
        try:
            payload = json.loads(raw) if raw else {}
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {}

        peer = request.client.host if request.client else None
        key = client_identity_key(client_ip(request.headers, peer))
        return await run_in_threadpool(agent.handle_trigger, payload, key)

    return app


def start_server(agent: WardenAgent, host: str, port: int) -> None:
    import uvicorn

    app = create_app(agent)
    logger.info("Trigger endpoint listening on http://%s:%d%s", host, port, TRIGGER_PATH)
    uvicorn.run(app, host=host, port=port, log_level="warning")
