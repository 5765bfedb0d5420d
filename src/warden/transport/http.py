"""HTTPS transport for report envelopes, built on httpx."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from warden import __version__
from warden.core.exceptions import TransportError
from warden.core.interfaces import ReportTransport
from warden.core.models import TransportResponse

logger = logging.getLogger(__name__)

USER_AGENT = f"warden/{__version__}"


class HttpxTransport(ReportTransport):
    """POSTs JSON with a fixed timeout; network failures become TransportError."""

    def post_json(self, url: str, body: dict[str, Any], timeout: float) -> TransportResponse:
        try:
            resp = httpx.post(
                url,
                json=body,
                timeout=timeout,
                headers={"User-Agent": USER_AGENT},
            )
        except httpx.TimeoutException as exc:
            raise TransportError(f"Request to {url} timed out after {timeout:g}s") from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"Request to {url} failed: {exc}") from exc

        logger.debug("POST %s -> %d", url, resp.status_code)
        return TransportResponse(status_code=resp.status_code, body=resp.text)
