"""First-party page relay for gift pages."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional
from urllib.parse import urlparse

import requests
from fastapi import APIRouter, HTTPException, status
from fastapi.responses import HTMLResponse

from giftplanner import config

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["relay"])

UPSTREAM_HEADERS = {
    "User-Agent": "Mozilla/5.0 (compatible; NFT Gift Planner Bot)",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
}


def safe_target(url: str) -> str:
    """Return the canonical gift page URL for ``url``.

    Only ``t.me/nft/...`` pages may be relayed; the target is rebuilt from the
    parsed path so query strings and credentials never reach upstream.
    """

    try:
        parsed = urlparse(url)
    except ValueError as exc:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Invalid URL format") from exc
    if not parsed.scheme or not parsed.netloc:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Invalid URL format")
    if parsed.hostname != config.GIFT_PAGE_HOST or not parsed.path.startswith("/nft/"):
        raise HTTPException(status.HTTP_403_FORBIDDEN, "Only t.me/nft URLs are allowed")
    return f"https://{config.GIFT_PAGE_HOST}{parsed.path}"


def _fetch_upstream(url: str) -> requests.Response:
    return requests.get(url, headers=UPSTREAM_HEADERS, timeout=config.REQUEST_TIMEOUT)


@router.get("/proxy", response_class=HTMLResponse)
async def proxy_page(url: Optional[str] = None) -> HTMLResponse:
    if not url:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Missing url parameter")
    target = safe_target(url)
    try:
        response = await asyncio.to_thread(_fetch_upstream, target)
    except requests.RequestException as exc:
        logger.error("[proxy] Error fetching %s: %s", target, exc)
        raise HTTPException(status.HTTP_502_BAD_GATEWAY, str(exc)) from exc
    if not 200 <= response.status_code < 300:
        raise HTTPException(
            response.status_code,
            f"Upstream request failed with status {response.status_code}",
        )
    return HTMLResponse(response.text)
