"""Artwork and animation URLs for gifts, plus a cached animation loader."""

from __future__ import annotations

import asyncio
import gzip
import json
import logging
from typing import Any, Optional

import requests

from . import config
from .names import normalize_gift_name
from .session_cache import SessionCache

logger = logging.getLogger(__name__)

ANIMATION_CACHE_PREFIX = "animation:"


def _media_url(
    gift: str,
    model: Optional[str],
    gift_id: Optional[str],
    extension: str,
    base_url: Optional[str] = None,
) -> Optional[str]:
    if not gift:
        return None
    base = (base_url or config.CATALOG_API_BASE).rstrip("/")
    if model and model.strip():
        return f"{base}/model/{normalize_gift_name(gift)}/{model}.{extension}"
    if gift_id:
        return f"{base}/original/{gift_id}.{extension}"
    logger.warning("No artwork for %s: neither model nor gift id known", gift)
    return None


def gift_image_url(
    gift: str,
    model: Optional[str] = None,
    gift_id: Optional[str] = None,
    size: int = 256,
    *,
    base_url: Optional[str] = None,
) -> Optional[str]:
    """Return the PNG for the upgraded model, or the original gift by id."""

    url = _media_url(gift, model, gift_id, "png", base_url)
    return f"{url}?size={size}" if url else None


def animation_url(
    gift: str,
    model: Optional[str] = None,
    gift_id: Optional[str] = None,
    *,
    base_url: Optional[str] = None,
) -> Optional[str]:
    return _media_url(gift, model, gift_id, "tgs", base_url)


def decode_tgs(payload: bytes) -> dict[str, Any]:
    """Return the Lottie document stored in a gzip-compressed ``.tgs`` file."""

    return json.loads(gzip.decompress(payload).decode("utf-8"))


class AnimationLoader:
    """Download and keep decoded gift animations for the session."""

    def __init__(
        self,
        cache: SessionCache,
        *,
        base_url: Optional[str] = None,
        session: Optional[requests.sessions.Session] = None,
        timeout: Optional[float] = None,
    ):
        self.cache = cache
        self.base_url = base_url
        self.timeout = timeout or config.REQUEST_TIMEOUT
        self.session = session or requests.Session()

    def _download(self, url: str) -> bytes:
        response = self.session.get(url, timeout=self.timeout)
        if response.status_code != 200:
            raise requests.HTTPError(f"HTTP {response.status_code}", response=response)
        return response.content

    async def load(
        self, gift: str, model: Optional[str] = None, gift_id: Optional[str] = None
    ) -> Optional[dict[str, Any]]:
        if model:
            key = f"{ANIMATION_CACHE_PREFIX}model/{gift}/{model}"
        elif gift_id:
            key = f"{ANIMATION_CACHE_PREFIX}original/{gift_id}"
        else:
            return None
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        url = animation_url(gift, model, gift_id, base_url=self.base_url)
        if not url:
            return None
        try:
            payload = await asyncio.to_thread(self._download, url)
            animation = decode_tgs(payload)
        except (requests.RequestException, OSError, ValueError) as exc:
            logger.warning("Failed to load animation %s: %s", url, exc)
            return None
        self.cache.set(key, animation)
        return animation
