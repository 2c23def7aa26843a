"""Client for the gift catalog JSON API."""

from __future__ import annotations

import asyncio
import json
import logging
import re
from typing import Any, Awaitable, Callable, Optional

import requests

from . import config
from .names import NameMapShape, NameResolver, detect_shape, normalize_gift_name
from .session_cache import SessionCache

logger = logging.getLogger(__name__)

_CACHE_KEY_STRIP = re.compile(r"[^A-Za-z0-9]")


def cache_key(endpoint: str) -> str:
    """Return the session cache key for ``endpoint``."""

    return _CACHE_KEY_STRIP.sub("", endpoint or "")


def _has_name(item: dict[str, Any]) -> bool:
    name = item.get("name")
    return isinstance(name, str) and bool(name.strip())


class CatalogClient:
    """Retrying, session-cached wrapper for the catalog API.

    Every successful response is kept in the injected :class:`SessionCache`
    for the rest of the session.  Failed fetches are retried with a linear
    backoff and finally degrade to the caller's fallback value, which is never
    cached.
    """

    def __init__(
        self,
        cache: SessionCache,
        base_url: Optional[str] = None,
        *,
        session: Optional[requests.sessions.Session] = None,
        max_attempts: Optional[int] = None,
        backoff: Optional[float] = None,
        timeout: Optional[float] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.base_url = (base_url or config.CATALOG_API_BASE).strip().rstrip("/")
        if not self.base_url:
            raise ValueError("GIFT_CATALOG_API not set")
        self.cache = cache
        self.max_attempts = max(1, max_attempts or config.FETCH_MAX_ATTEMPTS)
        self.backoff = config.FETCH_BACKOFF_SECONDS if backoff is None else backoff
        self.timeout = timeout or config.REQUEST_TIMEOUT
        self._sleep = sleep
        self.session = session or requests.Session()
        # ``Connection: close`` keeps each request on a fresh socket.
        self.headers = {
            "Accept": "application/json",
            "Cache-Control": "no-store",
            "Pragma": "no-cache",
            "Connection": "close",
            "User-Agent": config.USER_AGENT,
        }

    def _get_text(self, url: str) -> str:
        response = self.session.get(url, headers=self.headers, timeout=self.timeout)
        status = response.status_code
        if not 200 <= status < 300:
            raise requests.HTTPError(f"HTTP {status}", response=response)
        return response.text

    async def fetch_json(self, endpoint: str, fallback: Any = None) -> Any:
        """Return the parsed JSON for ``endpoint`` or ``fallback``."""

        key = cache_key(endpoint)
        cached = self.cache.get(key)
        if cached is not None:
            return json.loads(cached)

        url = f"{self.base_url}{endpoint}"
        for attempt in range(1, self.max_attempts + 1):
            try:
                text = await asyncio.to_thread(self._get_text, url)
                data = json.loads(text)
            except (requests.RequestException, ValueError) as exc:
                logger.warning(
                    "Attempt %s/%s failed for %s: %s",
                    attempt,
                    self.max_attempts,
                    endpoint,
                    exc,
                )
                if attempt < self.max_attempts:
                    await self._sleep(self.backoff * attempt)
                continue
            self.cache.set(key, text)
            return data

        logger.error("Using fallback for %s", endpoint)
        return fallback

    async def list_gifts(self) -> list[str]:
        data = await self.fetch_json("/gifts", [])
        return [name for name in data or [] if isinstance(name, str)]

    async def list_backdrops(self) -> list[dict[str, Any]]:
        data = await self.fetch_json("/backdrops", [])
        return [item for item in data or [] if isinstance(item, dict) and _has_name(item)]

    async def list_models(self, gift: str) -> list[dict[str, Any]]:
        """Return the models of ``gift`` sorted by rarity."""

        data = await self.fetch_json(f"/models/{normalize_gift_name(gift)}?sorted", [])
        return [item for item in data or [] if isinstance(item, dict) and _has_name(item)]

    async def list_patterns(self, gift: str) -> list[dict[str, Any]]:
        """Return the symbol patterns of ``gift`` sorted by rarity."""

        data = await self.fetch_json(f"/patterns/{normalize_gift_name(gift)}?sorted", [])
        return [item for item in data or [] if isinstance(item, dict) and _has_name(item)]

    async def load_name_resolver(self) -> NameResolver:
        """Build a :class:`NameResolver` from ``/names`` or the inverted ``/ids``."""

        names = await self.fetch_json("/names", {})
        if not isinstance(names, dict):
            names = {}
        shape = detect_shape(names)
        if shape is NameMapShape.DIRECT:
            logger.info("Using /names directly as name -> id")
            resolver = NameResolver.from_payload(names, NameMapShape.DIRECT)
        else:
            ids = await self.fetch_json("/ids", {})
            if not isinstance(ids, dict):
                ids = {}
            logger.info("Inverted /ids to name -> id")
            resolver = NameResolver.from_payload(ids, NameMapShape.INVERTED)
        logger.info("Gift id index holds %s keys", len(resolver))
        return resolver
