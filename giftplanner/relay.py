"""Fetch third-party gift pages through an ordered chain of relays."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Optional, Sequence
from urllib.parse import quote

import requests

from . import config
from .session_cache import SessionCache

logger = logging.getLogger(__name__)

# Ordered by trust: the first-party relay, then public relays.
THIRD_PARTY_RELAYS = (
    "https://corsproxy.io/?url={url}",
    "https://api.allorigins.win/raw?url={url}",
    "https://api.allorigins.win/get?url={url}",
)

PAGE_CACHE_PREFIX = "page:"


def default_relays() -> tuple[str, ...]:
    first_party = config.FIRST_PARTY_RELAY.strip()
    relays: list[str] = []
    if first_party:
        joiner = "&" if "?" in first_party else "?"
        relays.append(f"{first_party}{joiner}url={{url}}")
    relays.extend(THIRD_PARTY_RELAYS)
    return tuple(relays)


def is_json_envelope(relay_url: str) -> bool:
    """Return ``True`` for relays answering with ``{"contents": <html>}``."""

    return "allorigins.win/get?" in relay_url


def unwrap_envelope(text: str) -> Optional[str]:
    try:
        payload = json.loads(text)
    except ValueError:
        return None
    if not isinstance(payload, dict):
        return None
    contents = payload.get("contents")
    return contents if isinstance(contents, str) else None


class RelayFetcher:
    """Retrieve the raw text of a page via the first relay that works.

    Relays are tried one after another, never in parallel.  A response counts
    only when its status is 2xx and the body is longer than
    ``min_length``; shorter bodies are relay error pages.
    """

    def __init__(
        self,
        cache: Optional[SessionCache] = None,
        relays: Optional[Sequence[str]] = None,
        *,
        session: Optional[requests.sessions.Session] = None,
        min_length: Optional[int] = None,
        timeout: Optional[float] = None,
    ):
        self.cache = cache
        self.relays = tuple(relays) if relays is not None else default_relays()
        self.min_length = config.MIN_PAGE_LENGTH if min_length is None else min_length
        self.timeout = timeout or config.REQUEST_TIMEOUT
        self.session = session or requests.Session()
        self.headers = {
            "Accept": "text/html,application/xhtml+xml,*/*;q=0.8",
            "Cache-Control": "no-store",
            "User-Agent": config.USER_AGENT,
        }

    def _try_relay(self, template: str, target_url: str) -> Optional[str]:
        relay_url = template.format(url=quote(target_url, safe=""))
        response = self.session.get(relay_url, headers=self.headers, timeout=self.timeout)
        if not 200 <= response.status_code < 300:
            logger.warning(
                "Relay %s answered %s", relay_url.split("?", 1)[0], response.status_code
            )
            return None
        text = response.text or ""
        if is_json_envelope(template):
            text = unwrap_envelope(text) or ""
        if len(text) <= self.min_length:
            logger.warning(
                "Relay %s returned %s characters, ignoring",
                relay_url.split("?", 1)[0],
                len(text),
            )
            return None
        return text

    async def fetch_page_text(self, target_url: str) -> Optional[str]:
        """Return the page text for ``target_url`` or ``None``.

        ``None`` means the extra details are unavailable; it is not an error
        for the caller.
        """

        cache_key = f"{PAGE_CACHE_PREFIX}{target_url}"
        if self.cache is not None:
            cached = self.cache.get(cache_key)
            if cached is not None:
                return cached

        for template in self.relays:
            try:
                text = await asyncio.to_thread(self._try_relay, template, target_url)
            except requests.RequestException as exc:
                logger.warning("Relay %s failed: %s", template.split("?", 1)[0], exc)
                continue
            if text is None:
                continue
            logger.info("Fetched %s via %s", target_url, template.split("?", 1)[0])
            if self.cache is not None:
                self.cache.set(cache_key, text)
            return text

        logger.warning("All relays failed for %s", target_url)
        return None
