"""Turn a pasted gift link or a catalog name into a resolved record."""

from __future__ import annotations

import asyncio
import enum
import logging
import re
from dataclasses import asdict, dataclass, field
from typing import Any, Iterable, Optional

from . import config
from .catalog import CatalogClient
from .extractor import ExtractedAttributes, extract_attributes
from .names import NameResolver
from .relay import RelayFetcher
from .session_cache import SessionCache

logger = logging.getLogger(__name__)

LINK_PATTERN = re.compile(r"t\.me/nft/([A-Za-z0-9_-]+?)-(\d+)(?=$|[^\w-])")

STATUS_INVALID_LINK = "Invalid link format"
STATUS_DETAILS_UNAVAILABLE = "Could not load NFT details"
STATUS_DETAILS_ERROR = "Error while reading NFT details"
STATUS_BASE_GIFT = "Base gift (no upgrades)"


class ResolutionState(enum.Enum):
    IDLE = "idle"
    LINK_PARSED = "link_parsed"
    CATALOG_LISTS_LOADING = "catalog_lists_loading"
    PAGE_FETCHING = "page_fetching"
    EXTRACTING = "extracting"
    BACKDROP_MATCHING = "backdrop_matching"
    RESOLVED = "resolved"
    PARTIALLY_RESOLVED = "partially_resolved"


@dataclass(frozen=True)
class ParsedLink:
    name: str
    gift_number: str
    slug: str

    @property
    def page_url(self) -> str:
        return f"{config.GIFT_PAGE_BASE}/{self.slug}-{self.gift_number}"


@dataclass
class ResolvedRecord:
    gift: str
    model: Optional[str] = None
    backdrop: Optional[dict[str, Any]] = None
    pattern: Optional[str] = None
    total_issued: Optional[int] = None

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class Resolution:
    """Outcome of one resolution, including the degraded cases."""

    state: ResolutionState
    status: str
    record: Optional[ResolvedRecord] = None
    gift_id: Optional[str] = None
    models: list[dict[str, Any]] = field(default_factory=list)
    patterns: list[dict[str, Any]] = field(default_factory=list)


def display_name(slug: str) -> str:
    """Return a readable gift name for a link slug (``InstantRamen`` -> ``Instant Ramen``)."""

    text = re.sub(r"[-_]+", " ", slug or "")
    text = re.sub(r"(?<=[a-z])(?=[A-Z])", " ", text)
    return " ".join(word[:1].upper() + word[1:] for word in text.split())


def parse_link(link: str | None) -> Optional[ParsedLink]:
    match = LINK_PATTERN.search((link or "").strip())
    if not match:
        return None
    slug, number = match.group(1), match.group(2)
    return ParsedLink(name=display_name(slug), gift_number=number, slug=slug)


def match_backdrop(
    label: Optional[str], backdrops: Iterable[dict[str, Any]]
) -> Optional[dict[str, Any]]:
    """Return the catalog backdrop for ``label``.

    Exact case-insensitive matches win; otherwise the first backdrop whose
    name contains the label, or is contained in it, is used.
    """

    needle = (label or "").strip().lower()
    if not needle:
        return None
    candidates = [
        item for item in backdrops if isinstance(item, dict) and str(item.get("name") or "").strip()
    ]
    for item in candidates:
        if str(item["name"]).strip().lower() == needle:
            return item
    for item in candidates:
        name = str(item["name"]).strip().lower()
        if name in needle or needle in name:
            return item
    return None


def canonical_name(label: Optional[str], entries: Iterable[dict[str, Any]]) -> Optional[str]:
    """Return the catalog spelling of ``label`` when the catalog knows it."""

    if not label:
        return None
    lowered = label.lower()
    for entry in entries:
        name = entry.get("name") if isinstance(entry, dict) else None
        if isinstance(name, str) and name.lower() == lowered:
            return name
    return label


def _status_for(details: ExtractedAttributes, record: ResolvedRecord) -> str:
    if details.is_empty:
        return STATUS_BASE_GIFT
    parts = []
    if record.model:
        parts.append(f"Found model: {record.model}")
    if record.backdrop:
        parts.append(f"backdrop: {record.backdrop.get('name')}")
    if record.pattern:
        parts.append(f"symbol: {record.pattern}")
    return ", ".join(parts) or STATUS_BASE_GIFT


class GiftResolver:
    """Coordinate the catalog, the relay chain and the extractor."""

    def __init__(
        self,
        catalog: CatalogClient,
        relay: RelayFetcher,
        names: Optional[NameResolver] = None,
    ):
        self.catalog = catalog
        self.relay = relay
        self._names = names
        self._names_lock = asyncio.Lock()

    @classmethod
    def create(cls, cache: Optional[SessionCache] = None, **kwargs: Any) -> "GiftResolver":
        """Build a resolver whose fetchers share one session cache."""

        if cache is None:
            cache = SessionCache.create()
        catalog = CatalogClient(cache, kwargs.pop("base_url", None), **kwargs)
        return cls(catalog, RelayFetcher(cache))

    async def name_resolver(self) -> NameResolver:
        async with self._names_lock:
            if self._names is None:
                self._names = await self.catalog.load_name_resolver()
        return self._names

    async def gift_id(self, name: str) -> Optional[str]:
        resolver = await self.name_resolver()
        return resolver.resolve(name)

    async def _load_lists(self, gift: str) -> tuple[list, list, list]:
        models = await self.catalog.list_models(gift)
        patterns = await self.catalog.list_patterns(gift)
        backdrops = await self.catalog.list_backdrops()
        return models, patterns, backdrops

    async def resolve_name(self, name: str) -> Resolution:
        """Resolve a gift picked from the catalog list (no page to read)."""

        record = ResolvedRecord(gift=name)
        try:
            models = await self.catalog.list_models(name)
            patterns = await self.catalog.list_patterns(name)
            gift_id = await self.gift_id(name)
        except Exception:
            logger.exception("Loading catalog data for %s failed", name)
            return Resolution(ResolutionState.PARTIALLY_RESOLVED, STATUS_DETAILS_ERROR, record)
        return Resolution(
            ResolutionState.RESOLVED,
            STATUS_BASE_GIFT,
            record,
            gift_id=gift_id,
            models=models,
            patterns=patterns,
        )

    async def _lookup_gift_id(self, name: str) -> Optional[str]:
        try:
            return await self.gift_id(name)
        except Exception:
            logger.exception("Gift id lookup for %s failed", name)
            return None

    async def _partial(
        self, record: ResolvedRecord, status: str, models: list, patterns: list
    ) -> Resolution:
        gift_id = await self._lookup_gift_id(record.gift)
        return Resolution(
            ResolutionState.PARTIALLY_RESOLVED,
            status,
            record,
            gift_id=gift_id,
            models=models,
            patterns=patterns,
        )

    async def resolve_link(self, link: str) -> Resolution:
        parsed = parse_link(link)
        if parsed is None:
            logger.info("Rejected link %r", link)
            return Resolution(ResolutionState.IDLE, STATUS_INVALID_LINK)

        state = ResolutionState.LINK_PARSED
        logger.info("Parsed link: %s #%s (%s)", parsed.name, parsed.gift_number, parsed.slug)
        record = ResolvedRecord(gift=parsed.name)
        models: list = []
        patterns: list = []
        backdrops: list = []

        try:
            state = ResolutionState.CATALOG_LISTS_LOADING
            models, patterns, backdrops = await self._load_lists(parsed.name)

            state = ResolutionState.PAGE_FETCHING
            text = await self.relay.fetch_page_text(parsed.page_url)
            if text is None:
                return await self._partial(record, STATUS_DETAILS_UNAVAILABLE, models, patterns)

            state = ResolutionState.EXTRACTING
            details = extract_attributes(text)
        except Exception:
            logger.exception("Resolving %s failed in state %s", parsed.page_url, state.value)
            return await self._partial(record, STATUS_DETAILS_ERROR, models, patterns)

        state = ResolutionState.BACKDROP_MATCHING
        record.model = canonical_name(details.model, models)
        record.pattern = canonical_name(details.pattern, patterns)
        record.total_issued = details.total_issued
        if details.backdrop:
            record.backdrop = match_backdrop(details.backdrop, backdrops)
            if record.backdrop is None:
                logger.info("No catalog backdrop matches %r", details.backdrop)
        logger.debug("Leaving %s for %s", state.value, parsed.page_url)

        gift_id = None if record.model else await self._lookup_gift_id(record.gift)
        logger.info("Resolved %s: %s", parsed.page_url, record)
        return Resolution(
            ResolutionState.RESOLVED,
            _status_for(details, record),
            record,
            gift_id=gift_id,
            models=models,
            patterns=patterns,
        )
