"""Recover gift attributes from page markup or free text.

Gift pages reach us in several forms: raw HTML from a relay, a markdown-ish
rendering with ``| Model | Diamonds 0.5% |`` rows, or just the description
snippet (``Model: Diamonds 0.5%``).  Extraction therefore runs in stages:

1. the highest-signal fragments (meta description, the page description
   element, the ``data-description`` attribute and the attribute table) are
   pulled out with BeautifulSoup and put in front of the text;
2. each field is filled from the first line that matches one of its ordered
   strategies and is never overwritten afterwards;
3. the issued count is read from an ``X/Y`` pair, first line by line and then
   with one scan over the whole input.
"""

from __future__ import annotations

import logging
import re
from dataclasses import asdict, dataclass
from typing import Any, Callable, Optional

from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

Strategy = Callable[[str], Optional[str]]

_PERCENT_SUFFIX = re.compile(r"\s*\d+\.?\d*%\s*$")
_GROUPED_NUMBER = r"\d{1,3}(?:[ ,'\u00a0\u202f]\d{3})+|\d+"
_ISSUED_PAIR = re.compile(rf"({_GROUPED_NUMBER})\s*/\s*({_GROUPED_NUMBER})")
_META_NAMES = (
    {"property": "og:description"},
    {"name": "description"},
    {"name": "twitter:description"},
)
DESCRIPTION_SELECTOR = ".tgme_page_description"
DATA_ATTRIBUTE = "data-description"


@dataclass
class ExtractedAttributes:
    model: Optional[str] = None
    backdrop: Optional[str] = None
    pattern: Optional[str] = None
    total_issued: Optional[int] = None

    @property
    def is_empty(self) -> bool:
        return not (self.model or self.backdrop or self.pattern)

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


def _table_row(label: str) -> Strategy:
    pattern = re.compile(
        rf"\|\s*{label}\s*\|\s*([^|]+?)\s*(?:\d+\.?\d*%\s*)?\|", re.IGNORECASE
    )

    def strategy(line: str) -> Optional[str]:
        match = pattern.search(line)
        return match.group(1) if match else None

    return strategy


def _labelled_with_percent(label: str) -> Strategy:
    pattern = re.compile(
        rf"{label}\s*[:|]\s*([^%\n]+?)(?:\s+\d+\.?\d*%|$)", re.IGNORECASE
    )

    def strategy(line: str) -> Optional[str]:
        match = pattern.search(line)
        return match.group(1) if match else None

    return strategy


def _labelled(label: str) -> Strategy:
    pattern = re.compile(rf"{label}\s*[:|]\s*(.+)", re.IGNORECASE)

    def strategy(line: str) -> Optional[str]:
        match = pattern.search(line)
        return match.group(1) if match else None

    return strategy


def _strategies(label: str) -> tuple[Strategy, ...]:
    return (_table_row(label), _labelled_with_percent(label), _labelled(label))


# field -> (lowercase keywords that make a line a candidate, strategies)
FIELD_RULES: dict[str, tuple[tuple[str, ...], tuple[Strategy, ...]]] = {
    "model": (("model",), _strategies("Model")),
    "backdrop": (("backdrop",), _strategies("Backdrop")),
    "pattern": (("symbol", "pattern"), _strategies("(?:Symbol|Pattern)")),
}


def clean_value(value: Optional[str]) -> Optional[str]:
    """Strip whitespace and a trailing rarity percentage."""

    if value is None:
        return None
    cleaned = _PERCENT_SUFFIX.sub("", value.strip()).strip()
    return cleaned or None


def first_match(line: str, strategies: tuple[Strategy, ...]) -> Optional[str]:
    """Return the cleaned capture of the first strategy matching ``line``."""

    for strategy in strategies:
        captured = strategy(line)
        if captured is not None:
            return clean_value(captured)
    return None


def high_signal_fragments(text: str) -> list[str]:
    """Return description fragments and table rows found in ``text``."""

    if "<" not in text:
        return []
    soup = BeautifulSoup(text, "html.parser")
    fragments: list[str] = []

    for attrs in _META_NAMES:
        meta = soup.find("meta", attrs=attrs)
        content = meta.get("content") if meta else None
        if content:
            fragments.append(content)
            break

    description = soup.select_one(DESCRIPTION_SELECTOR)
    if description:
        value = description.get_text("\n", strip=True)
        if value:
            fragments.append(value)

    tagged = soup.find(attrs={DATA_ATTRIBUTE: True})
    if tagged:
        value = tagged.get(DATA_ATTRIBUTE)
        if value:
            fragments.append(value)

    rows = []
    for row in soup.find_all("tr"):
        header = row.find("th")
        cell = row.find("td")
        if header and cell:
            rows.append(
                f"| {header.get_text(' ', strip=True)} | {cell.get_text(' ', strip=True)} |"
            )
    if rows:
        fragments.append("\n".join(rows))
    return fragments


def parse_issued_count(text: str) -> Optional[int]:
    """Return the right-hand side of the first positive ``X/Y`` pair."""

    for match in _ISSUED_PAIR.finditer(text):
        digits = re.sub(r"\D", "", match.group(2))
        if not digits:
            continue
        value = int(digits)
        if value > 0:
            return value
    return None


def extract_attributes(text: str | None) -> ExtractedAttributes:
    result = ExtractedAttributes()
    if not text or not isinstance(text, str):
        return result

    fragments = high_signal_fragments(text)
    combined = "\n".join([*fragments, text]) if fragments else text
    lines = [line.strip() for line in combined.splitlines()]

    for index, line in enumerate(lines):
        if not line:
            continue
        lowered = line.lower()
        for field, (keywords, strategies) in FIELD_RULES.items():
            if getattr(result, field) or not any(word in lowered for word in keywords):
                continue
            value = first_match(line, strategies)
            if value:
                setattr(result, field, value)
                logger.debug("Found %s on line %s: %s", field, index, value)

    for line in lines:
        lowered = line.lower()
        if "quantity" in lowered or "issued" in lowered or "/" in line:
            issued = parse_issued_count(line)
            if issued is not None:
                result.total_issued = issued
                break
    if result.total_issued is None:
        result.total_issued = parse_issued_count(combined)

    logger.debug("Extracted attributes: %s", result)
    return result
