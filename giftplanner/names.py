"""Gift name normalisation and the name -> catalog identifier index."""

from __future__ import annotations

import enum
import logging
import re
from types import MappingProxyType
from typing import Any, Mapping, Optional

logger = logging.getLogger(__name__)

_DIGITS_ONLY = re.compile(r"^\d+$")
_NON_ALNUM = re.compile(r"[^a-z0-9]")


class NameMapShape(enum.Enum):
    """Direction of a name/identifier payload returned by the catalog."""

    DIRECT = "name_to_id"
    INVERTED = "id_to_name"


def normalize_gift_name(name: str) -> str:
    """Return the dashed form used in catalog URLs (``Santa Hat`` -> ``santa-hat``)."""

    return (name or "").lower().replace(" ", "-")


def aggressive_normalize(name: str) -> str:
    """Return ``name`` lowercased with every non-alphanumeric character removed."""

    return _NON_ALNUM.sub("", (name or "").lower())


def name_variants(name: str) -> tuple[str, ...]:
    """Return the ordered lookup keys derived from ``name``.

    The order goes from least to most lossy: identity, lowercase, dashed,
    alphanumeric-only, without spaces and underscored.  Repeated keys keep
    their first position.
    """

    lowered = name.lower()
    variants = (
        name,
        lowered,
        normalize_gift_name(name),
        aggressive_normalize(name),
        name.replace(" ", ""),
        lowered.replace(" ", "_"),
    )
    return tuple(dict.fromkeys(variants))


def detect_shape(payload: Mapping[str, Any] | None) -> NameMapShape:
    """Decide the direction of ``payload`` by sampling its first value."""

    for value in (payload or {}).values():
        if isinstance(value, str) and _DIGITS_ONLY.match(value):
            return NameMapShape.DIRECT
        return NameMapShape.INVERTED
    return NameMapShape.INVERTED


def invert_id_map(payload: Mapping[str, Any] | None) -> dict[str, str]:
    """Turn an identifier -> name payload into name -> identifier."""

    inverted: dict[str, str] = {}
    for identifier, name in (payload or {}).items():
        if not isinstance(name, str):
            continue
        inverted[name] = str(identifier)
    return inverted


def build_index(name_to_id: Mapping[str, Any] | None) -> Mapping[str, str]:
    """Return a read-only index from every name variant to its identifier.

    When two catalog names share a variant the later entry wins.
    """

    index: dict[str, str] = {}
    for name, identifier in (name_to_id or {}).items():
        if not isinstance(name, str) or identifier is None:
            continue
        for variant in name_variants(name):
            index[variant] = str(identifier)
    return MappingProxyType(index)


class NameResolver:
    """Look up catalog identifiers for display names."""

    def __init__(self, index: Mapping[str, str] | None = None):
        self.index = index if index is not None else MappingProxyType({})

    @classmethod
    def from_payload(
        cls,
        payload: Mapping[str, Any] | None,
        shape: NameMapShape = NameMapShape.DIRECT,
    ) -> "NameResolver":
        """Build a resolver from a raw catalog payload of the given ``shape``."""

        if shape is NameMapShape.INVERTED:
            payload = invert_id_map(payload)
        return cls(build_index(payload))

    def __len__(self) -> int:
        return len(self.index)

    def resolve(self, display_name: str | None) -> Optional[str]:
        if not display_name:
            return None
        variants = name_variants(display_name)
        for variant in variants:
            identifier = self.index.get(variant)
            if identifier is not None:
                return identifier
        logger.debug("No gift id for %r (tried %s)", display_name, ", ".join(variants))
        return None
