from .extractor import ExtractedAttributes, extract_attributes
from .names import NameResolver
from .resolver import GiftResolver, Resolution, ResolutionState, ResolvedRecord, parse_link
from .session_cache import SessionCache

__all__ = [
    "ExtractedAttributes",
    "GiftResolver",
    "NameResolver",
    "Resolution",
    "ResolutionState",
    "ResolvedRecord",
    "SessionCache",
    "extract_attributes",
    "parse_link",
]
