"""Wildcard matching for bucket public paths and CORS allowed origins.

`*` matches any run of characters except `/`; everything else is literal and the
whole candidate must match. `*`, `*/*` and `**` alone match everything, slashes
included, so a bucket can be made public in one entry. Bad patterns never raise:
they just don't match.
"""
import logging
import re
from functools import lru_cache
from typing import Iterable

logger = logging.getLogger(__name__)

MATCH_ALL_PATTERNS = frozenset({"*", "*/*", "**"})
_SEGMENT_WILDCARD = "[^/]*"


@lru_cache(maxsize=1024)
def _compile(pattern: str) -> re.Pattern | None:
    regex = _SEGMENT_WILDCARD.join(re.escape(part) for part in pattern.split("*"))
    try:
        return re.compile(regex)
    except re.error:
        logger.warning("Ignoring uncompilable pattern %r", pattern)
        return None


def matches(candidate: str, pattern: str) -> bool:
    """Full-string match of candidate against a single wildcard pattern."""
    if not isinstance(candidate, str) or not isinstance(pattern, str):
        return False
    if pattern in MATCH_ALL_PATTERNS:
        return True
    if "*" not in pattern:
        return candidate == pattern
    compiled = _compile(pattern)
    if compiled is None:
        return False
    return compiled.fullmatch(candidate) is not None


def matches_any(candidate: str, patterns: Iterable[str] | None) -> bool:
    """True iff any pattern matches. No patterns means nothing matches."""
    return any(matches(candidate, p) for p in patterns or ())


def origin_allowed(origin: str, allowed_origins: Iterable[str] | None) -> bool:
    """CORS origin check: a literal "*" entry always allows, otherwise wildcard rules apply."""
    for allowed in allowed_origins or ():
        if allowed == "*":
            return True
        if matches(origin, allowed):
            return True
    return False
