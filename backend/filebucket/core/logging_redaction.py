"""Redact sensitive data from structured logs. Never log client secrets, admin tokens or capability tokens."""
import re
from typing import Any

# Keys (case-insensitive) that must be redacted in dicts
REDACT_KEYS = frozenset({
    "password", "token", "secret", "authorization", "cookie",
    "signed_url", "api_key",
})

_CAPABILITY_TOKEN_RE = re.compile(r"^[0-9a-f]{64}$")


def _redact_key(key: str) -> bool:
    k = key.lower()
    return any(r in k for r in REDACT_KEYS)


def redact_for_log(obj: Any) -> Any:
    """Return a copy of obj safe for logging: sensitive keys replaced with '[REDACTED]'."""
    if obj is None:
        return None
    if isinstance(obj, dict):
        return {
            k: "[REDACTED]" if _redact_key(k) else redact_for_log(v)
            for k, v in obj.items()
        }
    if isinstance(obj, (list, tuple)):
        return type(obj)(redact_for_log(x) for x in obj)
    if isinstance(obj, str) and _looks_like_secret(obj):
        return "[REDACTED]"
    return obj


def token_hint(token: str) -> str:
    """First 8 chars of a capability token, enough to correlate log lines."""
    return token[:8] + "..." if token else ""


def _looks_like_secret(s: str) -> bool:
    """Heuristic: capability token, basic/bearer credential, or client secret."""
    if _CAPABILITY_TOKEN_RE.match(s):
        return True
    lowered = s.lower()
    if lowered.startswith("bearer ") or lowered.startswith("basic "):
        return True
    if s.startswith("secret_"):
        return True
    return False
