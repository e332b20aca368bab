"""Client secret hashing, credential and capability-token generation, admin token check."""
import hmac
import secrets

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

from filebucket.core.config import get_settings

_ph = PasswordHasher()

# 32 random bytes, hex-encoded
CAPABILITY_TOKEN_BYTES = 32


def hash_secret(plain: str) -> str:
    return _ph.hash(plain)


def verify_secret(plain: str, hashed: str) -> bool:
    try:
        _ph.verify(hashed, plain)
        return True
    except (VerifyMismatchError, VerificationError, InvalidHashError):
        return False


def generate_client_credentials() -> tuple[str, str]:
    """Return (client_id, client_secret). The secret is only ever shown once."""
    client_id = "client_" + secrets.token_hex(8)
    client_secret = "secret_" + secrets.token_urlsafe(32)
    return client_id, client_secret


def generate_capability_token() -> str:
    """Opaque one-time token for signed upload/download URLs (64 hex chars)."""
    return secrets.token_hex(CAPABILITY_TOKEN_BYTES)


def verify_admin_token(token: str | None) -> bool:
    if not token:
        return False
    return hmac.compare_digest(token.encode(), get_settings().admin_token.encode())
