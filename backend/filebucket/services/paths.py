"""Object key -> storage path mapping. Keys are validated here so they can never escape a bucket root."""
import os

from filebucket.core.errors import ValidationError


def resolve(client_name: str, bucket_name: str, key: str) -> str:
    """Relative physical path <client name>/<bucket name>/<key>. Pure: no I/O, no validation."""
    return os.path.normpath(os.path.join(client_name, bucket_name, key))


def validate_key(key: str, field: str = "key") -> None:
    """Raise ValidationError unless key is a relative, slash-separated path with real segments only."""
    if not key:
        raise ValidationError(f"{field} is required")
    if "\x00" in key or "\\" in key:
        raise ValidationError(f"{field} contains invalid characters")
    if key.startswith("/"):
        raise ValidationError(f"{field} must not start with '/'")
    if key.endswith("/"):
        raise ValidationError(f"{field} must not end with '/'")
    for segment in key.split("/"):
        if segment == "":
            raise ValidationError(f"{field} must not contain empty path segments")
        if segment in (".", ".."):
            raise ValidationError(f"{field} must not contain '.' or '..' segments")


def normalize_prefix(path: str | None) -> str:
    """Listing/deletion path: surrounding slashes are ignored ("/reports/" == "reports")."""
    return (path or "").strip("/")
