"""Input checks for client and bucket management (names, CORS rules, public paths)."""
import re

from filebucket.core.errors import ValidationError

BUCKET_NAME_RE = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9-]*[a-zA-Z0-9]$|^[a-zA-Z0-9]$")
MAX_NAME_LENGTH = 63
CORS_RULE_FIELDS = ("AllowedOrigins", "AllowedMethods", "AllowedHeaders", "ExposeHeaders")


def validate_bucket_name(name: str | None) -> str:
    """Letters, digits and inner hyphens; the name is also a directory on disk."""
    name = (name or "").strip()
    if not name:
        raise ValidationError("name is required")
    if len(name) > MAX_NAME_LENGTH or not BUCKET_NAME_RE.match(name):
        raise ValidationError(
            "Invalid bucket name: use letters, digits and hyphens, not starting or ending with a hyphen"
        )
    return name


def validate_client_name(name: str | None) -> str:
    """Client names become the top-level storage directory, so the bucket rules apply."""
    name = (name or "").strip()
    if not name:
        raise ValidationError("name is required")
    if len(name) > MAX_NAME_LENGTH or not BUCKET_NAME_RE.match(name):
        raise ValidationError(
            "Invalid client name: use letters, digits and hyphens, not starting or ending with a hyphen"
        )
    return name


def validate_cors_policy(policy) -> list[dict]:
    if policy is None:
        return []
    if not isinstance(policy, list):
        raise ValidationError("cors_policy must be a list of rules")
    rules = []
    for index, rule in enumerate(policy):
        if not isinstance(rule, dict):
            raise ValidationError(f"cors_policy[{index}] must be an object")
        unknown = set(rule) - set(CORS_RULE_FIELDS)
        if unknown:
            raise ValidationError(f"cors_policy[{index}] has unknown fields: {', '.join(sorted(unknown))}")
        cleaned = {}
        for field in CORS_RULE_FIELDS:
            values = rule.get(field, [])
            if not isinstance(values, list) or not all(isinstance(v, str) for v in values):
                raise ValidationError(f"cors_policy[{index}].{field} must be a list of strings")
            cleaned[field] = values
        if not cleaned["AllowedOrigins"]:
            raise ValidationError(f"cors_policy[{index}].AllowedOrigins is required")
        rules.append(cleaned)
    return rules


def validate_public_paths(public_paths) -> list[str]:
    if public_paths is None:
        return []
    if not isinstance(public_paths, list) or not all(isinstance(p, str) for p in public_paths):
        raise ValidationError("public_paths must be a list of strings")
    return [p.strip() for p in public_paths if p.strip()]
