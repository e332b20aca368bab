"""Per-bucket CORS response headers for public reads."""
from filebucket.services.patterns import origin_allowed


def _join(values) -> str:
    return ", ".join(str(v) for v in values or () if v)


def cors_headers(policy: list[dict] | None, origin: str | None) -> dict[str, str]:
    """Headers from the first rule whose AllowedOrigins admits origin; empty when none does."""
    if not origin:
        return {}
    for rule in policy or ():
        if not isinstance(rule, dict) or not origin_allowed(origin, rule.get("AllowedOrigins")):
            continue
        headers = {"Access-Control-Allow-Origin": origin, "Vary": "Origin"}
        for header, field in (
            ("Access-Control-Allow-Methods", "AllowedMethods"),
            ("Access-Control-Allow-Headers", "AllowedHeaders"),
            ("Access-Control-Expose-Headers", "ExposeHeaders"),
        ):
            value = _join(rule.get(field))
            if value:
                headers[header] = value
        return headers
    return {}
