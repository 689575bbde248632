"""URL and domain helpers."""

from urllib.parse import urlparse

from auditflow.errors import ValidationError


def validate_absolute_url(url: str) -> str:
    """
    Return `url` stripped if it is a well-formed absolute http(s) URL.

    Raises:
        ValidationError: for relative URLs, other schemes or missing hosts
    """
    if not isinstance(url, str) or not url.strip():
        raise ValidationError("url is required")

    candidate = url.strip()
    parsed = urlparse(candidate)
    if parsed.scheme not in ("http", "https") or not parsed.netloc or not parsed.hostname:
        raise ValidationError(f"Invalid absolute URL: {url}")
    if " " in candidate:
        raise ValidationError(f"Invalid absolute URL: {url}")
    return candidate


def normalize_domain(url_or_domain: str) -> str:
    """
    Reduce a URL or bare domain to its cache key form.

    "https://www.Example.com/page" -> "example.com"
    """
    value = url_or_domain.strip().lower()
    if "://" not in value:
        value = "http://" + value
    host = urlparse(value).hostname or ""
    if host.startswith("www."):
        host = host[4:]
    return host.rstrip(".")
