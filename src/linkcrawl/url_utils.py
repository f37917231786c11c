"""URL canonicalization and domain classification.

All helpers are pure: they never raise on malformed input and return ``None``
(or ``False``) instead, except ``validate_seed_url`` which exists to raise.
"""

from typing import Iterable, Optional
from urllib.parse import urljoin, urlsplit, urlunsplit

from linkcrawl.constants import ALLOWED_SCHEMES, DEFAULT_PORTS
from linkcrawl.models import CrawlerError


class InvalidSeedUrlError(CrawlerError, ValueError):
    """Raised when a crawl cannot start because its seed URL is unusable."""


def _build_netloc(parts) -> str:
    hostname = (parts.hostname or "").lower()
    if ":" in hostname:
        hostname = f"[{hostname}]"  # IPv6 literal

    port = parts.port
    if port is not None and DEFAULT_PORTS.get(parts.scheme.lower()) != port:
        hostname = f"{hostname}:{port}"

    if parts.username is not None:
        userinfo = parts.username
        if parts.password is not None:
            userinfo += f":{parts.password}"
        hostname = f"{userinfo}@{hostname}"

    return hostname


def normalize(raw: Optional[str]) -> Optional[str]:
    """Canonicalize an absolute URL for deduplication.

    - Drops the fragment (#...)
    - Lowercases scheme and host
    - Removes default ports (:80 for http, :443 for https)
    - Uses "/" for an empty http(s) path
    - Keeps the query string (it matters for uniqueness)

    Args:
        raw: URL string

    Returns:
        Canonical URL, or None when ``raw`` is not an absolute URL
    """
    if not raw or not isinstance(raw, str):
        return None

    try:
        parts = urlsplit(raw.strip())
        scheme = parts.scheme.lower()
        if not scheme:
            return None

        if scheme in ALLOWED_SCHEMES:
            if not parts.hostname:
                return None
            netloc = _build_netloc(parts)
            path = parts.path or "/"
        else:
            netloc = parts.netloc
            path = parts.path
    except ValueError:
        # Bad port numbers or malformed IPv6 literals
        return None

    return urlunsplit((scheme, netloc, path, parts.query, ""))


def resolve(href: Optional[str], base_url: str) -> Optional[str]:
    """Resolve a possibly-relative href against the page it was found on.

    Args:
        href: Raw href attribute value
        base_url: Absolute URL of the referring page

    Returns:
        Normalized absolute http(s) URL, or None for anything else
        (mailto:, javascript:, malformed markup)
    """
    if not href:
        return None

    try:
        joined = urljoin(base_url, href.strip())
    except ValueError:
        return None

    normalized = normalize(joined)
    if normalized is None or urlsplit(normalized).scheme not in ALLOWED_SCHEMES:
        return None
    return normalized


def hostname_of(url: str) -> str:
    """Lowercased hostname of an already-normalized URL."""
    return (urlsplit(url).hostname or "").lower()


def is_allowed(hostname: str, allowed_domains: Iterable[str]) -> bool:
    """Check whether a hostname belongs to one of the allowed domains.

    A hostname matches when it equals a domain or is a strict subdomain of it,
    so ``notexample.com`` never matches ``example.com``.
    """
    if not hostname:
        return False
    hostname = hostname.lower()
    return any(
        hostname == domain or hostname.endswith("." + domain)
        for domain in allowed_domains
    )


def validate_seed_url(raw: Optional[str]) -> str:
    """Normalize a seed URL, insisting on http(s).

    Raises:
        InvalidSeedUrlError: If the URL is unparseable or not http(s)
    """
    normalized = normalize(raw)
    if normalized is None or urlsplit(normalized).scheme not in ALLOWED_SCHEMES:
        raise InvalidSeedUrlError(f"Invalid start URL: {raw!r} (must be an http or https URL)")
    return normalized
