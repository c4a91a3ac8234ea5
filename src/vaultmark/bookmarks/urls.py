"""URL helpers shared by every bookmark code path."""

import re
from typing import Optional
from urllib.parse import quote, urlsplit

FAVICON_SERVICE_URL = "https://www.google.com/s2/favicons?domain="

# Schemes browsers put in exports that do not point anywhere
_REJECTED_SCHEMES = frozenset({"javascript", "place", "data"})
# Schemes that are absolute without a network location
_PATH_ONLY_SCHEMES = frozenset({"file", "mailto", "about", "chrome", "edge"})

_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*$")


def is_valid_url(url: Optional[str]) -> bool:
    """True for a syntactically valid absolute URL."""
    if not url or not isinstance(url, str):
        return False
    if url != url.strip() or any(c.isspace() for c in url):
        return False
    try:
        parts = urlsplit(url)
        # Accessing port validates it
        parts.port
    except ValueError:
        return False

    scheme = parts.scheme.lower()
    if not scheme or not _SCHEME_RE.match(scheme) or scheme in _REJECTED_SCHEMES:
        return False
    if scheme in _PATH_ONLY_SCHEMES:
        return bool(parts.netloc or parts.path)
    return bool(parts.hostname)


def hostname_of(url: str) -> str:
    """Host component of ``url``, or "" when it has none."""
    try:
        return urlsplit(url).hostname or ""
    except ValueError:
        return ""


def domain_for_display(url: str) -> str:
    """Host without a leading www., falling back to the raw url."""
    host = hostname_of(url)
    if not host:
        return url
    return host[4:] if host.startswith("www.") else host


def favicon_url_for(url: str) -> str:
    """Deterministic favicon service URL for the bookmark's host."""
    return FAVICON_SERVICE_URL + quote(hostname_of(url), safe=".-")
