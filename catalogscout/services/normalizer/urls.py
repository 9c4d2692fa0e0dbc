import logging
from urllib.parse import urljoin, urlparse

logger = logging.getLogger("catalogscout.normalizer.urls")


def origin_of(url: str) -> str:
    parsed = urlparse(url)
    return f"{parsed.scheme}://{parsed.netloc}"


def resolve_url(base_url: str, ref: str | None) -> str | None:
    """Turn a link or image reference into an absolute URL.

    Absolute http(s) references are returned unchanged. Protocol-relative
    references take the base URL's scheme; everything else is resolved
    against the base URL's origin. Returns None for empty or unresolvable
    references.
    """
    if not ref or not ref.strip():
        return None
    ref = ref.strip()

    if ref.lower().startswith(("http://", "https://")):
        return ref

    base = urlparse(base_url)
    if not base.scheme or not base.netloc:
        logger.error("Cannot resolve %r against base URL %r", ref, base_url)
        return None

    try:
        resolved = urljoin(origin_of(base_url) + "/", ref)
    except ValueError as e:
        logger.error("Cannot resolve %r against %s: %s", ref, base_url, e)
        return None

    if urlparse(resolved).scheme not in ("http", "https"):
        return None
    return resolved
