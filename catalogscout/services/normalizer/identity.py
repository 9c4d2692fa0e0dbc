import re
from urllib.parse import urlparse

MAX_ID_LENGTH = 100

_PRODUCTS_ID = re.compile(r"/products/(\d+)")
_PRODUCTO_SLUG = re.compile(r"/producto/([^/?#]+)")


def format_price(price: float) -> str:
    """Render a price for id synthesis: 15000.0 -> "15000", 99.9 -> "99.9"."""
    if float(price).is_integer():
        return str(int(price))
    return repr(float(price))


def slug_id(name: str, price: float) -> str:
    clean_name = re.sub(r"[^a-z0-9]", "", name.lower())
    return f"{clean_name}_{format_price(price)}"[:MAX_ID_LENGTH]


def id_from_url(url: str | None) -> str | None:
    """Pull a product identifier out of a storefront URL, if it has one.

    Tries a numeric id after `/products/`, then the segment after
    `/producto/`, then the last non-empty path segment.
    """
    if not url:
        return None
    path = urlparse(url).path

    for pattern in (_PRODUCTS_ID, _PRODUCTO_SLUG):
        match = pattern.search(path)
        if match:
            return match.group(1)

    segments = [s for s in path.split("/") if s]
    if segments:
        return segments[-1]
    return None


def resolve_external_id(url: str | None, name: str, price: float) -> str:
    """Stable-as-possible external id for a product within its source.

    Falls back to a slug of the name plus the price, which changes whenever
    either input changes.
    """
    external_id = id_from_url(url)
    if external_id:
        return external_id[:MAX_ID_LENGTH]
    return slug_id(name, price)
