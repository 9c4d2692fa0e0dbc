import re

from catalogscout.models.catalog import PriceFormat
from catalogscout.services.crawler.base import NormalizationError

DEFAULT_FORMAT = PriceFormat()

# Leading float, parsed the way storefront scripts read price labels:
# "2500-3000" reads as 2500, trailing garbage is ignored.
_LEADING_NUMBER = re.compile(r"^[-+]?(?:\d+(?:\.\d*)?|\.\d+)")


def _clean(text: str, fmt: PriceFormat) -> str:
    allowed = re.escape(fmt.thousands + fmt.decimal)
    cleaned = re.sub(rf"[^\d{allowed}\-]", "", text)
    cleaned = cleaned.replace(fmt.thousands, "")
    return cleaned.replace(fmt.decimal, ".", 1)


def parse_price(text: str | None, fmt: PriceFormat = DEFAULT_FORMAT) -> float:
    """Parse a locale-formatted price label.

    Raises NormalizationError when the text is empty or holds no number.

    >>> parse_price("$1.234,50")
    1234.5
    """
    if not text:
        raise NormalizationError("Empty price text")
    match = _LEADING_NUMBER.match(_clean(text, fmt))
    if not match:
        raise NormalizationError(f"Unparsable price text: {text!r}")
    return float(match.group(0))


def normalize_price(text: str | None, fmt: PriceFormat = DEFAULT_FORMAT) -> float:
    """Like parse_price(), but returns 0.0 instead of raising."""
    try:
        return parse_price(text, fmt)
    except NormalizationError:
        return 0.0
