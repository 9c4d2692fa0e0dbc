from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any
from urllib.parse import urlparse


@dataclass(frozen=True)
class PriceFormat:
    """Separator convention used by a storefront's price labels."""

    thousands: str = "."
    decimal: str = ","

    def __post_init__(self):
        if len(self.thousands) != 1 or len(self.decimal) != 1:
            raise ValueError("Price separators must be single characters")
        if self.thousands == self.decimal:
            raise ValueError("Thousands and decimal separators must differ")


@dataclass(frozen=True)
class CatalogSource:
    """One external storefront to be crawled."""

    id: int | str
    name: str
    base_url: str
    domain: str
    active: bool = True
    currency: str | None = None
    price_format: PriceFormat = field(default_factory=PriceFormat)

    @classmethod
    def from_dict(cls, data: dict) -> "CatalogSource":
        """Build a source from a registry entry.

        Accepts either `base_url` or `url` for the listing URL and derives
        `domain` from it when the entry does not carry one.
        """
        base_url = data.get("base_url") or data.get("url")
        if not base_url or not isinstance(base_url, str):
            raise ValueError(f"Source {data.get('name')!r} has no base URL")
        if data.get("id") is None or not data.get("name"):
            raise ValueError("Source entries require 'id' and 'name'")

        domain = data.get("domain") or urlparse(base_url).netloc
        if domain.startswith("www."):
            domain = domain[4:]

        price_format = PriceFormat()
        fmt = data.get("price_format")
        if fmt:
            price_format = PriceFormat(
                thousands=fmt.get("thousands", "."),
                decimal=fmt.get("decimal", ","),
            )

        return cls(
            id=data["id"],
            name=data["name"],
            base_url=base_url,
            domain=domain,
            active=bool(data.get("active", True)),
            currency=data.get("currency"),
            price_format=price_format,
        )


@dataclass(frozen=True)
class ListingPage:
    source: CatalogSource
    number: int  # 1-based
    url: str


@dataclass
class RawProductRecord:
    """Fields scraped from one product container, before validation."""

    name: str | None = None
    price_text: str | None = None
    # Parsed from price_text; None when it is missing or holds no number
    price: float | None = None
    image_url: str | None = None
    url: str | None = None
    in_stock: bool = True
    category: str | None = None


@dataclass(frozen=True)
class CanonicalProduct:
    source_id: int | str
    external_id: str
    name: str
    url: str | None
    image_url: str | None
    price: float
    currency: str
    in_stock: bool = True
    category: str | None = None

    @property
    def dedup_key(self) -> tuple[str, float, str | None]:
        return (self.name, self.price, self.url)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class RejectionReason(str, Enum):
    MISSING_NAME = "missing_name"
    MISSING_PRICE = "missing_price"
    UNPARSABLE_PRICE = "unparsable_price"
    NON_POSITIVE_PRICE = "non_positive_price"


@dataclass(frozen=True)
class Rejection:
    """A raw record that did not qualify as a CanonicalProduct."""

    reason: RejectionReason
    name: str | None = None
    price_text: str | None = None


class StopReason(str, Enum):
    NO_RECORDS = "no_records"
    NO_NEXT_PAGE = "no_next_page"
    PAGE_LIMIT = "page_limit"
    FETCH_FAILED = "fetch_failed"
    CANCELLED = "cancelled"
    ROBOTS_DISALLOWED = "robots_disallowed"


@dataclass
class CrawlResult:
    source: CatalogSource
    success: bool
    products: list[CanonicalProduct] = field(default_factory=list)
    pages_traversed: int = 0
    duration_seconds: float = 0.0
    error: str | None = None
    stop_reason: StopReason | None = None

    @property
    def products_found(self) -> int:
        return len(self.products)

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": {
                "id": self.source.id,
                "name": self.source.name,
                "base_url": self.source.base_url,
                "domain": self.source.domain,
            },
            "success": self.success,
            "products_found": self.products_found,
            "pages_traversed": self.pages_traversed,
            "duration_seconds": round(self.duration_seconds, 2),
            "error": self.error,
            "stop_reason": self.stop_reason.value if self.stop_reason else None,
            "products": [p.to_dict() for p in self.products],
        }


@dataclass
class CrawlSummary:
    total_sources: int
    successful: int
    failed: int
    total_products: int
    results: list[CrawlResult] = field(default_factory=list)

    def failed_sources(self) -> list[CatalogSource]:
        """Sources that need attention after a multi-source run."""
        return [r.source for r in self.results if not r.success]


def summarize(results: list[CrawlResult]) -> CrawlSummary:
    successful = sum(1 for r in results if r.success)
    return CrawlSummary(
        total_sources=len(results),
        successful=successful,
        failed=len(results) - successful,
        total_products=sum(r.products_found for r in results),
        results=list(results),
    )
