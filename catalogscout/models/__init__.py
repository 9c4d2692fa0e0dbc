from catalogscout.models.catalog import (
    CanonicalProduct,
    CatalogSource,
    CrawlResult,
    CrawlSummary,
    ListingPage,
    PriceFormat,
    RawProductRecord,
    Rejection,
    RejectionReason,
    StopReason,
    summarize,
)

__all__ = [
    "CatalogSource",
    "ListingPage",
    "PriceFormat",
    "RawProductRecord",
    "CanonicalProduct",
    "Rejection",
    "RejectionReason",
    "StopReason",
    "CrawlResult",
    "CrawlSummary",
    "summarize",
]
