from catalogscout.models.catalog import CanonicalProduct


def dedupe(
    products: list[CanonicalProduct],
    seen: set[tuple] | None = None,
) -> list[CanonicalProduct]:
    """Drop products whose (name, price, url) key was already seen.

    The first occurrence wins, so items pinned or re-listed on later pages
    keep their lowest-page sighting. Pass `seen` to carry the key set across
    calls within one source's crawl; it is updated in place.
    """
    if seen is None:
        seen = set()
    unique = []
    for product in products:
        key = product.dedup_key
        if key in seen:
            continue
        seen.add(key)
        unique.append(product)
    return unique
