import json
import logging
from pathlib import Path

from catalogscout.config import settings
from catalogscout.models.catalog import CatalogSource

logger = logging.getLogger("catalogscout.registry")

# Storefronts tracked out of the box
DEFAULT_SOURCES: list[CatalogSource] = [
    CatalogSource.from_dict(entry)
    for entry in [
        {"id": 1, "name": "Shiva Home", "url": "https://www.shivahome.com.ar/", "domain": "shivahome.com.ar"},
        {"id": 2, "name": "Bazar Nuba", "url": "https://bazarnuba.com/", "domain": "bazarnuba.com"},
        {"id": 3, "name": "Nimba", "url": "https://www.nimba.com.ar/", "domain": "nimba.com.ar"},
        {"id": 4, "name": "Vienna Hogar", "url": "https://viennahogar.com.ar/", "domain": "viennahogar.com.ar"},
        {"id": 5, "name": "Magnolias Deco", "url": "https://www.magnoliasdeco.com.ar/", "domain": "magnoliasdeco.com.ar"},
        {"id": 6, "name": "Duvet", "url": "https://www.duvet.com.ar/", "domain": "duvet.com.ar"},
        {"id": 7, "name": "Ganga Home", "url": "https://www.gangahome.com.ar/", "domain": "gangahome.com.ar"},
        {"id": 8, "name": "Binah Deco", "url": "https://binahdeco.com.ar/", "domain": "binahdeco.com.ar"},
    ]
]


def load_sources(path: str | Path) -> list[CatalogSource]:
    """Read catalog sources from a JSON file holding a list of source objects."""
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a JSON list of sources")

    sources = [CatalogSource.from_dict(entry) for entry in data]
    ids = [s.id for s in sources]
    if len(ids) != len(set(ids)):
        raise ValueError(f"{path}: duplicate source ids")

    logger.info("Loaded %d sources from %s", len(sources), path)
    return sources


def get_sources() -> list[CatalogSource]:
    """Sources from settings.sources_file, or the built-in list."""
    if settings.sources_file:
        return load_sources(settings.sources_file)
    return list(DEFAULT_SOURCES)


def active_sources(sources: list[CatalogSource]) -> list[CatalogSource]:
    return [s for s in sources if s.active]
