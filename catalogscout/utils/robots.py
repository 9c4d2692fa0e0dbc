import logging
from urllib.parse import urlparse
from urllib.robotparser import RobotFileParser

from catalogscout.config import settings
from catalogscout.services.crawler.base import BaseFetcher, FetchError

logger = logging.getLogger("catalogscout.robots")


def robots_url_for(url: str) -> str:
    parsed = urlparse(url)
    return f"{parsed.scheme}://{parsed.netloc}/robots.txt"


class RobotsGate:
    """robots.txt checks for one crawl, fetched through the crawl's own fetcher.

    Rules are loaded once per host and kept for the lifetime of the gate.
    A robots.txt answering 401 or 403 disallows the whole host; any other
    failure to load it allows everything.
    """

    def __init__(
        self,
        fetcher: BaseFetcher,
        user_agent: str | None = None,
        timeout: float = 10,
    ):
        self.fetcher = fetcher
        self.user_agent = user_agent or settings.user_agent
        self.timeout = timeout
        self._parsers: dict[str, RobotFileParser] = {}

    async def _load(self, robots_url: str) -> RobotFileParser:
        parser = RobotFileParser(robots_url)
        try:
            result = await self.fetcher.fetch_text(robots_url, self.timeout)
        except FetchError as e:
            if e.status_code in (401, 403):
                logger.info("robots.txt at %s is restricted (%d)", robots_url, e.status_code)
                parser.disallow_all = True
            else:
                logger.warning("Failed to fetch robots.txt from %s: %s", robots_url, e)
                parser.allow_all = True
            return parser

        parser.parse(result.html.splitlines())
        return parser

    async def allows(self, url: str) -> bool:
        """Whether our user agent may fetch `url`."""
        robots_url = robots_url_for(url)
        if robots_url not in self._parsers:
            self._parsers[robots_url] = await self._load(robots_url)
        return self._parsers[robots_url].can_fetch(self.user_agent, url)
