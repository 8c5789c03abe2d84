import logging
import time
from dataclasses import dataclass
from typing import Optional

import requests

from .adapters.search_page import BLOCKED_MARKERS
from .cache import PageCache
from .config import DEFAULT_UA

logger = logging.getLogger(__name__)

BROWSER_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,image/apng,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Accept-Encoding": "gzip, deflate",
    "DNT": "1",
    "Connection": "keep-alive",
    "Upgrade-Insecure-Requests": "1",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "same-origin",
    "Cache-Control": "max-age=0",
}

BLOCKED_STATUSES = (403, 429)


class FetchError(Exception):
    def __init__(self, message: str, url: str, status: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status = status


class BlockedError(FetchError):
    pass


@dataclass(frozen=True)
class FetchedPage:
    url: str          # final URL after redirects
    status: int
    text: str


class Fetcher:
    """
    Plain HTTP GET with a browser-like header set. Keeps a minimum interval
    between its own requests; the upstream answers bursts with 403s.
    """

    def __init__(self, user_agent: str = DEFAULT_UA, timeout_s: float = 20.0,
                 min_interval_s: float = 2.0, cache: Optional[PageCache] = None,
                 session: Optional[requests.Session] = None,
                 clock=time.monotonic, sleep=time.sleep):
        self.timeout_s = timeout_s
        self.min_interval_s = min_interval_s
        self.cache = cache
        self.session = session or requests.Session()
        self.session.headers.update(BROWSER_HEADERS)
        self.session.headers["User-Agent"] = user_agent
        self._clock = clock
        self._sleep = sleep
        self._last_request = None

    @classmethod
    def from_settings(cls, settings, cache: Optional[PageCache] = None):
        return cls(
            user_agent=settings.user_agent,
            timeout_s=settings.timeout_s,
            min_interval_s=settings.min_request_interval_s,
            cache=cache,
        )

    def _throttle(self):
        if self._last_request is not None:
            wait = self.min_interval_s - (self._clock() - self._last_request)
            if wait > 0:
                logger.debug("throttling %.2fs before next request", wait)
                self._sleep(wait)
        self._last_request = self._clock()

    def get(self, url: str, referer: Optional[str] = None) -> FetchedPage:
        if self.cache:
            hit = self.cache.load(url)
            if hit:
                logger.debug("cache hit %s", url)
                return FetchedPage(url=hit[0], status=200, text=hit[1])

        self._throttle()
        headers = {"Referer": referer} if referer else {}
        logger.info("GET %s", url)
        try:
            resp = self.session.get(url, headers=headers, timeout=self.timeout_s)
        except requests.RequestException as exc:
            raise FetchError(f"{type(exc).__name__}: {exc}", url) from exc

        if resp.status_code in BLOCKED_STATUSES:
            logger.warning("blocked (%d) at %s", resp.status_code, url)
            raise BlockedError(f"HTTP {resp.status_code}", url, resp.status_code)
        if resp.status_code >= 400:
            raise FetchError(f"HTTP {resp.status_code} for {url}", url, resp.status_code)
        if any(marker in resp.text for marker in BLOCKED_MARKERS):
            logger.warning("bot protection page at %s", url)
            raise BlockedError("bot protection page", url, resp.status_code)

        page = FetchedPage(url=resp.url or url, status=resp.status_code, text=resp.text)
        if self.cache:
            self.cache.save(url, page.text, page.url)
        return page
