# src/scrapers/fetcher.py

"""Single-shot HTTP fetcher for listing pages."""

import logging
import threading
from dataclasses import dataclass
from typing import Any

import cloudscraper  # type: ignore[import-untyped]
from curl_cffi import requests as curl_requests

from src.config.settings import Settings

logger = logging.getLogger("price_watch.fetcher")


class FetchError(Exception):
    """A listing page could not be retrieved.

    Raised for non-2xx responses, timeouts and connection-level
    failures (DNS, TLS, refused).  Never raised for malformed markup.
    """

    def __init__(
        self,
        url: str,
        reason: str,
        status_code: int | None = None,
    ) -> None:
        self.url = url
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"Failed to fetch {url}: {reason}")


@dataclass
class FetchedPage:
    """Raw document body of a successfully fetched page."""

    url: str
    status_code: int
    body: bytes


class PageFetcher:
    """Fetch raw HTML over HTTP(S), one request per call.

    There are no retries.  A failed fetch goes back to the caller, which
    either skips the listing or surfaces the error.
    """

    def __init__(
        self,
        engine: str | None = None,
        timeout: int | None = None,
    ) -> None:
        self.settings = Settings()
        self.engine = engine or self.settings.FETCH_ENGINE
        self._request_timeout: int = (
            timeout or self.settings.REQUEST_TIMEOUT
        )
        # Sessions are not shared between worker threads
        self._local = threading.local()

    def _session(self) -> Any:
        """Return this thread's HTTP session, creating it on first use."""
        session: Any = getattr(self._local, "session", None)
        if session is None:
            if self.engine == "cloudscraper":
                _cs: Any = cloudscraper
                session = _cs.create_scraper()
            else:
                session = curl_requests.Session(
                    impersonate=self.settings.IMPERSONATE_BROWSER
                )
            self._local.session = session
        return session

    def fetch(self, url: str) -> FetchedPage:
        """GET *url* and return its body, or raise :class:`FetchError`."""
        headers: dict[str, str] = {
            **self.settings.DEFAULT_HEADERS,
        }
        try:
            resp: Any = self._session().get(
                url,
                headers=headers,
                timeout=self._request_timeout,
            )
        except Exception as exc:
            logger.warning(
                "Request error for %s: %s", url, exc,
            )
            raise FetchError(url, str(exc)) from exc

        status: int = int(resp.status_code)
        if not 200 <= status < 300:
            logger.warning("HTTP %d for %s", status, url)
            raise FetchError(
                url, f"HTTP {status}", status_code=status,
            )

        body: bytes = resp.content or b""
        logger.debug(
            "Fetched %s (%d bytes, engine=%s)",
            url,
            len(body),
            self.engine,
        )
        return FetchedPage(
            url=str(getattr(resp, "url", url) or url),
            status_code=status,
            body=body,
        )
