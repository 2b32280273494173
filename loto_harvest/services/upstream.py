"""HTTP access to the upstream results site."""

from __future__ import annotations

import logging
import time
from typing import Callable

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from loto_harvest.errors import TransportError

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; PiyangoBot/1.0)"
DEFAULT_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"


def build_http_session(
    retries: int = 0,
    backoff_factor: float = 0.3,
    user_agent: str = DEFAULT_USER_AGENT,
) -> requests.Session:
    """Create a requests session with descriptive headers and optional transport retries.

    Retries default to zero: a failed draw is left for the next sync run.
    """

    retry = Retry(
        total=retries,
        connect=retries,
        read=retries,
        status=retries,
        backoff_factor=backoff_factor,
        status_forcelist=(429, 500, 502, 503, 504),
        allowed_methods=("GET",),
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry, pool_connections=4, pool_maxsize=4)

    session = requests.Session()
    session.headers.update({"User-Agent": user_agent, "Accept": DEFAULT_ACCEPT})
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


class Throttle:
    """Enforce a minimum delay between consecutive upstream requests."""

    def __init__(
        self,
        delay_seconds: float = 0.5,
        *,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._delay = max(0.0, float(delay_seconds))
        self._sleep = sleep
        self._clock = clock
        self._last: float | None = None

    def wait(self) -> None:
        now = self._clock()
        if self._last is not None and self._delay > 0:
            remaining = self._delay - (now - self._last)
            if remaining > 0:
                self._sleep(remaining)
                now = self._clock()
        self._last = now


class UpstreamClient:
    """GET pages from the upstream site with a per-request timeout."""

    def __init__(
        self,
        http: requests.Session | None = None,
        *,
        timeout_seconds: float = 15.0,
        throttle: Throttle | None = None,
    ) -> None:
        self._http = http or build_http_session()
        self._timeout = float(timeout_seconds)
        self.throttle = throttle or Throttle(0)

    def _get(self, url: str) -> requests.Response:
        self.throttle.wait()
        try:
            return self._http.get(url, timeout=self._timeout)
        except requests.RequestException as exc:
            raise TransportError(f"GET {url} failed: {exc}", url=url) from exc

    def fetch(self, url: str) -> str:
        """Return the page body; any non-200 response is a TransportError."""

        resp = self._get(url)
        if resp.status_code != 200:
            raise TransportError(
                f"GET {url} returned HTTP {resp.status_code}",
                url=url,
                upstream_status=resp.status_code,
            )
        return resp.text

    def probe(self, url: str) -> str | None:
        """Return the page body if the page exists, None for any non-200 status."""

        resp = self._get(url)
        if resp.status_code == 200:
            return resp.text
        logger.debug("Probe %s -> HTTP %s", url, resp.status_code)
        return None
