"""Discover which draws the upstream site currently advertises."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from loto_harvest.constants import DEFAULT_ID_PATTERN, DEFAULT_OPTION_SELECTOR
from loto_harvest.errors import NoDrawsFoundError, TransportError, ValidationError
from loto_harvest.services.upstream import UpstreamClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DrawReference:
    draw_id: int
    url: str
    published_label: str | None = None
    # Page already downloaded while locating, if any.
    body: str | None = field(default=None, compare=False, repr=False)


def build_draw_url(template: str, draw_id: int) -> str:
    return template.format(draw_id=int(draw_id))


class DrawLocator:
    """Base locator. ``locate()`` returns a fresh ascending iterator on every call."""

    def __init__(self, client: UpstreamClient, url_template: str) -> None:
        self._client = client
        self._url_template = url_template

    def _reference(self, draw_id: int, label: str | None = None, body: str | None = None) -> DrawReference:
        return DrawReference(
            draw_id=int(draw_id),
            url=build_draw_url(self._url_template, draw_id),
            published_label=label or None,
            body=body,
        )
    def locate(self) -> Iterator[DrawReference]:
        raise NotImplementedError


class EnumerationLocator(DrawLocator):
    """Probe draw pages 1, 2, 3, ... until several consecutive pages are missing."""

    def __init__(
        self,
        client: UpstreamClient,
        url_template: str,
        *,
        start_id: int = 1,
        max_probe: int = 500,
        max_misses: int = 3,
    ) -> None:
        super().__init__(client, url_template)
        if start_id < 1:
            raise ValidationError("start_id must be >= 1")
        if max_misses < 1:
            raise ValidationError("max_misses must be >= 1")
        self._start_id = int(start_id)
        self._max_probe = int(max_probe)
        self._max_misses = int(max_misses)

    def locate(self) -> Iterator[DrawReference]:
        found = 0
        misses = 0
        for draw_id in range(self._start_id, self._max_probe + 1):
            url = build_draw_url(self._url_template, draw_id)
            try:
                body = self._client.probe(url)
            except TransportError as exc:
                logger.warning("Probe for draw %s failed: %s", draw_id, exc)
                body = None

            if body is None:
                misses += 1
                if misses >= self._max_misses:
                    logger.info("Stopping probe after %s consecutive misses at draw %s", misses, draw_id)
                    break
                continue

            misses = 0
            found += 1
            yield self._reference(draw_id, body=body)

        if not found:
            raise NoDrawsFoundError(
                details={"start_id": self._start_id, "max_probe": self._max_probe},
            )


class IndexPageLocator(DrawLocator):
    """Collect draw ids from the links and dropdown options of listing pages."""

    def __init__(
        self,
        client: UpstreamClient,
        url_template: str,
        index_urls: Sequence[str],
        *,
        id_pattern: str = DEFAULT_ID_PATTERN,
        option_selector: str = DEFAULT_OPTION_SELECTOR,
    ) -> None:
        super().__init__(client, url_template)
        if not index_urls:
            raise ValidationError("At least one index URL is required")
        self._index_urls = tuple(index_urls)
        self._id_pattern = re.compile(id_pattern)
        self._option_selector = option_selector

    def _match_id(self, value: str, *, allow_bare: bool = False) -> int | None:
        """Read a draw id from an option value.

        Bare numbers are only trusted inside draw dropdowns; elsewhere they are
        years, page sizes and the like.
        """

        value = value.strip()
        m = self._id_pattern.search(value)
        if m is not None:
            return int(m.group(1))
        if allow_bare and value.isdigit():
            return int(value)
        return None

    def extract(self, body: str, base_url: str) -> dict[int, str | None]:
        """Map draw id -> label for every anchor or option on one index page."""

        soup = BeautifulSoup(body or "", "html.parser")
        found: dict[int, str | None] = {}

        for a in soup.select("a[href]"):
            href = urljoin(base_url, str(a.get("href") or ""))
            m = self._id_pattern.search(href)
            if m is None:
                continue
            draw_id = int(m.group(1))
            label = a.get_text(" ", strip=True) or None
            if found.get(draw_id) is None:
                found[draw_id] = label

        # Tags compare by markup, so track identity.
        draw_options = {id(opt) for opt in soup.select(self._option_selector)}
        for opt in soup.select("option[value]"):
            draw_id = self._match_id(
                str(opt.get("value") or ""),
                allow_bare=id(opt) in draw_options,
            )
            if draw_id is None:
                continue
            label = opt.get_text(" ", strip=True) or None
            if found.get(draw_id) is None:
                found[draw_id] = label

        return found

    def locate(self) -> Iterator[DrawReference]:
        merged: dict[int, str | None] = {}
        for index_url in self._index_urls:
            try:
                body = self._client.fetch(index_url)
            except TransportError as exc:
                logger.warning("Index page %s failed: %s", index_url, exc)
                continue
            for draw_id, label in self.extract(body, index_url).items():
                if merged.get(draw_id) is None:
                    merged[draw_id] = label

        if not merged:
            raise NoDrawsFoundError(details={"index_urls": list(self._index_urls)})

        logger.info("Index pages advertise %s draws", len(merged))
        for draw_id in sorted(merged):
            yield self._reference(draw_id, merged[draw_id])
