"""Extract draw numbers from a result page.

Upstream markup drifts between site redesigns, so extraction walks an ordered
list of CSS selectors and falls back to scanning the page text.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass, field

from bs4 import BeautifulSoup

from loto_harvest.constants import DEFAULT_PARSER_SELECTORS
from loto_harvest.errors import InsufficientDataError, ValidationError

MAIN_COUNT = 6
MAX_TOKENS = 8
FALLBACK_STRATEGY = "fallback"

_NUMERIC_TOKEN = re.compile(r"^\d{1,2}$")
_TEXT_TOKEN = re.compile(r"(?<![\d.:/-])\b\d{1,2}\b(?![.:/-]?\d)")


@dataclass(frozen=True)
class ParsedDraw:
    main_numbers: tuple[int | str, ...]
    bonus_numbers: dict[str, int | str | None] = field(default_factory=dict)
    strategy: str = FALLBACK_STRATEGY


class DrawParser:
    """Turn one result page into six main numbers and optional bonus numbers."""

    def __init__(
        self,
        selectors: Sequence[str] = DEFAULT_PARSER_SELECTORS,
        *,
        bonus_categories: Sequence[str] = ("joker", "superstar"),
        number_format: str = "int",
    ) -> None:
        fmt = str(number_format).lower().strip()
        if fmt not in ("int", "str"):
            raise ValidationError(
                message="Invalid number format",
                details={"number_format": ["Must be one of int|str"]},
            )
        self._selectors = tuple(selectors)
        self._bonus_categories = tuple(bonus_categories)
        self._number_format = fmt

    def _normalize(self, token: str) -> int | str:
        if self._number_format == "int":
            return int(token)
        return token

    @staticmethod
    def _select_tokens(soup: BeautifulSoup, selector: str) -> list[str]:
        tokens: list[str] = []
        for el in soup.select(selector):
            text = el.get_text(strip=True)
            if _NUMERIC_TOKEN.match(text):
                tokens.append(text)
        return tokens

    @staticmethod
    def _scan_text(soup: BeautifulSoup) -> list[str]:
        for el in soup(["script", "style", "noscript"]):
            el.decompose()
        text = soup.get_text(" ")
        return _TEXT_TOKEN.findall(text)[:MAX_TOKENS]

    def extract_tokens(self, body: str) -> tuple[list[str], str]:
        """Return the numeric tokens and the name of the strategy that found them."""

        soup = BeautifulSoup(body or "", "html.parser")
        for selector in self._selectors:
            tokens = self._select_tokens(soup, selector)
            if len(tokens) >= MAIN_COUNT:
                return tokens, selector
        return self._scan_text(soup), FALLBACK_STRATEGY

    def classify(self, tokens: Sequence[str], strategy: str = FALLBACK_STRATEGY) -> ParsedDraw:
        if len(tokens) < MAIN_COUNT:
            raise InsufficientDataError(
                f"Found {len(tokens)} numbers, need {MAIN_COUNT}",
                found=len(tokens),
            )

        values = [self._normalize(t) for t in tokens[:MAX_TOKENS]]
        extras = values[MAIN_COUNT:]
        bonus: dict[str, int | str | None] = {}
        for i, category in enumerate(self._bonus_categories):
            bonus[category] = extras[i] if i < len(extras) else None

        return ParsedDraw(
            main_numbers=tuple(values[:MAIN_COUNT]),
            bonus_numbers=bonus,
            strategy=strategy,
        )

    def parse(self, body: str) -> ParsedDraw:
        tokens, strategy = self.extract_tokens(body)
        return self.classify(tokens, strategy)
