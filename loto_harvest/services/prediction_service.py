"""Frequency tables and sampled picks from the stored draw history.

This is a naive heuristic: past frequency says nothing about future draws.
Responses carry ``heuristic=True`` so clients never present it as a forecast.
"""

from __future__ import annotations

import random
from collections import Counter
from collections.abc import Hashable, Iterable, Sequence
from dataclasses import dataclass

from loto_harvest.errors import ValidationError
from loto_harvest.repositories.draw_repository import DrawRepository

DISCLAIMER = "Frequency heuristic over past draws; not a statistical forecast."
SAMPLE_SIZE = 6


@dataclass(frozen=True)
class SampledDraw:
    main_numbers: list
    bonus_numbers: dict


@dataclass(frozen=True)
class PredictionResult:
    draws_used: int
    top_main: list
    top_bonus: dict[str, list]
    main_counts: list[tuple]
    sampled_draws: list[SampledDraw]
    heuristic: bool = True
    disclaimer: str = DISCLAIMER


def count_by_frequency(values: Iterable[Hashable]) -> list[tuple]:
    """``(value, count)`` pairs, most frequent first; ties keep first-seen order."""

    # Counter preserves insertion order and sorted() is stable.
    return sorted(Counter(values).items(), key=lambda kv: -kv[1])


def rank_by_frequency(values: Iterable[Hashable], limit: int) -> list:
    """Most frequent values first; ties keep first-seen order."""

    return [value for value, _ in count_by_frequency(values)[:limit]]


class FrequencyPredictionService:
    """Rank main and bonus numbers by how often they were drawn."""

    def __init__(self, repository: DrawRepository, rng: random.Random | None = None) -> None:
        self._repo = repository
        self._rng = rng or random.Random()

    def predict(
        self,
        *,
        top_main: int = 10,
        top_bonus: int = 3,
        samples: int = 3,
        bonus_categories: Sequence[str] = ("joker", "superstar"),
    ) -> PredictionResult:
        if top_main < 1:
            raise ValidationError(message="Invalid top_main", details={"top_main": ["Must be >= 1"]})
        if top_bonus < 1:
            raise ValidationError(message="Invalid top_bonus", details={"top_bonus": ["Must be >= 1"]})
        if samples < 0:
            raise ValidationError(message="Invalid samples", details={"samples": ["Must be >= 0"]})

        draws = self._repo.list_all()

        main_values = [n for d in draws for n in d.main_numbers]
        categories = list(bonus_categories)
        for d in draws:
            for category in d.bonus_numbers:
                if category not in categories:
                    categories.append(category)

        main_counts = count_by_frequency(main_values)
        ranked_main = [value for value, _ in main_counts[:top_main]]
        ranked_bonus: dict[str, list] = {}
        for category in categories:
            values = [d.bonus_numbers.get(category) for d in draws]
            ranked_bonus[category] = rank_by_frequency((v for v in values if v is not None), top_bonus)

        sampled: list[SampledDraw] = []
        if len(ranked_main) >= SAMPLE_SIZE:
            for _ in range(samples):
                main = self._rng.sample(ranked_main, SAMPLE_SIZE)
                bonus = {
                    category: (self._rng.choice(top) if top else None)
                    for category, top in ranked_bonus.items()
                }
                sampled.append(SampledDraw(main_numbers=main, bonus_numbers=bonus))

        return PredictionResult(
            draws_used=len(draws),
            top_main=ranked_main,
            top_bonus=ranked_bonus,
            main_counts=main_counts,
            sampled_draws=sampled,
        )
