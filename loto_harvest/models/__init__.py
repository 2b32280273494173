"""ORM models."""

from loto_harvest.models.draw_result import DrawResult

__all__ = ["DrawResult"]
