"""Stored lottery draws.

Columns:
- sequence_id (PK): dense local ordinal, assigned at commit time
- source_url (unique): upstream page the draw was scraped from
- source_id: upstream draw identifier (week number)
- main_numbers: JSON list of six normalized values
- bonus_numbers: JSON object keyed by bonus category, null when absent
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, DateTime, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from loto_harvest.models.base import Base


class DrawResult(Base):
    """One row per committed draw. Rows are never updated."""

    __tablename__ = "draw_results"
    __table_args__ = (UniqueConstraint("source_url", name="uq_draw_results_source_url"),)

    sequence_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    source_url: Mapped[str] = mapped_column(String(500), nullable=False)
    source_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    published_label: Mapped[str | None] = mapped_column(String(200), nullable=True)

    main_numbers: Mapped[list] = mapped_column(JSON, nullable=False)
    bonus_numbers: Mapped[dict] = mapped_column(JSON, nullable=False)

    fetched_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
