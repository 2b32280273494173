"""Repository layer for draw persistence.

Both backends expose the same four access patterns and enforce uniqueness of
``sequence_id`` and ``source_url`` in the store itself, so overlapping sync
runs cannot write the same draw twice.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from pymongo import ASCENDING, DESCENDING
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError, PyMongoError
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from loto_harvest.errors import DuplicateDrawError, StorageUnavailableError
from loto_harvest.models.draw_result import DrawResult

NumberValue = int | str


@dataclass(frozen=True)
class DrawRecord:
    sequence_id: int
    source_url: str
    source_id: int
    main_numbers: tuple[NumberValue, ...]
    bonus_numbers: dict[str, NumberValue | None] = field(default_factory=dict)
    fetched_at: datetime | None = None
    published_label: str | None = None


class DrawRepository:
    """Storage contract used by the sync engine and the predictor."""

    def insert(self, record: DrawRecord) -> None:
        """Insert a new draw; raise DuplicateDrawError if either key is taken."""
        raise NotImplementedError

    def max_sequence_id(self) -> int:
        """Highest stored sequence id, 0 when empty."""
        raise NotImplementedError

    def list_all(self) -> list[DrawRecord]:
        """All draws ordered by sequence id."""
        raise NotImplementedError

    def find_existing_source_urls(self, urls: Iterable[str]) -> set[str]:
        """Subset of ``urls`` that is already stored."""
        raise NotImplementedError


class SqlDrawRepository(DrawRepository):
    """SQLAlchemy backend. Every call runs in its own short transaction."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    @staticmethod
    def _to_record(row: DrawResult) -> DrawRecord:
        return DrawRecord(
            sequence_id=int(row.sequence_id),
            source_url=str(row.source_url),
            source_id=int(row.source_id),
            main_numbers=tuple(row.main_numbers or ()),
            bonus_numbers=dict(row.bonus_numbers or {}),
            fetched_at=row.fetched_at,
            published_label=row.published_label,
        )

    def insert(self, record: DrawRecord) -> None:
        row = DrawResult(
            sequence_id=int(record.sequence_id),
            source_url=str(record.source_url),
            source_id=int(record.source_id),
            published_label=record.published_label,
            main_numbers=list(record.main_numbers),
            bonus_numbers=dict(record.bonus_numbers),
            fetched_at=record.fetched_at,
        )
        with self._session_factory() as session:
            try:
                session.add(row)
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise DuplicateDrawError(
                    details={"sequence_id": record.sequence_id, "source_url": record.source_url},
                ) from exc
            except SQLAlchemyError as exc:
                session.rollback()
                raise StorageUnavailableError(details=str(exc)) from exc

    def max_sequence_id(self) -> int:
        try:
            with self._session_factory() as session:
                return int(session.scalar(select(func.max(DrawResult.sequence_id))) or 0)
        except SQLAlchemyError as exc:
            raise StorageUnavailableError(details=str(exc)) from exc

    def list_all(self) -> list[DrawRecord]:
        stmt = select(DrawResult).order_by(DrawResult.sequence_id.asc())
        try:
            with self._session_factory() as session:
                return [self._to_record(row) for row in session.scalars(stmt).all()]
        except SQLAlchemyError as exc:
            raise StorageUnavailableError(details=str(exc)) from exc

    def find_existing_source_urls(self, urls: Iterable[str]) -> set[str]:
        wanted = {str(u) for u in urls}
        if not wanted:
            return set()
        stmt = select(DrawResult.source_url).where(DrawResult.source_url.in_(wanted))
        try:
            with self._session_factory() as session:
                return {str(u) for u in session.scalars(stmt).all()}
        except SQLAlchemyError as exc:
            raise StorageUnavailableError(details=str(exc)) from exc


class MongoDrawRepository(DrawRepository):
    """MongoDB backend backed by unique indexes on the ``draws`` collection.

    Inserts rely on those indexes for deduplication, so no write goes out until
    they exist. A failed index build is retried on the next insert.
    """

    def __init__(self, database: Database, collection: str = "draws") -> None:
        self._col = database[collection]
        self._indexes_ready = False

    def ensure_indexes(self) -> None:
        try:
            self._col.create_index("sequence_id", unique=True)
            self._col.create_index("source_url", unique=True)
        except PyMongoError as exc:
            raise StorageUnavailableError(details=str(exc)) from exc
        self._indexes_ready = True

    @staticmethod
    def _to_record(doc: dict[str, Any]) -> DrawRecord:
        return DrawRecord(
            sequence_id=int(doc.get("sequence_id")),
            source_url=str(doc.get("source_url")),
            source_id=int(doc.get("source_id")),
            main_numbers=tuple(doc.get("main_numbers") or ()),
            bonus_numbers=dict(doc.get("bonus_numbers") or {}),
            fetched_at=doc.get("fetched_at"),
            published_label=doc.get("published_label"),
        )

    def insert(self, record: DrawRecord) -> None:
        if not self._indexes_ready:
            self.ensure_indexes()

        doc = {
            "sequence_id": int(record.sequence_id),
            "source_url": str(record.source_url),
            "source_id": int(record.source_id),
            "published_label": record.published_label,
            "main_numbers": list(record.main_numbers),
            "bonus_numbers": dict(record.bonus_numbers),
            "fetched_at": record.fetched_at,
        }
        try:
            self._col.insert_one(doc)
        except DuplicateKeyError as exc:
            raise DuplicateDrawError(
                details={"sequence_id": record.sequence_id, "source_url": record.source_url},
            ) from exc
        except PyMongoError as exc:
            raise StorageUnavailableError(details=str(exc)) from exc

    def max_sequence_id(self) -> int:
        try:
            doc = self._col.find_one({}, {"_id": 0, "sequence_id": 1}, sort=[("sequence_id", DESCENDING)])
        except PyMongoError as exc:
            raise StorageUnavailableError(details=str(exc)) from exc
        return int((doc or {}).get("sequence_id") or 0)

    def list_all(self) -> list[DrawRecord]:
        try:
            cur = self._col.find({}, {"_id": 0}).sort("sequence_id", ASCENDING)
            return [self._to_record(doc) for doc in cur]
        except PyMongoError as exc:
            raise StorageUnavailableError(details=str(exc)) from exc

    def find_existing_source_urls(self, urls: Iterable[str]) -> set[str]:
        wanted: Sequence[str] = sorted({str(u) for u in urls})
        if not wanted:
            return set()
        try:
            cur = self._col.find({"source_url": {"$in": list(wanted)}}, {"_id": 0, "source_url": 1})
            return {str(doc.get("source_url")) for doc in cur}
        except PyMongoError as exc:
            raise StorageUnavailableError(details=str(exc)) from exc
