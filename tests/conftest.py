from __future__ import annotations

from collections.abc import Iterator

import pytest
from sqlalchemy.orm import sessionmaker

from loto_harvest import create_app
from loto_harvest.db import create_app_engine
from loto_harvest.errors import DuplicateDrawError, TransportError
from loto_harvest.models.base import Base
from loto_harvest.repositories.draw_repository import DrawRecord, DrawRepository, SqlDrawRepository
from loto_harvest.services.draw_locator import DrawLocator, DrawReference

URL_TEMPLATE = "https://example.test/sayisal-loto-sonuclari/{draw_id}"


def draw_url(draw_id: int) -> str:
    return URL_TEMPLATE.format(draw_id=draw_id)


def result_page(*numbers: int | str) -> str:
    spans = "".join(f"<span>{n}</span>" for n in numbers)
    return f"<html><body><div class='lottery-wins-numbers'>{spans}</div></body></html>"


class FakeUpstream:
    """Stands in for UpstreamClient.

    ``pages`` maps URL -> body (str), HTTP status (int) or an exception to raise.
    Unknown URLs answer 404.
    """

    def __init__(self, pages: dict[str, object] | None = None) -> None:
        self.pages = dict(pages or {})
        self.calls: list[str] = []

    def _lookup(self, url: str) -> object:
        self.calls.append(url)
        value = self.pages.get(url, 404)
        if isinstance(value, Exception):
            raise TransportError(str(value), url=url)
        return value

    def fetch(self, url: str) -> str:
        value = self._lookup(url)
        if isinstance(value, int):
            raise TransportError(f"HTTP {value}", url=url, upstream_status=value)
        return str(value)

    def probe(self, url: str) -> str | None:
        value = self._lookup(url)
        if isinstance(value, int):
            return None
        return str(value)


class StaticLocator(DrawLocator):
    def __init__(self, references: list[DrawReference]) -> None:
        self.references = list(references)
        self.calls = 0

    def locate(self) -> Iterator[DrawReference]:
        self.calls += 1
        yield from self.references


class InMemoryDrawRepository(DrawRepository):
    def __init__(self) -> None:
        self.records: list[DrawRecord] = []

    def insert(self, record: DrawRecord) -> None:
        for r in self.records:
            if r.sequence_id == record.sequence_id or r.source_url == record.source_url:
                raise DuplicateDrawError()
        self.records.append(record)

    def max_sequence_id(self) -> int:
        return max((r.sequence_id for r in self.records), default=0)

    def list_all(self) -> list[DrawRecord]:
        return sorted(self.records, key=lambda r: r.sequence_id)

    def find_existing_source_urls(self, urls) -> set[str]:
        stored = {r.source_url for r in self.records}
        return {u for u in urls if u in stored}


def references(*draw_ids: int) -> list[DrawReference]:
    return [DrawReference(draw_id=i, url=draw_url(i)) for i in draw_ids]


@pytest.fixture()
def memory_repo() -> InMemoryDrawRepository:
    return InMemoryDrawRepository()


@pytest.fixture()
def sql_repo(tmp_path) -> SqlDrawRepository:
    engine = create_app_engine(f"sqlite:///{tmp_path / 'draws.db'}")
    Base.metadata.create_all(bind=engine)
    return SqlDrawRepository(sessionmaker(bind=engine, autoflush=False, expire_on_commit=False))


@pytest.fixture()
def app(tmp_path):
    app = create_app(
        {
            "TESTING": True,
            "DB_BACKEND": "sql",
            "DATABASE_URL": f"sqlite:///{tmp_path / 'app.db'}",
            "UPSTREAM_DRAW_URL_TEMPLATE": URL_TEMPLATE,
            "UPSTREAM_DELAY_SECONDS": 0,
        }
    )
    yield app


@pytest.fixture()
def client(app):
    return app.test_client()
