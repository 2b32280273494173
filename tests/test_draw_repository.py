from __future__ import annotations

from datetime import datetime, timezone

import pytest
from pymongo.errors import ServerSelectionTimeoutError
from sqlalchemy.orm import sessionmaker

from conftest import draw_url
from loto_harvest import create_app
from loto_harvest.db import create_app_engine, get_draw_repository
from loto_harvest.errors import DuplicateDrawError, StorageUnavailableError
from loto_harvest.repositories.draw_repository import DrawRecord, MongoDrawRepository, SqlDrawRepository


def _record(seq: int, draw_id: int | None = None, main=(1, 2, 3, 4, 5, 6), **kwargs) -> DrawRecord:
    draw_id = seq if draw_id is None else draw_id
    return DrawRecord(
        sequence_id=seq,
        source_url=draw_url(draw_id),
        source_id=draw_id,
        main_numbers=tuple(main),
        bonus_numbers=kwargs.pop("bonus", {"joker": 7, "superstar": None}),
        fetched_at=datetime(2025, 1, 6, 9, 0, tzinfo=timezone.utc),
        **kwargs,
    )


def test_empty_store(sql_repo):
    assert sql_repo.max_sequence_id() == 0
    assert sql_repo.list_all() == []
    assert sql_repo.find_existing_source_urls([]) == set()


def test_insert_and_read_back(sql_repo):
    sql_repo.insert(_record(2, 41, main=(8, 15, 22, 29, 36, 43), published_label="41. Hafta"))
    sql_repo.insert(_record(1, 40))

    draws = sql_repo.list_all()

    assert [d.sequence_id for d in draws] == [1, 2]
    assert draws[1].source_id == 41
    assert draws[1].main_numbers == (8, 15, 22, 29, 36, 43)
    assert draws[1].bonus_numbers == {"joker": 7, "superstar": None}
    assert draws[1].published_label == "41. Hafta"
    assert draws[1].fetched_at is not None
    assert sql_repo.max_sequence_id() == 2


def test_duplicate_sequence_id_is_rejected(sql_repo):
    sql_repo.insert(_record(1, 10))

    with pytest.raises(DuplicateDrawError):
        sql_repo.insert(_record(1, 11, main=(9, 9, 9, 9, 9, 9)))

    assert [d.source_id for d in sql_repo.list_all()] == [10]


def test_duplicate_source_url_is_rejected_without_overwrite(sql_repo):
    sql_repo.insert(_record(1, 10))

    with pytest.raises(DuplicateDrawError):
        sql_repo.insert(_record(2, 10, main=(40, 41, 42, 43, 44, 45)))

    draws = sql_repo.list_all()
    assert len(draws) == 1
    assert draws[0].main_numbers == (1, 2, 3, 4, 5, 6)


def test_repository_usable_after_duplicate(sql_repo):
    sql_repo.insert(_record(1, 10))
    with pytest.raises(DuplicateDrawError):
        sql_repo.insert(_record(1, 10))

    sql_repo.insert(_record(2, 11))

    assert sql_repo.max_sequence_id() == 2


def test_find_existing_source_urls(sql_repo):
    sql_repo.insert(_record(1, 10))
    sql_repo.insert(_record(2, 11))

    found = sql_repo.find_existing_source_urls([draw_url(10), draw_url(12), draw_url(11)])

    assert found == {draw_url(10), draw_url(11)}


def test_text_numbers_round_trip(sql_repo):
    sql_repo.insert(_record(1, main=("02", "09", "17", "28", "33", "45"), bonus={"joker": "05", "superstar": None}))

    draw = sql_repo.list_all()[0]

    assert draw.main_numbers == ("02", "09", "17", "28", "33", "45")
    assert draw.bonus_numbers["joker"] == "05"


def test_missing_schema_surfaces_as_storage_unavailable(tmp_path):
    engine = create_app_engine(f"sqlite:///{tmp_path / 'empty.db'}")
    repo = SqlDrawRepository(sessionmaker(bind=engine))

    with pytest.raises(StorageUnavailableError):
        repo.max_sequence_id()
    with pytest.raises(StorageUnavailableError):
        repo.insert(_record(1))


class FlakyCollection:
    """Stands in for a pymongo collection whose server is down at first."""

    def __init__(self, failures: int = 1) -> None:
        self.failures = failures
        self.indexes: list[tuple[str, bool]] = []
        self.docs: list[dict] = []

    def create_index(self, key, unique=False):
        if self.failures:
            self.failures -= 1
            raise ServerSelectionTimeoutError("no servers available")
        self.indexes.append((key, unique))
        return f"{key}_1"

    def insert_one(self, doc):
        self.docs.append(dict(doc))


def test_mongo_insert_retries_index_creation():
    col = FlakyCollection(failures=1)
    repo = MongoDrawRepository({"draws": col})

    with pytest.raises(StorageUnavailableError):
        repo.ensure_indexes()
    assert col.indexes == []

    repo.insert(_record(1, 10))

    assert col.indexes == [("sequence_id", True), ("source_url", True)]
    assert [d["source_id"] for d in col.docs] == [10]


def test_mongo_insert_refuses_to_write_without_indexes():
    col = FlakyCollection(failures=5)
    repo = MongoDrawRepository({"draws": col})

    with pytest.raises(StorageUnavailableError):
        repo.insert(_record(1, 10))

    assert col.docs == []


def test_mongo_indexes_built_once():
    col = FlakyCollection(failures=0)
    repo = MongoDrawRepository({"draws": col})
    repo.ensure_indexes()

    repo.insert(_record(1, 10))
    repo.insert(_record(2, 11))

    assert len(col.indexes) == 2


def test_mongo_app_shares_one_repository():
    app = create_app(
        {
            "TESTING": True,
            "DB_BACKEND": "mongo",
            "MONGODB_URI": "mongodb://127.0.0.1:1",
            "MONGODB_TIMEOUT_MS": 50,
        }
    )

    repo = get_draw_repository(app)

    assert isinstance(repo, MongoDrawRepository)
    assert get_draw_repository(app) is repo
    with pytest.raises(StorageUnavailableError):
        repo.insert(_record(1, 10))
