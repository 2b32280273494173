"""Storage setup for the SQL (SQLAlchemy) and MongoDB backends.

The backend is picked once per app from ``DB_BACKEND``. Services never reach
for a global connection: they receive a repository built by
:func:`get_draw_repository`.
"""

from __future__ import annotations

import logging

from flask import Flask, current_app
from pymongo import MongoClient
from pymongo.database import Database
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from loto_harvest.errors import StorageUnavailableError
from loto_harvest.models.base import Base
from loto_harvest.repositories.draw_repository import (
    DrawRepository,
    MongoDrawRepository,
    SqlDrawRepository,
)

logger = logging.getLogger(__name__)


def create_app_engine(database_url: str) -> Engine:
    return create_engine(database_url, pool_pre_ping=True, future=True)


def create_mongo_database(uri: str, db_name: str, timeout_ms: int = 5000) -> Database:
    client: MongoClient = MongoClient(uri, serverSelectionTimeoutMS=int(timeout_ms))
    return client[db_name]


def init_db(app: Flask) -> None:
    """Initialize the configured storage backend and its unique constraints."""

    backend = str(app.config.get("DB_BACKEND", "sql")).lower().strip()
    app.extensions["db_backend"] = backend

    if backend == "mongo":
        database = create_mongo_database(
            str(app.config["MONGODB_URI"]),
            str(app.config["MONGODB_DB"]),
            timeout_ms=int(app.config.get("MONGODB_TIMEOUT_MS", 5000)),
        )
        repository = MongoDrawRepository(database)
        try:
            repository.ensure_indexes()
        except StorageUnavailableError:
            # Retried before the first insert; the repository refuses writes until then.
            logger.exception("Failed to create Mongo indexes; continuing")
        app.extensions["mongo_db"] = database
        app.extensions["draw_repository"] = repository
        return

    engine = create_app_engine(str(app.config["DATABASE_URL"]))
    session_factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

    # Create tables (production would use migrations).
    try:
        Base.metadata.create_all(bind=engine)
    except SQLAlchemyError:
        logger.exception("Failed to create tables; continuing")

    app.extensions["engine"] = engine
    app.extensions["session_factory"] = session_factory


def get_db_backend(app: Flask | None = None) -> str:
    app = app or current_app
    return str(app.extensions.get("db_backend", "sql"))


def get_draw_repository(app: Flask | None = None) -> DrawRepository:
    """Return the draw repository for the app's configured backend."""

    app = app or current_app
    if get_db_backend(app) == "mongo":
        repository: MongoDrawRepository | None = app.extensions.get("draw_repository")
        if repository is None:
            raise RuntimeError("Mongo database not initialized")
        return repository

    session_factory: sessionmaker | None = app.extensions.get("session_factory")
    if session_factory is None:
        raise RuntimeError("Database session factory not initialized")
    return SqlDrawRepository(session_factory)
