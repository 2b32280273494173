"""Draw routes (controllers). No business logic here."""

from __future__ import annotations

import logging

from flask import Blueprint, current_app, request

from loto_harvest.db import get_draw_repository
from loto_harvest.schemas.draw import DrawListQuerySchema, DrawSchema, SyncResultSchema
from loto_harvest.services.sync_service import DrawSyncService
from loto_harvest.utils.responses import ok

logger = logging.getLogger(__name__)

draws_bp = Blueprint("draws", __name__)

_query_schema = DrawListQuerySchema()
_draws_schema = DrawSchema(many=True)
_sync_schema = SyncResultSchema()


def build_sync_service() -> DrawSyncService:
    """Sync service for the current app; tests replace it via ``app.extensions``."""

    factory = current_app.extensions.get("sync_service_factory")
    if factory is not None:
        return factory()
    return DrawSyncService.from_config(current_app.config, get_draw_repository())


@draws_bp.get("/draws")
def list_draws():
    """Stored draws, newest first."""

    args = _query_schema.load(request.args)
    draws = get_draw_repository().list_all()
    newest = list(reversed(draws))[: int(args["limit"])]
    return ok(_draws_schema.dump(newest))


@draws_bp.post("/draws/sync")
def sync_draws():
    """Run one incremental sync and report what was added."""

    logger.info("Manual sync requested")
    result = build_sync_service().sync()
    return ok(_sync_schema.dump(result))
