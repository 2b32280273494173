"""Prediction routes (controllers). No business logic here."""

from __future__ import annotations

from flask import Blueprint, current_app, request

from loto_harvest.db import get_draw_repository
from loto_harvest.schemas.prediction import PredictionQuerySchema, PredictionSchema
from loto_harvest.services.prediction_service import FrequencyPredictionService
from loto_harvest.utils.responses import ok

predictions_bp = Blueprint("predictions", __name__)

_query_schema = PredictionQuerySchema()
_response_schema = PredictionSchema()


@predictions_bp.get("/predictions")
def get_predictions():
    """Frequency-ranked numbers and sampled picks.

    Query params:
    - top_main: how many main numbers to rank (default PREDICT_TOP_MAIN)
    - top_bonus: how many values to rank per bonus category (default PREDICT_TOP_BONUS)
    - samples: how many picks to sample (default PREDICT_SAMPLES)
    """

    args = _query_schema.load(request.args)
    cfg = current_app.config

    service = FrequencyPredictionService(get_draw_repository())
    result = service.predict(
        top_main=int(args["top_main"] or cfg.get("PREDICT_TOP_MAIN", 10)),
        top_bonus=int(args["top_bonus"] or cfg.get("PREDICT_TOP_BONUS", 3)),
        samples=int(args["samples"] if args["samples"] is not None else cfg.get("PREDICT_SAMPLES", 3)),
        bonus_categories=tuple(cfg.get("BONUS_CATEGORIES") or ("joker", "superstar")),
    )
    return ok(_response_schema.dump(result))
