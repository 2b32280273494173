"""Schemas for the frequency prediction API."""

from __future__ import annotations

from marshmallow import Schema, fields, validate


class PredictionQuerySchema(Schema):
    top_main = fields.Integer(required=False, load_default=None, validate=validate.Range(min=1, max=60))
    top_bonus = fields.Integer(required=False, load_default=None, validate=validate.Range(min=1, max=20))
    samples = fields.Integer(required=False, load_default=None, validate=validate.Range(min=0, max=50))


class SampledDrawSchema(Schema):
    main_numbers = fields.List(fields.Raw(), required=True)
    bonus_numbers = fields.Dict(keys=fields.Str(), values=fields.Raw(allow_none=True))


class PredictionSchema(Schema):
    draws_used = fields.Int(required=True)
    top_main = fields.List(fields.Raw(), required=True)
    top_bonus = fields.Dict(keys=fields.Str(), values=fields.List(fields.Raw()))
    # Pairs keep frequency order; JSON object keys would be re-sorted.
    main_counts = fields.List(fields.Tuple((fields.Raw(), fields.Int())))
    sampled_draws = fields.List(fields.Nested(SampledDrawSchema))
    heuristic = fields.Bool()
    disclaimer = fields.Str()
