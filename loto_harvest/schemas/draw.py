"""Marshmallow schemas for stored draws and sync results."""

from __future__ import annotations

from marshmallow import Schema, fields, validate


class DrawSchema(Schema):
    """Serialize a stored draw."""

    sequence_id = fields.Int(required=True)
    source_id = fields.Int(required=True)
    source_url = fields.Str(required=True)
    published_label = fields.Str(allow_none=True)
    main_numbers = fields.List(fields.Raw(), required=True)
    bonus_numbers = fields.Dict(keys=fields.Str(), values=fields.Raw(allow_none=True))
    fetched_at = fields.DateTime(allow_none=True)


class DrawListQuerySchema(Schema):
    limit = fields.Integer(
        required=False,
        load_default=500,
        validate=validate.Range(min=1, max=500),
    )


class SyncResultSchema(Schema):
    added_count = fields.Int(required=True)
    added_ids = fields.List(fields.Int(), required=True)
    added_sequence_ids = fields.List(fields.Int(), required=True)
    discovered_count = fields.Int()
    missing_count = fields.Int()
    skipped_ids = fields.List(fields.Int())
    cancelled = fields.Bool()
