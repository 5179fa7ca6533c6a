# photo_enhancement/api/photos/schemas.py
from marshmallow import Schema, fields


class PhotoResponseSchema(Schema):
    """사진 상태 조회 응답 스키마"""
    photo_id = fields.Str(required=True)
    user_id = fields.Str(required=True)
    status = fields.Str(required=True)
    original_location = fields.Str(required=True)
    enhanced_location = fields.Str(allow_none=True)
    last_error = fields.Str(allow_none=True)
    attempts = fields.Int()
    created_at = fields.DateTime(required=True)
    updated_at = fields.DateTime(required=True)
