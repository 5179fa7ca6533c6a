# photo_enhancement/api/enhancements/schemas.py
from marshmallow import Schema, fields, validate


class EnhancementRequestSchema(Schema):
    """
    POST /api/enhancements
    보정을 요청할 때의 데이터 형식을 정의하고 유효성을 검사합니다.
    """
    photo_id = fields.Str(
        required=True,
        validate=validate.Length(min=1, max=128),
        error_messages={"required": "보정할 사진 ID(photo_id)는 필수입니다."}
    )
    retry = fields.Bool(load_default=False)


class EnhancementResponseSchema(Schema):
    """보정 성공 응답"""
    photo_id = fields.Str(required=True)
    status = fields.Str(required=True)
    enhanced_location = fields.Str(allow_none=True)
    credits_remaining = fields.Int(allow_none=True)
