# photo_enhancement/api/photos/routes.py
import logging
from flask import Blueprint, jsonify, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity

from photo_enhancement.api.photos.schemas import PhotoResponseSchema
from photo_enhancement.core.exceptions import PhotoNotFoundError

photos_bp = Blueprint('photos_bp', __name__)


@photos_bp.route('/<string:photo_id>', methods=['GET'])
@jwt_required()
def get_photo_status(photo_id: str):
    """
    특정 사진의 보정 상태를 조회합니다. (소유자 전용)
    """
    photo_service = current_app.services['photos']
    user_id = get_jwt_identity()
    try:
        photo = photo_service.get_photo_by_id_and_owner(photo_id, user_id)
        return jsonify(PhotoResponseSchema().dump(photo.to_dict())), 200
    except PhotoNotFoundError:
        return jsonify({"error_code": "PHOTO_NOT_FOUND", "message": "사진을 찾을 수 없거나 조회 권한이 없습니다."}), 404
    except Exception as e:
        logging.error(f"사진 조회 중 오류 발생 (photo_id: {photo_id}): {e}", exc_info=True)
        return jsonify({"error_code": "INTERNAL_SERVER_ERROR", "message": "사진 조회 중 오류가 발생했습니다."}), 500
