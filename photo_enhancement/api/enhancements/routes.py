# photo_enhancement/api/enhancements/routes.py
import logging
from flask import Blueprint, request, jsonify, current_app, g
from marshmallow import ValidationError

from photo_enhancement.api.enhancements.schemas import EnhancementRequestSchema, EnhancementResponseSchema
from photo_enhancement.core.exceptions import EnhancementError
from photo_enhancement.core.security import caller_required

enhancements_bp = Blueprint('enhancements_bp', __name__)


@enhancements_bp.route('', methods=['POST'])
@caller_required
def create_enhancement():
    """
    사진 보정을 요청합니다.
    - 요청 안에서 동기적으로 처리되며, 완료되면 200과 결과 위치를 반환합니다.
    - PENDING 또는 FAILED 상태의 사진만 보정할 수 있습니다.
    """
    enhancement_service = current_app.services['enhancements']
    try:
        data = EnhancementRequestSchema().load(request.get_json(silent=True) or {})
        result = enhancement_service.enhance(data['photo_id'], g.caller, retry=data['retry'])
        return jsonify(EnhancementResponseSchema().dump(result.to_dict())), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except EnhancementError as e:
        return jsonify({"error_code": e.error_code, "message": e.last_error}), e.http_status
    except Exception as e:
        logging.error(f"보정 요청 처리 중 오류 발생: {e}", exc_info=True)
        return jsonify({"error_code": "INTERNAL_SERVER_ERROR", "message": "보정 처리 중 오류가 발생했습니다."}), 500


@enhancements_bp.route('/health', methods=['GET'])
def enhancement_health():
    """모니터링용 상태 확인"""
    enhancement_service = current_app.services['enhancements']
    return jsonify(enhancement_service.health_check()), 200
