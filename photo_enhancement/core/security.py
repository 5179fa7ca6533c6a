# photo_enhancement/core/security.py
import hmac
import logging
from dataclasses import dataclass
from functools import wraps
from typing import Optional

from flask import request, jsonify, g, current_app
from flask_jwt_extended import verify_jwt_in_request, get_jwt_identity
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError

INTERNAL_SERVICE_HEADER = "X-Internal-Service"
INTERNAL_TOKEN_HEADER = "X-Internal-Token"
USER_ID_HEADER = "X-User-Id"


@dataclass(frozen=True)
class CallerIdentity:
    """보정 요청자의 신원. 내부 호출자(cron, 업로드 처리기)는 user_id 사용자를 대신해 호출합니다."""
    user_id: str
    is_internal: bool = False
    service_name: Optional[str] = None


def resolve_internal_caller(expected_token: Optional[str]) -> Optional[CallerIdentity]:
    """
    내부 호출자 헤더를 확인합니다.
    - 헤더가 없으면 None (일반 사용자 요청)
    - 헤더가 있지만 토큰이 틀리거나 user id가 없으면 PermissionError
    """
    service_name = request.headers.get(INTERNAL_SERVICE_HEADER)
    if not service_name:
        return None

    token = request.headers.get(INTERNAL_TOKEN_HEADER, "")
    if not expected_token or not hmac.compare_digest(token.encode(), expected_token.encode()):
        raise PermissionError("내부 서비스 토큰이 유효하지 않습니다.")

    user_id = request.headers.get(USER_ID_HEADER)
    if not user_id:
        raise PermissionError("내부 서비스 호출에는 X-User-Id 헤더가 필요합니다.")
    return CallerIdentity(user_id=user_id, is_internal=True, service_name=service_name)


def caller_required(f):
    """
    최종 사용자(JWT) 또는 신뢰된 내부 호출자만 허용하는 데코레이터.
    확인된 신원은 g.caller 에 저장됩니다.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            caller = resolve_internal_caller(current_app.config.get('INTERNAL_SERVICE_TOKEN'))
            if caller is None:
                verify_jwt_in_request()
                caller = CallerIdentity(user_id=str(get_jwt_identity()))
        except PermissionError as e:
            logging.warning(f"내부 호출자 인증 실패: {e}")
            return jsonify({"error_code": "UNAUTHORIZED", "message": str(e)}), 401
        except (JWTExtendedException, PyJWTError) as e:
            return jsonify({"error_code": "UNAUTHORIZED", "message": f"인증이 필요합니다: {e}"}), 401

        g.caller = caller
        return f(*args, **kwargs)

    return decorated_function
