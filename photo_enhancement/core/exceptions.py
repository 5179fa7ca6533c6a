# photo_enhancement/core/exceptions.py
"""
보정 파이프라인의 오류 분류.

각 예외는 API 응답에 사용할 error_code / http_status와,
사진 문서의 last_error에 기록할 고정된 메시지(last_error)를 가집니다.
last_error에는 예외 원문, 인증 정보, 스택 트레이스를 절대 넣지 않습니다.
"""


class EnhancementError(Exception):
    """모든 파이프라인 오류의 기반 클래스"""
    error_code = "ENHANCEMENT_FAILED"
    http_status = 500
    last_error = "internal error"

    def __init__(self, message: str = None):
        super().__init__(message or self.last_error)
        self.message = message or self.last_error


class PhotoNotFoundError(EnhancementError):
    error_code = "PHOTO_NOT_FOUND"
    http_status = 404
    last_error = "photo not found"


class UserNotFoundError(EnhancementError):
    error_code = "USER_NOT_FOUND"
    http_status = 404
    last_error = "user not found"


class ConflictError(EnhancementError):
    """사진이 보정을 시작할 수 없는 상태(COMPLETED / PROCESSING)일 때"""
    error_code = "CONFLICT"
    http_status = 409
    last_error = "photo is not in an enhanceable state"

    def __init__(self, photo_id: str, current_status: str):
        super().__init__(f"'{current_status}' 상태의 사진은 보정할 수 없습니다. (photo_id: {photo_id})")
        self.photo_id = photo_id
        self.current_status = current_status


class InsufficientCreditsError(EnhancementError):
    error_code = "INSUFFICIENT_CREDITS"
    http_status = 402
    last_error = "insufficient credits"


class AIServiceError(EnhancementError):
    """AI 서비스 타임아웃, 전송 실패, 또는 이미지 미생성(NoImageProduced)"""
    error_code = "AI_SERVICE_ERROR"
    http_status = 502
    last_error = "AI service error"

    def __init__(self, last_error: str = None, message: str = None):
        if last_error:
            self.last_error = last_error
        super().__init__(message or self.last_error)


class StorageUnavailableError(EnhancementError):
    """스토리지 쓰기/읽기 실패 또는 스토리지 설정 누락"""
    error_code = "STORAGE_UNAVAILABLE"
    http_status = 503
    last_error = "storage unavailable"


class ResultNotAccessibleError(EnhancementError):
    """저장된 결과물(candidate location)에 접근할 수 없을 때"""
    error_code = "RESULT_NOT_ACCESSIBLE"
    http_status = 502
    last_error = "result not accessible"


class InvalidImageError(EnhancementError):
    """원본 파일이 지원하는 이미지 형식이 아닐 때"""
    error_code = "INVALID_IMAGE"
    http_status = 422
    last_error = "original image is not a supported image"
