# photo_enhancement/core/config.py

import os
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional

DEFAULT_ENHANCEMENT_PROMPT = (
    "Subject: An exact recreation of this photograph, but with a total professional makeover. "
    "Keep the people, their poses, and the entire scene exactly the same. "
    "Make the colors vibrant and rich instead of old and faded. "
    "Use soft, professional lighting that creates depth, remove glare and add a natural sparkle in the eyes. "
    "Render fine, natural detail without an airbrushed look. "
    "The final image should have the crisp quality and wide dynamic range of a modern digital camera. "
    "Keep everything exactly the same - just make it look like it was shot today with professional equipment."
)


class Config:
    """모든 환경 설정의 기반이 되는 공통 설정 클래스입니다."""
    # JWT 토큰 서명 키. 최종 사용자 인증에 사용됩니다.
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY')
    # cron / 업로드 처리기 등 내부 호출자가 사용하는 공유 토큰
    INTERNAL_SERVICE_TOKEN = os.getenv('INTERNAL_SERVICE_TOKEN')

    FIREBASE_CREDENTIALS_PATH = os.getenv('FIREBASE_CREDENTIALS_PATH')
    FIREBASE_STORAGE_BUCKET = os.getenv('FIREBASE_STORAGE_BUCKET')

    # 결과 이미지 저장소: 'local' (개발) 또는 'firebase' (운영)
    STORAGE_BACKEND = os.getenv('STORAGE_BACKEND', 'firebase')
    LOCAL_STORAGE_DIR = os.getenv('LOCAL_STORAGE_DIR')
    LOCAL_STORAGE_BASE_URL = os.getenv('LOCAL_STORAGE_BASE_URL')

    OPENAI_API_KEY = os.getenv('OPENAI_API_KEY')
    OPENAI_IMAGE_MODEL = os.getenv('OPENAI_IMAGE_MODEL', 'gpt-4.1')
    ENHANCEMENT_PROMPT = os.getenv('ENHANCEMENT_PROMPT', DEFAULT_ENHANCEMENT_PROMPT)

    # AI 호출 제한 시간은 요청 전체 예산보다 반드시 짧아야 합니다.
    AI_TIMEOUT_SECONDS = float(os.getenv('AI_TIMEOUT_SECONDS', 45))
    REQUEST_BUDGET_SECONDS = float(os.getenv('REQUEST_BUDGET_SECONDS', 60))
    VALIDATION_TIMEOUT_SECONDS = float(os.getenv('VALIDATION_TIMEOUT_SECONDS', 5))

    # 대기/실패 사진 일괄 처리기(flask process-pending)의 재시도 정책
    RETRY_MAX_ATTEMPTS = int(os.getenv('RETRY_MAX_ATTEMPTS', 3))
    RETRY_BASE_DELAY_SECONDS = float(os.getenv('RETRY_BASE_DELAY_SECONDS', 1))


class DevelopmentConfig(Config):
    """개발 환경: 결과 이미지를 로컬 파일시스템에 저장합니다."""
    DEBUG = True
    STORAGE_BACKEND = os.getenv('STORAGE_BACKEND', 'local')
    LOCAL_STORAGE_DIR = os.getenv('LOCAL_STORAGE_DIR', os.path.join(os.getcwd(), 'storage'))
    FIREBASE_CREDENTIALS_PATH = os.getenv('DEV_FIREBASE_CREDENTIALS_PATH', Config.FIREBASE_CREDENTIALS_PATH)


class TestingConfig(Config):
    """테스트 환경을 위한 설정 클래스입니다."""
    TESTING = True
    DEBUG = False
    JWT_SECRET_KEY = 'test-secret-key'
    INTERNAL_SERVICE_TOKEN = 'test-internal-token'
    STORAGE_BACKEND = 'local'
    OPENAI_API_KEY = 'test-openai-key'
    AI_TIMEOUT_SECONDS = 2.0
    REQUEST_BUDGET_SECONDS = 10.0
    FIREBASE_CREDENTIALS_PATH = os.getenv('TEST_FIREBASE_CREDENTIALS_PATH')


class ProductionConfig(Config):
    DEBUG = False


# config_by_name: FLASK_ENV 값에 따라 create_app에서 설정 클래스를 선택하는 데 사용됩니다.
config_by_name = dict(
    development=DevelopmentConfig,
    testing=TestingConfig,
    production=ProductionConfig,
)


@dataclass(frozen=True)
class EnhancementSettings:
    """
    보정 파이프라인 구성 요소(스토리지, AI 클라이언트, 검증기)에 명시적으로 전달되는 설정.
    파이프라인 로직 내부에서는 환경 변수를 직접 읽지 않습니다.
    """
    storage_backend: str
    openai_api_key: Optional[str]
    openai_image_model: str
    enhancement_prompt: str
    ai_timeout_seconds: float
    request_budget_seconds: float
    validation_timeout_seconds: float = 5.0
    firebase_storage_bucket: Optional[str] = None
    local_storage_dir: Optional[str] = None
    local_storage_base_url: Optional[str] = None
    internal_service_token: Optional[str] = None
    retry_max_attempts: int = 3
    retry_base_delay_seconds: float = 1.0

    @classmethod
    def from_app_config(cls, config: Mapping[str, Any]) -> "EnhancementSettings":
        return cls(
            storage_backend=(config.get('STORAGE_BACKEND') or '').lower(),
            openai_api_key=config.get('OPENAI_API_KEY'),
            openai_image_model=config.get('OPENAI_IMAGE_MODEL') or 'gpt-4.1',
            enhancement_prompt=config.get('ENHANCEMENT_PROMPT') or DEFAULT_ENHANCEMENT_PROMPT,
            ai_timeout_seconds=float(config.get('AI_TIMEOUT_SECONDS', 45)),
            request_budget_seconds=float(config.get('REQUEST_BUDGET_SECONDS', 60)),
            validation_timeout_seconds=float(config.get('VALIDATION_TIMEOUT_SECONDS', 5)),
            firebase_storage_bucket=config.get('FIREBASE_STORAGE_BUCKET'),
            local_storage_dir=config.get('LOCAL_STORAGE_DIR'),
            local_storage_base_url=config.get('LOCAL_STORAGE_BASE_URL'),
            internal_service_token=config.get('INTERNAL_SERVICE_TOKEN'),
            retry_max_attempts=int(config.get('RETRY_MAX_ATTEMPTS', 3)),
            retry_base_delay_seconds=float(config.get('RETRY_BASE_DELAY_SECONDS', 1)),
        )

    def validate(self) -> None:
        """
        앱 시작 시 한 번 호출됩니다. 누락되거나 잘못된 설정을 모두 모아 ValueError로 알립니다.
        스토리지 설정 누락은 StorageService 생성 시 StorageUnavailableError로 별도 보고됩니다.
        """
        errors: List[str] = []
        if not self.openai_api_key:
            errors.append("OPENAI_API_KEY가 필요합니다.")
        if self.storage_backend not in ('local', 'firebase'):
            errors.append(f"STORAGE_BACKEND는 'local' 또는 'firebase'여야 합니다: '{self.storage_backend}'")
        if self.ai_timeout_seconds <= 0:
            errors.append("AI_TIMEOUT_SECONDS는 0보다 커야 합니다.")
        if self.ai_timeout_seconds >= self.request_budget_seconds:
            errors.append(
                f"AI_TIMEOUT_SECONDS({self.ai_timeout_seconds})는 "
                f"REQUEST_BUDGET_SECONDS({self.request_budget_seconds})보다 짧아야 합니다."
            )
        if self.retry_max_attempts < 1:
            errors.append("RETRY_MAX_ATTEMPTS는 1 이상이어야 합니다.")
        if errors:
            raise ValueError("보정 파이프라인 설정 오류: " + " ".join(errors))
