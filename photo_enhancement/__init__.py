# photo_enhancement/__init__.py

# =====================================================================================
# 1. 환경 변수 로드 (가장 먼저 실행)
# =====================================================================================
from dotenv import load_dotenv
load_dotenv()

# =====================================================================================
# 2. 모듈 임포트 (Module Imports)
# =====================================================================================
import os
import logging
from typing import Any, Dict, Optional

import click
from flask import Flask, jsonify
from marshmallow import ValidationError
from flask_jwt_extended import JWTManager
import firebase_admin
from firebase_admin import credentials

# - 설정
from photo_enhancement.core.config import config_by_name, EnhancementSettings

# - API 블루프린트
from photo_enhancement.api.enhancements.routes import enhancements_bp
from photo_enhancement.api.photos.routes import photos_bp

# - 서비스 모듈
from photo_enhancement.services.storage_service import build_storage_backend
from photo_enhancement.services.openai_service import OpenAIService
from photo_enhancement.services.result_validator import ResultValidator
from photo_enhancement.services.credit_service import CreditService
from photo_enhancement.api.photos.services import PhotoService
from photo_enhancement.api.enhancements.services import EnhancementService
from photo_enhancement.api.enhancements.processor import PendingPhotoProcessor, RetryPolicy


def create_app(config_name: Optional[str] = None, services: Optional[Dict[str, Any]] = None):
    """
    Flask 애플리케이션 팩토리 함수.

    :param config_name: 'development' / 'testing' / 'production' (기본값: FLASK_ENV)
    :param services: 미리 생성된 서비스 딕셔너리. 주어지면 Firebase/OpenAI 초기화를 건너뜁니다. (테스트용)
    """
    # =====================================================================================
    # 3. Flask 앱 생성 및 기본 설정
    # =====================================================================================
    config_name = config_name or os.getenv('FLASK_ENV', 'development')

    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])
    app.json.ensure_ascii = False

    if not app.debug:
        logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]')

    # 보정 파이프라인 설정은 시작 시 한 번만 검증합니다. (누락 시 즉시 실패)
    settings = EnhancementSettings.from_app_config(app.config)
    settings.validate()

    # =====================================================================================
    # 4. 확장 기능 및 서비스 초기화 (의존성 주입)
    # =====================================================================================
    JWTManager(app)

    app.services = {}
    if services is not None:
        app.services.update(services)
    else:
        _init_services(app, settings)

    # =====================================================================================
    # 5. 블루프린트 등록
    # =====================================================================================
    app.register_blueprint(enhancements_bp, url_prefix='/api/enhancements')
    app.register_blueprint(photos_bp, url_prefix='/api/photos')

    # =====================================================================================
    # 6. 전역 에러 핸들러 설정
    # =====================================================================================
    @app.errorhandler(ValidationError)
    def handle_marshmallow_validation(err):
        response = {"error_code": "VALIDATION_ERROR", "details": err.messages}
        return jsonify(response), 400

    @app.errorhandler(Exception)
    def handle_generic_exception(err):
        # 다른 핸들러에서 처리되지 않은 모든 예외를 여기서 처리
        logging.error(f"An unhandled exception occurred: {err}", exc_info=True)
        response = {"error_code": "INTERNAL_SERVER_ERROR", "message": "서버 내부에서 예상치 못한 오류가 발생했습니다."}
        return jsonify(response), 500

    # =====================================================================================
    # 7. CLI 명령 (cron 트리거)
    # =====================================================================================
    @app.cli.command('process-pending')
    @click.option('--limit', default=5, show_default=True, help='한 번에 처리할 최대 사진 수')
    def process_pending_command(limit):
        """PENDING / 재시도 가능한 FAILED 사진을 오래된 순서로 보정합니다."""
        summary = app.services['processor'].run(limit=limit)
        click.echo(f"processed={summary.processed} failed={summary.failed} skipped={summary.skipped}")
        for error in summary.errors:
            click.echo(f"  {error}")

    logging.info(f"Flask app created for '{config_name}' environment.")
    return app


def _init_services(app: Flask, settings: EnhancementSettings):
    if not firebase_admin._apps:
        cred_path = app.config['FIREBASE_CREDENTIALS_PATH']
        if not cred_path or not os.path.exists(cred_path):
            raise FileNotFoundError(f"Firebase 인증 파일을 찾을 수 없습니다: {cred_path}")
        cred = credentials.Certificate(cred_path)
        options = {'storageBucket': settings.firebase_storage_bucket} if settings.firebase_storage_bucket else {}
        firebase_admin.initialize_app(cred, options)

    # 5-1. 다른 서비스의 기반이 되는 공용 서비스 먼저 생성
    try:
        app.services['storage'] = build_storage_backend(settings)
        logging.info(f"Storage service initialized successfully ({app.services['storage'].name})")
    except Exception as e:
        logging.error(f"Failed to initialize storage service: {e}")
        raise

    try:
        openai_instance = OpenAIService()
        openai_instance.init_app(settings)
        app.services['openai'] = openai_instance
        logging.info("OpenAI service initialized successfully")
    except Exception as e:
        logging.error(f"Failed to initialize OpenAI service: {e}")
        raise

    app.services['validator'] = ResultValidator(timeout_seconds=settings.validation_timeout_seconds)
    app.services['photos'] = PhotoService()
    app.services['credits'] = CreditService()

    # 5-2. 다른 서비스를 주입받아야 하는 도메인 서비스 생성
    app.services['enhancements'] = EnhancementService(
        photo_service=app.services['photos'],
        credit_service=app.services['credits'],
        ai_service=app.services['openai'],
        storage_service=app.services['storage'],
        result_validator=app.services['validator'],
        instruction_prompt=settings.enhancement_prompt,
        ai_timeout_seconds=settings.ai_timeout_seconds,
    )
    app.services['processor'] = PendingPhotoProcessor(
        photo_service=app.services['photos'],
        enhancement_service=app.services['enhancements'],
        retry_policy=RetryPolicy(
            max_attempts=settings.retry_max_attempts,
            base_delay_seconds=settings.retry_base_delay_seconds,
        ),
    )
