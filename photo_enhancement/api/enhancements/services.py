# photo_enhancement/api/enhancements/services.py
import logging
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from dataclasses import dataclass, asdict
from typing import Optional, Dict, Any

from photo_enhancement.api.photos.services import PhotoService
from photo_enhancement.core.exceptions import (
    EnhancementError, AIServiceError, ConflictError, InsufficientCreditsError,
    InvalidImageError, ResultNotAccessibleError,
)
from photo_enhancement.core.security import CallerIdentity
from photo_enhancement.models.photo import Photo
from photo_enhancement.services.credit_service import CreditService
from photo_enhancement.services.openai_service import OpenAIService, EnhancedImage, NoImageProduced
from photo_enhancement.services.result_validator import ResultValidator
from photo_enhancement.services.storage_service import StorageBackend
from photo_enhancement.utils.image_utils import detect_mime_type


@dataclass
class EnhancementResult:
    photo_id: str
    status: str
    enhanced_location: Optional[str] = None
    credits_remaining: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class EnhancementService:
    """
    사진 보정 파이프라인의 상태 머신.

    PENDING/FAILED -> PROCESSING -> (AI 호출 -> 저장 -> 결과 검증) -> COMPLETED + 크레딧 차감 (한 트랜잭션)
    어느 단계에서든 실패하면 FAILED로 전이하고 last_error에 분류된 메시지를 남깁니다.
    한 번 호출에 한 번만 시도하며, 재시도는 호출자(cron, 사용자)가 결정합니다.
    """

    def __init__(self, photo_service: PhotoService, credit_service: CreditService,
                 ai_service: OpenAIService, storage_service: StorageBackend,
                 result_validator: ResultValidator, instruction_prompt: str,
                 ai_timeout_seconds: float):
        self.photo_service = photo_service
        self.credit_service = credit_service
        self.ai_service = ai_service
        self.storage_service = storage_service
        self.result_validator = result_validator
        self.instruction_prompt = instruction_prompt
        self.ai_timeout_seconds = ai_timeout_seconds

    def enhance(self, photo_id: str, caller: CallerIdentity, retry: bool = False) -> EnhancementResult:
        """
        사진 한 장을 보정합니다.

        :raises PhotoNotFoundError, ConflictError: 상태 전이 전 실패 (사진 상태는 변경되지 않음)
        :raises EnhancementError: 그 외 모든 실패 (사진은 FAILED로 전이된 뒤 예외 전달)
        """
        logging.info(
            f"보정 요청 (photo_id: {photo_id}, user_id: {caller.user_id}, "
            f"internal: {caller.is_internal}, retry: {retry})"
        )
        photo = self.photo_service.begin_processing(photo_id, caller.user_id)

        try:
            return self._run(photo)
        except EnhancementError as e:
            logging.warning(f"보정 실패 (photo_id: {photo_id}, 분류: {e.error_code}): {e.message}")
            self._fail(photo_id, e.last_error)
            raise
        except Exception as e:
            logging.error(f"보정 중 예상치 못한 오류 (photo_id: {photo_id}): {e}", exc_info=True)
            self._fail(photo_id, EnhancementError.last_error)
            raise

    def _run(self, photo: Photo) -> EnhancementResult:
        # 1. 크레딧 확인 (비싼 AI 호출 전에). 최종 판단은 5단계 트랜잭션에서 다시 합니다.
        if not self.credit_service.has_credits(photo.user_id):
            raise InsufficientCreditsError()

        # 2. 원본 이미지 읽기 + AI 보정
        original_bytes = self.storage_service.get(photo.original_location)
        try:
            mime_type = detect_mime_type(original_bytes)
        except ValueError as e:
            raise InvalidImageError(str(e))
        enhanced = self._generate_with_timeout(original_bytes, mime_type)

        # 3. 결과 저장 (candidate location)
        candidate = self.storage_service.put(
            enhanced.data, f"{photo.user_id}/{photo.photo_id}", enhanced.mime_type
        )

        # 4. 결과 검증. 실패하면 candidate는 사진 문서에 기록하지 않습니다.
        if not self.result_validator.validate(self.storage_service.resolve_url(candidate)):
            raise ResultNotAccessibleError(f"저장된 결과에 접근할 수 없습니다: {candidate}")

        # 5. 검증이 끝난 뒤에만 COMPLETED 전이 + 크레딧 차감 (하나의 트랜잭션)
        settlement = self.credit_service.complete_and_charge(photo.photo_id, photo.user_id, candidate)
        completed = settlement.photo

        logging.info(f"보정 완료 (photo_id: {photo.photo_id}, 결과: {candidate})")
        return EnhancementResult(
            photo_id=completed.photo_id,
            status=completed.status.value,
            enhanced_location=completed.enhanced_location,
            credits_remaining=settlement.credits_remaining,
        )

    def _generate_with_timeout(self, image_bytes: bytes, mime_type: str) -> EnhancedImage:
        """AI 호출을 별도 스레드에서 실행하고, 제한 시간이 지나면 기다리지 않고 실패 처리합니다."""
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="ai-enhance")
        future = executor.submit(self.ai_service.generate, image_bytes, mime_type, self.instruction_prompt)
        try:
            result = future.result(timeout=self.ai_timeout_seconds)
        except FutureTimeoutError:
            # 실행 중인 스레드는 취소되지 않지만 OpenAI 클라이언트 자체 timeout(max_retries=0)에서 끝나고 결과는 버려집니다.
            future.cancel()
            raise AIServiceError("AI service timeout", f"AI 호출이 {self.ai_timeout_seconds}초 안에 끝나지 않았습니다.")
        except AIServiceError:
            raise
        except Exception as e:
            logging.error(f"AI 호출 중 오류: {e}", exc_info=True)
            raise AIServiceError("AI service error")
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        if isinstance(result, NoImageProduced):
            raise AIServiceError("no image produced", f"AI 서비스가 이미지를 생성하지 않았습니다: {result.reason[:200]}")
        return result

    def _fail(self, photo_id: str, last_error: str):
        try:
            self.photo_service.mark_failed(photo_id, last_error)
        except ConflictError as e:
            # 이미 다른 경로에서 PROCESSING을 벗어난 사진 (예: 잔액 부족으로 확정 트랜잭션이 FAILED 기록)
            logging.info(f"FAILED 기록 생략, 이미 {e.current_status} 상태 (photo_id: {photo_id})")
        except Exception as cleanup_error:
            logging.error(f"FAILED 상태 기록 중 추가 오류 (photo_id: {photo_id}): {cleanup_error}", exc_info=True)

    def health_check(self) -> Dict[str, Any]:
        return {
            "ai": self.ai_service.health_check(),
            "storage_backend": self.storage_service.name,
            "ai_timeout_seconds": self.ai_timeout_seconds,
        }
