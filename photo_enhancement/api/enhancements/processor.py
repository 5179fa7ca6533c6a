# photo_enhancement/api/enhancements/processor.py
"""
대기(PENDING) / 실패(FAILED) 사진을 일괄 처리하는 cron 성격의 호출자.

EnhancementService는 한 번 호출에 한 번만 시도하므로, 재시도 여부와 간격은
여기서 RetryPolicy로 결정합니다. `flask process-pending` 명령으로 실행됩니다.
"""
import logging
import time
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Callable, List

from photo_enhancement.api.enhancements.services import EnhancementService
from photo_enhancement.api.photos.services import PhotoService
from photo_enhancement.core.exceptions import EnhancementError
from photo_enhancement.core.security import CallerIdentity
from photo_enhancement.models.photo import Photo, PhotoStatus
from photo_enhancement.utils.datetime_utils import now

CRON_SERVICE_NAME = "cron-processor"
INTERNAL_ERROR_CODE = "INTERNAL_SERVER_ERROR"


@dataclass
class RetryPolicy:
    """제한된 횟수 + 지수 백오프 재시도 정책"""
    max_attempts: int = 3
    base_delay_seconds: float = 1.0
    multiplier: float = 2.0
    max_delay_seconds: float = 60.0

    def delay_for(self, attempt: int) -> float:
        """attempt번째 시도가 실패한 뒤 다음 시도까지 기다릴 시간(초)"""
        delay = self.base_delay_seconds * (self.multiplier ** max(attempt - 1, 0))
        return min(delay, self.max_delay_seconds)

    def should_retry(self, photo: Photo) -> bool:
        """FAILED 사진이 시도 횟수 한도 안에 있고, 백오프 시간이 지났는지 확인합니다."""
        if photo.status == PhotoStatus.PENDING:
            return True
        if photo.status != PhotoStatus.FAILED or photo.attempts >= self.max_attempts:
            return False
        return now() - photo.updated_at >= timedelta(seconds=self.delay_for(photo.attempts))


@dataclass
class ProcessingSummary:
    processed: int = 0
    failed: int = 0
    skipped: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.processed + self.failed + self.skipped


class PendingPhotoProcessor:
    def __init__(self, photo_service: PhotoService, enhancement_service: EnhancementService,
                 retry_policy: RetryPolicy, sleep: Callable[[float], None] = time.sleep):
        self.photo_service = photo_service
        self.enhancement_service = enhancement_service
        self.retry_policy = retry_policy
        self.sleep = sleep

    def run(self, limit: int = 5) -> ProcessingSummary:
        """오래된 사진부터 최대 limit장을 처리합니다. 한 사진의 실패는 다른 사진 처리에 영향을 주지 않습니다."""
        summary = ProcessingSummary()
        candidates = self.photo_service.list_retryable_photos(limit, self.retry_policy.max_attempts)
        logging.info(f"처리 대상 사진 {len(candidates)}장 조회됨")

        for photo in candidates:
            if not self.retry_policy.should_retry(photo):
                summary.skipped += 1
                continue

            caller = CallerIdentity(user_id=photo.user_id, is_internal=True, service_name=CRON_SERVICE_NAME)
            try:
                self.enhancement_service.enhance(
                    photo.photo_id, caller, retry=photo.status == PhotoStatus.FAILED
                )
                summary.processed += 1
                continue
            except EnhancementError as e:
                summary.errors.append(f"{photo.photo_id}: {e.error_code}")
            except Exception as e:
                logging.error(f"사진 처리 중 예상치 못한 오류 (photo_id: {photo.photo_id}): {e}", exc_info=True)
                summary.errors.append(f"{photo.photo_id}: {INTERNAL_ERROR_CODE}")

            summary.failed += 1
            # 연속 실패 시 외부 서비스에 부담을 주지 않도록 백오프
            self.sleep(self.retry_policy.delay_for(photo.attempts + 1))

        logging.info(
            f"일괄 처리 완료: 성공 {summary.processed}, 실패 {summary.failed}, 건너뜀 {summary.skipped}"
        )
        return summary
