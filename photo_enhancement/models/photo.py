# photo_enhancement/models/photo.py
from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any

from photo_enhancement.utils.datetime_utils import now, from_firestore


class PhotoStatus(Enum):
    """사진 보정 작업의 상태를 나타내는 Enum"""
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


# 보정을 (재)시작할 수 있는 상태. FAILED 포함 = 실패한 사진의 재시도 허용
ENHANCEABLE_STATUSES = (PhotoStatus.PENDING, PhotoStatus.FAILED)


@dataclass
class Photo:
    """
    Firestore 'photos' 컬렉션의 문서 구조를 정의하는 데이터클래스.
    status, enhanced_location, last_error는 EnhancementService만 변경합니다.
    """
    photo_id: str
    user_id: str
    original_location: str
    status: PhotoStatus = PhotoStatus.PENDING
    enhanced_location: Optional[str] = None
    last_error: Optional[str] = None
    attempts: int = 0
    credit_charged: bool = False  # 이 사진의 보정 성공에 대해 크레딧이 차감되었는지 (중복 차감 방지)
    created_at: datetime = field(default_factory=now)
    updated_at: datetime = field(default_factory=now)

    @property
    def is_enhanceable(self) -> bool:
        return self.status in ENHANCEABLE_STATUSES

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        # Enum 멤버를 문자열 값으로 변환하여 저장
        data['status'] = self.status.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Photo":
        return cls(
            photo_id=data['photo_id'],
            user_id=data['user_id'],
            original_location=data['original_location'],
            status=PhotoStatus(data.get('status', PhotoStatus.PENDING.value)),
            enhanced_location=data.get('enhanced_location'),
            last_error=data.get('last_error'),
            attempts=data.get('attempts', 0),
            credit_charged=bool(data.get('credit_charged', False)),
            created_at=from_firestore(data.get('created_at')) or now(),
            updated_at=from_firestore(data.get('updated_at')) or now(),
        )
