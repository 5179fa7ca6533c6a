# photo_enhancement/utils/datetime_utils.py
"""
사진 보정 파이프라인에서 사용하는 시간 유틸리티 모듈

- 모든 시간은 UTC timezone-aware datetime으로 통일합니다.
- Firestore에서 읽어온 값(datetime)과 JSON/테스트에서 들어온 값(ISO 문자열)을
  같은 형태로 정규화합니다.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional, Union

from dateutil import parser as dateutil_parser

logger = logging.getLogger(__name__)


class DateTimeUtils:
    """시간 처리를 위한 유틸리티 클래스"""

    @staticmethod
    def now() -> datetime:
        """현재 시간을 UTC timezone-aware datetime으로 반환"""
        return datetime.now(timezone.utc)

    @staticmethod
    def parse_iso_datetime(iso_string: str) -> datetime:
        """
        ISO 포맷 문자열을 UTC datetime으로 파싱합니다.

        지원 포맷:
        - 2024-01-15T10:30:00Z
        - 2024-01-15T10:30:00+09:00
        - 2024-01-15T10:30:00
        """
        if not iso_string:
            raise ValueError("빈 문자열은 파싱할 수 없습니다")

        if iso_string.endswith('Z'):
            iso_string = iso_string[:-1] + '+00:00'

        try:
            dt = dateutil_parser.isoparse(iso_string)
        except (ValueError, OverflowError) as e:
            logger.error(f"ISO datetime 파싱 실패: {iso_string} - {e}")
            raise ValueError(f"잘못된 ISO 날짜 형식입니다: {iso_string}")

        return DateTimeUtils.ensure_utc(dt)

    @staticmethod
    def ensure_utc(value: datetime) -> datetime:
        """timezone-naive는 UTC로 간주하고, 그 외에는 UTC로 변환합니다."""
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    @staticmethod
    def from_firestore(value: Union[datetime, str, None]) -> Optional[datetime]:
        """Firestore 문서 필드 값을 UTC datetime으로 변환합니다."""
        if value is None:
            return None
        if isinstance(value, datetime):
            return DateTimeUtils.ensure_utc(value)
        if isinstance(value, str):
            return DateTimeUtils.parse_iso_datetime(value)
        raise ValueError(f"datetime으로 변환할 수 없는 값입니다: {value!r}")

    @staticmethod
    def to_iso(value: Any) -> Optional[str]:
        """datetime을 ISO 8601 문자열로 변환 (None은 그대로)"""
        if value is None:
            return None
        return DateTimeUtils.ensure_utc(value).isoformat()


# 편의 함수들
def now() -> datetime:
    return DateTimeUtils.now()


def from_firestore(value: Union[datetime, str, None]) -> Optional[datetime]:
    return DateTimeUtils.from_firestore(value)


def to_iso(value: Any) -> Optional[str]:
    return DateTimeUtils.to_iso(value)
