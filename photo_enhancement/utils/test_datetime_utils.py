# photo_enhancement/utils/test_datetime_utils.py
"""
시간 유틸리티 기능 테스트

사용법: python -m pytest photo_enhancement/utils/test_datetime_utils.py -v
"""

import pytest
from datetime import datetime, timedelta, timezone
from photo_enhancement.utils.datetime_utils import DateTimeUtils


def test_parse_iso_datetime():
    """ISO 포맷 파싱 테스트"""
    test_cases = [
        "2024-01-15T10:30:00Z",
        "2024-01-15T10:30:00+09:00",
        "2024-01-15T10:30:00.123456Z",
        "2024-01-15T10:30:00"
    ]

    for iso_string in test_cases:
        dt = DateTimeUtils.parse_iso_datetime(iso_string)
        assert isinstance(dt, datetime)
        assert dt.tzinfo == timezone.utc  # UTC로 정규화되어야 함


def test_parse_iso_datetime_converts_offset():
    dt = DateTimeUtils.parse_iso_datetime("2024-01-15T10:30:00+09:00")
    assert dt.hour == 1


@pytest.mark.parametrize("value", ["", "not-a-date"])
def test_parse_iso_datetime_rejects_garbage(value):
    with pytest.raises(ValueError):
        DateTimeUtils.parse_iso_datetime(value)


def test_from_firestore():
    """Firestore 값 변환 테스트"""
    naive = datetime(2024, 1, 15, 10, 30)
    kst = datetime(2024, 1, 15, 10, 30, tzinfo=timezone(timedelta(hours=9)))

    assert DateTimeUtils.from_firestore(None) is None
    assert DateTimeUtils.from_firestore(naive).tzinfo == timezone.utc
    assert DateTimeUtils.from_firestore(kst) == datetime(2024, 1, 15, 1, 30, tzinfo=timezone.utc)
    assert DateTimeUtils.from_firestore("2024-01-15T10:30:00Z").hour == 10
    with pytest.raises(ValueError):
        DateTimeUtils.from_firestore(12345)


def test_to_iso():
    assert DateTimeUtils.to_iso(None) is None
    assert DateTimeUtils.to_iso(datetime(2024, 1, 15, 10, 30)) == "2024-01-15T10:30:00+00:00"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
