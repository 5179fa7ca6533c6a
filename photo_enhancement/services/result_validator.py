# photo_enhancement/services/result_validator.py
import logging
from pathlib import Path
from urllib.parse import urlparse, unquote

import requests


class ResultValidator:
    """
    결과 이미지 위치(candidate location)가 실제로 접근 가능한지 확인합니다.
    검증 실패는 예외가 아니라 데이터입니다. 어떤 경우에도 예외를 던지지 않고 False를 반환합니다.
    """

    def __init__(self, timeout_seconds: float = 5.0, session: requests.Session = None):
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()

    def validate(self, location: str) -> bool:
        if not location:
            return False
        try:
            if location.startswith(('http://', 'https://')):
                return self._validate_remote(location)
            return self._validate_local(location)
        except Exception as e:
            logging.warning(f"결과 위치 검증 중 오류 (location: {location}): {e}")
            return False

    def _validate_remote(self, url: str) -> bool:
        # 본문 없이 메타데이터만 요청
        response = self.session.head(url, timeout=self.timeout_seconds, allow_redirects=True)
        if 200 <= response.status_code < 300:
            return True
        logging.warning(f"결과 URL 응답 실패: {url} -> {response.status_code}")
        return False

    def _validate_local(self, location: str) -> bool:
        if location.startswith('file://'):
            location = unquote(urlparse(location).path)
        path = Path(location)
        if path.is_file() and path.stat().st_size > 0:
            return True
        logging.warning(f"결과 파일이 없거나 비어 있습니다: {location}")
        return False
