# photo_enhancement/services/storage_service.py
import uuid
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Tuple
from urllib.parse import urlparse, unquote

from firebase_admin import storage

from photo_enhancement.core.config import EnhancementSettings
from photo_enhancement.core.exceptions import StorageUnavailableError

# 결과 이미지 MIME 타입 -> 파일 확장자
_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}


def build_object_name(folder: str, suggested_name: str, content_type: str) -> str:
    """'folder/이름-uuid.확장자' 형태의 충돌 없는 객체 이름을 만듭니다."""
    extension = _EXTENSIONS.get(content_type, "bin")
    stem = suggested_name.rsplit('.', 1)[0] if '.' in suggested_name else suggested_name
    return f"{folder.strip('/')}/{stem}-{uuid.uuid4().hex[:8]}.{extension}"


class StorageBackend(ABC):
    """보정 파이프라인이 사용하는 스토리지 인터페이스 (put / get / exists)."""

    name = "abstract"

    @abstractmethod
    def put(self, data: bytes, suggested_name: str, content_type: str) -> str:
        """데이터를 저장하고 결과 위치(URL 또는 경로)를 반환합니다."""

    @abstractmethod
    def get(self, location: str) -> bytes:
        """위치에 저장된 데이터를 읽어옵니다."""

    @abstractmethod
    def exists(self, location: str) -> bool:
        """위치에 데이터가 존재하는지 확인합니다."""

    @abstractmethod
    def resolve_url(self, location: str) -> str:
        """위치를 외부에서 접근할 수 있는 URL(또는 로컬 경로)로 변환합니다."""


class LocalStorageBackend(StorageBackend):
    """
    개발 환경용 로컬 파일시스템 스토리지.
    public_base_url이 설정되면 파일 경로 대신 해당 URL을 결과 위치로 반환합니다.
    """

    name = "local"

    def __init__(self, root_dir: str, public_base_url: Optional[str] = None):
        self.root_dir = Path(root_dir).resolve()
        self.public_base_url = public_base_url.rstrip('/') if public_base_url else None
        try:
            self.root_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageUnavailableError(f"로컬 스토리지 디렉터리를 만들 수 없습니다: {self.root_dir} ({e})")
        logging.info(f"StorageService: 로컬 스토리지 사용 ({self.root_dir})")

    def put(self, data: bytes, suggested_name: str, content_type: str) -> str:
        object_name = build_object_name("enhanced", suggested_name, content_type)
        destination = self.root_dir / object_name
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            destination.write_bytes(data)
        except OSError as e:
            logging.error(f"로컬 스토리지 쓰기 실패 ({destination}): {e}", exc_info=True)
            raise StorageUnavailableError(f"로컬 스토리지 쓰기 실패: {object_name}")

        if self.public_base_url:
            return f"{self.public_base_url}/{object_name}"
        return str(destination)

    def get(self, location: str) -> bytes:
        path = self._resolve_path(location)
        try:
            return path.read_bytes()
        except OSError as e:
            logging.error(f"로컬 스토리지 읽기 실패 ({location}): {e}")
            raise StorageUnavailableError(f"로컬 스토리지 읽기 실패: {location}")

    def exists(self, location: str) -> bool:
        return self._resolve_path(location).is_file()

    def resolve_url(self, location: str) -> str:
        path = self._resolve_path(location)
        if self.public_base_url:
            try:
                return f"{self.public_base_url}/{path.relative_to(self.root_dir).as_posix()}"
            except ValueError:
                pass
        return str(path)

    def _resolve_path(self, location: str) -> Path:
        if self.public_base_url and location.startswith(self.public_base_url + '/'):
            return self.root_dir / location[len(self.public_base_url) + 1:]
        if location.startswith('file://'):
            return Path(unquote(urlparse(location).path))
        path = Path(location)
        return path if path.is_absolute() else self.root_dir / path


class FirebaseStorageBackend(StorageBackend):
    """
    운영 환경용 Firebase Storage (Google Cloud Storage) 백엔드.
    업로드한 결과 이미지는 공개(public)로 전환하고 public URL을 반환합니다.
    """

    name = "firebase"
    _public_host = "storage.googleapis.com"

    def __init__(self, bucket_name: str, bucket=None):
        self.bucket_name = bucket_name
        self.bucket = bucket if bucket is not None else storage.bucket(bucket_name)
        logging.info("StorageService: Firebase Storage 서비스가 성공적으로 초기화되었습니다.")

    def put(self, data: bytes, suggested_name: str, content_type: str) -> str:
        object_name = build_object_name("enhanced", suggested_name, content_type)
        blob = self.bucket.blob(object_name)
        try:
            blob.upload_from_string(data, content_type=content_type)
            blob.make_public()
        except Exception as e:
            logging.error(f"Firebase Storage 업로드 실패 ({object_name}): {e}", exc_info=True)
            raise StorageUnavailableError(f"Firebase Storage 업로드 실패: {object_name}")
        return blob.public_url

    def get(self, location: str) -> bytes:
        bucket, object_name = self._split_location(location)
        try:
            return bucket.blob(object_name).download_as_bytes()
        except Exception as e:
            logging.error(f"Firebase Storage 다운로드 실패 ({location}): {e}")
            raise StorageUnavailableError(f"Firebase Storage 다운로드 실패: {object_name}")

    def exists(self, location: str) -> bool:
        bucket, object_name = self._split_location(location)
        return bucket.blob(object_name).exists()

    def resolve_url(self, location: str) -> str:
        bucket, object_name = self._split_location(location)
        return bucket.blob(object_name).public_url

    def _split_location(self, location: str) -> Tuple[object, str]:
        """
        지원 형식:
        - gs://bucket/path/to/object
        - https://storage.googleapis.com/bucket/path/to/object
        - path/to/object (설정된 버킷 기준)
        """
        if location.startswith('gs://'):
            bucket_name, _, object_name = location[len('gs://'):].partition('/')
        elif location.startswith(('http://', 'https://')):
            parsed = urlparse(location)
            if parsed.netloc != self._public_host:
                raise StorageUnavailableError(f"Firebase Storage 위치가 아닙니다: {location}")
            bucket_name, _, object_name = parsed.path.lstrip('/').partition('/')
            object_name = unquote(object_name)
        else:
            bucket_name, object_name = self.bucket_name, location.lstrip('/')

        if not object_name:
            raise StorageUnavailableError(f"객체 이름이 없는 위치입니다: {location}")
        if bucket_name == self.bucket_name:
            return self.bucket, object_name
        return storage.bucket(bucket_name), object_name


def build_storage_backend(settings: EnhancementSettings) -> StorageBackend:
    """
    설정에 명시된 백엔드를 생성합니다.
    필요한 설정이 없으면 다른 백엔드로 대체하지 않고 StorageUnavailableError를 발생시킵니다.
    """
    if settings.storage_backend == 'local':
        if not settings.local_storage_dir:
            raise StorageUnavailableError("STORAGE_BACKEND=local 에는 LOCAL_STORAGE_DIR 설정이 필요합니다.")
        return LocalStorageBackend(settings.local_storage_dir, settings.local_storage_base_url)

    if settings.storage_backend == 'firebase':
        if not settings.firebase_storage_bucket:
            raise StorageUnavailableError("STORAGE_BACKEND=firebase 에는 FIREBASE_STORAGE_BUCKET 설정이 필요합니다.")
        return FirebaseStorageBackend(settings.firebase_storage_bucket)

    raise StorageUnavailableError(f"지원하지 않는 STORAGE_BACKEND입니다: '{settings.storage_backend}'")
