# photo_enhancement/api/photos/services.py
import logging
from typing import List, Optional

from firebase_admin import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from photo_enhancement.core.exceptions import ConflictError, PhotoNotFoundError
from photo_enhancement.models.photo import Photo, PhotoStatus
from photo_enhancement.utils.datetime_utils import now


class PhotoService:
    """
    Firestore 'photos' 컬렉션에 대한 저장/상태 전이 로직을 담당하는 서비스 클래스.
    상태 전이는 모두 트랜잭션 안에서 현재 상태를 확인한 뒤 조건부로 수행됩니다.
    """

    def __init__(self, db=None):
        self.db = db if db is not None else firestore.client()
        self.photos_ref = self.db.collection('photos')

    def get_photo(self, photo_id: str) -> Optional[Photo]:
        doc = self.photos_ref.document(photo_id).get()
        if not doc.exists:
            return None
        return Photo.from_dict(doc.to_dict())

    def get_photo_by_id_and_owner(self, photo_id: str, user_id: str) -> Photo:
        """사진을 조회하되, 소유자가 다르면 존재 여부를 드러내지 않고 not found로 처리합니다."""
        photo = self.get_photo(photo_id)
        if photo is None or photo.user_id != user_id:
            raise PhotoNotFoundError(f"사진을 찾을 수 없거나 조회 권한이 없습니다: {photo_id}")
        return photo

    def list_retryable_photos(self, limit: int, max_attempts: int) -> List[Photo]:
        """
        처리 대상 사진을 조회합니다.
        PENDING 사진을 오래된 순서로 먼저 채우고, 남는 자리에 시도 횟수가 남은 FAILED 사진을 채웁니다.
        재시도를 모두 소진한 FAILED 사진은 조회하지 않습니다.
        """
        pending_query = (
            self.photos_ref
            .where(filter=FieldFilter("status", "==", PhotoStatus.PENDING.value))
            .order_by("created_at")
            .limit(limit)
        )
        photos = [Photo.from_dict(doc.to_dict()) for doc in pending_query.stream()]
        if len(photos) >= limit:
            return photos

        # 부등호 필터 필드(attempts)를 먼저 정렬해야 함 (복합 색인: status, attempts, created_at)
        failed_query = (
            self.photos_ref
            .where(filter=FieldFilter("status", "==", PhotoStatus.FAILED.value))
            .where(filter=FieldFilter("attempts", "<", max_attempts))
            .order_by("attempts")
            .order_by("created_at")
            .limit(limit - len(photos))
        )
        photos.extend(Photo.from_dict(doc.to_dict()) for doc in failed_query.stream())
        return photos

    def begin_processing(self, photo_id: str, user_id: str) -> Photo:
        """
        PENDING / FAILED 상태인 경우에만 PROCESSING으로 전이합니다.
        동시에 두 요청이 들어와도 트랜잭션 재시도로 하나만 성공합니다.

        :raises PhotoNotFoundError: 사진이 없거나 소유자가 다른 경우
        :raises ConflictError: COMPLETED / PROCESSING 상태인 경우
        """
        photo_ref = self.photos_ref.document(photo_id)

        @firestore.transactional
        def _begin_in_transaction(transaction, photo_ref):
            snapshot = photo_ref.get(transaction=transaction)
            if not snapshot.exists:
                raise PhotoNotFoundError(f"사진을 찾을 수 없습니다: {photo_id}")
            photo = Photo.from_dict(snapshot.to_dict())
            if photo.user_id != user_id:
                raise PhotoNotFoundError(f"사진을 찾을 수 없거나 권한이 없습니다: {photo_id}")
            if not photo.is_enhanceable:
                raise ConflictError(photo_id, photo.status.value)

            photo.status = PhotoStatus.PROCESSING
            photo.last_error = None
            photo.attempts += 1
            photo.updated_at = now()
            transaction.update(photo_ref, {
                'status': photo.status.value,
                'last_error': None,
                'attempts': photo.attempts,
                'updated_at': photo.updated_at,
            })
            return photo

        transaction = self.db.transaction()
        photo = _begin_in_transaction(transaction, photo_ref)
        logging.info(f"사진 상태 PROCESSING 전이 (photo_id: {photo_id}, 시도: {photo.attempts})")
        return photo

    def mark_failed(self, photo_id: str, last_error: str) -> Photo:
        """FAILED로 전이합니다. 결과 위치는 항상 비웁니다."""
        return self._finish(photo_id, {
            'status': PhotoStatus.FAILED.value,
            'enhanced_location': None,
            'last_error': last_error,
        })

    def _finish(self, photo_id: str, update_data: dict) -> Photo:
        photo_ref = self.photos_ref.document(photo_id)

        @firestore.transactional
        def _finish_in_transaction(transaction, photo_ref):
            snapshot = photo_ref.get(transaction=transaction)
            if not snapshot.exists:
                raise PhotoNotFoundError(f"사진을 찾을 수 없습니다: {photo_id}")
            current = Photo.from_dict(snapshot.to_dict())
            if current.status != PhotoStatus.PROCESSING:
                raise ConflictError(photo_id, current.status.value)

            data = dict(update_data, updated_at=now())
            transaction.update(photo_ref, data)
            return Photo.from_dict({**snapshot.to_dict(), **data})

        transaction = self.db.transaction()
        photo = _finish_in_transaction(transaction, photo_ref)
        logging.info(f"사진 상태 {photo.status.value} 전이 (photo_id: {photo_id})")
        return photo
