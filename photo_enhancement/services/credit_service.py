# photo_enhancement/services/credit_service.py
import logging
from dataclasses import dataclass

from firebase_admin import firestore

from photo_enhancement.core.exceptions import (
    ConflictError, InsufficientCreditsError, PhotoNotFoundError, UserNotFoundError,
)
from photo_enhancement.models.photo import Photo, PhotoStatus
from photo_enhancement.models.user import User
from photo_enhancement.utils.datetime_utils import now


@dataclass
class Settlement:
    """보정 결과 확정(COMPLETED 전이 + 크레딧 차감) 결과"""
    photo: Photo
    credits_remaining: int
    charged: bool


class CreditService:
    """
    사용자 크레딧 차감을 담당하는 서비스 클래스.
    결과 확정과 차감은 사진/사용자 문서를 함께 읽는 하나의 Firestore 트랜잭션 안에서 처리됩니다.
    """

    def __init__(self, db=None):
        self.db = db if db is not None else firestore.client()
        self.users_ref = self.db.collection('users')
        self.photos_ref = self.db.collection('photos')

    def get_user(self, user_id: str) -> User:
        doc = self.users_ref.document(user_id).get()
        if not doc.exists:
            raise UserNotFoundError(f"사용자를 찾을 수 없습니다: {user_id}")
        return User.from_dict({'user_id': user_id, **doc.to_dict()})

    def is_privileged(self, user_id: str) -> bool:
        """저장된 사용자 문서의 role로만 판단합니다. (클라이언트가 보낸 값은 사용하지 않음)"""
        return self.get_user(user_id).is_privileged

    def has_credits(self, user_id: str) -> bool:
        user = self.get_user(user_id)
        return user.is_privileged or user.credits > 0

    def get_balance(self, user_id: str) -> int:
        return self.get_user(user_id).credits

    def complete_and_charge(self, photo_id: str, user_id: str, enhanced_location: str) -> Settlement:
        """
        검증이 끝난 결과를 사진에 기록(COMPLETED)하고 크레딧 1을 차감합니다.
        두 쓰기는 같은 트랜잭션에서 함께 반영되거나 함께 취소됩니다.
        - 관리자 계정은 차감하지 않습니다.
        - credit_charged가 이미 True인 사진은 다시 차감하지 않습니다.
        - 잔액이 그 사이 소진되었다면 결과를 기록하지 않고 FAILED로 전이한 뒤 InsufficientCreditsError를 발생시킵니다.

        :raises ConflictError: 사진이 PROCESSING 상태가 아닌 경우 (아무것도 쓰지 않음)
        :raises UserNotFoundError: 사용자 문서가 없는 경우 (아무것도 쓰지 않음)
        :raises InsufficientCreditsError: 잔액 부족 (사진은 FAILED로 기록됨)
        """
        photo_ref = self.photos_ref.document(photo_id)
        user_ref = self.users_ref.document(user_id)

        @firestore.transactional
        def _settle_in_transaction(transaction, photo_ref, user_ref):
            # 트랜잭션 규칙: 모든 읽기를 쓰기보다 먼저 수행
            photo_snapshot = photo_ref.get(transaction=transaction)
            user_snapshot = user_ref.get(transaction=transaction)

            if not photo_snapshot.exists:
                raise PhotoNotFoundError(f"사진을 찾을 수 없습니다: {photo_id}")
            photo = Photo.from_dict(photo_snapshot.to_dict())
            if photo.status != PhotoStatus.PROCESSING:
                raise ConflictError(photo_id, photo.status.value)
            if not user_snapshot.exists:
                raise UserNotFoundError(f"사용자를 찾을 수 없습니다: {user_id}")
            user = User.from_dict({'user_id': user_id, **user_snapshot.to_dict()})

            charge = not user.is_privileged and not photo.credit_charged
            if charge and user.credits <= 0:
                data = {
                    'status': PhotoStatus.FAILED.value,
                    'enhanced_location': None,
                    'last_error': InsufficientCreditsError.last_error,
                    'updated_at': now(),
                }
                transaction.update(photo_ref, data)
                return Settlement(Photo.from_dict({**photo_snapshot.to_dict(), **data}), user.credits, False)

            remaining = user.credits - 1 if charge else user.credits
            data = {
                'status': PhotoStatus.COMPLETED.value,
                'enhanced_location': enhanced_location,
                'last_error': None,
                'credit_charged': photo.credit_charged or charge,
                'updated_at': now(),
            }
            if charge:
                transaction.update(user_ref, {'credits': remaining})
            transaction.update(photo_ref, data)
            return Settlement(Photo.from_dict({**photo_snapshot.to_dict(), **data}), remaining, charge)

        transaction = self.db.transaction()
        settlement = _settle_in_transaction(transaction, photo_ref, user_ref)

        if settlement.photo.status == PhotoStatus.FAILED:
            logging.warning(
                f"결과 확정 시점에 잔액이 없어 FAILED 처리했습니다. (user_id: {user_id}, photo_id: {photo_id})"
            )
            raise InsufficientCreditsError(f"잔액 부족으로 결과를 확정하지 못했습니다: {photo_id}")

        logging.info(
            f"결과 확정 및 크레딧 처리 완료 (user_id: {user_id}, photo_id: {photo_id}, "
            f"차감: {settlement.charged}, 잔액: {settlement.credits_remaining})"
        )
        return settlement
