# photo_enhancement/models/user.py
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict

# 관리자 계정에 부여되는 "무제한" 크레딧 값
UNLIMITED_CREDITS = 999999


class UserRole(Enum):
    USER = "USER"
    ADMIN = "ADMIN"


@dataclass
class User:
    """
    Firestore 'users' 컬렉션 문서 중 크레딧 처리에 필요한 필드만 정의한 데이터클래스.
    """
    user_id: str
    role: UserRole = UserRole.USER
    credits: int = 0

    @property
    def is_privileged(self) -> bool:
        return self.role == UserRole.ADMIN

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "User":
        return cls(
            user_id=data['user_id'],
            role=UserRole(data.get('role', UserRole.USER.value)),
            credits=int(data.get('credits', 0)),
        )
