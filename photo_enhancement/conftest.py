# photo_enhancement/conftest.py
"""
테스트 공용 픽스처

- Firestore는 메모리 기반 가짜 클라이언트로 대체합니다.
  (firestore.transactional 데코레이터는 테스트 동안 그대로 함수를 반환하도록 바꿉니다.)
- 스토리지는 tmp_path 위의 실제 LocalStorageBackend를 사용합니다.
- AI 서비스는 호출 기록을 남기는 가짜 객체를 사용합니다.
"""
import copy
import io
import time

import pytest
from firebase_admin import firestore
from PIL import Image

from photo_enhancement.api.enhancements.services import EnhancementService
from photo_enhancement.api.photos.services import PhotoService
from photo_enhancement.models.photo import Photo, PhotoStatus
from photo_enhancement.services.credit_service import CreditService
from photo_enhancement.services.openai_service import EnhancedImage
from photo_enhancement.services.result_validator import ResultValidator
from photo_enhancement.services.storage_service import LocalStorageBackend


def make_png(color=(200, 120, 40), size=(8, 8)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


# --- 메모리 기반 Firestore ---

class FakeSnapshot:
    def __init__(self, doc_id, data):
        self.id = doc_id
        self._data = copy.deepcopy(data)

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return copy.deepcopy(self._data)


class FakeDocumentRef:
    def __init__(self, collection, doc_id):
        self.collection = collection
        self.id = doc_id

    def get(self, transaction=None):
        return FakeSnapshot(self.id, self.collection.docs.get(self.id))

    def set(self, data):
        self.collection.docs[self.id] = copy.deepcopy(data)

    def update(self, data):
        if self.id not in self.collection.docs:
            raise KeyError(self.id)
        self.collection.docs[self.id].update(copy.deepcopy(data))


_OPERATORS = {
    "==": lambda left, right: left == right,
    "<": lambda left, right: left is not None and left < right,
    "<=": lambda left, right: left is not None and left <= right,
    ">": lambda left, right: left is not None and left > right,
    ">=": lambda left, right: left is not None and left >= right,
}


class FakeQuery:
    def __init__(self, collection, filters=None, orders=None, limit_count=None):
        self.collection = collection
        self.filters = filters or []
        self.orders = orders or []
        self.limit_count = limit_count

    def where(self, filter):
        return FakeQuery(self.collection, self.filters + [filter], self.orders, self.limit_count)

    def order_by(self, field_path):
        return FakeQuery(self.collection, self.filters, self.orders + [field_path], self.limit_count)

    def limit(self, count):
        return FakeQuery(self.collection, self.filters, self.orders, count)

    def stream(self):
        items = [
            (doc_id, data) for doc_id, data in self.collection.docs.items()
            if all(_OPERATORS[f.op_string](data.get(f.field_path), f.value) for f in self.filters)
        ]
        if self.orders:
            items.sort(key=lambda item: tuple(item[1][field] for field in self.orders))
        if self.limit_count is not None:
            items = items[:self.limit_count]
        return iter([FakeSnapshot(doc_id, data) for doc_id, data in items])


class FakeCollection(FakeQuery):
    def __init__(self):
        self.docs = {}
        super().__init__(self)

    def document(self, doc_id):
        return FakeDocumentRef(self, doc_id)


class FakeTransaction:
    def __init__(self):
        self.updates = []

    def update(self, ref, data):
        self.updates.append((ref.id, data))
        ref.update(data)


class FakeFirestore:
    def __init__(self):
        self.collections = {}

    def collection(self, name):
        return self.collections.setdefault(name, FakeCollection())

    def transaction(self):
        return FakeTransaction()


# --- 가짜 AI 서비스 / 검증기 ---

class FakeAIService:
    def __init__(self, result=None, delay=0.0, error=None, on_generate=None):
        self.result = result if result is not None else EnhancedImage(data=make_png((10, 200, 90)))
        self.delay = delay
        self.error = error
        # AI 호출 도중 다른 요청이 끼어드는 상황을 흉내내기 위한 콜백
        self.on_generate = on_generate
        self.calls = []

    def generate(self, image_bytes, mime_type, instruction_prompt):
        self.calls.append((mime_type, instruction_prompt))
        if self.on_generate:
            self.on_generate()
        if self.delay:
            time.sleep(self.delay)
        if self.error:
            raise self.error
        return self.result

    def health_check(self):
        return {"healthy": True, "model": "fake"}


class StaticValidator:
    def __init__(self, answer):
        self.answer = answer
        self.locations = []

    def validate(self, location):
        self.locations.append(location)
        return self.answer


@pytest.fixture(autouse=True)
def plain_transactions(monkeypatch):
    monkeypatch.setattr(firestore, "transactional", lambda fn: fn)


@pytest.fixture
def db():
    return FakeFirestore()


@pytest.fixture
def photo_service(db):
    return PhotoService(db=db)


@pytest.fixture
def credit_service(db):
    return CreditService(db=db)


@pytest.fixture
def storage(tmp_path):
    return LocalStorageBackend(str(tmp_path / "storage"))


@pytest.fixture
def ai_service():
    return FakeAIService()


@pytest.fixture
def validator():
    return ResultValidator()


@pytest.fixture
def enhancement_service(photo_service, credit_service, ai_service, storage, validator):
    return EnhancementService(
        photo_service=photo_service,
        credit_service=credit_service,
        ai_service=ai_service,
        storage_service=storage,
        result_validator=validator,
        instruction_prompt="enhance this photo",
        ai_timeout_seconds=2.0,
    )


@pytest.fixture
def add_user(db):
    def _add_user(user_id="user-1", credits=1, role="USER"):
        db.collection('users').document(user_id).set({
            'user_id': user_id, 'role': role, 'credits': credits,
        })
    return _add_user


@pytest.fixture
def add_photo(db, tmp_path):
    def _add_photo(photo_id="photo-1", user_id="user-1", status=PhotoStatus.PENDING, **fields):
        original = tmp_path / "originals" / f"{photo_id}.png"
        original.parent.mkdir(parents=True, exist_ok=True)
        original.write_bytes(make_png())
        photo = Photo(photo_id=photo_id, user_id=user_id, original_location=str(original), status=status, **fields)
        db.collection('photos').document(photo_id).set(photo.to_dict())
        return photo
    return _add_photo


def stored_photo(db, photo_id="photo-1") -> Photo:
    return Photo.from_dict(db.collection('photos').docs[photo_id])


def stored_credits(db, user_id="user-1") -> int:
    return db.collection('users').docs[user_id]['credits']
