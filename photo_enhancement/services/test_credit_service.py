# photo_enhancement/services/test_credit_service.py
import pytest

from photo_enhancement.conftest import stored_credits, stored_photo
from photo_enhancement.core.exceptions import ConflictError, InsufficientCreditsError, UserNotFoundError
from photo_enhancement.models.photo import PhotoStatus
from photo_enhancement.models.user import UNLIMITED_CREDITS

RESULT = "/storage/enhanced/photo-1.png"


def test_settlement_completes_photo_and_charges_once(credit_service, add_user, add_photo, db):
    add_user(credits=2)
    add_photo(status=PhotoStatus.PROCESSING)

    settlement = credit_service.complete_and_charge("photo-1", "user-1", RESULT)

    photo = stored_photo(db)
    assert settlement.charged
    assert settlement.credits_remaining == 1
    assert stored_credits(db) == 1
    assert photo.status == PhotoStatus.COMPLETED
    assert photo.enhanced_location == RESULT
    assert photo.credit_charged


def test_already_charged_photo_is_not_charged_again(credit_service, add_user, add_photo, db):
    add_user(credits=3)
    add_photo(status=PhotoStatus.PROCESSING, credit_charged=True)

    settlement = credit_service.complete_and_charge("photo-1", "user-1", RESULT)

    assert not settlement.charged
    assert stored_credits(db) == 3
    assert stored_photo(db).status == PhotoStatus.COMPLETED


def test_zero_balance_fails_photo_without_result(credit_service, add_user, add_photo, db):
    add_user(credits=0)
    add_photo(status=PhotoStatus.PROCESSING)

    with pytest.raises(InsufficientCreditsError):
        credit_service.complete_and_charge("photo-1", "user-1", RESULT)

    photo = stored_photo(db)
    assert photo.status == PhotoStatus.FAILED
    assert photo.last_error == "insufficient credits"
    assert photo.enhanced_location is None
    assert not photo.credit_charged
    assert stored_credits(db) == 0


def test_photo_not_processing_is_left_untouched(credit_service, add_user, add_photo, db):
    add_user(credits=1)
    add_photo(status=PhotoStatus.FAILED, last_error="AI service timeout")

    with pytest.raises(ConflictError):
        credit_service.complete_and_charge("photo-1", "user-1", RESULT)

    photo = stored_photo(db)
    assert photo.status == PhotoStatus.FAILED
    assert photo.enhanced_location is None
    assert stored_credits(db) == 1


def test_admin_is_never_charged(credit_service, add_user, add_photo, db):
    add_user(credits=UNLIMITED_CREDITS, role="ADMIN")

    for i in range(5):
        add_photo(photo_id=f"photo-{i}", status=PhotoStatus.PROCESSING)
        settlement = credit_service.complete_and_charge(f"photo-{i}", "user-1", RESULT)
        assert settlement.credits_remaining == UNLIMITED_CREDITS
        assert not settlement.charged

    assert credit_service.is_privileged("user-1")
    assert stored_credits(db) == UNLIMITED_CREDITS


def test_privilege_comes_from_stored_role(credit_service, add_user):
    """잔액이 아무리 커도 role이 USER면 특권 계정이 아님"""
    add_user(credits=UNLIMITED_CREDITS, role="USER")
    assert not credit_service.is_privileged("user-1")


def test_has_credits(credit_service, add_user):
    add_user(user_id="empty", credits=0)
    add_user(user_id="admin", credits=0, role="ADMIN")
    add_user(user_id="rich", credits=4)

    assert not credit_service.has_credits("empty")
    assert credit_service.has_credits("admin")
    assert credit_service.has_credits("rich")


def test_unknown_user(credit_service, add_photo, db):
    add_photo(user_id="ghost", status=PhotoStatus.PROCESSING)

    with pytest.raises(UserNotFoundError):
        credit_service.complete_and_charge("photo-1", "ghost", RESULT)
    with pytest.raises(UserNotFoundError):
        credit_service.is_privileged("ghost")

    assert stored_photo(db).status == PhotoStatus.PROCESSING
