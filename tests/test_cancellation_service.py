from decimal import Decimal
from unittest.mock import patch

from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from conftest import Factory, addition
from gymapi.models.base import Base
from gymapi.models.booking import GroupTimeSlot, TimeSlot
from gymapi.models.catalog import MarketItem
from gymapi.models.transaction import Currency, Transaction, TransactionType
from gymapi.models.user import User
from gymapi.services.cancellation_service import CancellationService


def _reload(db, model, pk):
    db.expire_all()
    return db.get(model, pk)


class TestCancelIndividual:
    """개인 세션 취소"""

    def test_credit_booking_refunds_wallet(self, db, factory):
        """시나리오 1: 크레딧 예약 취소 -> wallet +50, individual_cancel_credit 1건"""
        # Given
        factory.user("alice", wallet=Decimal("10"))
        slot = factory.slot(user_id="alice", booked=True)

        # When
        result = CancellationService(db).cancel_individual(slot.id, "alice")

        # Then
        assert result.success is True
        assert result.message == "Session cancelled successfully."
        user = _reload(db, User, 1)
        assert user.wallet == Decimal("60")
        txs = factory.transactions("alice")
        assert len(txs) == 1
        assert txs[0].type == TransactionType.INDIVIDUAL_CANCEL_CREDIT
        assert txs[0].amount == Decimal("50")

        slot = _reload(db, TimeSlot, slot.id)
        assert slot.booked is False
        assert slot.user_id is None
        assert slot.additions == []

    def test_token_booking_with_protein_addition(self, db, factory):
        """시나리오 2: 토큰 예약 + 쉐이크 1개, punches 9 -> 토큰+1, 쉐이크+1, punches 8"""
        user = factory.user("alice", punches=9, shake_token=0, private_token=0)
        shake = factory.item("Protein Shake", "5", quantity=3)
        slot = factory.slot(
            user_id="alice",
            booked=True,
            booked_with_token=True,
            additions=[addition(shake)],
        )

        result = CancellationService(db).cancel_individual(slot.id, "alice")

        assert result.success is True
        assert result.message == "Session cancelled successfully. 1 shake tokens returned."
        user = _reload(db, User, user.id)
        assert user.private_token == 1
        assert user.shake_token == 1
        assert user.punches == 8
        assert user.wallet == Decimal("100")
        assert _reload(db, MarketItem, shake.id).quantity == 4

    def test_tier_drop_penalty(self, db, factory):
        """시나리오 3: punches 10 -> 9, 페널티 2 (잔액 3 + 1 - 2 = 2)"""
        user = factory.user("alice", punches=10, shake_token=3)
        shake = factory.item("Protein Shake", "5")
        slot = factory.slot(
            user_id="alice",
            booked=True,
            booked_with_token=True,
            additions=[addition(shake)],
        )

        result = CancellationService(db).cancel_individual(slot.id, "alice")

        assert result.success is True
        assert result.message == (
            "Session cancelled successfully. 1 shake tokens returned."
            " 2 tokens deducted as loyalty reward penalty."
        )
        assert result.refund.shake_tokens.penalty == 2
        user = _reload(db, User, user.id)
        assert user.shake_token == 2
        assert user.punches == 9
        types = [t.type for t in factory.transactions("alice")]
        assert types == [
            TransactionType.INDIVIDUAL_CANCEL_TOKEN,
            TransactionType.SHAKE_TOKEN_REFUND,
            TransactionType.PUNCH_REMOVE,
            TransactionType.LOYALTY_PENALTY,
        ]

    def test_free_user_records_audit_transaction(self, db, factory):
        """시나리오 5: 무료 회원 -> wallet 변동 없음, currency none / amount 0"""
        user = factory.user("alice", is_free=True, wallet=Decimal("5"))
        slot = factory.slot(user_id="alice", booked=True)

        result = CancellationService(db).cancel_individual(slot.id, "alice")

        assert result.success is True
        assert _reload(db, User, user.id).wallet == Decimal("5")
        txs = factory.transactions("alice")
        assert len(txs) == 1
        assert txs[0].currency == Currency.NONE
        assert txs[0].amount == Decimal("0")
        assert txs[0].type == TransactionType.INDIVIDUAL_CANCEL_FREE

    def test_second_cancellation_is_rejected(self, db, factory):
        """이미 취소된 예약을 다시 취소하면 이중 환불 없이 실패"""
        user = factory.user("alice", wallet=Decimal("0"))
        slot = factory.slot(user_id="alice", booked=True)
        service = CancellationService(db)

        first = service.cancel_individual(slot.id, "alice")
        second = service.cancel_individual(slot.id, "alice")

        assert first.success is True
        assert second.success is False
        assert second.error == "You are not booked on this session"
        assert _reload(db, User, user.id).wallet == Decimal("50")
        assert len(factory.transactions("alice")) == 1

    def test_other_user_cannot_cancel(self, db, factory):
        factory.user("alice")
        factory.user("mallory")
        slot = factory.slot(user_id="alice", booked=True)

        result = CancellationService(db).cancel_individual(slot.id, "mallory")

        assert result.success is False
        assert result.error == "You are not booked on this session"
        assert _reload(db, TimeSlot, slot.id).user_id == "alice"

    def test_missing_slot(self, db):
        result = CancellationService(db).cancel_individual(999, "alice")

        assert result.success is False
        assert result.error == "Session not found: 999"

    def test_admin_cancels_on_behalf_of_owner(self, db, factory):
        user = factory.user("alice", wallet=Decimal("0"))
        slot = factory.slot(user_id="alice", booked=True)

        result = CancellationService(db).cancel_individual_as_admin(slot.id)

        assert result.success is True
        assert result.cancelled_users == ["alice"]
        assert _reload(db, User, user.id).wallet == Decimal("50")

    def test_admin_cancel_of_unbooked_slot(self, db, factory):
        slot = factory.slot()

        result = CancellationService(db).cancel_individual_as_admin(slot.id)

        assert result.success is False
        assert result.error == "Session is not booked"

    def test_notice_carries_refund_details(self, db, factory):
        factory.user("alice", first_name="Alice", last_name="Lee")
        water = factory.item("Water Bottle", "2")
        slot = factory.slot(user_id="alice", booked=True, additions=[addition(water)])

        result = CancellationService(db).cancel_individual(slot.id, "alice")

        assert len(result.notifications) == 1
        notice = result.notifications[0]
        assert notice.user_name == "Alice Lee"
        assert notice.activity_name == "Private Training"
        assert notice.activity_date == "2030-01-15"
        assert notice.start_time == "09:00"
        assert notice.coach_email == "coach@example.com"
        assert notice.refund_details.credits == Decimal("52")
        # 알림 목록은 응답 본문에 포함되지 않는다
        assert "notifications" not in result.model_dump()


class TestAdditionsResolution:
    """추가 품목 해석과 재입고"""

    def test_legacy_name_additions_resolved_by_name(self, db, factory):
        user = factory.user("alice", wallet=Decimal("0"))
        water = factory.item("Water Bottle", "2", quantity=1)
        slot = factory.slot(
            user_id="alice",
            booked=True,
            booked_with_token=True,
            additions=["water bottle"],
        )

        result = CancellationService(db).cancel_individual(slot.id, "alice")

        assert result.success is True
        assert result.restock_failures == []
        assert _reload(db, User, user.id).wallet == Decimal("2")
        assert _reload(db, MarketItem, water.id).quantity == 2

    def test_unknown_items_reported_as_restock_failures(self, db, factory):
        """카탈로그에서 사라진 품목은 실패 목록으로 보고하고 나머지는 정상 처리"""
        factory.user("alice", wallet=Decimal("0"))
        water = factory.item("Water Bottle", "2", quantity=0)
        gone = {"item_id": 9999, "name": "Old Towel", "price": "3", "used_token": False}
        slot = factory.slot(
            user_id="alice",
            booked=True,
            booked_with_token=True,
            additions=[addition(water), gone, "Mystery Bar"],
        )

        result = CancellationService(db).cancel_individual(slot.id, "alice")

        assert result.success is True
        assert sorted(result.restock_failures) == ["Mystery Bar", "Old Towel"]
        assert _reload(db, MarketItem, water.id).quantity == 1
        # 가격이 보존된 품목은 환불, 이름만 남은 품목은 0
        assert _reload(db, User, 1).wallet == Decimal("5")


class TestCancelGroup:
    """그룹 세션 취소"""

    def test_full_class_frees_a_spot(self, db, factory):
        """시나리오 4: 정원 4, count 4 -> 취소 후 count 3, booked False"""
        for user_id in ("a", "b", "c", "d"):
            factory.user(user_id, public_token=0)
        slot = factory.group_slot(
            participants=[
                ("a", True, []),
                ("b", False, []),
                ("c", True, []),
                ("d", False, []),
            ]
        )
        assert slot.count == 4 and slot.booked is True

        result = CancellationService(db).cancel_group(slot.id, "a")

        assert result.success is True
        slot = _reload(db, GroupTimeSlot, slot.id)
        assert slot.count == 3
        assert slot.booked is False
        assert slot.user_ids == ["b", "c", "d"]
        assert slot.token_user_ids == ["c"]
        assert db.query(User).filter(User.user_id == "a").one().public_token == 1

    def test_other_participants_untouched(self, db, factory):
        """A 취소 시 B의 잔액과 추가 품목은 그대로"""
        shake = factory.item("Protein Shake", "5", quantity=5)
        factory.user("a", punches=3, shake_token=0)
        factory.user("b", punches=7, shake_token=4, wallet=Decimal("30"))
        slot = factory.group_slot(
            participants=[
                ("a", False, [addition(shake)]),
                ("b", False, [addition(shake, used_token=True)]),
            ]
        )

        result = CancellationService(db).cancel_group(slot.id, "a")

        assert result.success is True
        db.expire_all()
        a = db.query(User).filter(User.user_id == "a").one()
        b = db.query(User).filter(User.user_id == "b").one()
        assert a.punches == 2
        assert a.shake_token == 1
        assert a.wallet == Decimal("150")
        assert (b.punches, b.shake_token, b.wallet) == (7, 4, Decimal("30"))
        slot = db.get(GroupTimeSlot, slot.id)
        assert slot.user_ids == ["b"]
        assert slot.additions_by_user[0]["user_id"] == "b"
        assert factory.transactions("b") == []

    def test_non_participant_rejected(self, db, factory):
        factory.user("a")
        factory.user("z")
        slot = factory.group_slot(participants=[("a", False, [])])

        result = CancellationService(db).cancel_group(slot.id, "z")

        assert result.success is False
        assert result.error == "You are not booked on this session"
        assert _reload(db, GroupTimeSlot, slot.id).count == 1

    def test_semi_private_token_returned(self, db, factory):
        factory.user("a", semi_private_token=0)
        activity = factory.activity(name="Semi-Private", capacity=3, semi_private=True)
        slot = factory.group_slot(activity=activity, participants=[("a", True, [])])

        result = CancellationService(db).cancel_group(slot.id, "a")

        assert result.refund.token_currency == "semi_private_token"
        assert db.query(User).filter(User.user_id == "a").one().semi_private_token == 1
        assert factory.transactions("a")[0].type == TransactionType.SEMI_CANCEL_TOKEN

    def test_cancel_for_all_refunds_everyone(self, db, factory):
        factory.user("a", wallet=Decimal("0"))
        factory.user("b", public_token=0)
        slot = factory.group_slot(participants=[("a", False, []), ("b", True, [])])

        result = CancellationService(db).cancel_group_for_all(slot.id)

        assert result.success is True
        assert result.cancelled_users == ["a", "b"]
        assert len(result.notifications) == 2
        db.expire_all()
        assert db.query(User).filter(User.user_id == "a").one().wallet == Decimal("50")
        assert db.query(User).filter(User.user_id == "b").one().public_token == 1
        slot = db.get(GroupTimeSlot, slot.id)
        assert slot.count == 0
        assert slot.participants == []

    def test_cancel_for_all_on_empty_slot(self, db, factory):
        slot = factory.group_slot()

        result = CancellationService(db).cancel_group_for_all(slot.id)

        assert result.success is False
        assert result.error == "Group session has no participants"


class TestAtomicity:
    """저장 실패 시 전체 롤백"""

    def test_store_failure_rolls_back_everything(self, db, factory):
        user = factory.user("alice", wallet=Decimal("0"))
        water = factory.item("Water Bottle", "2", quantity=1)
        slot = factory.slot(user_id="alice", booked=True, additions=[addition(water)])
        service = CancellationService(db)

        with patch.object(
            service.transaction_repo,
            "record",
            side_effect=OperationalError("INSERT", {}, Exception("disk full")),
        ):
            result = service.cancel_individual(slot.id, "alice")

        assert result.success is False
        assert result.error == "Failed to write to the data store"
        assert _reload(db, User, user.id).wallet == Decimal("0")
        assert _reload(db, MarketItem, water.id).quantity == 1
        slot = _reload(db, TimeSlot, slot.id)
        assert slot.booked is True
        assert slot.user_id == "alice"
        assert factory.transactions("alice") == []


class TestConcurrentCancellation:
    """같은 그룹 슬롯을 두 세션이 동시에 취소 - version 불일치 쪽은 실패"""

    def test_stale_slot_loses_race(self, tmp_path):
        engine = create_engine(f"sqlite:///{tmp_path / 'ledger.db'}")
        Base.metadata.create_all(engine)
        Session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
        session_a, session_b = Session(), Session()
        try:
            # Given: 세션 B가 version 1 상태의 슬롯을 들고 있다
            factory = Factory(session_a)
            for user_id in ("alice", "bob", "carol"):
                factory.user(user_id, wallet=Decimal("0"))
            slot = factory.group_slot(
                participants=[(u, False, []) for u in ("alice", "bob", "carol")]
            )
            stale = session_b.get(GroupTimeSlot, slot.id)
            assert stale.user_ids == ["alice", "bob", "carol"]

            # When: A가 먼저 커밋한 뒤 B가 취소
            first = CancellationService(session_a).cancel_group(slot.id, "alice")
            second = CancellationService(session_b).cancel_group(slot.id, "bob")

            # Then
            assert first.success is True
            assert second.success is False
            assert second.error == (
                "The booking was modified by another request, please retry"
            )
            assert second.notifications == []
        finally:
            session_a.close()
            session_b.close()

        check = Session()
        try:
            bob = check.query(User).filter(User.user_id == "bob").one()
            assert bob.wallet == Decimal("0")
            assert check.query(Transaction).filter(Transaction.user_id == "bob").all() == []
            assert check.query(Transaction).filter(Transaction.user_id == "alice").count() == 1
            slot = check.get(GroupTimeSlot, slot.id)
            assert slot.user_ids == ["bob", "carol"]
            assert slot.count == 2
            assert slot.version == 2
        finally:
            check.close()
            engine.dispose()
