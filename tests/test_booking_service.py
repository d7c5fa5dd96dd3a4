from datetime import date, time
from decimal import Decimal

import pytest

from gymapi.core.exceptions import ConflictError, InsufficientFundsError, NotFoundError
from gymapi.models.booking import GroupTimeSlot, TimeSlot
from gymapi.models.transaction import Currency, TransactionType
from gymapi.models.user import User
from gymapi.schemas.booking import TimeSlotCreateRequest
from gymapi.services.booking_service import BookingService
from gymapi.services.cancellation_service import CancellationService


def _user(db, user_id):
    db.expire_all()
    return db.query(User).filter(User.user_id == user_id).one()


class TestBookIndividual:
    """개인 세션 예약 결제 순서: 토큰 -> 무료 -> 크레딧"""

    def test_private_token_used_first(self, db, factory):
        factory.user("alice", private_token=2, wallet=Decimal("100"))
        slot = factory.slot()

        result = BookingService(db).book_individual(slot.id, "alice")

        assert result.paid_with == "token"
        alice = _user(db, "alice")
        assert alice.private_token == 1
        assert alice.wallet == Decimal("100")
        slot = db.get(TimeSlot, slot.id)
        assert slot.booked is True
        assert slot.booked_with_token is True
        assert slot.user_id == "alice"

    def test_free_member_books_without_charge(self, db, factory):
        factory.user("alice", is_free=True, wallet=Decimal("0"))
        slot = factory.slot()

        result = BookingService(db).book_individual(slot.id, "alice")

        assert result.paid_with == "free"
        tx = factory.transactions("alice")[0]
        assert tx.type == TransactionType.INDIVIDUAL_SESSION_FREE
        assert tx.currency == Currency.NONE

    def test_credits_charged(self, db, factory):
        factory.user("alice", wallet=Decimal("80"))
        slot = factory.slot()

        result = BookingService(db).book_individual(slot.id, "alice")

        assert result.paid_with == "credits"
        assert result.amount == Decimal("50")
        assert _user(db, "alice").wallet == Decimal("30")
        tx = factory.transactions("alice")[0]
        assert tx.type == TransactionType.INDIVIDUAL_SESSION_CREDIT
        assert tx.amount == Decimal("-50")

    def test_insufficient_credits(self, db, factory):
        factory.user("alice", wallet=Decimal("10"))
        slot = factory.slot()

        with pytest.raises(InsufficientFundsError) as exc:
            BookingService(db).book_individual(slot.id, "alice")

        assert exc.value.message == "Not enough credits or tokens"
        db.expire_all()
        assert db.get(TimeSlot, slot.id).booked is False

    def test_already_booked(self, db, factory):
        factory.user("alice")
        factory.user("bob")
        slot = factory.slot(user_id="bob", booked=True)

        with pytest.raises(ConflictError):
            BookingService(db).book_individual(slot.id, "alice")

    def test_book_then_cancel_is_balanced(self, db, factory):
        """예약 후 취소하면 잔액이 원래대로"""
        factory.user("alice", wallet=Decimal("80"))
        slot = factory.slot()

        BookingService(db).book_individual(slot.id, "alice")
        CancellationService(db).cancel_individual(slot.id, "alice")

        assert _user(db, "alice").wallet == Decimal("80")


class TestBookGroup:
    def test_joins_class_with_public_token(self, db, factory):
        factory.user("alice", public_token=1)
        activity = factory.activity(name="Group Class", capacity=2)
        slot = factory.group_slot(activity=activity)

        result = BookingService(db).book_group(slot.id, "alice")

        assert result.paid_with == "token"
        assert _user(db, "alice").public_token == 0
        slot = db.get(GroupTimeSlot, slot.id)
        assert slot.count == 1
        assert slot.booked is False
        assert slot.token_user_ids == ["alice"]
        assert factory.transactions("alice")[0].type == TransactionType.GROUP_SESSION_TOKEN

    def test_semi_private_uses_semi_token(self, db, factory):
        factory.user("alice", public_token=5, semi_private_token=1)
        activity = factory.activity(name="Semi", capacity=3, semi_private=True)
        slot = factory.group_slot(activity=activity)

        BookingService(db).book_group(slot.id, "alice")

        alice = _user(db, "alice")
        assert alice.semi_private_token == 0
        assert alice.public_token == 5

    def test_last_spot_marks_class_booked(self, db, factory):
        factory.user("a")
        factory.user("b")
        activity = factory.activity(name="Group Class", capacity=2)
        slot = factory.group_slot(activity=activity, participants=[("a", False, [])])

        BookingService(db).book_group(slot.id, "b")

        slot = db.get(GroupTimeSlot, slot.id)
        assert slot.count == 2
        assert slot.booked is True

    def test_full_class_rejected(self, db, factory):
        factory.user("a")
        factory.user("b")
        activity = factory.activity(name="Group Class", capacity=1)
        slot = factory.group_slot(activity=activity, participants=[("a", False, [])])

        with pytest.raises(ConflictError) as exc:
            BookingService(db).book_group(slot.id, "b")

        assert exc.value.message == "This class is full"

    def test_double_enrolment_rejected(self, db, factory):
        factory.user("a")
        slot = factory.group_slot(participants=[("a", False, [])])

        with pytest.raises(ConflictError):
            BookingService(db).book_group(slot.id, "a")


class TestSlotAdministration:
    def test_create_and_list_upcoming(self, db, factory):
        activity = factory.activity()
        coach = factory.coach()
        factory.user("alice", private_token=1)
        service = BookingService(db)

        created = service.create_slot(
            TimeSlotCreateRequest(
                activity_id=activity.id,
                coach_id=coach.id,
                date=date(2031, 3, 1),
                start_time=time(7, 0),
                end_time=time(8, 0),
            )
        )
        service.book_individual(created.id, "alice")
        upcoming = service.list_upcoming("alice")

        assert created.booked is False
        assert created.activity.name == "Private Training"
        assert [s.id for s in upcoming.individual] == [created.id]
        assert upcoming.group == []

    def test_create_with_unknown_coach(self, db, factory):
        activity = factory.activity()

        with pytest.raises(NotFoundError):
            BookingService(db).create_slot(
                TimeSlotCreateRequest(
                    activity_id=activity.id,
                    coach_id=999,
                    date=date(2031, 3, 1),
                    start_time=time(7, 0),
                    end_time=time(8, 0),
                )
            )

    def test_end_before_start_rejected(self):
        with pytest.raises(ValueError):
            TimeSlotCreateRequest(
                activity_id=1,
                coach_id=1,
                date=date(2031, 3, 1),
                start_time=time(9, 0),
                end_time=time(8, 0),
            )

    def test_cannot_delete_booked_slot(self, db, factory):
        factory.user("alice")
        slot = factory.slot(user_id="alice", booked=True)

        with pytest.raises(ConflictError):
            BookingService(db).delete_slot(slot.id)

    def test_delete_empty_group_slot(self, db, factory):
        slot = factory.group_slot()

        assert BookingService(db).delete_group_slot(slot.id) is True
        assert db.get(GroupTimeSlot, slot.id) is None
