import logging
from datetime import date
from decimal import Decimal
from typing import Tuple

from sqlalchemy.orm import Session

from gymapi.core.exceptions import (
    ConflictError,
    InsufficientFundsError,
    NotFoundError,
)
from gymapi.core.ledger_rules import BALANCE_COLUMNS, ZERO
from gymapi.database.session import atomic
from gymapi.models.booking import GroupParticipant
from gymapi.models.catalog import Activity
from gymapi.models.transaction import Currency, TransactionType
from gymapi.models.user import User
from gymapi.repositories.booking_repository import BookingRepository
from gymapi.repositories.transaction_repository import TransactionRepository
from gymapi.repositories.user_repository import UserRepository
from gymapi.schemas.booking import (
    BookingResult,
    GroupTimeSlotResponse,
    TimeSlotCreateRequest,
    TimeSlotResponse,
    UpcomingReservations,
)
from gymapi.schemas.ledger import TransactionDraft

logger = logging.getLogger(__name__)

# (토큰, 무료, 크레딧) 예약 거래 유형
INDIVIDUAL_SESSION_TYPES = (
    TransactionType.INDIVIDUAL_SESSION_TOKEN,
    TransactionType.INDIVIDUAL_SESSION_FREE,
    TransactionType.INDIVIDUAL_SESSION_CREDIT,
)
GROUP_SESSION_TYPES = (
    TransactionType.GROUP_SESSION_TOKEN,
    TransactionType.GROUP_SESSION_FREE,
    TransactionType.GROUP_SESSION_CREDIT,
)
SEMI_SESSION_TYPES = (
    TransactionType.SEMI_SESSION_TOKEN,
    TransactionType.SEMI_SESSION_FREE,
    TransactionType.SEMI_SESSION_CREDIT,
)


class BookingService:
    """세션 예약 및 관리자 슬롯 관리"""

    def __init__(self, db: Session):
        self.db = db
        self.user_repo = UserRepository(db)
        self.booking_repo = BookingRepository(db)
        self.transaction_repo = TransactionRepository(db)

    def book_individual(self, slot_id: int, user_id: str) -> BookingResult:
        """개인 세션 예약 - private 토큰 우선, 무료 회원은 무과금, 그 외 크레딧 차감"""
        with atomic(self.db):
            slot = self.booking_repo.get_slot(slot_id)
            if not slot:
                raise NotFoundError(f"Session not found: {slot_id}")
            if slot.booked or slot.user_id:
                raise ConflictError("This session is already booked")

            user = self._lock_user(user_id)
            activity = self._activity(slot.activity)
            paid_with, amount = self._settle(
                user, activity, Currency.PRIVATE_TOKEN, INDIVIDUAL_SESSION_TYPES
            )

            slot.user_id = user_id
            slot.booked = True
            slot.booked_with_token = paid_with == "token"
            slot.additions = []
            self.db.flush()

        logger.info(f"User {user_id} booked slot {slot_id} with {paid_with}")
        return BookingResult(
            message="Session booked successfully.",
            slot_id=slot_id,
            paid_with=paid_with,
            amount=amount,
        )

    def book_group(self, slot_id: int, user_id: str) -> BookingResult:
        """그룹 세션 참가 - 액티비티에 따라 semi-private 또는 public 토큰 사용"""
        with atomic(self.db):
            slot = self.booking_repo.get_group_slot(slot_id)
            if not slot:
                raise NotFoundError(f"Group session not found: {slot_id}")

            activity = self._activity(slot.activity)
            if slot.find_participant(user_id) is not None:
                raise ConflictError("You are already enrolled in this class")
            if len(slot.participants) >= activity.capacity:
                raise ConflictError("This class is full")

            user = self._lock_user(user_id)
            if activity.semi_private:
                currency, types = Currency.SEMI_PRIVATE_TOKEN, SEMI_SESSION_TYPES
            else:
                currency, types = Currency.PUBLIC_TOKEN, GROUP_SESSION_TYPES
            paid_with, amount = self._settle(user, activity, currency, types)

            slot.participants.append(
                GroupParticipant(
                    user_id=user_id,
                    booked_with_token=paid_with == "token",
                    additions=[],
                )
            )
            slot.sync_occupancy(activity.capacity)
            self.db.flush()

        logger.info(f"User {user_id} joined group slot {slot_id} with {paid_with}")
        return BookingResult(
            message="Class booked successfully.",
            slot_id=slot_id,
            paid_with=paid_with,
            amount=amount,
        )

    def list_upcoming(self, user_id: str) -> UpcomingReservations:
        today = date.today()
        return UpcomingReservations(
            individual=self.booking_repo.upcoming_for_user(user_id, today),
            group=self.booking_repo.upcoming_group_for_user(user_id, today),
        )

    # ------------------------------------------------------------------
    # 관리자 슬롯 관리
    # ------------------------------------------------------------------

    def create_slot(self, request: TimeSlotCreateRequest) -> TimeSlotResponse:
        with atomic(self.db):
            self._check_refs(request)
            slot = self.booking_repo.add(
                booked=False, booked_with_token=False, additions=[], **request.model_dump()
            )
        logger.info(f"Created slot {slot.id} on {slot.date}")
        return TimeSlotResponse.model_validate(slot)

    def create_group_slot(self, request: TimeSlotCreateRequest) -> GroupTimeSlotResponse:
        with atomic(self.db):
            self._check_refs(request)
            slot = self.booking_repo.add_group_slot(**request.model_dump())
        logger.info(f"Created group slot {slot.id} on {slot.date}")
        return self.booking_repo.to_group_schema(slot)

    def delete_slot(self, slot_id: int) -> bool:
        with atomic(self.db):
            slot = self.booking_repo.get_slot(slot_id)
            if not slot:
                raise NotFoundError(f"Session not found: {slot_id}")
            if slot.booked:
                raise ConflictError("Cancel the booking before deleting the session")
            self.booking_repo.delete(slot)
        return True

    def delete_group_slot(self, slot_id: int) -> bool:
        with atomic(self.db):
            slot = self.booking_repo.get_group_slot(slot_id)
            if not slot:
                raise NotFoundError(f"Group session not found: {slot_id}")
            if slot.participants:
                raise ConflictError("Cancel all participants before deleting the class")
            self.booking_repo.delete(slot)
        return True

    # ------------------------------------------------------------------

    def _check_refs(self, request: TimeSlotCreateRequest) -> None:
        if not self.booking_repo.get_activity(request.activity_id):
            raise NotFoundError(f"Activity not found: {request.activity_id}")
        if not self.booking_repo.get_coach(request.coach_id):
            raise NotFoundError(f"Coach not found: {request.coach_id}")

    def _lock_user(self, user_id: str) -> User:
        user = self.user_repo.get_for_update(user_id)
        if not user:
            raise NotFoundError(f"User not found: {user_id}")
        return user

    @staticmethod
    def _activity(activity) -> Activity:
        if activity is None:
            raise NotFoundError("Activity not found for this session")
        return activity

    def _settle(
        self,
        user: User,
        activity: Activity,
        token_currency: Currency,
        types: Tuple[TransactionType, TransactionType, TransactionType],
    ) -> Tuple[str, Decimal]:
        """세션 요금 결제 - (결제 수단, 금액) 반환"""
        token_type, free_type, credit_type = types
        column = BALANCE_COLUMNS[token_currency]

        if getattr(user, column) > 0:
            setattr(user, column, getattr(user, column) - 1)
            draft = TransactionDraft(
                currency=token_currency,
                amount=Decimal(-1),
                type=token_type,
                description=f"Booked {activity.name} with 1 {token_currency.value}",
            )
            paid_with, amount = "token", Decimal(1)
        elif user.is_free:
            draft = TransactionDraft(
                currency=Currency.NONE,
                amount=ZERO,
                type=free_type,
                description=f"Booked {activity.name} as a free member",
            )
            paid_with, amount = "free", ZERO
        elif user.wallet >= activity.credits:
            user.wallet = user.wallet - activity.credits
            draft = TransactionDraft(
                currency=Currency.CREDITS,
                amount=-activity.credits,
                type=credit_type,
                description=f"Booked {activity.name} for {activity.credits} credits",
            )
            paid_with, amount = "credits", activity.credits
        else:
            raise InsufficientFundsError("Not enough credits or tokens")

        self.transaction_repo.record(user.user_id, [draft])
        return paid_with, amount
