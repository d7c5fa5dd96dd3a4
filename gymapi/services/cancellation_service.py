import logging
from collections import Counter
from typing import Callable, Dict, List, Sequence, Tuple

from sqlalchemy.orm import Session

from gymapi.core.exceptions import BaseAPIException, NotFoundError, UnauthorizedError
from gymapi.core.ledger_rules import BALANCE_COLUMNS
from gymapi.database.session import atomic
from gymapi.models.booking import GroupTimeSlot
from gymapi.models.catalog import Activity
from gymapi.models.user import User
from gymapi.repositories.booking_repository import BookingRepository
from gymapi.repositories.market_repository import MarketRepository
from gymapi.repositories.transaction_repository import TransactionRepository
from gymapi.repositories.user_repository import UserRepository
from gymapi.schemas.cancellation import (
    CancellationNotice,
    CancellationResult,
    RefundDetails,
    ShakeTokenDetails,
)
from gymapi.schemas.ledger import (
    ActivityTerms,
    AdditionLine,
    BookingKind,
    BookingSnapshot,
    RefundPlan,
    UserSnapshot,
)
from gymapi.services.refund_calculator import compute_cancellation_refund

logger = logging.getLogger(__name__)


class CancellationService:
    """예약 취소 오케스트레이터

    예약 조회, 소유자 확인, 환불 계산, 예약/잔액/재고/거래 기록 변경을
    하나의 트랜잭션으로 수행한다. 모든 실패는 CancellationResult(success=False)로 변환되며
    예외를 호출자에게 전파하지 않는다. 알림은 커밋 이후 호출자가 발송한다.
    """

    def __init__(self, db: Session):
        self.db = db
        self.user_repo = UserRepository(db)
        self.booking_repo = BookingRepository(db)
        self.market_repo = MarketRepository(db)
        self.transaction_repo = TransactionRepository(db)

    # ------------------------------------------------------------------
    # 진입점
    # ------------------------------------------------------------------

    def cancel_individual(self, slot_id: int, user_id: str) -> CancellationResult:
        """회원 본인의 개인 세션 취소"""
        return self._run(
            f"individual slot {slot_id} by {user_id}",
            lambda: self._cancel_individual(slot_id, user_id),
        )

    def cancel_individual_as_admin(self, slot_id: int) -> CancellationResult:
        """관리자가 예약자 대신 개인 세션 취소"""
        return self._run(
            f"individual slot {slot_id} by admin",
            lambda: self._cancel_individual(slot_id, None),
        )

    def cancel_group(self, slot_id: int, user_id: str) -> CancellationResult:
        """그룹 세션에서 회원 본인만 취소 - 다른 참가자는 영향 없음"""
        return self._run(
            f"group slot {slot_id} by {user_id}",
            lambda: self._cancel_group(slot_id, user_id),
        )

    def cancel_group_for_all(self, slot_id: int) -> CancellationResult:
        """관리자용 - 모든 참가자를 환불하고 슬롯을 비운다"""
        return self._run(
            f"group slot {slot_id} for all participants",
            lambda: self._cancel_group_for_all(slot_id),
        )

    def _run(
        self, label: str, operation: Callable[[], CancellationResult]
    ) -> CancellationResult:
        try:
            with atomic(self.db):
                result = operation()
            logger.info(f"Cancelled {label}: {result.message}")
            return result
        except BaseAPIException as e:
            logger.warning(f"Cancellation rejected for {label}: {e.message}")
            return CancellationResult(success=False, error=e.message)
        except Exception as e:
            logger.error(f"Cancellation failed for {label}: {str(e)}")
            return CancellationResult(
                success=False, error="Failed to cancel the session"
            )

    # ------------------------------------------------------------------
    # 개인 세션
    # ------------------------------------------------------------------

    def _cancel_individual(self, slot_id: int, user_id) -> CancellationResult:
        slot = self.booking_repo.get_slot(slot_id)
        if not slot:
            raise NotFoundError(f"Session not found: {slot_id}")

        if user_id is None:
            if not slot.booked or not slot.user_id:
                raise NotFoundError("Session is not booked")
            user_id = slot.user_id
        elif not slot.booked or slot.user_id != user_id:
            raise UnauthorizedError("You are not booked on this session")

        user = self._lock_user(user_id)
        activity = self._activity(slot.activity)
        additions = self.resolve_additions(slot.additions)

        plan = compute_cancellation_refund(
            BookingSnapshot(
                kind=BookingKind.INDIVIDUAL, booked_with_token=slot.booked_with_token
            ),
            ActivityTerms.model_validate(activity),
            UserSnapshot.model_validate(user),
            additions,
        )

        slot.release()
        failures = self._apply_plan(user, plan, additions)
        return CancellationResult(
            success=True,
            message=self._message(plan),
            refund=self._refund_details(plan),
            restock_failures=failures,
            cancelled_users=[user_id],
            notifications=[self._notice(user, slot, activity, plan)],
        )

    # ------------------------------------------------------------------
    # 그룹 세션
    # ------------------------------------------------------------------

    def _cancel_group(self, slot_id: int, user_id: str) -> CancellationResult:
        slot = self._group_slot(slot_id)
        participant = slot.find_participant(user_id)
        if participant is None:
            raise UnauthorizedError("You are not booked on this session")

        activity = self._activity(slot.activity)
        plan, failures, notice = self._refund_participant(slot, activity, participant)

        slot.participants.remove(participant)
        slot.sync_occupancy(activity.capacity)
        self.db.flush()

        return CancellationResult(
            success=True,
            message=self._message(plan),
            refund=self._refund_details(plan),
            restock_failures=failures,
            cancelled_users=[user_id],
            notifications=[notice],
        )

    def _cancel_group_for_all(self, slot_id: int) -> CancellationResult:
        slot = self._group_slot(slot_id)
        if not slot.participants:
            raise NotFoundError("Group session has no participants")

        activity = self._activity(slot.activity)
        failures: List[str] = []
        notices: List[CancellationNotice] = []
        cancelled: List[str] = []
        for participant in list(slot.participants):
            _, participant_failures, notice = self._refund_participant(
                slot, activity, participant
            )
            failures.extend(participant_failures)
            notices.append(notice)
            cancelled.append(participant.user_id)

        slot.participants.clear()
        slot.sync_occupancy(activity.capacity)
        self.db.flush()

        return CancellationResult(
            success=True,
            message=f"Group session cancelled for {len(cancelled)} participant(s).",
            restock_failures=failures,
            cancelled_users=cancelled,
            notifications=notices,
        )

    def _refund_participant(
        self, slot: GroupTimeSlot, activity: Activity, participant
    ) -> Tuple[RefundPlan, List[str], CancellationNotice]:
        user = self._lock_user(participant.user_id)
        additions = self.resolve_additions(participant.additions)
        plan = compute_cancellation_refund(
            BookingSnapshot(
                kind=BookingKind.GROUP,
                booked_with_token=participant.booked_with_token,
            ),
            ActivityTerms.model_validate(activity),
            UserSnapshot.model_validate(user),
            additions,
        )
        failures = self._apply_plan(user, plan, additions)
        return plan, failures, self._notice(user, slot, activity, plan)

    # ------------------------------------------------------------------
    # 공통
    # ------------------------------------------------------------------

    def _group_slot(self, slot_id: int) -> GroupTimeSlot:
        slot = self.booking_repo.get_group_slot(slot_id)
        if not slot:
            raise NotFoundError(f"Group session not found: {slot_id}")
        return slot

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

    def resolve_additions(self, raw_additions: Sequence) -> List[AdditionLine]:
        """저장된 추가 품목을 AdditionLine으로 변환

        이름만 저장된 이전 행은 현재 카탈로그에서 이름으로 다시 찾는다.
        찾지 못한 품목은 item_id=None, 가격 0으로 남는다.
        """
        raw_additions = raw_additions or []
        legacy_names = [entry for entry in raw_additions if isinstance(entry, str)]
        catalog = self.market_repo.find_by_names(legacy_names) if legacy_names else {}

        lines = []
        for entry in raw_additions:
            if not isinstance(entry, str):
                lines.append(AdditionLine.model_validate(entry))
                continue
            item = catalog.get(entry.lower())
            if item is None:
                logger.warning(f"Addition '{entry}' no longer exists in the catalog")
                lines.append(AdditionLine(name=entry))
            else:
                lines.append(
                    AdditionLine(item_id=item.id, name=item.name, price=item.price)
                )
        return lines

    def _apply_plan(
        self, user: User, plan: RefundPlan, additions: Sequence[AdditionLine]
    ) -> List[str]:
        """잔액 갱신, 재입고, 거래 기록 - 재입고하지 못한 품목명 목록 반환"""
        user.wallet = user.wallet + plan.credit_delta
        if plan.token_delta and plan.token_currency is not None:
            column = BALANCE_COLUMNS[plan.token_currency]
            setattr(user, column, getattr(user, column) + plan.token_delta)
        user.shake_token = plan.new_shake_token
        user.punches = plan.new_punches

        names: Dict[int, str] = {
            line.item_id: line.name for line in additions if line.item_id is not None
        }
        failures = list(plan.unresolved_items)
        for item_id, quantity in Counter(plan.items_to_restock).items():
            if not self.market_repo.restock(item_id, quantity):
                logger.warning(f"Could not restock item {item_id}: not in catalog")
                failures.append(names.get(item_id, str(item_id)))

        self.transaction_repo.record(user.user_id, plan.transactions)
        self.db.flush()
        return failures

    @staticmethod
    def _message(plan: RefundPlan) -> str:
        message = "Session cancelled successfully."
        if plan.shake_token_refund > 0:
            message += f" {plan.shake_token_refund} shake tokens returned."
        if plan.shake_token_penalty_applied > 0:
            message += (
                f" {plan.shake_token_penalty_applied} tokens deducted"
                " as loyalty reward penalty."
            )
        return message

    @staticmethod
    def _refund_details(plan: RefundPlan) -> RefundDetails:
        return RefundDetails(
            credits=plan.credit_delta,
            token_currency=plan.token_currency.value if plan.token_currency else None,
            tokens=plan.token_delta,
            shake_tokens=ShakeTokenDetails(
                returned=plan.shake_token_refund,
                penalty=plan.shake_token_penalty_applied,
            ),
            punches_deducted=plan.punches_to_deduct,
        )

    def _notice(self, user: User, slot, activity: Activity, plan: RefundPlan) -> CancellationNotice:
        coach = slot.coach
        return CancellationNotice(
            user_name=user.full_name,
            user_email=user.email,
            activity_name=activity.name,
            activity_date=slot.date.isoformat(),
            start_time=slot.start_time.strftime("%H:%M"),
            end_time=slot.end_time.strftime("%H:%M"),
            coach_name=coach.name if coach else "",
            coach_email=coach.email if coach else None,
            refund_details=self._refund_details(plan),
        )
