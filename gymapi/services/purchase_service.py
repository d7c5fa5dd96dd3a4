import logging
from collections import Counter
from typing import List, Sequence

from sqlalchemy.orm import Session

from gymapi.core.exceptions import (
    InsufficientFundsError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from gymapi.database.session import atomic
from gymapi.models.user import User
from gymapi.repositories.booking_repository import BookingRepository
from gymapi.repositories.market_repository import MarketRepository
from gymapi.repositories.transaction_repository import TransactionRepository
from gymapi.repositories.user_repository import UserRepository
from gymapi.schemas.ledger import PurchaseCharges
from gymapi.schemas.market import CheckoutRequest, MarketItemResponse, PurchaseResult
from gymapi.services.purchase_calculator import compute_purchase_charges

logger = logging.getLogger(__name__)


class PurchaseService:
    """마켓 구매 - 세션 추가 품목(개인/그룹)과 매장 주문"""

    def __init__(self, db: Session):
        self.db = db
        self.user_repo = UserRepository(db)
        self.booking_repo = BookingRepository(db)
        self.market_repo = MarketRepository(db)
        self.transaction_repo = TransactionRepository(db)

    def pay_for_items(
        self, slot_id: int, user_id: str, item_ids: List[int]
    ) -> PurchaseResult:
        """개인 세션에 추가 품목 구매"""
        with atomic(self.db):
            slot = self.booking_repo.get_slot(slot_id)
            if not slot:
                raise NotFoundError(f"Session not found: {slot_id}")
            if not slot.booked or slot.user_id != user_id:
                raise UnauthorizedError("You are not booked on this session")

            user = self._lock_user(user_id)
            charges = self._charge(user, self._units(item_ids))
            slot.additions = list(slot.additions or []) + [
                line.model_dump(mode="json") for line in charges.lines
            ]
            self.db.flush()

        logger.info(
            f"User {user_id} bought {len(item_ids)} item(s) for slot {slot_id}: "
            f"{charges.credit_total} credits, {charges.shake_tokens_used} shake tokens"
        )
        return self._result(charges, "Items added to time slot successfully.")

    def pay_for_group_items(
        self, slot_id: int, user_id: str, item_ids: List[int]
    ) -> PurchaseResult:
        """그룹 세션에 본인 몫의 추가 품목 구매"""
        with atomic(self.db):
            slot = self.booking_repo.get_group_slot(slot_id)
            if not slot:
                raise NotFoundError(f"Group session not found: {slot_id}")
            participant = slot.find_participant(user_id)
            if participant is None:
                raise UnauthorizedError("You are not booked on this session")

            user = self._lock_user(user_id)
            charges = self._charge(user, self._units(item_ids))
            participant.additions = list(participant.additions or []) + [
                line.model_dump(mode="json") for line in charges.lines
            ]
            self.db.flush()

        logger.info(
            f"User {user_id} bought {len(item_ids)} item(s) for group slot {slot_id}"
        )
        return self._result(charges, "Items added to group time slot successfully.")

    def handle_purchase(self, user_id: str, request: CheckoutRequest) -> PurchaseResult:
        """매장/의류 주문 - 수령 대기 주문(market_transactions) 생성"""
        with atomic(self.db):
            user = self._lock_user(user_id)
            item_ids = [
                line.item_id for line in request.items for _ in range(line.quantity)
            ]
            charges = self._charge(user, self._units(item_ids))
            order = self.market_repo.create_order(
                user_id=user_id, item_ids=item_ids, price=charges.credit_total
            )

        logger.info(f"User {user_id} placed market order {order.id}")
        result = self._result(charges, "Purchase successful!")
        result.order_id = order.id
        return result

    # ------------------------------------------------------------------

    def _lock_user(self, user_id: str) -> User:
        user = self.user_repo.get_for_update(user_id)
        if not user:
            raise NotFoundError(f"User not found: {user_id}")
        return user

    def _units(self, item_ids: Sequence[int]) -> List[MarketItemResponse]:
        """품목 ID 목록을 카탈로그 품목 목록으로 (순서와 중복 유지)"""
        if not item_ids:
            raise ValidationError("Cart is empty")
        catalog = self.market_repo.get_items(item_ids)
        missing = sorted({item_id for item_id in item_ids if item_id not in catalog})
        if missing:
            raise NotFoundError(
                "Market item not found", details={"item_ids": missing}
            )
        return [catalog[item_id] for item_id in item_ids]

    def _charge(self, user: User, units: List[MarketItemResponse]) -> PurchaseCharges:
        """결제 계산, 잔액 확인, 재고 차감, 잔액 갱신, 거래 기록"""
        charges = compute_purchase_charges(units, user.shake_token, user.punches)
        if charges.credit_total > user.wallet:
            raise InsufficientFundsError(
                "Insufficient funds",
                details={
                    "required": str(charges.credit_total),
                    "available": str(user.wallet),
                },
            )

        names = {unit.id: unit.name for unit in units}
        for item_id, quantity in Counter(unit.id for unit in units).items():
            if not self.market_repo.take_stock(item_id, quantity):
                raise ValidationError(
                    f"{names[item_id]} is out of stock",
                    details={"item_id": item_id, "requested": quantity},
                )

        user.wallet = user.wallet - charges.credit_total
        user.shake_token = charges.new_shake_token
        user.punches = charges.new_punches
        self.transaction_repo.record(user.user_id, charges.transactions)
        return charges

    @staticmethod
    def _result(charges: PurchaseCharges, prefix: str) -> PurchaseResult:
        if charges.reward_tokens > 0:
            message = (
                f"{prefix} Punch card completed, "
                f"{charges.reward_tokens} shake tokens awarded!"
            )
        else:
            message = f"{prefix} You have {charges.new_punches} punches on your card."
        return PurchaseResult(
            message=message,
            credits_charged=charges.credit_total,
            shake_tokens_used=charges.shake_tokens_used,
            punches_added=charges.protein_units,
            reward_tokens=charges.reward_tokens,
            punches=charges.new_punches,
        )
