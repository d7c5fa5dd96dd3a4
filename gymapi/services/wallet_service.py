import logging
import math
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Tuple

from sqlalchemy.orm import Session

from gymapi.core.exceptions import ConflictError, NotFoundError
from gymapi.core.ledger_rules import BALANCE_COLUMNS, ZERO
from gymapi.database.session import atomic
from gymapi.models.transaction import Currency, TransactionType
from gymapi.models.user import User
from gymapi.repositories.transaction_repository import TransactionRepository
from gymapi.repositories.user_repository import UserRepository
from gymapi.schemas.ledger import TransactionDraft
from gymapi.schemas.user import AdminBalanceUpdateRequest, UserBalance, UserCreate

logger = logging.getLogger(__name__)

# 관리자 토큰 조정 대상
TOKEN_CURRENCIES = (
    Currency.PRIVATE_TOKEN,
    Currency.SEMI_PRIVATE_TOKEN,
    Currency.PUBLIC_TOKEN,
    Currency.WORKOUT_DAY_TOKEN,
    Currency.SHAKE_TOKEN,
)


def _amount(value: Decimal) -> str:
    """메일 본문용 금액 문자열 (110.00 -> 110, 12.50 -> 12.5)"""
    return f"{value.normalize():f}"


class WalletService:
    """회원 잔액 조회 및 관리자 잔액 조정"""

    def __init__(self, db: Session):
        self.db = db
        self.user_repo = UserRepository(db)
        self.transaction_repo = TransactionRepository(db)

    def get_balance(self, user_id: str) -> UserBalance:
        balance = self.user_repo.get_by_user_id(user_id)
        if not balance:
            raise NotFoundError(f"User not found: {user_id}")
        return balance

    def register_member(self, request: UserCreate) -> UserBalance:
        """회원 잔액 레코드 생성 (외부 인증 가입 직후 호출)"""
        with atomic(self.db):
            if self.user_repo.get_by_user_id(request.user_id):
                raise ConflictError(f"User already exists: {request.user_id}")
            user = self.user_repo.add(**request.model_dump())
        logger.info(f"Registered member {request.user_id}")
        return UserBalance.model_validate(user)

    def admin_update_balance(
        self, user_id: str, request: AdminBalanceUpdateRequest
    ) -> Tuple[UserBalance, Dict[str, Any]]:
        """관리자 잔액 조정

        wallet은 최종 잔액(세일 보너스 포함), new_credits는 관리자가 입력한 충전/차감액.
        토큰은 증감량으로 적용하며 0 미만이 되지 않는다.

        Returns:
            (변경된 잔액, 충전 알림 페이로드)
        """
        with atomic(self.db):
            user = self._lock_user(user_id)
            drafts = []

            credits_added = request.wallet - user.wallet
            new_credits = (
                request.new_credits if request.new_credits is not None else credits_added
            )
            user.wallet = request.wallet
            user.refill_date = datetime.now(timezone.utc)

            if credits_added != ZERO:
                drafts.append(
                    TransactionDraft(
                        currency=Currency.CREDITS,
                        amount=new_credits,
                        type=(
                            TransactionType.CREDIT_REFILL
                            if credits_added > ZERO
                            else TransactionType.CREDIT_DEDUCTION
                        ),
                        description=f"User wallet updated by {credits_added} credits",
                    )
                )
                if request.sale and credits_added > ZERO:
                    bonus = math.floor(new_credits * request.sale / 100)
                    if bonus > 0:
                        drafts.append(
                            TransactionDraft(
                                currency=Currency.CREDITS,
                                amount=Decimal(bonus),
                                type=TransactionType.CREDIT_SALE,
                                description=f"Free credits from credit refill sale: +{bonus} credits",
                            )
                        )

            requested = request.tokens.model_dump()
            for currency in TOKEN_CURRENCIES:
                column = BALANCE_COLUMNS[currency]
                delta = requested[column]
                if not delta:
                    continue
                current = getattr(user, column)
                updated = max(0, current + delta)
                setattr(user, column, updated)
                if updated != current:
                    drafts.append(
                        TransactionDraft(
                            currency=currency,
                            amount=Decimal(updated - current),
                            type=TransactionType.TOKEN_UPDATE,
                            description=f"{currency.value} update: {updated - current:+d}",
                        )
                    )

            essentials_changed = (
                request.essential_till is not None
                and request.essential_till != user.essential_till
            )
            if essentials_changed:
                user.essential_till = request.essential_till
                drafts.append(
                    TransactionDraft(
                        currency=Currency.NONE,
                        amount=ZERO,
                        type=TransactionType.ESSENTIALS_UPDATE,
                        description=f"Essentials membership updated: till {request.essential_till.date().isoformat()}",
                    )
                )

            self.transaction_repo.record(user_id, drafts)
            self.db.flush()

        logger.info(
            f"Admin updated balance of {user_id}: wallet={user.wallet}, {len(drafts)} transaction(s)"
        )
        payload = {
            "user_name": user.full_name,
            "user_email": user.email,
            "user_wallet": _amount(user.wallet),
            "credits_added": _amount(credits_added),
            "sale": request.sale,
            "new_credits": _amount(new_credits),
            "token_updates": requested,
            "essentials_till": (
                request.essential_till.isoformat() if essentials_changed else None
            ),
        }
        return UserBalance.model_validate(user), payload

    def set_free_status(self, user_id: str, is_free: bool) -> UserBalance:
        with atomic(self.db):
            user = self._lock_user(user_id)
            user.is_free = is_free
        logger.info(f"User {user_id} free status set to {is_free}")
        return UserBalance.model_validate(user)

    def _lock_user(self, user_id: str) -> User:
        user = self.user_repo.get_for_update(user_id)
        if not user:
            raise NotFoundError(f"User not found: {user_id}")
        return user
