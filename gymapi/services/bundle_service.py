import calendar
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from gymapi.core.bundles import BUNDLES, ESSENTIALS_MONTHS, ESSENTIALS_PRICE, get_bundle
from gymapi.core.exceptions import InsufficientFundsError, NotFoundError, ValidationError
from gymapi.core.ledger_rules import BALANCE_COLUMNS
from gymapi.database.session import atomic
from gymapi.models.transaction import Currency, TransactionType
from gymapi.models.user import User
from gymapi.repositories.transaction_repository import TransactionRepository
from gymapi.repositories.user_repository import UserRepository
from gymapi.schemas.bundle import (
    BundleCatalogResponse,
    BundlePurchaseResult,
    BundleResponse,
)
from gymapi.schemas.ledger import TransactionDraft

logger = logging.getLogger(__name__)


def add_months(value: datetime, months: int) -> datetime:
    """월 단위 더하기 (말일은 해당 월의 마지막 날로 보정)"""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class BundleService:
    """크레딧으로 토큰 번들/Essentials 구매"""

    def __init__(self, db: Session):
        self.db = db
        self.user_repo = UserRepository(db)
        self.transaction_repo = TransactionRepository(db)

    def list_bundles(self) -> BundleCatalogResponse:
        bundles: List[BundleResponse] = [
            BundleResponse(
                code=bundle.code,
                name=bundle.name,
                price=bundle.price,
                grants={currency.value: n for currency, n in bundle.grants.items()},
            )
            for bundle in BUNDLES.values()
        ]
        return BundleCatalogResponse(bundles=bundles, essentials_price=ESSENTIALS_PRICE)

    def purchase_bundle(self, user_id: str, code: str) -> BundlePurchaseResult:
        bundle = get_bundle(code)
        if bundle is None:
            raise ValidationError(f"Unknown bundle: {code}")

        with atomic(self.db):
            user = self._lock_user(user_id)
            self._debit(user, bundle.price, f"Purchased {bundle.name} bundle")

            grants = []
            for currency, amount in bundle.grants.items():
                column = BALANCE_COLUMNS[currency]
                setattr(user, column, getattr(user, column) + amount)
                grants.append(
                    TransactionDraft(
                        currency=currency,
                        amount=Decimal(amount),
                        type=bundle.grant_type,
                        description=f"{bundle.name} bundle: +{amount} {currency.value}",
                    )
                )
            self.transaction_repo.record(user_id, grants)

        logger.info(f"User {user_id} purchased bundle {bundle.code}")
        return BundlePurchaseResult(
            message=f"{bundle.name} bundle purchased successfully.",
            wallet=user.wallet,
            essential_till=user.essential_till,
        )

    def purchase_essentials(
        self, user_id: str, now: Optional[datetime] = None
    ) -> BundlePurchaseResult:
        """Essentials 구독 - 만료일을 max(현재, 기존 만료일) 기준 1개월 연장"""
        now = _as_utc(now) or datetime.now(timezone.utc)

        with atomic(self.db):
            user = self._lock_user(user_id)
            self._debit(user, ESSENTIALS_PRICE, "Purchased Essentials membership")

            current = _as_utc(user.essential_till)
            base = current if current and current > now else now
            user.essential_till = add_months(base, ESSENTIALS_MONTHS)
            self.transaction_repo.record(
                user_id,
                [
                    TransactionDraft(
                        currency=Currency.NONE,
                        amount=Decimal(0),
                        type=TransactionType.BUNDLE_ESSENTIAL,
                        description=f"Essentials active until {user.essential_till.date().isoformat()}",
                    )
                ],
            )

        logger.info(f"User {user_id} extended essentials to {user.essential_till}")
        return BundlePurchaseResult(
            message="Essentials membership extended.",
            wallet=user.wallet,
            essential_till=user.essential_till,
        )

    def _lock_user(self, user_id: str) -> User:
        user = self.user_repo.get_for_update(user_id)
        if not user:
            raise NotFoundError(f"User not found: {user_id}")
        return user

    def _debit(self, user: User, price: Decimal, description: str) -> None:
        if user.wallet < price:
            raise InsufficientFundsError(
                "Insufficient funds",
                details={"required": str(price), "available": str(user.wallet)},
            )
        user.wallet = user.wallet - price
        self.transaction_repo.record(
            user.user_id,
            [
                TransactionDraft(
                    currency=Currency.CREDITS,
                    amount=-price,
                    type=TransactionType.BUNDLE_PURCHASE,
                    description=description,
                )
            ],
        )
