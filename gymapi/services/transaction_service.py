import logging

from sqlalchemy.orm import Session

from gymapi.core.ledger_rules import ZERO
from gymapi.models.transaction import Currency
from gymapi.repositories.transaction_repository import TransactionRepository
from gymapi.schemas.transaction import (
    TransactionFilters,
    TransactionListResponse,
    TransactionSummaryResponse,
)

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 200


class TransactionService:
    """거래 원장 조회 (읽기 전용)"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = TransactionRepository(db)

    def list_for_user(
        self, user_id: str, limit: int = 50, offset: int = 0
    ) -> TransactionListResponse:
        return self.search(TransactionFilters(user_id=user_id), limit, offset)

    def search(
        self, filters: TransactionFilters, limit: int = 50, offset: int = 0
    ) -> TransactionListResponse:
        limit = min(limit, MAX_PAGE_SIZE)
        rows, total = self.repo.search(filters, limit=limit, offset=offset)
        return TransactionListResponse(
            transactions=rows,
            total_count=total,
            has_next=offset + len(rows) < total,
        )

    def summary(self, filters: TransactionFilters) -> TransactionSummaryResponse:
        """유형/통화별 합계와 크레딧 유입/유출"""
        totals = self.repo.totals(filters)
        credits_in = sum(
            (t.amount for t in totals if t.currency == Currency.CREDITS and t.amount > ZERO),
            ZERO,
        )
        credits_out = sum(
            (-t.amount for t in totals if t.currency == Currency.CREDITS and t.amount < ZERO),
            ZERO,
        )
        logger.info(f"Transaction summary computed over {len(totals)} group(s)")
        return TransactionSummaryResponse(
            totals=totals, credits_in=credits_in, credits_out=credits_out
        )
