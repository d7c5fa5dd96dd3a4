from decimal import Decimal
from typing import List, Sequence, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from gymapi.models.transaction import Transaction as TransactionModel
from gymapi.repositories.base import BaseRepository
from gymapi.schemas.ledger import TransactionDraft
from gymapi.schemas.transaction import (
    TransactionFilters,
    TransactionResponse,
    TransactionTotal,
)


class TransactionRepository(BaseRepository[TransactionModel, TransactionResponse]):
    """거래 원장 리포지토리 - 추가(insert)와 조회만 제공"""

    def __init__(self, db: Session):
        super().__init__(TransactionModel, TransactionResponse, db)

    def record(self, user_id: str, drafts: Sequence[TransactionDraft]) -> int:
        """거래 레코드 일괄 추가 - 추가된 건수 반환"""
        rows = [
            TransactionModel(
                user_id=user_id,
                currency=draft.currency,
                amount=draft.amount,
                type=draft.type,
                description=draft.description,
            )
            for draft in drafts
        ]
        self.db.add_all(rows)
        self.db.flush()
        return len(rows)

    def _apply_filters(self, query, filters: TransactionFilters):
        if filters.user_id:
            query = query.filter(TransactionModel.user_id == filters.user_id)
        if filters.type:
            query = query.filter(TransactionModel.type == filters.type)
        if filters.currency:
            query = query.filter(TransactionModel.currency == filters.currency)
        if filters.date_from:
            query = query.filter(TransactionModel.created_at >= filters.date_from)
        if filters.date_to:
            query = query.filter(TransactionModel.created_at <= filters.date_to)
        return query

    def search(
        self, filters: TransactionFilters, limit: int = 50, offset: int = 0
    ) -> Tuple[List[TransactionResponse], int]:
        query = self._apply_filters(self.db.query(TransactionModel), filters)
        total = query.count()
        rows = (
            query.order_by(TransactionModel.created_at.desc(), TransactionModel.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return self._to_schemas(rows), total

    def totals(self, filters: TransactionFilters) -> List[TransactionTotal]:
        """유형/통화별 합계"""
        query = self.db.query(
            TransactionModel.type,
            TransactionModel.currency,
            func.count(TransactionModel.id),
            func.coalesce(func.sum(TransactionModel.amount), 0),
        )
        query = self._apply_filters(query, filters)
        rows = (
            query.group_by(TransactionModel.type, TransactionModel.currency)
            .order_by(TransactionModel.type)
            .all()
        )
        return [
            TransactionTotal(
                type=tx_type,
                currency=currency,
                count=count,
                amount=Decimal(str(amount)),
            )
            for tx_type, currency, count, amount in rows
        ]
