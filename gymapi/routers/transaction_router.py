from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query

from gymapi.core.auth_middleware import get_current_user, require_admin
from gymapi.deps import get_transaction_service
from gymapi.models.transaction import Currency, TransactionType
from gymapi.schemas.auth import AuthenticatedUser
from gymapi.schemas.transaction import (
    TransactionFilters,
    TransactionListResponse,
    TransactionSummaryResponse,
)
from gymapi.services.transaction_service import TransactionService

router = APIRouter(prefix="/transactions", tags=["transactions"])


@router.get("/me", response_model=TransactionListResponse)
async def my_transactions(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    current_user: AuthenticatedUser = Depends(get_current_user),
    transaction_service: TransactionService = Depends(get_transaction_service),
) -> TransactionListResponse:
    """내 거래 내역 (최신순)"""
    return transaction_service.list_for_user(current_user.user_id, limit, offset)


@router.get("/admin", response_model=TransactionListResponse)
async def search_transactions(
    user_id: Optional[str] = Query(None),
    type: Optional[TransactionType] = Query(None),
    currency: Optional[Currency] = Query(None),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    _: AuthenticatedUser = Depends(require_admin),
    transaction_service: TransactionService = Depends(get_transaction_service),
) -> TransactionListResponse:
    filters = TransactionFilters(
        user_id=user_id,
        type=type,
        currency=currency,
        date_from=date_from,
        date_to=date_to,
    )
    return transaction_service.search(filters, limit, offset)


@router.get("/admin/summary", response_model=TransactionSummaryResponse)
async def transaction_summary(
    user_id: Optional[str] = Query(None),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    _: AuthenticatedUser = Depends(require_admin),
    transaction_service: TransactionService = Depends(get_transaction_service),
) -> TransactionSummaryResponse:
    """유형/통화별 합계"""
    return transaction_service.summary(
        TransactionFilters(user_id=user_id, date_from=date_from, date_to=date_to)
    )
