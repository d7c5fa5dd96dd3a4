from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from gymapi.models.transaction import Currency, TransactionType


class TransactionResponse(BaseModel):
    """거래 원장 레코드"""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    currency: Currency
    amount: Decimal
    type: TransactionType
    description: Optional[str] = None
    created_at: Optional[datetime] = None


class TransactionListResponse(BaseModel):
    transactions: List[TransactionResponse] = Field(default_factory=list)
    total_count: int = 0
    has_next: bool = False


class TransactionFilters(BaseModel):
    user_id: Optional[str] = None
    type: Optional[TransactionType] = None
    currency: Optional[Currency] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None


class TransactionTotal(BaseModel):
    type: TransactionType
    currency: Currency
    count: int
    amount: Decimal


class TransactionSummaryResponse(BaseModel):
    totals: List[TransactionTotal] = Field(default_factory=list)
    credits_in: Decimal = Field(Decimal("0"), description="사용자에게 지급된 크레딧 합계")
    credits_out: Decimal = Field(Decimal("0"), description="사용자에게서 차감된 크레딧 합계")
