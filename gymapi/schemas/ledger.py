"""환불/결제 계산기의 입력과 출력 값 객체"""

import enum
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from gymapi.models.transaction import Currency, TransactionType


class BookingKind(str, enum.Enum):
    INDIVIDUAL = "individual"
    GROUP = "group"


class AdditionLine(BaseModel):
    """예약에 추가된 품목 1개 (구매 시점 가격 보존)"""

    model_config = ConfigDict(from_attributes=True)

    item_id: Optional[int] = Field(None, description="마켓 품목 ID (해석 불가 시 None)")
    name: str = Field(..., description="품목명")
    price: Decimal = Field(Decimal("0"), ge=0, description="구매 시점 가격")
    used_token: bool = Field(False, description="쉐이크 토큰으로 결제했는지 여부")


class BookingSnapshot(BaseModel):
    kind: BookingKind
    booked_with_token: bool = False


class ActivityTerms(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    credits: Decimal = Field(..., ge=0)
    semi_private: bool = False


class UserSnapshot(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    is_free: bool = False
    punches: int = Field(0, ge=0)
    shake_token: int = Field(0, ge=0)


class TransactionDraft(BaseModel):
    """아직 저장되지 않은 거래 레코드"""

    currency: Currency
    amount: Decimal
    type: TransactionType
    description: str = ""


class RefundPlan(BaseModel):
    credit_delta: Decimal = Field(Decimal("0"), ge=0)
    token_currency: Optional[Currency] = None
    token_delta: int = Field(0, ge=0, le=1)
    shake_token_refund: int = Field(0, ge=0)
    shake_token_penalty: int = Field(0, ge=0)
    # 잔액 0 하한 때문에 실제로 회수된 페널티 (penalty 이하)
    shake_token_penalty_applied: int = Field(0, ge=0)
    punches_to_deduct: int = Field(0, ge=0)
    new_punches: int = Field(0, ge=0)
    new_shake_token: int = Field(0, ge=0)
    items_to_restock: List[int] = Field(default_factory=list)
    unresolved_items: List[str] = Field(default_factory=list)
    transactions: List[TransactionDraft] = Field(default_factory=list)


class PurchaseCharges(BaseModel):
    lines: List[AdditionLine] = Field(default_factory=list)
    credit_total: Decimal = Field(Decimal("0"), ge=0)
    shake_tokens_used: int = Field(0, ge=0)
    protein_units: int = Field(0, ge=0)
    reward_tokens: int = Field(0, ge=0)
    new_punches: int = Field(0, ge=0)
    new_shake_token: int = Field(0, ge=0)
    transactions: List[TransactionDraft] = Field(default_factory=list)
