from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class MarketItemResponse(BaseModel):
    """마켓 품목"""

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="품목 ID")
    name: str = Field(..., description="품목명")
    price: Decimal = Field(..., description="가격 (크레딧)")
    quantity: int = Field(..., description="재고 수량")
    clothe: bool = Field(False, description="의류 여부")
    image: Optional[str] = Field(None, description="이미지 URL")


class MarketItemCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    price: Decimal = Field(..., ge=0)
    quantity: int = Field(0, ge=0)
    clothe: bool = False
    image: Optional[str] = None


class MarketItemUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    price: Optional[Decimal] = Field(None, ge=0)
    quantity: Optional[int] = Field(None, ge=0)
    clothe: Optional[bool] = None
    image: Optional[str] = None


class AdditionsPurchaseRequest(BaseModel):
    """세션 추가 품목 구매 (같은 품목을 여러 번 넣으면 수량으로 취급)"""

    item_ids: List[int] = Field(..., min_length=1, description="품목 ID 목록")


class CartLine(BaseModel):
    item_id: int
    quantity: int = Field(..., ge=1, le=100)


class CheckoutRequest(BaseModel):
    items: List[CartLine] = Field(..., min_length=1)


class PurchaseResult(BaseModel):
    success: bool = True
    message: str
    credits_charged: Decimal = Decimal("0")
    shake_tokens_used: int = 0
    punches_added: int = 0
    reward_tokens: int = 0
    punches: int = 0
    order_id: Optional[int] = None


class OrderItemCount(BaseModel):
    item_id: int
    name: str
    quantity: int


class MarketOrderResponse(BaseModel):
    id: int
    user_id: str
    user_name: str = ""
    items: List[OrderItemCount] = Field(default_factory=list)
    price: Decimal
    claimed: bool
    created_at: Optional[datetime] = None
