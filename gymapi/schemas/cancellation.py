from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field


class ShakeTokenDetails(BaseModel):
    returned: int = 0
    penalty: int = 0


class RefundDetails(BaseModel):
    credits: Decimal = Decimal("0")
    token_currency: Optional[str] = None
    tokens: int = 0
    shake_tokens: ShakeTokenDetails = Field(default_factory=ShakeTokenDetails)
    punches_deducted: int = 0


class CancellationNotice(BaseModel):
    """취소 알림 메일 페이로드"""

    user_name: str
    user_email: Optional[str] = None
    activity_name: str
    activity_date: str
    start_time: str
    end_time: str
    coach_name: str
    coach_email: Optional[str] = None
    refund_details: RefundDetails


class CancellationResult(BaseModel):
    """취소 처리 결과 - 실패해도 예외 대신 success=False로 반환"""

    success: bool
    message: Optional[str] = None
    error: Optional[str] = None
    refund: Optional[RefundDetails] = None
    # 카탈로그에서 사라져 재입고하지 못한 품목
    restock_failures: List[str] = Field(default_factory=list)
    cancelled_users: List[str] = Field(default_factory=list)
    notifications: List[CancellationNotice] = Field(default_factory=list, exclude=True)
