from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class UserBalance(BaseModel):
    """회원 잔액 조회 응답"""

    model_config = ConfigDict(from_attributes=True)

    user_id: str = Field(..., description="사용자 식별자")
    first_name: str = ""
    last_name: str = ""
    email: Optional[str] = None
    wallet: Decimal = Field(..., description="크레딧 잔액")
    private_token: int = 0
    semi_private_token: int = 0
    public_token: int = 0
    workout_day_token: int = 0
    shake_token: int = 0
    punches: int = 0
    is_free: bool = False
    essential_till: Optional[datetime] = None
    refill_date: Optional[datetime] = None


class UserCreate(BaseModel):
    user_id: str = Field(..., min_length=1)
    first_name: str = ""
    last_name: str = ""
    email: Optional[EmailStr] = None
    wallet: Decimal = Field(Decimal("0"), ge=0)


class TokenUpdates(BaseModel):
    """토큰 증감량 (결과 잔액은 0 미만으로 내려가지 않음)"""

    private_token: int = 0
    semi_private_token: int = 0
    public_token: int = 0
    workout_day_token: int = 0
    shake_token: int = 0


class AdminBalanceUpdateRequest(BaseModel):
    wallet: Decimal = Field(..., ge=0, description="새 크레딧 잔액")
    new_credits: Optional[Decimal] = Field(
        None, description="관리자가 입력한 충전/차감 크레딧 (미입력 시 잔액 차이)"
    )
    sale: Optional[int] = Field(None, ge=0, le=100, description="보너스 % (충전 시)")
    tokens: TokenUpdates = Field(default_factory=TokenUpdates)
    essential_till: Optional[datetime] = None


class FreeStatusRequest(BaseModel):
    is_free: bool
