from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, DateTime, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from gymapi.models.base import BaseModel


class User(BaseModel):
    """회원 잔액 레코드

    크레딧(wallet), 다섯 종류의 토큰, 펀치 카드 카운터를 보관한다.
    잔액 변경은 원장 서비스만 수행하며 레코드는 삭제되지 않는다.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # 외부 인증 제공자의 사용자 식별자 (JWT sub)
    user_id: Mapped[str] = mapped_column(
        String(64), unique=True, nullable=False, index=True
    )
    first_name: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    wallet: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=Decimal("0"), nullable=False
    )
    private_token: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    semi_private_token: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    public_token: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    workout_day_token: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    shake_token: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    punches: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # 세션 예약 크레딧 면제 (마켓 구매는 면제 대상 아님)
    is_free: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    essential_till: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    refill_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self):
        return f"<User(user_id={self.user_id}, wallet={self.wallet})>"
