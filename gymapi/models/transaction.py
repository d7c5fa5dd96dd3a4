"""
거래 원장 데이터 모델

잔액(크레딧, 토큰, 펀치)의 모든 변동을 기록하는 추가 전용(append-only) 테이블.
레코드는 생성 후 수정/삭제되지 않으며 관리자 리포팅의 유일한 감사 추적이다.
amount 부호: 양수 = 사용자에게 지급, 음수 = 사용자에게서 차감.
"""

import enum
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, Enum, Index, Integer, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from gymapi.models.base import Base


class Currency(str, enum.Enum):
    CREDITS = "credits"
    PRIVATE_TOKEN = "private_token"
    PUBLIC_TOKEN = "public_token"
    SEMI_PRIVATE_TOKEN = "semi_private_token"
    WORKOUT_DAY_TOKEN = "workout_day_token"
    SHAKE_TOKEN = "shake_token"
    PUNCHES = "punches"
    NONE = "none"


class TransactionType(str, enum.Enum):
    # 관리자 잔액 조정
    CREDIT_REFILL = "credit_refill"
    CREDIT_DEDUCTION = "credit_deduction"
    CREDIT_SALE = "credit_sale"
    TOKEN_UPDATE = "token_update"
    ESSENTIALS_UPDATE = "essentials_update"

    # 세션 예약
    INDIVIDUAL_SESSION_CREDIT = "individual_session_credit"
    INDIVIDUAL_SESSION_TOKEN = "individual_session_token"
    INDIVIDUAL_SESSION_FREE = "individual_session_free"
    GROUP_SESSION_CREDIT = "group_session_credit"
    GROUP_SESSION_TOKEN = "group_session_token"
    GROUP_SESSION_FREE = "group_session_free"
    SEMI_SESSION_CREDIT = "semi_session_credit"
    SEMI_SESSION_TOKEN = "semi_session_token"
    SEMI_SESSION_FREE = "semi_session_free"

    # 세션 취소
    INDIVIDUAL_CANCEL_CREDIT = "individual_cancel_credit"
    INDIVIDUAL_CANCEL_TOKEN = "individual_cancel_token"
    INDIVIDUAL_CANCEL_FREE = "individual_cancel_free"
    GROUP_CANCEL_CREDIT = "group_cancel_credit"
    GROUP_CANCEL_TOKEN = "group_cancel_token"
    GROUP_CANCEL_FREE = "group_cancel_free"
    SEMI_CANCEL_CREDIT = "semi_cancel_credit"
    SEMI_CANCEL_TOKEN = "semi_cancel_token"
    SEMI_CANCEL_FREE = "semi_cancel_free"

    # 마켓
    MARKET_PURCHASE = "market_purchase"
    MARKET_REFUND = "market_refund"

    # 번들
    BUNDLE_PURCHASE = "bundle_purchase"
    BUNDLE_VISTA = "bundle_vista"
    BUNDLE_CLASS = "bundle_class"
    BUNDLE_PRIVATE = "bundle_private"
    BUNDLE_SEMI = "bundle_semi"
    BUNDLE_WORKOUT = "bundle_workout"
    BUNDLE_SHAKE = "bundle_shake"
    BUNDLE_ESSENTIAL = "bundle_essential"

    # 쉐이크 토큰 / 펀치 카드
    PUNCH_CARD_REWARD = "punch_card_reward"
    SHAKE_TOKEN_REDEMPTION = "shake_token_redemption"
    SHAKE_TOKEN_REFUND = "shake_token_refund"
    PUNCH_REMOVE = "punch_remove"
    LOYALTY_PENALTY = "loyalty_penalty"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Transaction(Base):
    __tablename__ = "transactions"
    __table_args__ = (
        Index("idx_transactions_user_created", "user_id", "created_at"),
        Index("idx_transactions_type", "type"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    currency: Mapped[Currency] = mapped_column(
        Enum(
            Currency,
            native_enum=False,
            length=32,
            values_callable=_enum_values,
            validate_strings=True,
        ),
        nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    type: Mapped[TransactionType] = mapped_column(
        Enum(
            TransactionType,
            native_enum=False,
            length=40,
            values_callable=_enum_values,
            validate_strings=True,
        ),
        nullable=False,
    )
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self):
        return (
            f"<Transaction(user_id={self.user_id}, type={self.type.value}, "
            f"{self.amount} {self.currency.value})>"
        )
