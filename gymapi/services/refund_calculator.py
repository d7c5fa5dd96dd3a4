"""
예약 취소 환불 계산기

예약 스냅샷, 액티비티 조건, 사용자 잔액 스냅샷, 해석된 추가 품목 목록을 받아
잔액 변동량과 기록할 거래 목록(RefundPlan)을 계산한다. 저장소에 접근하지 않는 순수 함수.

계산 순서:
1. 세션 환불 - 토큰 예약이면 토큰 1개, 무료 회원이면 0(감사용 기록), 아니면 세션 크레딧
2. 추가 품목 환불 - 일반 품목 가격은 크레딧으로, 프로틴 품목은 개당 쉐이크 토큰 1개로
3. 로열티 회수 - 프로틴 환불만큼 펀치를 차감하고, 카드 구간이 내려가면 쉐이크 토큰 2개 회수
4. 재입고 - 환불된 품목 1개당 재고 +1
"""

from decimal import Decimal
from typing import Dict, Sequence, Tuple

from gymapi.core.ledger_rules import (
    LOYALTY_PENALTY_TOKENS,
    ZERO,
    is_protein_item,
    punch_card_tier,
)
from gymapi.models.transaction import Currency, TransactionType
from gymapi.schemas.ledger import (
    ActivityTerms,
    AdditionLine,
    BookingKind,
    BookingSnapshot,
    RefundPlan,
    TransactionDraft,
    UserSnapshot,
)

# (토큰 환불, 무료, 크레딧 환불) 거래 유형
_CANCEL_TYPES: Dict[str, Tuple[TransactionType, TransactionType, TransactionType]] = {
    "individual": (
        TransactionType.INDIVIDUAL_CANCEL_TOKEN,
        TransactionType.INDIVIDUAL_CANCEL_FREE,
        TransactionType.INDIVIDUAL_CANCEL_CREDIT,
    ),
    "group": (
        TransactionType.GROUP_CANCEL_TOKEN,
        TransactionType.GROUP_CANCEL_FREE,
        TransactionType.GROUP_CANCEL_CREDIT,
    ),
    "semi": (
        TransactionType.SEMI_CANCEL_TOKEN,
        TransactionType.SEMI_CANCEL_FREE,
        TransactionType.SEMI_CANCEL_CREDIT,
    ),
}


def session_token_currency(kind: BookingKind, activity: ActivityTerms) -> Currency:
    """예약 종류에 맞는 토큰 통화"""
    if kind == BookingKind.INDIVIDUAL:
        return Currency.PRIVATE_TOKEN
    if activity.semi_private:
        return Currency.SEMI_PRIVATE_TOKEN
    return Currency.PUBLIC_TOKEN


def _session_family(kind: BookingKind, activity: ActivityTerms) -> str:
    if kind == BookingKind.INDIVIDUAL:
        return "individual"
    return "semi" if activity.semi_private else "group"


def compute_cancellation_refund(
    booking: BookingSnapshot,
    activity: ActivityTerms,
    user: UserSnapshot,
    additions: Sequence[AdditionLine],
) -> RefundPlan:
    """취소 1건(참가자 1명)에 대한 환불 계획 계산"""
    token_type, free_type, credit_type = _CANCEL_TYPES[
        _session_family(booking.kind, activity)
    ]
    transactions = []
    credit_delta = ZERO
    token_currency = None
    token_delta = 0

    # 1. 세션 환불
    if booking.booked_with_token:
        token_currency = session_token_currency(booking.kind, activity)
        token_delta = 1
        transactions.append(
            TransactionDraft(
                currency=token_currency,
                amount=Decimal(1),
                type=token_type,
                description=f"Session cancelled: 1 {token_currency.value} refunded",
            )
        )
    elif user.is_free:
        transactions.append(
            TransactionDraft(
                currency=Currency.NONE,
                amount=ZERO,
                type=free_type,
                description="Free session cancelled",
            )
        )
    else:
        credit_delta += activity.credits
        transactions.append(
            TransactionDraft(
                currency=Currency.CREDITS,
                amount=activity.credits,
                type=credit_type,
                description="Session cancelled: session credits refunded",
            )
        )

    # 2. 추가 품목 환불
    other_total = ZERO
    shake_token_refund = 0
    items_to_restock = []
    unresolved_items = []
    for line in additions:
        if is_protein_item(line.name):
            shake_token_refund += 1
        else:
            other_total += line.price
        if line.item_id is None:
            unresolved_items.append(line.name)
        else:
            items_to_restock.append(line.item_id)

    if other_total > ZERO:
        credit_delta += other_total
        transactions.append(
            TransactionDraft(
                currency=Currency.CREDITS,
                amount=other_total,
                type=TransactionType.MARKET_REFUND,
                description="Refund for cancelled session items",
            )
        )
    if shake_token_refund > 0:
        transactions.append(
            TransactionDraft(
                currency=Currency.SHAKE_TOKEN,
                amount=Decimal(shake_token_refund),
                type=TransactionType.SHAKE_TOKEN_REFUND,
                description=f"{shake_token_refund} shake token(s) returned for cancelled protein items",
            )
        )

    # 3. 로열티 회수
    punches_to_deduct = 0
    penalty = 0
    if shake_token_refund > 0 and user.punches > 0:
        punches_to_deduct = min(shake_token_refund, user.punches)
        if punch_card_tier(user.punches) > punch_card_tier(
            user.punches - punches_to_deduct
        ):
            penalty = LOYALTY_PENALTY_TOKENS
        transactions.append(
            TransactionDraft(
                currency=Currency.PUNCHES,
                amount=Decimal(-punches_to_deduct),
                type=TransactionType.PUNCH_REMOVE,
                description="Deducted punches from cancelled protein items",
            )
        )

    gross_shake = user.shake_token + shake_token_refund
    new_shake_token = max(0, gross_shake - penalty)
    penalty_applied = gross_shake - new_shake_token
    if penalty_applied > 0:
        transactions.append(
            TransactionDraft(
                currency=Currency.SHAKE_TOKEN,
                amount=Decimal(-penalty_applied),
                type=TransactionType.LOYALTY_PENALTY,
                description="Loyalty reward penalty for cancelled protein items",
            )
        )

    return RefundPlan(
        credit_delta=credit_delta,
        token_currency=token_currency,
        token_delta=token_delta,
        shake_token_refund=shake_token_refund,
        shake_token_penalty=penalty,
        shake_token_penalty_applied=penalty_applied,
        punches_to_deduct=punches_to_deduct,
        new_punches=user.punches - punches_to_deduct,
        new_shake_token=new_shake_token,
        items_to_restock=items_to_restock,
        unresolved_items=unresolved_items,
        transactions=transactions,
    )
