"""구매 결제 계산 - 프로틴 품목은 쉐이크 토큰 우선, 나머지는 크레딧"""

from decimal import Decimal
from typing import Protocol, Sequence

from gymapi.core.ledger_rules import (
    PUNCH_CARD_REWARD_TOKENS,
    PUNCHES_PER_CARD,
    ZERO,
    is_protein_item,
    punch_card_tier,
)
from gymapi.models.transaction import Currency, TransactionType
from gymapi.schemas.ledger import AdditionLine, PurchaseCharges, TransactionDraft


class PricedItem(Protocol):
    id: int
    name: str
    price: Decimal


def compute_purchase_charges(
    units: Sequence[PricedItem], shake_tokens: int, punches: int
) -> PurchaseCharges:
    """장바구니(수량만큼 펼친 품목 목록)의 결제 방식 계산

    쉐이크 토큰은 장바구니 순서대로 프로틴 품목에 사용되고,
    토큰이 부족하면 나머지 프로틴 품목도 크레딧으로 결제한다.
    프로틴 품목 1개당 펀치 1개, 카드(10펀치)를 채울 때마다 쉐이크 토큰 2개 지급.
    """
    tokens_left = shake_tokens
    credit_total = ZERO
    protein_units = 0
    lines = []

    for unit in units:
        used_token = False
        if is_protein_item(unit.name):
            protein_units += 1
            if tokens_left > 0:
                tokens_left -= 1
                used_token = True
        if not used_token:
            credit_total += unit.price
        lines.append(
            AdditionLine(
                item_id=unit.id, name=unit.name, price=unit.price, used_token=used_token
            )
        )

    tokens_used = shake_tokens - tokens_left
    raw_punches = punches + protein_units
    reward_tokens = (
        punch_card_tier(raw_punches) - punch_card_tier(punches)
    ) * PUNCH_CARD_REWARD_TOKENS

    transactions = []
    if credit_total > ZERO:
        transactions.append(
            TransactionDraft(
                currency=Currency.CREDITS,
                amount=-credit_total,
                type=TransactionType.MARKET_PURCHASE,
                description=f"Market purchase of {len(lines)} item(s)",
            )
        )
    if tokens_used > 0:
        transactions.append(
            TransactionDraft(
                currency=Currency.SHAKE_TOKEN,
                amount=Decimal(-tokens_used),
                type=TransactionType.SHAKE_TOKEN_REDEMPTION,
                description=f"{tokens_used} shake token(s) used for protein items",
            )
        )
    if reward_tokens > 0:
        transactions.append(
            TransactionDraft(
                currency=Currency.SHAKE_TOKEN,
                amount=Decimal(reward_tokens),
                type=TransactionType.PUNCH_CARD_REWARD,
                description=f"Punch card completed: {reward_tokens} shake tokens awarded",
            )
        )

    return PurchaseCharges(
        lines=lines,
        credit_total=credit_total,
        shake_tokens_used=tokens_used,
        protein_units=protein_units,
        reward_tokens=reward_tokens,
        new_punches=raw_punches % PUNCHES_PER_CARD,
        new_shake_token=tokens_left + reward_tokens,
        transactions=transactions,
    )
