"""
원장(Ledger) 비즈니스 상수

펀치 카드, 로열티 페널티, 프로틴 품목 판별 규칙을 한 곳에 모아둔다.
값이 바뀌면 기존 거래 내역의 의미가 달라지므로 환경 변수로 노출하지 않는다.
"""

from decimal import Decimal

from gymapi.models.transaction import Currency

# 펀치 카드 한 장을 채우는 펀치 수
PUNCHES_PER_CARD = 10

# 카드 한 장을 채울 때 지급되는 쉐이크 토큰
PUNCH_CARD_REWARD_TOKENS = 2

# 취소로 보상 구간을 되돌릴 때 회수하는 쉐이크 토큰 (구간 수와 무관한 고정값)
LOYALTY_PENALTY_TOKENS = 2

PROTEIN_KEYWORDS = ("protein shake", "protein pudding")

ZERO = Decimal("0")

# 통화별 users 테이블 잔액 컬럼
BALANCE_COLUMNS = {
    Currency.CREDITS: "wallet",
    Currency.PRIVATE_TOKEN: "private_token",
    Currency.SEMI_PRIVATE_TOKEN: "semi_private_token",
    Currency.PUBLIC_TOKEN: "public_token",
    Currency.WORKOUT_DAY_TOKEN: "workout_day_token",
    Currency.SHAKE_TOKEN: "shake_token",
    Currency.PUNCHES: "punches",
}


def is_protein_item(name: str) -> bool:
    """이름에 'protein shake' 또는 'protein pudding'이 포함되면 프로틴 품목"""
    lowered = (name or "").lower()
    return any(keyword in lowered for keyword in PROTEIN_KEYWORDS)


def punch_card_tier(punches: int) -> int:
    return punches // PUNCHES_PER_CARD
