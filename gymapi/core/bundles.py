"""판매 번들 카탈로그"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Optional

from gymapi.models.transaction import Currency, TransactionType


@dataclass(frozen=True)
class Bundle:
    code: str
    name: str
    price: Decimal
    grant_type: TransactionType
    grants: Dict[Currency, int] = field(default_factory=dict)


ESSENTIALS_PRICE = Decimal("30")
ESSENTIALS_MONTHS = 1

BUNDLES: Dict[str, Bundle] = {
    bundle.code: bundle
    for bundle in (
        Bundle(
            code="vista_finale",
            name="Vista Finale",
            price=Decimal("750"),
            grant_type=TransactionType.BUNDLE_VISTA,
            grants={
                Currency.PRIVATE_TOKEN: 20,
                Currency.PUBLIC_TOKEN: 10,
                Currency.SHAKE_TOKEN: 10,
            },
        ),
        Bundle(
            code="class_believe",
            name="BELIEVE",
            price=Decimal("25"),
            grant_type=TransactionType.BUNDLE_CLASS,
            grants={Currency.PUBLIC_TOKEN: 1},
        ),
        Bundle(
            code="class_achieve",
            name="ACHIEVE",
            price=Decimal("100"),
            grant_type=TransactionType.BUNDLE_CLASS,
            grants={Currency.PUBLIC_TOKEN: 5},
        ),
        Bundle(
            code="class_exceed",
            name="EXCEED",
            price=Decimal("150"),
            grant_type=TransactionType.BUNDLE_CLASS,
            grants={Currency.PUBLIC_TOKEN: 10},
        ),
        Bundle(
            code="workout_day",
            name="Workout of the day",
            price=Decimal("200"),
            grant_type=TransactionType.BUNDLE_WORKOUT,
            grants={Currency.WORKOUT_DAY_TOKEN: 10},
        ),
        Bundle(
            code="private_training",
            name="Private training",
            price=Decimal("300"),
            grant_type=TransactionType.BUNDLE_PRIVATE,
            grants={Currency.PRIVATE_TOKEN: 10},
        ),
        Bundle(
            code="semi_private",
            name="Semi-Private",
            price=Decimal("250"),
            grant_type=TransactionType.BUNDLE_SEMI,
            grants={Currency.SEMI_PRIVATE_TOKEN: 10},
        ),
        Bundle(
            code="protein_pack",
            name="Protein shake pack",
            price=Decimal("40"),
            grant_type=TransactionType.BUNDLE_SHAKE,
            grants={Currency.SHAKE_TOKEN: 10},
        ),
    )
}


def get_bundle(code: str) -> Optional[Bundle]:
    return BUNDLES.get(code)
