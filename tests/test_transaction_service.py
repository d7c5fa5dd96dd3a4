from decimal import Decimal

from gymapi.models.transaction import Currency, TransactionType
from gymapi.repositories.transaction_repository import TransactionRepository
from gymapi.schemas.ledger import TransactionDraft
from gymapi.schemas.transaction import TransactionFilters
from gymapi.services.transaction_service import TransactionService


def _record(db, user_id, *drafts):
    TransactionRepository(db).record(user_id, list(drafts))
    db.commit()


def _draft(currency, amount, tx_type):
    return TransactionDraft(currency=currency, amount=Decimal(amount), type=tx_type)


class TestTransactionService:
    """거래 원장 조회 테스트"""

    def test_list_for_user_newest_first(self, db):
        # Given
        _record(
            db,
            "alice",
            _draft(Currency.CREDITS, "-50", TransactionType.INDIVIDUAL_SESSION_CREDIT),
            _draft(Currency.CREDITS, "50", TransactionType.INDIVIDUAL_CANCEL_CREDIT),
        )
        _record(db, "bob", _draft(Currency.CREDITS, "10", TransactionType.CREDIT_REFILL))

        # When
        result = TransactionService(db).list_for_user("alice")

        # Then
        assert result.total_count == 2
        assert result.has_next is False
        assert [t.type for t in result.transactions] == [
            TransactionType.INDIVIDUAL_CANCEL_CREDIT,
            TransactionType.INDIVIDUAL_SESSION_CREDIT,
        ]

    def test_search_pagination(self, db):
        _record(
            db,
            "alice",
            *[
                _draft(Currency.SHAKE_TOKEN, "1", TransactionType.SHAKE_TOKEN_REFUND)
                for _ in range(5)
            ],
        )

        page = TransactionService(db).search(TransactionFilters(), limit=2, offset=2)

        assert len(page.transactions) == 2
        assert page.total_count == 5
        assert page.has_next is True

    def test_search_by_type_and_currency(self, db):
        _record(
            db,
            "alice",
            _draft(Currency.CREDITS, "5", TransactionType.MARKET_REFUND),
            _draft(Currency.SHAKE_TOKEN, "1", TransactionType.SHAKE_TOKEN_REFUND),
        )

        page = TransactionService(db).search(
            TransactionFilters(currency=Currency.SHAKE_TOKEN)
        )

        assert [t.type for t in page.transactions] == [TransactionType.SHAKE_TOKEN_REFUND]

    def test_summary_splits_credit_flows(self, db):
        _record(
            db,
            "alice",
            _draft(Currency.CREDITS, "100", TransactionType.CREDIT_REFILL),
            _draft(Currency.CREDITS, "-50", TransactionType.INDIVIDUAL_SESSION_CREDIT),
            _draft(Currency.CREDITS, "-25", TransactionType.INDIVIDUAL_SESSION_CREDIT),
            _draft(Currency.SHAKE_TOKEN, "2", TransactionType.PUNCH_CARD_REWARD),
        )

        summary = TransactionService(db).summary(TransactionFilters(user_id="alice"))

        assert summary.credits_in == Decimal("100")
        assert summary.credits_out == Decimal("75")
        sessions = next(
            t for t in summary.totals if t.type == TransactionType.INDIVIDUAL_SESSION_CREDIT
        )
        assert sessions.count == 2
        assert sessions.amount == Decimal("-75")
