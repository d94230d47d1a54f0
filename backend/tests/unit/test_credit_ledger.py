"""Unit tests for the credit ledger (SQLite file database)"""

from concurrent.futures import ThreadPoolExecutor
from uuid import uuid4

import pytest
from sqlalchemy import select

from models.credit import CreditAccount, CreditTransaction, CreditTransactionReason


class TestBalance:

    def test_unknown_company_has_zero_balance(self, ledger):
        assert ledger.get_balance(uuid4()) == 0

    def test_credit_opens_account(self, ledger, company):
        assert ledger.credit(company.id, 25) == 25
        assert ledger.get_balance(company.id) == 25

    def test_credit_adds_to_existing_account(self, ledger, company):
        ledger.credit(company.id, 10)
        assert ledger.credit(company.id, 5) == 15

    @pytest.mark.parametrize("amount", [0, -1])
    def test_non_positive_amounts_rejected(self, ledger, company, amount):
        with pytest.raises(ValueError):
            ledger.credit(company.id, amount)
        with pytest.raises(ValueError):
            ledger.try_debit(company.id, amount)


class TestTryDebit:

    def test_debit_within_balance(self, ledger, company):
        ledger.credit(company.id, 10)
        result = ledger.try_debit(company.id, 4)
        assert result.ok is True
        assert result.new_balance == 6
        assert ledger.get_balance(company.id) == 6

    def test_debit_of_exact_balance(self, ledger, company):
        ledger.credit(company.id, 3)
        result = ledger.try_debit(company.id, 3)
        assert result.ok is True
        assert result.new_balance == 0

    def test_debit_over_balance_refused_without_change(self, ledger, company):
        ledger.credit(company.id, 2)
        result = ledger.try_debit(company.id, 3)
        assert result.ok is False
        assert result.new_balance == 2
        assert ledger.get_balance(company.id) == 2

    def test_debit_without_account_refused(self, ledger, company):
        result = ledger.try_debit(company.id, 1)
        assert result.ok is False
        assert result.new_balance == 0

    def test_concurrent_debits_never_overspend(self, ledger, company):
        """100 concurrent debits of 1 against a balance of 10: exactly 10 succeed"""
        ledger.credit(company.id, 10)

        with ThreadPoolExecutor(max_workers=20) as pool:
            results = list(pool.map(lambda _: ledger.try_debit(company.id, 1), range(100)))

        assert sum(1 for r in results if r.ok) == 10
        assert all(r.new_balance >= 0 for r in results)
        assert ledger.get_balance(company.id) == 0


class TestTransactions:

    def test_every_change_is_recorded(self, ledger, company, db_session):
        ledger.credit(company.id, 10, reference="invoice-1")
        ledger.try_debit(company.id, 3, CreditTransactionReason.AI_SCAN, reference="doc-a,doc-b,doc-c")
        ledger.credit(company.id, 1, CreditTransactionReason.AI_SCAN_REFUND, reference="doc-c")
        ledger.try_debit(company.id, 100)  # refused, not recorded

        rows = db_session.execute(
            select(CreditTransaction).where(CreditTransaction.company_id == company.id)
        ).scalars().all()
        assert sorted((r.delta, r.balance_after, r.reason) for r in rows) == [
            (-3, 7, CreditTransactionReason.AI_SCAN),
            (1, 8, CreditTransactionReason.AI_SCAN_REFUND),
            (10, 10, CreditTransactionReason.PURCHASE),
        ]

    def test_list_transactions_newest_first(self, ledger, company):
        ledger.credit(company.id, 5)
        ledger.try_debit(company.id, 2)
        rows = ledger.list_transactions(company.id)
        assert [r.delta for r in rows] == [-2, 5]

    def test_balance_matches_account_row(self, ledger, company, db_session):
        ledger.credit(company.id, 7)
        ledger.try_debit(company.id, 2)
        account = db_session.get(CreditAccount, company.id)
        assert account.balance == 5
