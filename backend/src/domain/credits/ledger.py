"""
Credit Ledger - per-company balance of AI-scan credits.

The ledger is the only shared mutable state in the document pipeline.
Debits are a single conditional UPDATE:

    UPDATE credit_ledger SET balance = balance - :amount
    WHERE company_id = :company_id AND balance >= :amount
    RETURNING balance

so concurrent callers are serialized by the database row lock and the
balance can never go negative. Each operation runs in its own short
transaction and never holds a lock across a network call.
"""

import logging
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session, sessionmaker

from models.base import utcnow
from models.credit import CreditAccount, CreditTransaction, CreditTransactionReason

logger = logging.getLogger(__name__)


@dataclass
class DebitResult:
    """Outcome of try_debit.

    Attributes:
        ok: True if the amount was debited
        new_balance: Balance after the debit, or the unchanged balance when ok is False
    """
    ok: bool
    new_balance: int


class CreditLedger:
    """
    Credit ledger service.

    - get_balance: current balance (0 if the company has no account yet)
    - try_debit: atomic debit iff balance >= amount; never raises for
      insufficient funds
    - credit: increase balance (purchases, refunds of unused reservations)
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def get_balance(self, company_id: UUID) -> int:
        with self._session_factory() as session:
            balance = session.execute(
                select(CreditAccount.balance).where(CreditAccount.company_id == company_id)
            ).scalar_one_or_none()
        return balance or 0

    def try_debit(
        self,
        company_id: UUID,
        amount: int,
        reason: CreditTransactionReason = CreditTransactionReason.AI_SCAN,
        reference: Optional[str] = None,
    ) -> DebitResult:
        """
        Atomically decrement the balance iff it covers amount.

        Args:
            company_id: Company ID
            amount: Credits to debit (must be positive)
            reason: Transaction reason recorded with the debit
            reference: Free-form reference (e.g. document ids)

        Returns:
            DebitResult(ok, new_balance)

        Raises:
            ValueError: If amount is not positive
        """
        if amount <= 0:
            raise ValueError(f"Debit amount must be positive, got {amount}")

        with self._session_factory() as session, session.begin():
            new_balance = session.execute(
                update(CreditAccount)
                .where(
                    CreditAccount.company_id == company_id,
                    CreditAccount.balance >= amount,
                )
                .values(balance=CreditAccount.balance - amount, updated_at=utcnow())
                .returning(CreditAccount.balance)
                .execution_options(synchronize_session=False)
            ).scalar_one_or_none()

            if new_balance is None:
                current = self._read_balance(session, company_id)
                logger.info(
                    f"Credit debit refused: company_id={company_id}, "
                    f"amount={amount}, balance={current}"
                )
                return DebitResult(ok=False, new_balance=current)

            session.add(CreditTransaction(
                company_id=company_id,
                delta=-amount,
                balance_after=new_balance,
                reason=reason,
                reference=reference,
            ))

        logger.info(
            f"Credits debited: company_id={company_id}, amount={amount}, "
            f"balance={new_balance}, reason={reason.value}"
        )
        return DebitResult(ok=True, new_balance=new_balance)

    def credit(
        self,
        company_id: UUID,
        amount: int,
        reason: CreditTransactionReason = CreditTransactionReason.PURCHASE,
        reference: Optional[str] = None,
    ) -> int:
        """
        Increase the balance, opening the account if needed.

        Returns:
            int: Balance after the credit

        Raises:
            ValueError: If amount is not positive
        """
        if amount <= 0:
            raise ValueError(f"Credit amount must be positive, got {amount}")

        with self._session_factory() as session, session.begin():
            new_balance = session.execute(
                update(CreditAccount)
                .where(CreditAccount.company_id == company_id)
                .values(balance=CreditAccount.balance + amount, updated_at=utcnow())
                .returning(CreditAccount.balance)
                .execution_options(synchronize_session=False)
            ).scalar_one_or_none()

            if new_balance is None:
                session.add(CreditAccount(company_id=company_id, balance=amount))
                new_balance = amount

            session.add(CreditTransaction(
                company_id=company_id,
                delta=amount,
                balance_after=new_balance,
                reason=reason,
                reference=reference,
            ))

        logger.info(
            f"Credits added: company_id={company_id}, amount={amount}, "
            f"balance={new_balance}, reason={reason.value}"
        )
        return new_balance

    def list_transactions(self, company_id: UUID, limit: int = 50) -> list[CreditTransaction]:
        with self._session_factory() as session:
            rows = session.execute(
                select(CreditTransaction)
                .where(CreditTransaction.company_id == company_id)
                .order_by(CreditTransaction.created_at.desc())
                .limit(limit)
            ).scalars().all()
            session.expunge_all()
        return list(rows)

    @staticmethod
    def _read_balance(session: Session, company_id: UUID) -> int:
        return session.execute(
            select(CreditAccount.balance).where(CreditAccount.company_id == company_id)
        ).scalar_one_or_none() or 0
