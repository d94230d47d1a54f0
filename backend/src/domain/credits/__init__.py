"""AI-scan credit ledger"""

from .ledger import CreditLedger, DebitResult

__all__ = ["CreditLedger", "DebitResult"]
