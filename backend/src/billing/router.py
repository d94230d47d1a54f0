"""Billing endpoints: credit purchases (ADMIN) and the transaction history"""

import logging

from fastapi import APIRouter, Depends, Query

from auth.dependencies import IdentityContext, require_admin
from dependencies import get_credit_ledger
from domain.credits.ledger import CreditLedger
from models.credit import CreditTransactionReason
from .schemas import CreditPurchase

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/billing", tags=["billing"])


@router.post("/credits")
async def purchase_credits(
    purchase: CreditPurchase,
    identity: IdentityContext = Depends(require_admin),
    ledger: CreditLedger = Depends(get_credit_ledger),
):
    """Add purchased credits to the company balance"""
    balance = ledger.credit(
        identity.company_id,
        purchase.amount,
        reason=CreditTransactionReason.PURCHASE,
        reference=purchase.reference,
    )
    logger.info(
        f"Credits purchased: company_id={identity.company_id}, user_id={identity.user_id}, "
        f"amount={purchase.amount}"
    )
    return {"success": True, "data": {"credits": balance, "added": purchase.amount}}


@router.get("/transactions")
async def list_transactions(
    limit: int = Query(50, ge=1, le=500),
    identity: IdentityContext = Depends(require_admin),
    ledger: CreditLedger = Depends(get_credit_ledger),
):
    rows = ledger.list_transactions(identity.company_id, limit=limit)
    return {
        "success": True,
        "data": [
            {
                "id": str(t.id),
                "delta": t.delta,
                "balanceAfter": t.balance_after,
                "reason": t.reason.value,
                "reference": t.reference,
                "createdAt": t.created_at.isoformat() if t.created_at else None,
            }
            for t in rows
        ],
    }
