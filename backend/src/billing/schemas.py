"""Pydantic schemas for billing endpoints"""

from typing import Optional

from pydantic import BaseModel, Field


class CreditPurchase(BaseModel):
    """Credits bought by a company"""
    amount: int = Field(..., gt=0, le=100000)
    reference: Optional[str] = Field(None, max_length=200)
