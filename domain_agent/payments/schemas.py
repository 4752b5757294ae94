from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import Field

from ..schemas import CamelModel
from .models import TransactionStatus, TransactionType


class CreateIntentRequest(CamelModel):
    domain: str = Field(..., min_length=3, max_length=100)
    amount: int = Field(..., gt=0, description="Amount in cents")
    currency: str = Field("usd", min_length=3, max_length=3)
    metadata: Dict[str, Any] = Field(default_factory=dict)


class RefundRequest(CamelModel):
    amount: Optional[float] = Field(None, gt=0, description="Amount in major units; omit for a full refund")
    reason: Optional[str] = Field(None, max_length=200)


class TransactionOut(CamelModel):
    id: UUID
    user_id: UUID
    domain_id: UUID
    type: TransactionType
    status: TransactionStatus
    amount: float
    currency: str
    payment_method: str
    payment_intent_id: Optional[str] = None
    charge_id: Optional[str] = None
    card_last4: Optional[str] = None
    card_brand: Optional[str] = None
    receipt_url: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class TransactionHistoryItem(TransactionOut):
    domain: Optional[str] = None

    @classmethod
    def from_row(cls, transaction, full_domain: Optional[str]) -> "TransactionHistoryItem":
        # Validating the ORM row directly would read the lazy Transaction.domain relationship
        fields = TransactionOut.model_validate(transaction).model_dump()
        return cls(**fields, domain=full_domain)
