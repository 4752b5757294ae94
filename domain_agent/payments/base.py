# domain_agent/payments/base.py
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

CENTS = Decimal("0.01")


class PaymentError(Exception):
    """Raised by payment providers when the processor call fails"""


class IntentStatus:
    """Processor-side intent states the workflow cares about"""
    SUCCEEDED = "succeeded"
    PROCESSING = "processing"
    REQUIRES_PAYMENT_METHOD = "requires_payment_method"
    CANCELED = "canceled"


def to_minor_units(amount: Decimal) -> int:
    """Dollars to cents, rounded half-up"""
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor_units(amount: int) -> Decimal:
    """Cents to dollars"""
    return (Decimal(int(amount)) / 100).quantize(CENTS)


@dataclass
class PaymentIntentResult:
    """Standardized response for intent creation"""
    intent_id: str
    client_secret: Optional[str]
    amount: int  # In cents
    currency: str
    status: str


@dataclass
class PaymentConfirmation:
    """Authoritative intent state as re-fetched from the processor"""
    intent_id: str
    status: str
    amount: int
    currency: str
    charge_id: Optional[str] = None
    card_brand: Optional[str] = None
    card_last4: Optional[str] = None
    receipt_url: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == IntentStatus.SUCCEEDED


@dataclass
class RefundResult:
    """Standardized refund response"""
    refund_id: str
    status: str
    amount: int

    @property
    def accepted(self) -> bool:
        return self.status == "succeeded"

    @property
    def pending(self) -> bool:
        return self.status == "pending"


@dataclass
class WebhookEvent:
    """Verified webhook event"""
    id: str
    type: str
    data: Dict[str, Any] = field(default_factory=dict)


class BasePaymentProvider(ABC):
    """Abstract base class for payment providers. All amounts are in cents."""

    @abstractmethod
    async def create_customer(self, email: str, name: str, user_id: str) -> str:
        """Create a billing customer and return its id"""

    @abstractmethod
    async def create_payment_intent(
        self,
        amount: int,
        currency: str,
        customer_id: Optional[str],
        metadata: Optional[Dict[str, Any]] = None
    ) -> PaymentIntentResult:
        """
        Create a payment intent

        Args:
            amount: Amount in smallest currency unit
            currency: ISO currency code
            customer_id: Processor customer id
            metadata: Stored on the intent and echoed back in webhooks
        """

    @abstractmethod
    async def confirm_payment(self, intent_id: str) -> PaymentConfirmation:
        """Re-fetch an intent and its latest charge"""

    @abstractmethod
    async def create_refund(
        self,
        charge_id: str,
        amount: Optional[int] = None,
        reason: Optional[str] = None
    ) -> RefundResult:
        """Refund a charge; amount=None refunds it in full"""

    @abstractmethod
    async def list_payment_methods(self, customer_id: str) -> List[Dict[str, Any]]:
        """Saved cards for a customer"""

    @abstractmethod
    def verify_webhook(self, payload: bytes, signature: str) -> WebhookEvent:
        """Verify the signature and parse the event; raises PaymentError"""
