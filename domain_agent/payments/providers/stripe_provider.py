# domain_agent/payments/providers/stripe_provider.py
import asyncio
import json
from functools import partial
from typing import Any, Dict, List, Optional

import stripe

from ...config import StripeConfig
from ...logging_config import get_logger
from ..base import (
    BasePaymentProvider,
    PaymentConfirmation,
    PaymentError,
    PaymentIntentResult,
    RefundResult,
    WebhookEvent,
)

logger = get_logger(__name__)

# Stripe only accepts these values for Refund.reason; anything else goes to metadata
STRIPE_REFUND_REASONS = {"duplicate", "fraudulent", "requested_by_customer"}


class StripeProvider(BasePaymentProvider):
    """Stripe payment provider implementation"""

    def __init__(self, config: StripeConfig):
        self.config = config

    async def _call(self, operation: str, fn, *args, **kwargs):
        """
        Run a blocking Stripe SDK call in a worker thread with the configured timeout.

        The api key travels with each request instead of the global stripe.api_key.
        """
        kwargs["api_key"] = self.config.secret_key
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(partial(fn, *args, **kwargs)),
                timeout=self.config.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise PaymentError(f"Stripe {operation} timed out") from e
        except stripe.StripeError as e:
            logger.error(
                f"Stripe {operation} failed",
                extra={"extra_data": {"error": str(e), "code": getattr(e, "code", None)}}
            )
            raise PaymentError(f"Stripe {operation} failed: {e.user_message or str(e)}") from e

    async def create_customer(self, email: str, name: str, user_id: str) -> str:
        customer = await self._call(
            "customer creation",
            stripe.Customer.create,
            email=email,
            name=name,
            metadata={"userId": user_id},
        )
        return customer.id

    async def create_payment_intent(
        self,
        amount: int,
        currency: str,
        customer_id: Optional[str],
        metadata: Optional[Dict[str, Any]] = None
    ) -> PaymentIntentResult:
        """
        Create Stripe PaymentIntent

        Stripe expects amount in cents (100 cents = 1 USD)
        """
        params: Dict[str, Any] = {
            "amount": amount,
            "currency": currency.lower(),  # Stripe requires lowercase
            "metadata": {k: str(v) for k, v in (metadata or {}).items()},
            "automatic_payment_methods": {"enabled": True},
        }
        if customer_id:
            params["customer"] = customer_id

        intent = await self._call("payment intent creation", stripe.PaymentIntent.create, **params)

        return PaymentIntentResult(
            intent_id=intent.id,
            client_secret=intent.client_secret,
            amount=intent.amount,
            currency=intent.currency.upper(),
            status=intent.status,
        )

    async def confirm_payment(self, intent_id: str) -> PaymentConfirmation:
        intent = await self._call(
            "payment retrieval",
            stripe.PaymentIntent.retrieve,
            intent_id,
            expand=["latest_charge"],
        )

        confirmation = PaymentConfirmation(
            intent_id=intent.id,
            status=intent.status,
            amount=intent.amount,
            currency=intent.currency.upper(),
        )

        charge = getattr(intent, "latest_charge", None)
        if isinstance(charge, str):
            confirmation.charge_id = charge
        elif charge is not None:
            details = getattr(charge, "payment_method_details", None)
            card = getattr(details, "card", None) if details else None
            confirmation.charge_id = charge.id
            confirmation.card_brand = getattr(card, "brand", None)
            confirmation.card_last4 = getattr(card, "last4", None)
            confirmation.receipt_url = getattr(charge, "receipt_url", None)

        return confirmation

    async def create_refund(
        self,
        charge_id: str,
        amount: Optional[int] = None,
        reason: Optional[str] = None
    ) -> RefundResult:
        """Create Stripe refund"""
        params: Dict[str, Any] = {"charge": charge_id}
        if amount is not None:
            params["amount"] = amount  # In cents
        if reason in STRIPE_REFUND_REASONS:
            params["reason"] = reason
        elif reason:
            params["metadata"] = {"reason": reason}

        refund = await self._call("refund", stripe.Refund.create, **params)

        return RefundResult(
            refund_id=refund.id,
            status=refund.status,
            amount=refund.amount,
        )

    async def list_payment_methods(self, customer_id: str) -> List[Dict[str, Any]]:
        methods = await self._call(
            "payment method listing",
            stripe.PaymentMethod.list,
            customer=customer_id,
            type="card",
        )
        return [
            {
                "id": method.id,
                "brand": method.card.brand if method.card else None,
                "last4": method.card.last4 if method.card else None,
                "expMonth": method.card.exp_month if method.card else None,
                "expYear": method.card.exp_year if method.card else None,
            }
            for method in methods.data
        ]

    def verify_webhook(self, payload: bytes, signature: str) -> WebhookEvent:
        """
        Verify Stripe webhook signature

        Stripe uses stripe.Webhook.construct_event for verification
        """
        try:
            event = stripe.Webhook.construct_event(
                payload,
                signature,
                self.config.webhook_secret
            )
        except stripe.SignatureVerificationError as e:
            raise PaymentError(f"Invalid signature: {str(e)}") from e
        except ValueError as e:
            raise PaymentError(f"Invalid payload: {str(e)}") from e

        # Signature checked; read the plain JSON body rather than StripeObject internals
        body = json.loads(payload)
        return WebhookEvent(
            id=event.id,
            type=event.type,
            data=body.get("data", {}).get("object", {}),
        )
