# domain_agent/payments/router.py
"""
Payments API
Endpoints:
- POST /payments/create-intent
- POST /payments/confirm-payment/{payment_intent_id}
- GET  /payments/history
- GET  /payments/payment-methods
- POST /payments/webhook
- POST /payments/refund/{transaction_id}
"""

from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Header, Query, Request

from ..auth.dependencies import CurrentUser
from ..dependencies import get_purchase_service, request_metadata
from ..domains.schemas import DomainOut
from ..purchases.service import DomainPurchaseService
from ..responses import success_response
from ..schemas import Pagination
from . import schemas
from .models import TransactionStatus, TransactionType

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("/create-intent")
async def create_payment_intent(
    body: schemas.CreateIntentRequest,
    user: CurrentUser,
    meta: Dict[str, Any] = Depends(request_metadata),
    service: DomainPurchaseService = Depends(get_purchase_service),
):
    """
    Create a Stripe payment intent for a domain.

    The client completes the payment with the returned client secret and then
    calls confirm-payment.
    """
    intent = await service.create_payment_intent(
        user,
        body.domain,
        body.amount,
        body.currency,
        body.metadata,
        meta,
    )
    return success_response(intent)


@router.post("/confirm-payment/{payment_intent_id}")
async def confirm_payment(
    payment_intent_id: str,
    user: CurrentUser,
    service: DomainPurchaseService = Depends(get_purchase_service),
):
    result = await service.confirm_payment(user, payment_intent_id)
    registered = result["registrationSucceeded"]
    return success_response(
        {
            "transaction": schemas.TransactionOut.model_validate(result["transaction"]),
            "domain": DomainOut.model_validate(result["domain"]),
            "registrationSucceeded": registered,
        },
        message=(
            "Payment confirmed successfully"
            if registered or result["transaction"].type != TransactionType.PURCHASE
            else "Payment confirmed; domain registration is pending"
        ),
    )


@router.get("/history")
async def payment_history(
    user: CurrentUser,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    txn_status: Optional[TransactionStatus] = Query(None, alias="status"),
    txn_type: Optional[TransactionType] = Query(None, alias="type"),
    service: DomainPurchaseService = Depends(get_purchase_service),
):
    rows, total = await service.history(user, page, limit, status=txn_status, type_=txn_type)
    transactions = [
        schemas.TransactionHistoryItem.from_row(transaction, full_domain)
        for transaction, full_domain in rows
    ]
    return success_response({
        "transactions": transactions,
        "pagination": Pagination.build(page, limit, total),
    })


@router.get("/payment-methods")
async def payment_methods(
    user: CurrentUser,
    service: DomainPurchaseService = Depends(get_purchase_service),
):
    return success_response({"paymentMethods": await service.payment_methods(user)})


@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None, alias="stripe-signature"),
    service: DomainPurchaseService = Depends(get_purchase_service),
):
    """Stripe webhook; the raw body is needed for signature verification"""
    payload = await request.body()
    return await service.handle_webhook(payload, stripe_signature)


@router.post("/refund/{transaction_id}")
async def refund_transaction(
    transaction_id: UUID,
    user: CurrentUser,
    body: Optional[schemas.RefundRequest] = None,
    service: DomainPurchaseService = Depends(get_purchase_service),
):
    result = await service.refund(
        user,
        transaction_id,
        amount=body.amount if body else None,
        reason=body.reason if body else None,
    )
    return success_response(
        {
            "transaction": schemas.TransactionOut.model_validate(result["transaction"]),
            "domain": DomainOut.model_validate(result["domain"]),
            "refund": result["refund"],
        },
        message=(
            "Refund is pending with the payment processor"
            if result["pending"]
            else "Refund processed successfully"
        ),
    )
