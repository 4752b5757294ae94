# domain_agent/purchases/service.py
"""
Domain purchase workflow.

Coordinates the registrar, the payment processor and the database:

    initiate_purchase -> create_payment_intent -> confirm_payment -> (refund)

Invariants:
- Only one Domain row per full_domain may be active (pending,
  payment_completed, registered). The partial unique index enforces it; the
  lookups here only short-circuit the common case.
- A Domain becomes `registered` only after the processor itself reports the
  intent as succeeded and the registrar accepted the registration.
- When payment succeeded but registration did not, the Domain is parked in
  `payment_completed` for manual follow-up.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..domains.models import ACTIVE_DOMAIN_STATUSES, Domain, DomainStatus
from ..domains.pricing import price_for, renewal_price, round_money, split_domain_name, transfer_pricing
from ..error_handlers import (
    BusinessRuleException,
    ConflictException,
    DomainUnavailableException,
    ErrorCode,
    ExternalServiceException,
    NotFoundException,
    PaymentException,
    ValidationException,
)
from ..logging_config import get_logger, log_business_event
from ..notifications.service import Notifier
from ..payments.base import BasePaymentProvider, PaymentConfirmation, PaymentError, from_minor_units, to_minor_units
from ..payments.models import Transaction, TransactionStatus, TransactionType
from ..registrar.base import BaseRegistrar, ContactInfo, RegistrarError
from ..users.models import User

logger = get_logger(__name__)

DOMAIN_TAKEN_MESSAGE = "This domain is no longer available for purchase"

# Transactions in these states are final; confirming them again is a no-op
_SETTLED_STATUSES = (
    TransactionStatus.COMPLETED,
    TransactionStatus.REFUNDED,
    TransactionStatus.CANCELLED,
)


def _contact_from_profile(user: User) -> Dict[str, Any]:
    profile = user.profile or {}
    address = profile.get("address") or {}
    first_name, _, last_name = (user.name or "").partition(" ")
    return {
        "firstName": first_name,
        "lastName": last_name or first_name,
        "email": user.email,
        "phone": profile.get("phone", ""),
        "address": address.get("street", ""),
        "city": address.get("city", ""),
        "state": address.get("state", ""),
        "postalCode": address.get("zipCode", ""),
        "country": address.get("country", ""),
    }


class DomainPurchaseService:
    """Purchase, renewal, transfer and refund of domains"""

    def __init__(
        self,
        db: AsyncSession,
        registrar: BaseRegistrar,
        payments: BasePaymentProvider,
        notifier: Notifier,
    ):
        self.db = db
        self.registrar = registrar
        self.payments = payments
        self.notifier = notifier

    # ========================================================================
    # HELPERS
    # ========================================================================

    async def _active_domain(self, full_domain: str) -> Optional[Domain]:
        return await self.db.scalar(
            select(Domain).where(
                Domain.full_domain == full_domain,
                Domain.status.in_(ACTIVE_DOMAIN_STATUSES),
            )
        )

    async def _insert_domain(self, domain: Domain):
        """Flush a new Domain; losing the unique-index race is a 409"""
        full_domain = domain.full_domain
        self.db.add(domain)
        try:
            await self.db.flush()
        except IntegrityError:
            await self.db.rollback()
            logger.warning(
                "Concurrent purchase lost the race for domain",
                extra={"extra_data": {"domain": full_domain}}
            )
            raise ConflictException(DOMAIN_TAKEN_MESSAGE, error_code=ErrorCode.DOMAIN_ALREADY_TAKEN)

    def _registrar_unavailable(self, operation: str, error: Exception) -> ExternalServiceException:
        logger.error(
            f"Registrar call failed: {operation}",
            extra={"extra_data": {"error": str(error)}},
            exc_info=True
        )
        return ExternalServiceException(
            service_name="Domain Registrar",
            message="Domain registrar is temporarily unavailable",
            error_code=ErrorCode.REGISTRAR_ERROR,
        )

    def _payments_unavailable(self, operation: str, error: Exception) -> ExternalServiceException:
        logger.error(
            f"Payment provider call failed: {operation}",
            extra={"extra_data": {"error": str(error)}},
            exc_info=True
        )
        return ExternalServiceException(
            service_name="Payment Gateway",
            message="Payment service is temporarily unavailable",
            error_code=ErrorCode.PAYMENT_GATEWAY_ERROR,
        )

    @staticmethod
    def _split(domain: str) -> Tuple[str, str, str]:
        name, extension, full_domain = split_domain_name(domain)
        if not name or not extension:
            raise ValidationException("Valid domain name is required")
        return name, extension, full_domain

    # ========================================================================
    # PURCHASE
    # ========================================================================

    async def initiate_purchase(
        self,
        user: User,
        domain: str,
        years: int,
        contact_info: Dict[str, Any],
        request_meta: Dict[str, Any],
    ) -> Tuple[Domain, Transaction]:
        user_id = user.id
        name, extension, full_domain = self._split(domain)

        if await self._active_domain(full_domain):
            raise DomainUnavailableException(full_domain)

        try:
            availability = await self.registrar.check_availability(full_domain)
        except RegistrarError as e:
            raise self._registrar_unavailable("check availability", e)

        if not availability.available:
            raise DomainUnavailableException(full_domain)

        pricing = price_for(availability.price, availability.currency)
        domain_row = Domain(
            name=name,
            extension=extension,
            full_domain=full_domain,
            status=DomainStatus.PENDING,
            owner_id=user_id,
            registrar="namecheap",
            cost=pricing.cost,
            markup=pricing.markup,
            selling_price=pricing.selling_price,
            currency=pricing.currency,
            dns_records=[],
            tags=[],
            domain_metadata={},
        )
        await self._insert_domain(domain_row)

        transaction = Transaction(
            user_id=user_id,
            domain_id=domain_row.id,
            type=TransactionType.PURCHASE,
            status=TransactionStatus.PENDING,
            amount=round_money(pricing.selling_price * years),
            currency=pricing.currency,
            payment_method="stripe",
            request_metadata={
                "years": years,
                "contactInfo": contact_info,
                **request_meta,
            },
        )
        self.db.add(transaction)
        await self.db.commit()

        log_business_event(
            "domain_purchase_initiated",
            user_id=str(user_id),
            domain=full_domain,
            years=years,
            amount=str(transaction.amount),
        )
        return domain_row, transaction

    async def create_payment_intent(
        self,
        user: User,
        domain: str,
        amount_cents: int,
        currency: str,
        metadata: Optional[Dict[str, Any]],
        request_meta: Dict[str, Any],
    ) -> Dict[str, Any]:
        user_id = user.id
        name, extension, full_domain = self._split(domain)

        domain_row = await self._active_domain(full_domain)
        if domain_row is not None and domain_row.owner_id != user_id:
            raise ConflictException(DOMAIN_TAKEN_MESSAGE, error_code=ErrorCode.DOMAIN_ALREADY_TAKEN)

        if domain_row is None:
            cost = from_minor_units(amount_cents)
            domain_row = Domain(
                name=name,
                extension=extension,
                full_domain=full_domain,
                status=DomainStatus.PENDING,
                owner_id=user_id,
                registrar="namecheap",
                cost=cost,
                markup=Decimal("0"),
                selling_price=cost,
                currency=currency.upper(),
                dns_records=[],
                tags=[],
                domain_metadata={},
            )
            await self._insert_domain(domain_row)

        try:
            customer_id = user.stripe_customer_id
            if not customer_id:
                customer_id = await self.payments.create_customer(user.email, user.name, str(user_id))
                user.stripe_customer_id = customer_id

            # Stripe metadata values must be strings
            intent_metadata = {str(k): str(v) for k, v in (metadata or {}).items()}
            intent_metadata.update({
                "userId": str(user_id),
                "domainId": str(domain_row.id),
                "domain": full_domain,
                "type": TransactionType.PURCHASE.value,
            })
            intent = await self.payments.create_payment_intent(
                amount=amount_cents,
                currency=currency,
                customer_id=customer_id,
                metadata=intent_metadata,
            )
        except PaymentError as e:
            await self.db.rollback()
            raise self._payments_unavailable("create payment intent", e)

        transaction = await self.db.scalar(
            select(Transaction)
            .where(
                Transaction.user_id == user_id,
                Transaction.domain_id == domain_row.id,
                Transaction.status == TransactionStatus.PENDING,
            )
            .order_by(Transaction.created_at.desc())
            .limit(1)
        )
        if transaction is None:
            transaction = Transaction(
                user_id=user_id,
                domain_id=domain_row.id,
                type=TransactionType.PURCHASE,
                status=TransactionStatus.PENDING,
                amount=from_minor_units(amount_cents),
                currency=currency.upper(),
                payment_method="stripe",
                request_metadata={"years": 1, **request_meta},
            )
            self.db.add(transaction)
        transaction.payment_intent_id = intent.intent_id
        await self.db.commit()

        log_business_event(
            "payment_intent_created",
            user_id=str(user_id),
            domain=full_domain,
            payment_intent_id=intent.intent_id,
            amount=amount_cents,
            currency=currency,
        )
        return {
            "clientSecret": intent.client_secret,
            "paymentIntentId": intent.intent_id,
            "amount": intent.amount,
            "currency": intent.currency,
        }

    async def confirm_payment(self, user: User, payment_intent_id: str) -> Dict[str, Any]:
        user_id = user.id
        transaction = await self.db.scalar(
            select(Transaction).where(
                Transaction.payment_intent_id == payment_intent_id,
                Transaction.user_id == user_id,
            )
        )
        if transaction is None:
            raise NotFoundException("Transaction not found", resource="transaction")

        domain_row = await self.db.get(Domain, transaction.domain_id)

        # A webhook may have completed the purchase transaction before the
        # client confirmed; registration is still owed in that case.
        awaiting_registration = (
            transaction.status == TransactionStatus.COMPLETED
            and transaction.type == TransactionType.PURCHASE
            and domain_row.status == DomainStatus.PENDING
        )

        if transaction.status in _SETTLED_STATUSES and not awaiting_registration:
            logger.info(
                "Payment already processed (idempotent)",
                extra={"user_id": str(user_id), "extra_data": {"payment_intent_id": payment_intent_id}}
            )
            return self._confirmation_result(transaction, domain_row)

        if not awaiting_registration:
            try:
                confirmation = await self.payments.confirm_payment(payment_intent_id)
            except PaymentError as e:
                raise self._payments_unavailable("retrieve payment intent", e)

            if not confirmation.succeeded:
                logger.info(
                    "Payment not completed",
                    extra={
                        "user_id": str(user_id),
                        "extra_data": {"payment_intent_id": payment_intent_id, "status": confirmation.status}
                    }
                )
                raise PaymentException(
                    "Payment not completed",
                    details={"paymentStatus": confirmation.status},
                )

            self._apply_confirmation(transaction, confirmation)
            await self.db.commit()

            log_business_event(
                "payment_confirmed",
                user_id=str(user_id),
                transaction_id=str(transaction.id),
                payment_intent_id=payment_intent_id,
                amount=str(transaction.amount),
            )

        if transaction.type == TransactionType.PURCHASE:
            await self._register_after_payment(user, transaction, domain_row)
        elif transaction.type == TransactionType.TRANSFER:
            domain_row.status = DomainStatus.REGISTERED
            domain_row.registration_date = datetime.now(timezone.utc)
            await self.db.commit()

        return self._confirmation_result(transaction, domain_row)

    @staticmethod
    def _apply_confirmation(transaction: Transaction, confirmation: PaymentConfirmation):
        transaction.status = TransactionStatus.COMPLETED
        transaction.charge_id = confirmation.charge_id
        transaction.card_brand = confirmation.card_brand
        transaction.card_last4 = confirmation.card_last4
        transaction.receipt_url = confirmation.receipt_url

    @staticmethod
    def _confirmation_result(transaction: Transaction, domain_row: Domain) -> Dict[str, Any]:
        return {
            "transaction": transaction,
            "domain": domain_row,
            "registrationSucceeded": domain_row.status == DomainStatus.REGISTERED,
        }

    async def _register_after_payment(self, user: User, transaction: Transaction, domain_row: Domain) -> bool:
        metadata = transaction.request_metadata or {}
        years = int(metadata.get("years") or 1)
        contact = ContactInfo.from_dict(metadata.get("contactInfo") or _contact_from_profile(user))

        result = None
        try:
            result = await self.registrar.register(domain_row.full_domain, years, contact)
        except RegistrarError as e:
            logger.error(
                "Domain registration failed after payment",
                extra={
                    "user_id": str(user.id),
                    "extra_data": {"domain": domain_row.full_domain, "error": str(e)}
                },
                exc_info=True
            )

        if result is not None and result.success:
            now = datetime.now(timezone.utc)
            domain_row.status = DomainStatus.REGISTERED
            domain_row.registration_date = now
            domain_row.expiration_date = now + timedelta(days=365 * years)
            if result.registration_id:
                domain_row.domain_metadata = {
                    **(domain_row.domain_metadata or {}),
                    "registrationId": result.registration_id,
                }
            await self.db.commit()

            log_business_event(
                "domain_registered",
                user_id=str(user.id),
                domain=domain_row.full_domain,
                years=years,
                registration_id=result.registration_id,
            )
            self.notifier.dispatch(
                self.notifier.send_purchase_confirmation(
                    user.email,
                    user.name,
                    domain_row.full_domain,
                    f"{transaction.amount:.2f}",
                    transaction.currency,
                ),
                label=f"purchase_confirmation:{domain_row.full_domain}",
            )
            return True

        # Paid but not registered: park it for manual follow-up
        domain_row.status = DomainStatus.PAYMENT_COMPLETED
        await self.db.commit()
        log_business_event(
            "registration_failed",
            user_id=str(user.id),
            domain=domain_row.full_domain,
            transaction_id=str(transaction.id),
        )
        return False

    # ========================================================================
    # REFUND / RENEWAL / TRANSFER
    # ========================================================================

    async def refund(
        self,
        user: User,
        transaction_id,
        amount: Optional[float] = None,
        reason: Optional[str] = None,
    ) -> Dict[str, Any]:
        user_id = user.id
        transaction = await self.db.scalar(
            select(Transaction).where(
                Transaction.id == transaction_id,
                Transaction.user_id == user_id,
                Transaction.status == TransactionStatus.COMPLETED,
            )
        )
        if transaction is None:
            raise NotFoundException("Transaction not found or cannot be refunded", resource="transaction")

        if not transaction.charge_id:
            raise BusinessRuleException(
                "No charge found for this transaction",
                error_code=ErrorCode.REFUND_FAILED,
            )

        refund_amount = round_money(Decimal(str(amount))) if amount is not None else None
        try:
            result = await self.payments.create_refund(
                transaction.charge_id,
                amount=to_minor_units(refund_amount) if refund_amount is not None else None,
                reason=reason,
            )
        except PaymentError as e:
            raise self._payments_unavailable("create refund", e)

        refund_info = {
            "id": result.refund_id,
            "status": result.status,
            "amount": float(from_minor_units(result.amount)),
        }
        domain_row = await self.db.get(Domain, transaction.domain_id)

        if result.pending:
            # Nothing changes until the processor settles it (charge.refunded webhook)
            logger.info(
                "Refund pending with processor",
                extra={
                    "user_id": str(user_id),
                    "extra_data": {"transaction_id": str(transaction.id), "refund_id": result.refund_id}
                }
            )
            return {"transaction": transaction, "domain": domain_row, "refund": refund_info, "pending": True}

        if not result.accepted:
            raise PaymentException(
                "Refund failed",
                error_code=ErrorCode.REFUND_FAILED,
                details={"refundStatus": result.status},
            )

        full_refund = refund_amount is None or refund_amount >= transaction.amount
        self._apply_refund(transaction, domain_row, reason, full_refund)
        await self.db.commit()

        log_business_event(
            "refund_processed",
            user_id=str(user_id),
            transaction_id=str(transaction.id),
            refund_id=result.refund_id,
            amount=str(refund_amount if refund_amount is not None else transaction.amount),
            full_refund=full_refund,
        )
        return {"transaction": transaction, "domain": domain_row, "refund": refund_info, "pending": False}

    @staticmethod
    def _apply_refund(transaction: Transaction, domain_row: Optional[Domain], reason: Optional[str], full_refund: bool):
        transaction.status = TransactionStatus.REFUNDED
        if reason:
            transaction.notes = reason
        if full_refund and domain_row is not None:
            domain_row.status = DomainStatus.REFUNDED

    async def renew(self, user: User, domain_id, years: int, request_meta: Dict[str, Any]) -> Tuple[Transaction, Decimal]:
        user_id = user.id
        domain_row = await self.db.scalar(
            select(Domain).where(Domain.id == domain_id, Domain.owner_id == user_id)
        )
        if domain_row is None:
            raise NotFoundException("Domain not found", resource="domain")

        if domain_row.status != DomainStatus.REGISTERED:
            raise BusinessRuleException(
                "Only registered domains can be renewed",
                error_code=ErrorCode.INVALID_DOMAIN_STATE,
                details={"status": domain_row.status.value},
            )

        price = renewal_price(domain_row.cost, years)
        transaction = Transaction(
            user_id=user_id,
            domain_id=domain_row.id,
            type=TransactionType.RENEWAL,
            status=TransactionStatus.PENDING,
            amount=price,
            currency=domain_row.currency,
            payment_method="stripe",
            request_metadata={"years": years, **request_meta},
        )
        self.db.add(transaction)
        await self.db.commit()

        log_business_event(
            "renewal_initiated",
            user_id=str(user_id),
            domain=domain_row.full_domain,
            years=years,
            amount=str(price),
        )
        return transaction, price

    async def transfer(
        self,
        user: User,
        domain: str,
        auth_code: str,
        request_meta: Dict[str, Any],
    ) -> Tuple[Domain, Transaction]:
        user_id = user.id
        name, extension, full_domain = self._split(domain)

        if await self._active_domain(full_domain):
            raise ConflictException(DOMAIN_TAKEN_MESSAGE, error_code=ErrorCode.DOMAIN_ALREADY_TAKEN)

        pricing = transfer_pricing()
        domain_row = Domain(
            name=name,
            extension=extension,
            full_domain=full_domain,
            status=DomainStatus.PENDING,
            owner_id=user_id,
            registrar="namecheap",
            cost=pricing.cost,
            markup=pricing.markup,
            selling_price=pricing.selling_price,
            currency=pricing.currency,
            dns_records=[],
            tags=[],
            domain_metadata={"transferAuthCode": auth_code},
        )
        await self._insert_domain(domain_row)

        transaction = Transaction(
            user_id=user_id,
            domain_id=domain_row.id,
            type=TransactionType.TRANSFER,
            status=TransactionStatus.PENDING,
            amount=pricing.selling_price,
            currency=pricing.currency,
            payment_method="stripe",
            request_metadata=dict(request_meta),
        )
        self.db.add(transaction)
        await self.db.commit()

        log_business_event(
            "transfer_initiated",
            user_id=str(user_id),
            domain=full_domain,
            amount=str(pricing.selling_price),
        )
        return domain_row, transaction

    # ========================================================================
    # WEBHOOK
    # ========================================================================

    async def handle_webhook(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        """
        Processor callback. Moves transactions between pending and
        completed/failed and settles refunds the processor reported as
        pending; registration stays with confirm_payment.
        """
        try:
            event = self.payments.verify_webhook(payload, signature or "")
        except PaymentError as e:
            logger.warning(
                "Webhook verification failed",
                extra={"extra_data": {"error": str(e)}}
            )
            raise ValidationException("Webhook error")

        intent_id = event.data.get("id")
        logger.info(
            f"Webhook received: {event.type}",
            extra={"extra_data": {"event_id": event.id, "payment_intent_id": intent_id}}
        )

        if event.type in ("payment_intent.succeeded", "payment_intent.payment_failed") and intent_id:
            transaction = await self.db.scalar(
                select(Transaction).where(
                    Transaction.payment_intent_id == intent_id,
                    Transaction.status == TransactionStatus.PENDING,
                )
            )
            if transaction is None:
                logger.info(
                    "No pending transaction for webhook intent",
                    extra={"extra_data": {"payment_intent_id": intent_id}}
                )
            elif event.type == "payment_intent.succeeded":
                transaction.status = TransactionStatus.COMPLETED
                latest_charge = event.data.get("latest_charge")
                if isinstance(latest_charge, str):
                    transaction.charge_id = latest_charge
                await self.db.commit()
            else:
                transaction.status = TransactionStatus.FAILED
                await self.db.commit()
        elif event.type == "charge.refunded":
            await self._settle_refund(event.data)
        else:
            logger.info(f"Unhandled webhook event type: {event.type}")

        return {"received": True}

    async def _settle_refund(self, charge: Dict[str, Any]):
        """Apply a refund the processor settled after reporting it as pending"""
        transaction = await self.db.scalar(
            select(Transaction).where(
                Transaction.charge_id == charge.get("id"),
                Transaction.status == TransactionStatus.COMPLETED,
            )
        )
        if transaction is None:
            logger.info(
                "No completed transaction for refunded charge",
                extra={"extra_data": {"charge_id": charge.get("id")}}
            )
            return

        domain_row = await self.db.get(Domain, transaction.domain_id)
        full_refund = bool(charge.get("refunded"))
        self._apply_refund(transaction, domain_row, None, full_refund)
        await self.db.commit()

        log_business_event(
            "refund_processed",
            user_id=str(transaction.user_id),
            transaction_id=str(transaction.id),
            amount=str(from_minor_units(charge.get("amount_refunded") or 0)),
            full_refund=full_refund,
        )

    async def payment_methods(self, user: User) -> List[Dict[str, Any]]:
        if not user.stripe_customer_id:
            return []
        try:
            return await self.payments.list_payment_methods(user.stripe_customer_id)
        except PaymentError as e:
            raise self._payments_unavailable("list payment methods", e)

    # ========================================================================
    # HISTORY
    # ========================================================================

    async def history(self, user: User, page: int, limit: int, status=None, type_=None):
        user_id = user.id
        conditions = [Transaction.user_id == user_id]
        if status is not None:
            conditions.append(Transaction.status == status)
        if type_ is not None:
            conditions.append(Transaction.type == type_)

        total = await self.db.scalar(select(func.count(Transaction.id)).where(*conditions))
        rows = await self.db.execute(
            select(Transaction, Domain.full_domain)
            .outerjoin(Domain, Transaction.domain_id == Domain.id)
            .where(*conditions)
            .order_by(Transaction.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return rows.all(), total or 0
