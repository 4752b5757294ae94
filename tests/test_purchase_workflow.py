"""End-to-end purchase workflow: initiate, pay, confirm, register, refund."""

import json
from datetime import datetime, timedelta, timezone

from sqlalchemy import func, select

from domain_agent.domains.models import Domain, DomainStatus
from domain_agent.payments.models import Transaction, TransactionStatus
from domain_agent.purchases.service import DomainPurchaseService

from .conftest import (
    CONTACT_INFO,
    WEBHOOK_SIGNATURE,
    buy_domain,
    create_intent,
    initiate_purchase,
    register_user,
)


async def domain_rows(db_session, full_domain):
    result = await db_session.scalars(select(Domain).where(Domain.full_domain == full_domain))
    return result.all()


class TestInitiatePurchase:
    async def test_creates_pending_domain_and_transaction(self, client, auth_headers):
        response = await initiate_purchase(client, auth_headers, "BrandTest.com", years=2)

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Domain purchase initiated. Complete payment to finalize."
        data = body["data"]
        assert data["paymentRequired"] is True
        assert data["domain"]["fullDomain"] == "brandtest.com"
        assert data["domain"]["status"] == "pending"
        assert data["domain"]["cost"] == 12.99
        assert data["domain"]["sellingPrice"] == 14.29
        assert data["transaction"]["status"] == "pending"
        assert data["transaction"]["type"] == "purchase"
        assert data["transaction"]["amount"] == 28.58

    async def test_taken_at_registrar(self, client, auth_headers, registrar):
        registrar.taken.add("google.com")
        response = await initiate_purchase(client, auth_headers, "google.com")
        assert response.status_code == 400
        assert response.json()["code"] == "ERR_3000"

    async def test_registrar_outage_is_503(self, client, auth_headers, registrar):
        registrar.unreachable.add("brandtest.com")
        response = await initiate_purchase(client, auth_headers)
        assert response.status_code == 503
        assert response.json()["message"] == "Domain registrar is temporarily unavailable"

    async def test_invalid_contact_is_rejected(self, client, auth_headers):
        response = await client.post(
            "/api/domains/purchase",
            headers=auth_headers,
            json={"domain": "brandtest.com", "contactInfo": {**CONTACT_INFO, "phone": "123"}},
        )
        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "contactInfo.phone"

    async def test_requires_auth(self, client):
        response = await initiate_purchase(client, {})
        assert response.status_code == 401

    async def test_second_buyer_is_rejected_without_duplicates(self, client, auth_headers, db_session):
        assert (await initiate_purchase(client, auth_headers)).status_code == 201
        _, other_headers = await register_user(client, email="other@example.com", name="Other Buyer")

        response = await initiate_purchase(client, other_headers)

        assert response.status_code == 400
        assert response.json()["message"] == "Domain is not available for registration"
        assert len(await domain_rows(db_session, "brandtest.com")) == 1

    async def test_losing_the_race_is_a_conflict(self, client, auth_headers, db_session, monkeypatch):
        assert (await initiate_purchase(client, auth_headers, "racecondition.io")).status_code == 201
        _, other_headers = await register_user(client, email="other@example.com", name="Other Buyer")

        # Both requests passed the lookup; the unique index decides
        async def nothing_active(self, full_domain):
            return None

        monkeypatch.setattr(DomainPurchaseService, "_active_domain", nothing_active)
        response = await initiate_purchase(client, other_headers, "racecondition.io")

        assert response.status_code == 409
        assert response.json()["code"] == "ERR_3001"
        assert response.json()["message"] == "This domain is no longer available for purchase"
        assert len(await domain_rows(db_session, "racecondition.io")) == 1
        assert await db_session.scalar(select(func.count(Transaction.id))) == 1


class TestPaymentIntent:
    async def test_links_intent_to_pending_transaction(self, client, auth_headers, payments, db_session):
        await initiate_purchase(client, auth_headers)
        intent_id = await create_intent(client, auth_headers)

        assert intent_id == "pi_test_1"
        metadata = payments.intents[intent_id]["metadata"]
        assert metadata["domain"] == "brandtest.com"
        assert metadata["type"] == "purchase"
        assert all(isinstance(value, str) for value in metadata.values())

        count = await db_session.scalar(select(func.count(Transaction.id)))
        assert count == 1
        transaction = await db_session.scalar(select(Transaction))
        assert transaction.payment_intent_id == "pi_test_1"

    async def test_customer_is_created_once(self, client, auth_headers, payments):
        await initiate_purchase(client, auth_headers)
        await create_intent(client, auth_headers)
        await create_intent(client, auth_headers)
        assert payments.customers == ["owner@example.com"]

    async def test_domain_held_by_someone_else(self, client, auth_headers):
        await initiate_purchase(client, auth_headers)
        _, other_headers = await register_user(client, email="other@example.com", name="Other Buyer")

        response = await client.post(
            "/api/payments/create-intent",
            headers=other_headers,
            json={"domain": "brandtest.com", "amount": 1429},
        )
        assert response.status_code == 409


class TestConfirmPayment:
    async def test_successful_purchase_registers_domain(
        self, client, auth_headers, registrar, notifier, mail_sender
    ):
        _, data = await buy_domain(client, auth_headers)

        assert data["registrationSucceeded"] is True
        assert data["transaction"]["status"] == "completed"
        assert data["transaction"]["chargeId"] == "ch_test_1"
        assert data["transaction"]["cardLast4"] == "4242"
        assert data["domain"]["status"] == "registered"

        expires = datetime.fromisoformat(data["domain"]["expirationDate"])
        expected = datetime.now(timezone.utc) + timedelta(days=365)
        assert abs(expires - expected) < timedelta(minutes=5)

        domain, years, contact = registrar.registered[0]
        assert (domain, years) == ("brandtest.com", 1)
        assert contact.first_name == "Jane"
        assert contact.postal_code == "62701"

        await notifier.drain()
        assert "Domain Purchase Confirmation - brandtest.com" in [m.subject for m in mail_sender.sent]

    async def test_unsucceeded_payment_changes_nothing(self, client, auth_headers, payments, registrar, db_session):
        await initiate_purchase(client, auth_headers)
        intent_id = await create_intent(client, auth_headers)
        payments.intent_status = "requires_payment_method"

        response = await client.post(f"/api/payments/confirm-payment/{intent_id}", headers=auth_headers)

        assert response.status_code == 400
        body = response.json()
        assert body["message"] == "Payment not completed"
        assert body["details"]["paymentStatus"] == "requires_payment_method"
        assert registrar.registered == []

        domain = (await domain_rows(db_session, "brandtest.com"))[0]
        transaction = await db_session.scalar(select(Transaction))
        assert domain.status == DomainStatus.PENDING
        assert transaction.status == TransactionStatus.PENDING

    async def test_registration_failure_parks_domain(self, client, auth_headers, registrar):
        registrar.register_fails = True
        await initiate_purchase(client, auth_headers)
        intent_id = await create_intent(client, auth_headers)

        response = await client.post(f"/api/payments/confirm-payment/{intent_id}", headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Payment confirmed; domain registration is pending"
        assert body["data"]["registrationSucceeded"] is False
        assert body["data"]["domain"]["status"] == "payment_completed"
        assert body["data"]["transaction"]["status"] == "completed"

    async def test_registrar_exception_parks_domain(self, client, auth_headers, registrar):
        registrar.register_raises = True
        await initiate_purchase(client, auth_headers)
        intent_id = await create_intent(client, auth_headers)

        response = await client.post(f"/api/payments/confirm-payment/{intent_id}", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["data"]["domain"]["status"] == "payment_completed"

    async def test_confirm_is_idempotent(self, client, auth_headers, payments, registrar):
        intent_id, first = await buy_domain(client, auth_headers)

        response = await client.post(f"/api/payments/confirm-payment/{intent_id}", headers=auth_headers)

        assert response.status_code == 200
        second = response.json()["data"]
        assert second["transaction"]["id"] == first["transaction"]["id"]
        assert second["domain"]["status"] == "registered"
        assert payments.confirm_calls == 1
        assert len(registrar.registered) == 1

    async def test_webhook_completion_still_registers(self, client, auth_headers, payments, registrar):
        await initiate_purchase(client, auth_headers)
        intent_id = await create_intent(client, auth_headers)
        event = {
            "id": "evt_1",
            "type": "payment_intent.succeeded",
            "data": {"object": {"id": intent_id, "latest_charge": "ch_from_webhook"}},
        }
        webhook = await client.post(
            "/api/payments/webhook",
            content=json.dumps(event),
            headers={"stripe-signature": WEBHOOK_SIGNATURE},
        )
        assert webhook.status_code == 200

        response = await client.post(f"/api/payments/confirm-payment/{intent_id}", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["domain"]["status"] == "registered"
        assert data["transaction"]["chargeId"] == "ch_from_webhook"
        assert payments.confirm_calls == 0
        assert len(registrar.registered) == 1

    async def test_unknown_intent(self, client, auth_headers):
        response = await client.post("/api/payments/confirm-payment/pi_missing", headers=auth_headers)
        assert response.status_code == 404
        assert response.json()["message"] == "Transaction not found"

    async def test_other_users_intent_is_not_found(self, client, auth_headers):
        intent_id, _ = await buy_domain(client, auth_headers)
        _, other_headers = await register_user(client, email="other@example.com", name="Other Buyer")

        response = await client.post(f"/api/payments/confirm-payment/{intent_id}", headers=other_headers)
        assert response.status_code == 404


class TestRefund:
    async def test_full_refund_releases_domain(self, client, auth_headers, payments, db_session):
        _, data = await buy_domain(client, auth_headers)
        transaction_id = data["transaction"]["id"]

        response = await client.post(
            f"/api/payments/refund/{transaction_id}",
            headers=auth_headers,
            json={"reason": "requested_by_customer"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Refund processed successfully"
        assert body["data"]["transaction"]["status"] == "refunded"
        assert body["data"]["transaction"]["notes"] == "requested_by_customer"
        assert body["data"]["domain"]["status"] == "refunded"
        assert payments.refunds == [("ch_test_1", None, "requested_by_customer")]

        # The name can be bought again once released
        _, other_headers = await register_user(client, email="other@example.com", name="Other Buyer")
        assert (await initiate_purchase(client, other_headers)).status_code == 201
        assert len(await domain_rows(db_session, "brandtest.com")) == 2

    async def test_partial_refund_keeps_domain(self, client, auth_headers, payments):
        _, data = await buy_domain(client, auth_headers)

        response = await client.post(
            f"/api/payments/refund/{data['transaction']['id']}",
            headers=auth_headers,
            json={"amount": 5.0},
        )

        assert response.status_code == 200
        assert response.json()["data"]["domain"]["status"] == "registered"
        assert payments.refunds[0][1] == 500

    async def test_refund_of_exact_charge_is_full(self, client, auth_headers, payments):
        _, data = await buy_domain(client, auth_headers)

        response = await client.post(
            f"/api/payments/refund/{data['transaction']['id']}",
            headers=auth_headers,
            json={"amount": 14.29},
        )

        assert response.status_code == 200
        assert response.json()["data"]["transaction"]["status"] == "refunded"
        assert response.json()["data"]["domain"]["status"] == "refunded"
        assert payments.refunds[0][1] == 1429

    async def test_pending_refund_changes_nothing_until_settled(self, client, auth_headers, payments):
        _, data = await buy_domain(client, auth_headers)
        payments.refund_status = "pending"

        response = await client.post(f"/api/payments/refund/{data['transaction']['id']}", headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Refund is pending with the payment processor"
        assert body["data"]["refund"]["status"] == "pending"
        assert body["data"]["transaction"]["status"] == "completed"
        assert body["data"]["domain"]["status"] == "registered"

        settled = await client.post(
            "/api/payments/webhook",
            content=json.dumps({
                "id": "evt_refund",
                "type": "charge.refunded",
                "data": {"object": {"id": "ch_test_1", "refunded": True, "amount_refunded": 1429}},
            }),
            headers={"stripe-signature": WEBHOOK_SIGNATURE},
        )
        assert settled.status_code == 200

        history = await client.get("/api/payments/history", headers=auth_headers)
        assert history.json()["data"]["transactions"][0]["status"] == "refunded"
        domains = await client.get("/api/domains/my-domains", headers=auth_headers)
        assert domains.json()["data"]["domains"][0]["status"] == "refunded"

    async def test_rejected_refund(self, client, auth_headers, payments):
        _, data = await buy_domain(client, auth_headers)
        payments.refund_status = "failed"

        response = await client.post(f"/api/payments/refund/{data['transaction']['id']}", headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["message"] == "Refund failed"

    async def test_pending_transaction_cannot_be_refunded(self, client, auth_headers):
        data = (await initiate_purchase(client, auth_headers)).json()["data"]

        response = await client.post(
            f"/api/payments/refund/{data['transaction']['id']}",
            headers=auth_headers,
        )
        assert response.status_code == 404
        assert response.json()["message"] == "Transaction not found or cannot be refunded"
