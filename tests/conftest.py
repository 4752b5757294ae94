"""Shared fixtures: in-memory database, fake adapters and an ASGI client."""

import json
import os
from decimal import Decimal

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("CLIENT_URL", "http://localhost:5173")

import httpx
import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine, AsyncSession
from sqlalchemy.pool import StaticPool

from domain_agent.ai.advisor import AIServiceError, DomainAdvisor, ModelReply
from domain_agent.config import GeminiConfig
from domain_agent.database import Base, get_async_db
from domain_agent.dependencies import get_advisor, get_notifier, get_payment_provider, get_registrar
from domain_agent.main import app
from domain_agent.notifications.email import EmailDeliveryError
from domain_agent.notifications.service import Notifier
from domain_agent.payments.base import (
    BasePaymentProvider,
    PaymentConfirmation,
    PaymentError,
    PaymentIntentResult,
    RefundResult,
    WebhookEvent,
)
from domain_agent.registrar.base import (
    AvailabilityResult,
    BaseRegistrar,
    DnsUpdateResult,
    DomainInfo,
    RegistrarError,
    RegistrationResult,
)

WEBHOOK_SIGNATURE = "t=1,v1=valid"


# ============================================================================
# FAKE ADAPTERS
# ============================================================================

class FakeRegistrar(BaseRegistrar):
    def __init__(self):
        self.taken = set()
        self.price = Decimal("12.99")
        self.register_fails = False
        self.register_raises = False
        self.dns_fails = False
        self.unreachable = set()
        self.registered = []
        self.dns_updates = []

    async def check_availability(self, domain):
        if domain in self.unreachable:
            raise RegistrarError("Failed to check domain availability")
        return AvailabilityResult(domain=domain, available=domain not in self.taken, price=self.price)

    async def register(self, domain, years, contact):
        if self.register_raises:
            raise RegistrarError("Failed to register domain: upstream timeout")
        if self.register_fails:
            return RegistrationResult(success=False, domain=domain)
        self.registered.append((domain, years, contact))
        return RegistrationResult(success=True, domain=domain, registration_id="12345")

    async def get_info(self, domain):
        return DomainInfo(domain=domain, status="Ok", auto_renew=False)

    async def set_dns(self, domain, records):
        if self.dns_fails:
            raise RegistrarError("Failed to set DNS records")
        self.dns_updates.append((domain, records))
        return DnsUpdateResult(success=True, domain=domain, records=records)


class FakePaymentProvider(BasePaymentProvider):
    def __init__(self):
        self.intent_status = "succeeded"
        self.refund_status = "succeeded"
        self.intents = {}
        self.refunds = []
        self.customers = []
        self.listed_customers = []
        self.confirm_calls = 0

    async def create_customer(self, email, name, user_id):
        self.customers.append(email)
        return f"cus_{len(self.customers)}"

    async def create_payment_intent(self, amount, currency, customer_id, metadata):
        intent_id = f"pi_test_{len(self.intents) + 1}"
        self.intents[intent_id] = {"amount": amount, "currency": currency, "metadata": metadata}
        return PaymentIntentResult(
            intent_id=intent_id,
            client_secret=f"{intent_id}_secret",
            amount=amount,
            currency=currency,
            status="requires_payment_method",
        )

    async def confirm_payment(self, intent_id):
        self.confirm_calls += 1
        intent = self.intents.get(intent_id, {"amount": 0, "currency": "usd"})
        return PaymentConfirmation(
            intent_id=intent_id,
            status=self.intent_status,
            amount=intent["amount"],
            currency=intent["currency"],
            charge_id="ch_test_1" if self.intent_status == "succeeded" else None,
            card_brand="visa",
            card_last4="4242",
        )

    async def create_refund(self, charge_id, amount=None, reason=None):
        self.refunds.append((charge_id, amount, reason))
        return RefundResult(refund_id="re_test_1", status=self.refund_status, amount=amount or 0)

    async def list_payment_methods(self, customer_id):
        self.listed_customers.append(customer_id)
        return [{"id": "pm_1", "brand": "visa", "last4": "4242", "expMonth": 12, "expYear": 2030}]

    def verify_webhook(self, payload, signature):
        if signature != WEBHOOK_SIGNATURE:
            raise PaymentError("Invalid signature")
        body = json.loads(payload)
        return WebhookEvent(id=body["id"], type=body["type"], data=body["data"]["object"])


class FakeAdvisor(DomainAdvisor):
    """Real prompt building and parsing; only the model call is replaced"""

    def __init__(self):
        super().__init__(GeminiConfig(api_key="test"))
        self.reply = "[]"
        self.fails = False
        self.prompts = []

    async def _generate(self, prompt, json_output=False):
        self.prompts.append(prompt)
        if self.fails:
            raise AIServiceError("Gemini API error: quota exceeded")
        return ModelReply(text=self.reply, tokens=42)


class RecordingSender:
    def __init__(self):
        self.sent = []
        self.fails = False

    async def send(self, message):
        if self.fails:
            raise EmailDeliveryError("SMTP unavailable")
        self.sent.append(message)


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
async def session_factory():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)

    await engine.dispose()


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def registrar():
    return FakeRegistrar()


@pytest.fixture
def payments():
    return FakePaymentProvider()


@pytest.fixture
def advisor():
    return FakeAdvisor()


@pytest.fixture
def mail_sender():
    return RecordingSender()


@pytest.fixture
def notifier(mail_sender):
    return Notifier(mail_sender, "http://localhost:5173")


@pytest.fixture
async def client(session_factory, registrar, payments, advisor, notifier):
    async def override_get_async_db():
        async with session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_async_db] = override_get_async_db
    app.dependency_overrides[get_registrar] = lambda: registrar
    app.dependency_overrides[get_payment_provider] = lambda: payments
    app.dependency_overrides[get_advisor] = lambda: advisor
    app.dependency_overrides[get_notifier] = lambda: notifier

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    await notifier.drain()
    app.dependency_overrides.clear()


async def register_user(client, email="owner@example.com", name="Jane Owner", password="secret123"):
    response = await client.post(
        "/api/auth/register",
        json={"name": name, "email": email, "password": password},
    )
    assert response.status_code == 201, response.text
    data = response.json()["data"]
    return data["user"], {"Authorization": f"Bearer {data['token']}"}


@pytest.fixture
async def auth_headers(client):
    _, headers = await register_user(client)
    return headers


CONTACT_INFO = {
    "firstName": "Jane",
    "lastName": "Owner",
    "email": "owner@example.com",
    "phone": "+1.5555550100",
    "address": "1 Main Street",
    "city": "Springfield",
    "state": "IL",
    "country": "US",
    "postalCode": "62701",
}


async def initiate_purchase(client, headers, domain="brandtest.com", years=1):
    return await client.post(
        "/api/domains/purchase",
        headers=headers,
        json={"domain": domain, "years": years, "contactInfo": CONTACT_INFO},
    )


async def create_intent(client, headers, domain="brandtest.com", amount=1429):
    response = await client.post(
        "/api/payments/create-intent",
        headers=headers,
        json={"domain": domain, "amount": amount},
    )
    assert response.status_code == 200, response.text
    return response.json()["data"]["paymentIntentId"]


async def buy_domain(client, headers, domain="brandtest.com"):
    """Initiate, pay and confirm; returns (intent id, confirmation data)"""
    response = await initiate_purchase(client, headers, domain)
    assert response.status_code == 201, response.text
    intent_id = await create_intent(client, headers, domain)
    response = await client.post(f"/api/payments/confirm-payment/{intent_id}", headers=headers)
    assert response.status_code == 200, response.text
    return intent_id, response.json()["data"]
