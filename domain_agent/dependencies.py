# domain_agent/dependencies.py
"""
Adapter wiring.

Each external collaborator is built once per process from explicit config
objects. Tests replace these providers through app.dependency_overrides.
"""

from functools import lru_cache
from typing import Any, Dict

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from .ai.advisor import DomainAdvisor
from .config import (
    gemini_config_from_settings,
    registrar_config_from_settings,
    smtp_config_from_settings,
    settings,
    stripe_config_from_settings,
)
from .database import get_async_db
from .notifications.email import EmailSender
from .notifications.service import Notifier
from .payments.base import BasePaymentProvider
from .payments.providers.stripe_provider import StripeProvider
from .purchases.service import DomainPurchaseService
from .registrar.base import BaseRegistrar
from .registrar.namecheap import NamecheapRegistrar


@lru_cache
def get_registrar() -> BaseRegistrar:
    return NamecheapRegistrar(registrar_config_from_settings())


@lru_cache
def get_payment_provider() -> BasePaymentProvider:
    return StripeProvider(stripe_config_from_settings())


@lru_cache
def get_advisor() -> DomainAdvisor:
    return DomainAdvisor(gemini_config_from_settings())


@lru_cache
def get_notifier() -> Notifier:
    return Notifier(EmailSender(smtp_config_from_settings()), settings.CLIENT_URL)


def get_purchase_service(
    db: AsyncSession = Depends(get_async_db),
    registrar: BaseRegistrar = Depends(get_registrar),
    payments: BasePaymentProvider = Depends(get_payment_provider),
    notifier: Notifier = Depends(get_notifier),
) -> DomainPurchaseService:
    return DomainPurchaseService(db, registrar, payments, notifier)


def request_metadata(request: Request) -> Dict[str, Any]:
    """Client details stored alongside a transaction"""
    return {
        "ipAddress": request.client.host if request.client else None,
        "userAgent": request.headers.get("user-agent"),
    }
