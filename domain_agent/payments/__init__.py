# domain_agent/payments/__init__.py
from .base import (
    BasePaymentProvider,
    PaymentError,
    from_minor_units,
    to_minor_units,
)

__all__ = [
    "BasePaymentProvider",
    "PaymentError",
    "from_minor_units",
    "to_minor_units",
]
