# domain_agent/domains/pricing.py
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Tuple

MARKUP_RATE = Decimal("0.10")
DEFAULT_REGISTRAR_COST = Decimal("12.99")
DEFAULT_EXTENSIONS = (".com", ".net", ".org")

# Transfers are quoted at a fixed price
TRANSFER_COST = Decimal("12.99")
TRANSFER_MARKUP = Decimal("1.30")
TRANSFER_SELLING_PRICE = Decimal("14.29")

CENTS = Decimal("0.01")


def round_money(value) -> Decimal:
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class Pricing:
    cost: Decimal
    markup: Decimal
    selling_price: Decimal
    currency: str = "USD"

    def as_dict(self) -> dict:
        return {
            "cost": float(self.cost),
            "markup": float(self.markup),
            "sellingPrice": float(self.selling_price),
            "currency": self.currency,
        }


def price_for(cost: Optional[Decimal], currency: str = "USD") -> Pricing:
    """Customer price for a registrar cost: cost plus a flat 10% markup"""
    base = round_money(cost) if cost else DEFAULT_REGISTRAR_COST
    return Pricing(
        cost=base,
        markup=round_money(base * MARKUP_RATE),
        selling_price=round_money(base * (1 + MARKUP_RATE)),
        currency=currency,
    )


def renewal_price(cost: Decimal, years: int) -> Decimal:
    return round_money(Decimal(cost) * years * (1 + MARKUP_RATE))


def transfer_pricing() -> Pricing:
    return Pricing(
        cost=TRANSFER_COST,
        markup=TRANSFER_MARKUP,
        selling_price=TRANSFER_SELLING_PRICE,
    )


def split_domain_name(domain: str) -> Tuple[str, str, str]:
    """
    Normalize and split a domain.

    'BrandTest.com' -> ('brandtest', '.com', 'brandtest.com')
    'shop.co.uk'    -> ('shop', '.co.uk', 'shop.co.uk')
    """
    full_domain = domain.strip().lower()
    name, _, extension = full_domain.partition(".")
    return name, f".{extension}" if extension else "", full_domain


def normalize_extensions(raw) -> list:
    """Accept 'com,net', ['.com', 'net'] or None; always returns dotted extensions"""
    if not raw:
        return list(DEFAULT_EXTENSIONS)
    items = raw.split(",") if isinstance(raw, str) else list(raw)
    extensions = []
    for item in items:
        item = item.strip().lower()
        if not item:
            continue
        extension = item if item.startswith(".") else f".{item}"
        if extension not in extensions:
            extensions.append(extension)
    return extensions or list(DEFAULT_EXTENSIONS)
