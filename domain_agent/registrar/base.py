# domain_agent/registrar/base.py
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional


class RegistrarError(Exception):
    """Raised when a registrar call fails ("Failed to <operation>")"""


@dataclass
class AvailabilityResult:
    domain: str
    available: bool
    price: Optional[Decimal] = None  # registrar cost, None when not quoted
    currency: str = "USD"


@dataclass
class RegistrationResult:
    success: bool
    domain: str
    registration_id: Optional[str] = None


@dataclass
class DomainInfo:
    domain: str
    status: str
    expiration_date: Optional[datetime] = None
    auto_renew: bool = False


@dataclass
class DnsUpdateResult:
    success: bool
    domain: str
    records: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class ContactInfo:
    """Registrant contact copied to every registrar contact role"""
    first_name: str
    last_name: str
    email: str
    phone: str
    address: str
    city: str
    country: str
    state: str = ""
    postal_code: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ContactInfo":
        return cls(
            first_name=data.get("firstName", ""),
            last_name=data.get("lastName", ""),
            email=data.get("email", ""),
            phone=data.get("phone", ""),
            address=data.get("address", ""),
            city=data.get("city", ""),
            country=data.get("country", ""),
            state=data.get("state", "") or "",
            postal_code=data.get("postalCode", "") or data.get("zipCode", "") or "",
        )


class BaseRegistrar(ABC):
    """Abstract base class for domain registrars"""

    @abstractmethod
    async def check_availability(self, domain: str) -> AvailabilityResult:
        """Ask the registrar whether a single domain can be registered"""

    @abstractmethod
    async def register(self, domain: str, years: int, contact: ContactInfo) -> RegistrationResult:
        """Register a domain for the given number of years"""

    @abstractmethod
    async def get_info(self, domain: str) -> DomainInfo:
        """Status, expiry and auto-renew flag for a domain we manage"""

    @abstractmethod
    async def set_dns(self, domain: str, records: List[Dict[str, Any]]) -> DnsUpdateResult:
        """Replace the host records of a domain"""
