from datetime import datetime
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from pydantic import EmailStr, Field, field_validator

from ..schemas import CamelModel
from .models import DomainStatus


class ContactInfoIn(CamelModel):
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    email: EmailStr
    phone: str = Field(..., min_length=10)
    address: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    state: Optional[str] = None
    country: str = Field(..., min_length=2)
    postal_code: Optional[str] = None

    @field_validator("first_name", "last_name", "phone", "address", "city", "country")
    @classmethod
    def strip_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Field is required")
        return value


class PurchaseRequest(CamelModel):
    domain: str = Field(..., min_length=3, max_length=100)
    years: int = Field(1, ge=1, le=10)
    contact_info: ContactInfoIn


class RenewRequest(CamelModel):
    years: int = Field(1, ge=1, le=10)


class TransferRequest(CamelModel):
    domain: str = Field(..., min_length=3, max_length=100)
    auth_code: str = Field(..., min_length=1)


class DnsRecord(CamelModel):
    type: Literal["A", "AAAA", "CNAME", "MX", "TXT", "NS"]
    name: str = Field(..., min_length=1)
    value: str = Field(..., min_length=1)
    ttl: int = Field(3600, ge=60, le=86400)


class DnsUpdateRequest(CamelModel):
    records: List[DnsRecord]


class DomainOut(CamelModel):
    id: UUID
    name: str
    extension: str
    full_domain: str
    status: DomainStatus
    owner_id: Optional[UUID] = None
    registrar: str
    cost: float
    markup: float
    selling_price: float
    currency: str
    registration_date: Optional[datetime] = None
    expiration_date: Optional[datetime] = None
    auto_renew: bool = False
    dns_records: List[Dict[str, Any]] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
