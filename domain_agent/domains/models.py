# domain_agent/domains/models.py
import enum
import uuid

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    JSON,
    Numeric,
    String,
    Uuid,
    text,
)
from sqlalchemy.orm import relationship

from ..database import Base, utcnow


class DomainStatus(str, enum.Enum):
    AVAILABLE = "available"
    PENDING = "pending"
    PAYMENT_COMPLETED = "payment_completed"
    REGISTERED = "registered"
    EXPIRED = "expired"
    RESERVED = "reserved"
    REFUNDED = "refunded"


# A domain in any of these states is held by someone; only one row per
# full_domain may be in this set at a time.
ACTIVE_DOMAIN_STATUSES = (
    DomainStatus.PENDING,
    DomainStatus.PAYMENT_COMPLETED,
    DomainStatus.REGISTERED,
)

_ACTIVE_STATUS_PREDICATE = text(
    "status IN ('pending', 'payment_completed', 'registered')"
)

DNS_RECORD_TYPES = ("A", "AAAA", "CNAME", "MX", "TXT", "NS")


def enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Domain(Base):
    __tablename__ = "domains"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    extension = Column(String(24), nullable=False)  # includes the leading dot
    full_domain = Column(String, nullable=False, index=True)

    status = Column(
        SQLEnum(DomainStatus, native_enum=False, length=32, values_callable=enum_values),
        nullable=False,
        default=DomainStatus.AVAILABLE,
        index=True,
    )
    owner_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    registrar = Column(String, nullable=False, default="namecheap")

    # Pricing
    cost = Column(Numeric(10, 2), nullable=False)
    markup = Column(Numeric(10, 2), nullable=False, default=0)
    selling_price = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="USD")

    registration_date = Column(DateTime(timezone=True), nullable=True)
    expiration_date = Column(DateTime(timezone=True), nullable=True)
    auto_renew = Column(Boolean, nullable=False, default=False)

    dns_records = Column(JSON, nullable=False, default=list)
    tags = Column(JSON, nullable=False, default=list)
    domain_metadata = Column("metadata", JSON, nullable=False, default=dict)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    owner = relationship("User", back_populates="domains")
    transactions = relationship("Transaction", back_populates="domain")

    __table_args__ = (
        Index(
            "uq_domains_active_full_domain",
            "full_domain",
            unique=True,
            postgresql_where=_ACTIVE_STATUS_PREDICATE,
            sqlite_where=_ACTIVE_STATUS_PREDICATE,
        ),
        Index("idx_domains_owner_status", "owner_id", "status"),
    )

    def __repr__(self):
        return f"<Domain {self.full_domain} - {self.status}>"
