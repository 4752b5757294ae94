# domain_agent/payments/models.py
import enum
import uuid

from sqlalchemy import (
    Column,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    JSON,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import relationship

from ..database import Base, utcnow
from ..domains.models import enum_values


class TransactionType(str, enum.Enum):
    PURCHASE = "purchase"
    RENEWAL = "renewal"
    TRANSFER = "transfer"
    REFUND = "refund"


class TransactionStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class Transaction(Base):
    """One lifecycle event (purchase, renewal, transfer, refund) against a domain"""
    __tablename__ = "transactions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    domain_id = Column(Uuid, ForeignKey("domains.id"), nullable=False, index=True)

    type = Column(
        SQLEnum(TransactionType, native_enum=False, length=16, values_callable=enum_values),
        nullable=False,
    )
    status = Column(
        SQLEnum(TransactionStatus, native_enum=False, length=16, values_callable=enum_values),
        nullable=False,
        default=TransactionStatus.PENDING,
        index=True,
    )

    # Amount details (major units; converted to cents only at the Stripe boundary)
    amount = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="USD")

    # Provider details
    payment_method = Column(String, nullable=False, default="stripe")
    payment_intent_id = Column(String, nullable=True, index=True)
    charge_id = Column(String, nullable=True)
    card_last4 = Column(String(4), nullable=True)
    card_brand = Column(String, nullable=True)

    # ip address, user agent, years, contact info
    request_metadata = Column("metadata", JSON, nullable=False, default=dict)

    receipt_url = Column(String, nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    user = relationship("User", back_populates="transactions")
    domain = relationship("Domain", back_populates="transactions")

    def __repr__(self):
        return f"<Transaction {self.id} - {self.type} {self.status}>"
