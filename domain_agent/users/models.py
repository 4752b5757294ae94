import uuid

from sqlalchemy import Boolean, Column, DateTime, JSON, String, Uuid
from sqlalchemy.orm import relationship

from ..database import Base, utcnow

SUPPORTED_CURRENCIES = ("USD", "EUR", "GBP", "CAD", "AUD")


def default_preferences() -> dict:
    return {"currency": "USD", "notifications": {"email": True, "sms": False}}


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(50), nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)

    profile = Column(JSON, nullable=False, default=dict)
    preferences = Column(JSON, nullable=False, default=default_preferences)

    stripe_customer_id = Column(String, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False, server_default='true')

    # Stored as sha256 hex; the raw token only ever leaves in the email
    reset_password_token = Column(String, nullable=True, index=True)
    reset_password_expires = Column(DateTime(timezone=True), nullable=True)

    last_login = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    domains = relationship("Domain", back_populates="owner")
    transactions = relationship("Transaction", back_populates="user")
    ai_conversations = relationship("AIConversation", back_populates="user")

    def __repr__(self):
        return f"<User {self.email}>"
