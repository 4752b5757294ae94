import enum
import uuid

from sqlalchemy import Column, DateTime, Enum as SQLEnum, ForeignKey, JSON, String, Uuid
from sqlalchemy.orm import relationship

from ..database import Base, utcnow
from ..domains.models import enum_values


class ConversationStatus(str, enum.Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


class AIConversation(Base):
    __tablename__ = "ai_conversations"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    session_id = Column(String(36), nullable=False, unique=True, index=True)

    # [{role, content, timestamp, metadata: {model, tokens, confidence}}]
    messages = Column(JSON, nullable=False, default=list)
    # {businessType, industry, keywords, budget, preferences}
    context = Column(JSON, nullable=False, default=dict)
    # [{domain, reasoning, confidence, available, price}]
    recommendations = Column(JSON, nullable=False, default=list)

    status = Column(
        SQLEnum(ConversationStatus, native_enum=False, length=16, values_callable=enum_values),
        nullable=False,
        default=ConversationStatus.ACTIVE,
    )

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, index=True)

    user = relationship("User", back_populates="ai_conversations")
