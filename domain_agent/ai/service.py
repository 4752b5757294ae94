# domain_agent/ai/service.py
"""
Consultant chat.

Every exchange is persisted to the session's AIConversation row before the
response is returned; the process keeps no conversation state of its own.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..domains.models import Domain
from ..error_handlers import ErrorCode, ExternalServiceException, NotFoundException
from ..logging_config import get_logger
from ..users.models import User
from .advisor import AIServiceError, DomainAdvisor
from .models import AIConversation, ConversationStatus
from .schemas import ConversationOut, ConversationSummary

logger = get_logger(__name__)

CONTEXT_WINDOW = 10
SUMMARY_LENGTH = 100


def ai_unavailable(error: Exception) -> ExternalServiceException:
    logger.error("AI service call failed", extra={"extra_data": {"error": str(error)}})
    return ExternalServiceException(
        service_name="Gemini",
        message="AI service is temporarily unavailable",
        error_code=ErrorCode.GEMINI_API_ERROR,
    )


def _message(role: str, content: str, metadata: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    entry = {
        "role": role,
        "content": content,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if metadata:
        entry["metadata"] = metadata
    return entry


class ConversationService:
    def __init__(self, db: AsyncSession, advisor: DomainAdvisor):
        self.db = db
        self.advisor = advisor

    async def chat(self, user: User, message: str, session_id: Optional[str] = None) -> Dict[str, Any]:
        user_id = user.id
        session_id = session_id or str(uuid.uuid4())

        conversation = await self.db.scalar(
            select(AIConversation).where(AIConversation.session_id == session_id)
        )
        # Session ids are global; another user's session is reported as missing
        if conversation is not None and conversation.user_id != user_id:
            raise NotFoundException("Conversation not found", resource="conversation")
        if conversation is None:
            conversation = AIConversation(
                user_id=user_id,
                session_id=session_id,
                messages=[],
                context={},
                recommendations=[],
                status=ConversationStatus.ACTIVE,
            )
            self.db.add(conversation)

        # JSON columns only notice reassignment, so work on a copy
        messages = list(conversation.messages or [])
        messages.append(_message("user", message))

        history = "\n".join(f"{m['role']}: {m['content']}" for m in messages[-CONTEXT_WINDOW:])
        owned = await self.db.execute(
            select(Domain.full_domain).where(Domain.owner_id == user_id).limit(20)
        )

        try:
            result = await self.advisor.consult(
                message,
                conversation=history,
                preferences=user.preferences or {},
                domains=list(owned.scalars().all()),
            )
        except AIServiceError as e:
            await self.db.rollback()
            raise ai_unavailable(e)

        messages.append(_message(
            "assistant",
            result.response,
            {"model": self.advisor.model_name, "tokens": result.tokens},
        ))
        conversation.messages = messages
        if result.domains:
            conversation.recommendations = [
                {"domain": domain, "reasoning": "", "confidence": 0.8, "available": None}
                for domain in result.domains
            ]
        await self.db.commit()

        logger.info(
            "AI chat exchange stored",
            extra={
                "user_id": str(user_id),
                "extra_data": {"session_id": session_id, "messages": len(messages)}
            }
        )
        return {
            "sessionId": session_id,
            "message": result.response,
            "suggestions": result.suggestions,
            "domains": result.domains,
            "conversation": {
                "id": str(conversation.id),
                "messageCount": len(messages),
                "lastMessage": messages[-1],
            },
        }

    async def list_conversations(self, user: User, page: int, limit: int) -> Tuple[List[ConversationSummary], int]:
        total = await self.db.scalar(
            select(func.count(AIConversation.id)).where(AIConversation.user_id == user.id)
        )
        result = await self.db.execute(
            select(AIConversation)
            .where(AIConversation.user_id == user.id)
            .order_by(AIConversation.updated_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )

        summaries = []
        for conversation in result.scalars().all():
            messages = conversation.messages or []
            last = messages[-1]["content"] if messages else None
            if last and len(last) > SUMMARY_LENGTH:
                last = last[:SUMMARY_LENGTH] + "..."
            summaries.append(ConversationSummary(
                session_id=conversation.session_id,
                status=conversation.status.value,
                message_count=len(messages),
                last_message=last,
                recommendation_count=len(conversation.recommendations or []),
                created_at=conversation.created_at,
                updated_at=conversation.updated_at,
            ))
        return summaries, total or 0

    async def get_conversation(self, user: User, session_id: str) -> ConversationOut:
        conversation = await self.db.scalar(
            select(AIConversation).where(
                AIConversation.session_id == session_id,
                AIConversation.user_id == user.id,
            )
        )
        if conversation is None:
            raise NotFoundException("Conversation not found", resource="conversation")

        return ConversationOut(
            session_id=conversation.session_id,
            status=conversation.status.value,
            messages=conversation.messages or [],
            recommendations=conversation.recommendations or [],
            created_at=conversation.created_at,
            updated_at=conversation.updated_at,
        )
