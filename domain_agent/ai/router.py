# domain_agent/ai/router.py
"""
AI API
Endpoints:
- POST /ai/suggest-domains
- POST /ai/analyze-domain
- POST /ai/chat
- GET  /ai/conversations
- POST /ai/generate-business-names
"""

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth.dependencies import CurrentUser
from ..database import get_async_db
from ..dependencies import get_advisor
from ..responses import success_response
from ..schemas import Pagination
from . import schemas
from .advisor import AIServiceError, DomainAdvisor
from .service import ConversationService, ai_unavailable

router = APIRouter(prefix="/ai", tags=["ai"])


def get_conversation_service(
    db: AsyncSession = Depends(get_async_db),
    advisor: DomainAdvisor = Depends(get_advisor),
) -> ConversationService:
    return ConversationService(db, advisor)


@router.post("/suggest-domains")
async def suggest_domains(
    body: schemas.SuggestDomainsRequest,
    advisor: DomainAdvisor = Depends(get_advisor),
):
    requirements = body.model_dump()
    try:
        suggestions = await advisor.suggest_domains(requirements)
    except AIServiceError as e:
        raise ai_unavailable(e)

    return success_response({
        "suggestions": [s.as_dict() for s in suggestions],
        "requirements": requirements,
        "generatedAt": datetime.now(timezone.utc),
    })


@router.post("/analyze-domain")
async def analyze_domain(
    body: schemas.AnalyzeDomainRequest,
    advisor: DomainAdvisor = Depends(get_advisor),
):
    domain = body.domain.strip().lower()
    try:
        analysis = await advisor.analyze_domain(domain, body.context)
    except AIServiceError as e:
        raise ai_unavailable(e)

    return success_response({
        "domain": domain,
        "analysis": analysis.as_dict(),
        "analyzedAt": datetime.now(timezone.utc),
    })


@router.post("/chat")
async def chat(
    body: schemas.ChatRequest,
    user: CurrentUser,
    service: ConversationService = Depends(get_conversation_service),
):
    session_id = str(body.session_id) if body.session_id else None
    return success_response(await service.chat(user, body.message.strip(), session_id))


@router.get("/conversations")
async def conversations(
    user: CurrentUser,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    session_id: Optional[str] = Query(None, alias="sessionId"),
    service: ConversationService = Depends(get_conversation_service),
):
    """Conversation summaries, or the full transcript when sessionId is given"""
    if session_id:
        conversation = await service.get_conversation(user, session_id)
        return success_response({"conversation": conversation})

    summaries, total = await service.list_conversations(user, page, limit)
    return success_response({
        "conversations": summaries,
        "pagination": Pagination.build(page, limit, total),
    })


@router.post("/generate-business-names")
async def generate_business_names(
    body: schemas.BusinessNameRequest,
    user: CurrentUser,
    advisor: DomainAdvisor = Depends(get_advisor),
):
    try:
        names = await advisor.generate_business_names(body.industry, body.keywords, body.style)
    except AIServiceError as e:
        raise ai_unavailable(e)

    return success_response({
        "businessNames": [n.as_dict() for n in names],
        "criteria": {"industry": body.industry, "keywords": body.keywords, "style": body.style},
        "generatedAt": datetime.now(timezone.utc),
    })
