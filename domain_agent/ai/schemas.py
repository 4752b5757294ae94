from datetime import datetime
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from pydantic import Field

from ..schemas import CamelModel


class SuggestDomainsRequest(CamelModel):
    business: Optional[str] = Field(None, max_length=200)
    industry: Optional[str] = Field(None, max_length=100)
    keywords: List[str] = Field(default_factory=list)
    budget: Optional[str] = Field(None, max_length=50)
    extensions: List[str] = Field(default_factory=lambda: [".com", ".net", ".org"])
    audience: Optional[str] = Field(None, max_length=200)
    context: str = ""


class AnalyzeDomainRequest(CamelModel):
    domain: str = Field(..., min_length=3)
    context: str = ""


class ChatRequest(CamelModel):
    message: str = Field(..., min_length=1, max_length=1000)
    session_id: Optional[UUID] = None


class BusinessNameRequest(CamelModel):
    industry: str = Field(..., min_length=1, max_length=100)
    keywords: List[str] = Field(..., min_length=1)
    style: Literal["modern", "classic", "creative", "professional"] = "modern"


class ConversationSummary(CamelModel):
    session_id: str
    status: str
    message_count: int
    last_message: Optional[str] = None
    recommendation_count: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ConversationOut(CamelModel):
    session_id: str
    status: str
    messages: List[Dict[str, Any]]
    recommendations: List[Dict[str, Any]]
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
