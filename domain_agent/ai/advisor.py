# domain_agent/ai/advisor.py
import asyncio
import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from google import genai
from google.genai import types

from ..config import GeminiConfig
from ..logging_config import get_logger
from . import parsing, prompts
from .parsing import BusinessName, DomainAnalysis, DomainSuggestion

logger = get_logger(__name__)

DEFAULT_TEMPERATURE = 0.7


class AIServiceError(Exception):
    """Raised when the language model call fails"""


@dataclass
class ConsultationResult:
    response: str
    suggestions: List[str] = field(default_factory=list)
    domains: List[str] = field(default_factory=list)
    tokens: Optional[int] = None


@dataclass
class ModelReply:
    text: str
    tokens: Optional[int] = None


class DomainAdvisor:
    """
    Domain-name advice backed by Gemini.

    Each operation renders a prompt template, sends it to the model and parses
    the reply. Parsing never raises; only transport/model failures surface as
    AIServiceError.
    """

    def __init__(self, config: GeminiConfig):
        self.config = config
        self._client: Optional[genai.Client] = None

    @property
    def model_name(self) -> str:
        return self.config.model

    def _get_client(self) -> genai.Client:
        # Created on first use so the app can boot without a key
        if self._client is None:
            self._client = genai.Client(api_key=self.config.api_key)
        return self._client

    async def _generate(self, prompt: str, json_output: bool = False) -> ModelReply:
        generation_config = types.GenerateContentConfig(
            temperature=DEFAULT_TEMPERATURE,
            response_mime_type="application/json" if json_output else "text/plain",
        )

        try:
            response = await asyncio.wait_for(
                self._get_client().aio.models.generate_content(
                    model=self.config.model,
                    contents=prompt,
                    config=generation_config,
                ),
                timeout=self.config.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise AIServiceError("Gemini request timed out") from e
        except Exception as e:
            logger.error(
                "Gemini API call failed",
                extra={"extra_data": {"error": str(e), "model": self.config.model}},
                exc_info=True
            )
            raise AIServiceError(f"Gemini API error: {e}") from e

        tokens = None
        usage = getattr(response, "usage_metadata", None)
        if usage is not None:
            tokens = (usage.prompt_token_count or 0) + (usage.candidates_token_count or 0)

        return ModelReply(text=response.text or "", tokens=tokens)

    # ========================================================================
    # OPERATIONS
    # ========================================================================

    async def suggest_domains(self, requirements: Dict[str, Any]) -> List[DomainSuggestion]:
        prompt = prompts.DOMAIN_SUGGESTION_PROMPT.format(
            business=requirements.get("business") or "General Business",
            industry=requirements.get("industry") or "Technology",
            keywords=", ".join(requirements.get("keywords") or []),
            budget=requirements.get("budget") or "$50-100",
            extensions=", ".join(requirements.get("extensions") or [".com", ".net", ".org"]),
            audience=requirements.get("audience") or "General Public",
            context=requirements.get("context") or "",
        )
        reply = await self._generate(prompt, json_output=True)
        suggestions = parsing.parse_domain_suggestions(reply.text)

        logger.info(
            "Domain suggestions generated",
            extra={"extra_data": {"count": len(suggestions), "tokens": reply.tokens}}
        )
        return suggestions

    async def analyze_domain(self, domain: str, context: str = "") -> DomainAnalysis:
        prompt = prompts.DOMAIN_ANALYSIS_PROMPT.format(domain=domain, context=context or "")
        reply = await self._generate(prompt, json_output=True)
        return parsing.parse_domain_analysis(domain, reply.text)

    async def consult(
        self,
        question: str,
        conversation: str = "",
        preferences: Optional[Dict[str, Any]] = None,
        domains: Optional[List[str]] = None,
    ) -> ConsultationResult:
        prompt = prompts.CONSULTATION_PROMPT.format(
            question=question,
            conversation=conversation,
            preferences=json.dumps(preferences or {}),
            domains=", ".join(domains or []),
        )
        reply = await self._generate(prompt)
        return ConsultationResult(
            response=reply.text,
            suggestions=parsing.extract_actionable_items(reply.text),
            domains=parsing.extract_domain_names(reply.text),
            tokens=reply.tokens,
        )

    async def generate_business_names(
        self,
        industry: str,
        keywords: List[str],
        style: str = "modern",
    ) -> List[BusinessName]:
        prompt = prompts.BUSINESS_NAME_PROMPT.format(
            industry=industry,
            keywords=", ".join(keywords),
            style=style,
        )
        reply = await self._generate(prompt, json_output=True)
        return parsing.parse_business_names(reply.text)
