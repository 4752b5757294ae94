# domain_agent/ai/parsing.py
"""
Parsers for model replies.

The model is asked for JSON but its output format is not guaranteed. Every
parser here tries JSON first and then falls back to regex extraction; none
of them raise on malformed input, they return a possibly empty result.
"""

import json
import re
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

DOMAIN_RE = re.compile(r"([a-zA-Z0-9-]+\.[a-zA-Z]{2,})")
_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)
_LIST_MARKER_RE = re.compile(r"^\s*(?:[*#]+|\d+[.)])\s*")
_ACTION_WORDS = ("recommend", "suggest", "consider")
_BUSINESS_NAME_MARKERS = (".com", ".net", ".org")

SCORE_KEYS = ("brandability", "memorability", "seo", "relevance", "overall")
FALLBACK_SCORE = 7


@dataclass
class DomainSuggestion:
    domain: str
    reasoning: str
    brandability_score: float
    extension: str

    def as_dict(self) -> Dict[str, Any]:
        return {
            "domain": self.domain,
            "reasoning": self.reasoning,
            "brandabilityScore": self.brandability_score,
            "extension": self.extension,
        }


@dataclass
class BusinessName:
    name: str
    domain: str
    extension: str
    reasoning: str

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class DomainAnalysis:
    domain: str
    scores: Dict[str, float]
    strengths: List[str] = field(default_factory=list)
    weaknesses: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
    analysis: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "domain": self.domain,
            "scores": self.scores,
            "strengths": self.strengths,
            "weaknesses": self.weaknesses,
            "recommendations": self.recommendations,
            "analysis": self.analysis,
        }


# ============================================================================
# JSON EXTRACTION
# ============================================================================

def load_json(text: Optional[str]) -> Any:
    """Parse a reply as JSON, tolerating a ```json fence around it. None on failure."""
    if not text:
        return None
    candidates = [text.strip()]
    fenced = _FENCE_RE.search(text)
    if fenced:
        candidates.insert(0, fenced.group(1).strip())
    for candidate in candidates:
        try:
            return json.loads(candidate)
        except (TypeError, ValueError):
            continue
    return None


def _as_float(value: Any, default: float) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _as_str_list(value: Any) -> List[str]:
    if isinstance(value, list):
        return [str(item) for item in value if item is not None]
    if isinstance(value, str) and value.strip():
        return [value.strip()]
    return []


def _extension_of(domain: str) -> str:
    return "." + domain.rsplit(".", 1)[-1] if "." in domain else ""


# ============================================================================
# DOMAIN SUGGESTIONS
# ============================================================================

def parse_domain_suggestions(text: Optional[str]) -> List[DomainSuggestion]:
    data = load_json(text)
    if isinstance(data, dict):
        data = data.get("suggestions") or data.get("domains")
    if isinstance(data, list):
        suggestions = []
        for item in data:
            if isinstance(item, str):
                item = {"domain": item}
            if not isinstance(item, dict) or not item.get("domain"):
                continue
            domain = str(item["domain"]).strip().lower()
            suggestions.append(DomainSuggestion(
                domain=domain,
                reasoning=str(item.get("reasoning") or ""),
                brandability_score=_as_float(item.get("brandabilityScore"), FALLBACK_SCORE),
                extension=str(item.get("extension") or _extension_of(domain)),
            ))
        return suggestions
    return extract_domains_from_text(text or "")


def extract_domains_from_text(text: str) -> List[DomainSuggestion]:
    """Fallback: every domain-looking token becomes a suggestion"""
    seen = extract_domain_names(text)
    return [
        DomainSuggestion(
            domain=domain,
            reasoning=f"Suggested domain option {index}",
            brandability_score=FALLBACK_SCORE,
            extension=_extension_of(domain),
        )
        for index, domain in enumerate(seen, start=1)
    ]


# ============================================================================
# ANALYSIS
# ============================================================================

def parse_domain_analysis(domain: str, text: Optional[str]) -> DomainAnalysis:
    data = load_json(text)
    if isinstance(data, dict):
        raw_scores = data.get("scores") if isinstance(data.get("scores"), dict) else data
        scores = {
            key: _as_float(raw_scores.get(key), FALLBACK_SCORE) for key in SCORE_KEYS
        }
        return DomainAnalysis(
            domain=domain,
            scores=scores,
            strengths=_as_str_list(data.get("strengths")),
            weaknesses=_as_str_list(data.get("weaknesses")),
            recommendations=_as_str_list(data.get("alternatives") or data.get("recommendations")),
            analysis=data.get("analysis") if isinstance(data.get("analysis"), str) else None,
        )

    return DomainAnalysis(
        domain=domain,
        scores={key: FALLBACK_SCORE for key in SCORE_KEYS},
        analysis=text or "",
    )


# ============================================================================
# CONSULTATION
# ============================================================================

def extract_actionable_items(text: Optional[str]) -> List[str]:
    """Lines that recommend, suggest or consider something"""
    if not text:
        return []
    return [
        line.strip()
        for line in text.split("\n")
        if line.strip() and any(word in line.lower() for word in _ACTION_WORDS)
    ]


def extract_domain_names(text: Optional[str]) -> List[str]:
    if not text:
        return []
    names = []
    for match in DOMAIN_RE.findall(text):
        domain = match.lower()
        if domain not in names:
            names.append(domain)
    return names


# ============================================================================
# BUSINESS NAMES
# ============================================================================

def parse_business_names(text: Optional[str]) -> List[BusinessName]:
    data = load_json(text)
    if isinstance(data, dict):
        data = data.get("names") or data.get("businessNames")
    if isinstance(data, list):
        names = []
        for item in data:
            if not isinstance(item, dict) or not item.get("name"):
                continue
            domain = str(item.get("domain") or "").strip().lower()
            names.append(BusinessName(
                name=str(item["name"]).strip(),
                domain=domain,
                extension=str(item.get("extension") or _extension_of(domain) or ".com"),
                reasoning=str(item.get("reasoning") or ""),
            ))
        return names
    return extract_business_names_from_text(text or "")


def extract_business_names_from_text(text: str) -> List[BusinessName]:
    """Fallback: 'Name: name.com' or 'Name - name.com' lines"""
    names = []
    for line in text.split("\n"):
        if not any(marker in line for marker in _BUSINESS_NAME_MARKERS):
            continue
        separator = ":" if ":" in line else "-"
        name, found, rest = line.partition(separator)
        if not found:
            continue
        name = _LIST_MARKER_RE.sub("", name).strip(" *")
        domain_match = DOMAIN_RE.search(rest)
        if not name or not domain_match:
            continue
        domain = domain_match.group(1).lower()
        names.append(BusinessName(
            name=name,
            domain=domain,
            extension=_extension_of(domain) or ".com",
            reasoning="Generated business name option",
        ))
    return names
