from __future__ import annotations

import logging
import re
from typing import Any

from igire.contracts.payloads import CategoryPrediction
from igire.domain.models import Category
from igire.infra.groq_adapter import GroqAdapter
from igire.services.institution_cache import InstitutionCache

logger = logging.getLogger(__name__)

NOT_FOUND = "Not Found"
DEFAULT_CONFIDENCE = 70

# English and Kinyarwanda terms; dict order is the tie-break order.
CATEGORY_KEYWORDS: dict[Category, tuple[str, ...]] = {
    Category.WATER: (
        "water", "tap", "pipe", "leak", "wasac", "drinking", "flow", "supply",
        "amazi", "mazi", "pompe", "umutozi", "gusuka", "gusomba", "kugwa",
    ),
    Category.SANITATION: (
        "garbage", "waste", "trash", "sewage", "toilet", "hygiene", "clean",
        "imyanda", "ubwiza", "ubuhonero", "gutwikurura", "isuku",
    ),
    Category.ROADS: (
        "road", "street", "pothole", "highway", "traffic", "asphalt", "pavement",
        "umuhanda", "ibyondo", "inzererezi", "guhagarara", "gutwika",
    ),
    Category.ELECTRICITY: (
        "power", "electricity", "outage", "light", "bulb", "voltage",
        "amashanyarazi", "kumira", "kuzima", "ampare", "generateri",
    ),
}

CATEGORIZE_PROMPT = (
    "You are a complaint categorization system that understands English, Kinyarwanda and French. "
    "Analyze the complaint and respond with ONLY a JSON object in this exact format: "
    '{"category": "water|sanitation|roads|electricity|other", "confidence": 0-100, '
    '"suggestedAgency": "Agency Name"}'
)


def keyword_counts(text: str) -> dict[Category, int]:
    lowered = str(text or "").lower()
    return {
        category: sum(len(re.findall(re.escape(word), lowered)) for word in words)
        for category, words in CATEGORY_KEYWORDS.items()
    }


def keyword_fallback(text: str) -> tuple[Category, int]:
    best, best_hits = Category.OTHER, 0
    for category, hits in keyword_counts(text).items():
        if hits > best_hits:
            best, best_hits = category, hits
    if best_hits == 0:
        return Category.OTHER, DEFAULT_CONFIDENCE
    return best, min(98, round(best_hits / 3 * 100))


def clamp_confidence(value: Any) -> int:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return DEFAULT_CONFIDENCE
    if number != number:  # NaN
        return DEFAULT_CONFIDENCE
    return int(round(min(100.0, max(0.0, number))))


def resolve_agency(suggested: str | None, category: str, institutions: list[dict[str, Any]]) -> str:
    wanted = str(suggested or "").strip().lower()
    if wanted:
        for inst in institutions:
            if str(inst.get("name", "")).strip().lower() == wanted:
                return str(inst["name"])
    for inst in institutions:
        if str(inst.get("department", "")).strip().lower() == category:
            return str(inst["name"])
    return NOT_FOUND


class CategorizationService:
    def __init__(self, llm: GroqAdapter, institutions: InstitutionCache) -> None:
        self.llm = llm
        self.institutions = institutions

    def categorize(self, text: str) -> CategoryPrediction:
        institutions = self.institutions.get()
        result = self.llm.chat_json(CATEGORIZE_PROMPT, f'Complaint: "{text}"') if self.llm.enabled else None

        if isinstance(result, dict) and result.get("category") and result.get("confidence"):
            category = Category.coerce(result.get("category"))
            return CategoryPrediction(
                category=category.value,
                confidence=clamp_confidence(result.get("confidence")),
                suggested_agency=resolve_agency(result.get("suggestedAgency"), category.value, institutions),
                source="llm",
            )

        if self.llm.enabled:
            logger.warning("LLM categorization unusable, using keyword fallback: %.200r", result)
        category, confidence = keyword_fallback(text)
        return CategoryPrediction(
            category=category.value,
            confidence=confidence,
            suggested_agency=resolve_agency(None, category.value, institutions),
            source="keywords",
        )
