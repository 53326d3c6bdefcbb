from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from igire.infra.groq_adapter import GroqAdapter

logger = logging.getLogger(__name__)

SEVERITIES = ("low", "medium", "high")
DEFAULT_SEVERITY = "medium"
MAX_ITEMS = 5

ENRICH_PROMPT = (
    "You assess citizen complaints about public services in Rwanda. The complaint may be written in "
    "Kinyarwanda, French or English. Respond with ONLY a JSON object in this exact format: "
    '{"translatedDescription": "the complaint in English", '
    '"effects": ["effect on the community", ...], '
    '"consequences": ["consequence if unresolved", ...], '
    '"severity": "low|medium|high", '
    '"suggestedActions": ["immediate action", ...]}. '
    "Give 3 to 5 items per list. If the complaint is already English, copy it unchanged."
)


@dataclass
class ComplaintEnrichment:
    translated_description: str
    effects: list[str] = field(default_factory=list)
    consequences: list[str] = field(default_factory=list)
    severity: str = DEFAULT_SEVERITY
    suggested_actions: list[str] = field(default_factory=list)
    source: str = "default"


def _string_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(item).strip() for item in value if str(item or "").strip()][:MAX_ITEMS]


def _severity(value: Any) -> str:
    text = str(value or "").strip().lower()
    return text if text in SEVERITIES else DEFAULT_SEVERITY


class EnrichmentService:
    """Adds an English rendering, community impact and suggested actions to a complaint."""

    def __init__(self, llm: GroqAdapter) -> None:
        self.llm = llm

    def enrich(self, text: str, category: str, language: str | None = None) -> ComplaintEnrichment:
        fallback = ComplaintEnrichment(translated_description=text)
        if not self.llm.enabled:
            return fallback

        hint = f" (language: {language})" if language else ""
        result = self.llm.chat_json(ENRICH_PROMPT, f'Category: {category}{hint}\nComplaint: "{text}"')
        if not isinstance(result, dict):
            logger.warning("Complaint enrichment unavailable, storing defaults: %.200r", result)
            return fallback

        translated = str(result.get("translatedDescription") or "").strip()
        if str(language or "").lower().startswith("en"):
            translated = text
        return ComplaintEnrichment(
            translated_description=translated or text,
            effects=_string_list(result.get("effects")),
            consequences=_string_list(result.get("consequences")),
            severity=_severity(result.get("severity")),
            suggested_actions=_string_list(result.get("suggestedActions")),
            source="llm",
        )
