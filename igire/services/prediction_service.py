from __future__ import annotations

import json
import logging
from collections import Counter
from typing import Any

from igire.domain.models import Category, Prediction
from igire.infra.groq_adapter import GroqAdapter
from igire.infra.repositories import Repository
from igire.services.categorization import clamp_confidence
from igire.services.complaint_service import location_label
from igire.services.errors import NotFoundError

logger = logging.getLogger(__name__)

DEFAULT_LOCATION = "Kigali"
LLM_MIN_COMPLAINTS = 10
MAX_PREDICTIONS = 10

FORECAST_PROMPT = (
    "You forecast municipal infrastructure problems in Rwanda from historical citizen complaints. "
    'Respond with ONLY a JSON object: {"predictions": [{"issue": "specific issue", '
    '"category": "water|sanitation|roads|electricity|other", "probability": 0-100, '
    '"timeframe": "when it might occur"}]}'
)


def complaints_for_location(complaints: list[dict[str, Any]], location: str) -> list[dict[str, Any]]:
    needle = location.strip().lower()
    return [c for c in complaints if needle in location_label(c).lower()]


def statistical_forecast(complaints: list[dict[str, Any]], location: str) -> list[dict[str, Any]]:
    counts = Counter(str(c.get("category") or Category.OTHER.value) for c in complaints)
    total = sum(counts.values())
    if not total:
        return [
            {
                "issue": "General infrastructure maintenance needed",
                "category": Category.OTHER.value,
                "probability": 60,
                "timeframe": "Next quarter",
                "evidence": [f"No complaints recorded for {location}"],
            }
        ]

    out = []
    for category, count in counts.most_common():
        share = round(count / total * 100)
        out.append(
            {
                "issue": f"{category} issues likely to recur",
                "category": category,
                "probability": min(share + 20, 95),
                "timeframe": "Next month" if share > 50 else "Next 3 months",
                "evidence": [f"{count} of {total} complaints in {location} concern {category}"],
            }
        )
    return out


class PredictionService:
    def __init__(self, repo: Repository, llm: GroqAdapter) -> None:
        self.repo = repo
        self.llm = llm

    def list_for_location(self, location: str | None) -> list[dict[str, Any]]:
        return self.repo.list_predictions(location or DEFAULT_LOCATION, limit=MAX_PREDICTIONS)

    def _llm_forecast(self, complaints: list[dict[str, Any]], location: str) -> list[dict[str, Any]]:
        sample = [
            {k: c.get(k) for k in ("category", "description", "status", "district", "sector", "created_at")}
            for c in complaints[:10]
        ]
        result = self.llm.chat_json(
            FORECAST_PROMPT,
            f"Historical complaints from {location}:\n{json.dumps(sample, default=str)}",
        )
        items = result.get("predictions") if isinstance(result, dict) else result
        if not isinstance(items, list):
            return []

        out = []
        for item in items[:MAX_PREDICTIONS]:
            if not isinstance(item, dict) or not str(item.get("issue") or "").strip():
                continue
            out.append(
                {
                    "issue": str(item["issue"]).strip(),
                    "category": Category.coerce(item.get("category")).value,
                    "probability": clamp_confidence(item.get("probability")),
                    "timeframe": str(item.get("timeframe") or "Unknown").strip(),
                    "evidence": [f"Model forecast from {len(complaints)} complaints in {location}"],
                }
            )
        return out

    def generate(self, location: str | None) -> list[dict[str, Any]]:
        place = (location or DEFAULT_LOCATION).strip() or DEFAULT_LOCATION
        complaints = complaints_for_location(self.repo.list_complaints(), place)

        forecast: list[dict[str, Any]] = []
        if len(complaints) > LLM_MIN_COMPLAINTS and self.llm.enabled:
            forecast = self._llm_forecast(complaints, place)
            if not forecast:
                logger.warning("LLM forecast for %s unusable, using statistical analysis", place)
        if not forecast:
            forecast = statistical_forecast(complaints, place)

        rows = []
        for item in forecast:
            prediction = Prediction(location=place, **item)
            rows.append(self.repo.create_prediction(prediction.to_row()))
        logger.info("Stored %d predictions for %s", len(rows), place)
        return rows

    def delete(self, prediction_id: str) -> dict[str, Any]:
        if not self.repo.delete_prediction(prediction_id):
            raise NotFoundError("Prediction not found")
        return {"success": True}
