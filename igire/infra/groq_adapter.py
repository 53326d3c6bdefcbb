from __future__ import annotations

import json
import logging
from typing import Any

from groq import Groq

from igire.config import settings

logger = logging.getLogger(__name__)


class GroqAdapter:
    def __init__(self, api_key: str | None = None, model: str | None = None) -> None:
        key = settings.groq_api_key if api_key is None else api_key
        self.client = Groq(api_key=key) if key else None
        self.model = model or settings.groq_model

    @property
    def enabled(self) -> bool:
        return self.client is not None

    def chat_json(self, system_prompt: str, user_text: str) -> Any | None:
        content = self.chat_text(system_prompt, user_text, json_mode=True)
        if not content:
            return None
        try:
            return json.loads(content)
        except json.JSONDecodeError:
            logger.warning("Groq returned non-JSON content: %.200s", content)
            return None

    def chat_text(self, system_prompt: str, user_text: str, *, json_mode: bool = False) -> str | None:
        if not self.client:
            return None
        kwargs: dict[str, Any] = {
            "model": self.model,
            "temperature": 0,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_text[:12000]},
            ],
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}
        try:
            completion = self.client.chat.completions.create(**kwargs)
            return completion.choices[0].message.content
        except Exception as exc:
            logger.warning("Groq request failed: %s", exc)
            return None
