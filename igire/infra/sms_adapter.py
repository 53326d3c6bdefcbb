from __future__ import annotations

import logging
from dataclasses import dataclass

import requests

from igire.config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SmsSendResult:
    ok: bool
    detail: str


class PindoSmsAdapter:
    def __init__(
        self,
        api_key: str | None = None,
        sender: str | None = None,
        base_url: str | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.api_key = settings.pindo_api_key if api_key is None else api_key
        self.sender = sender or settings.pindo_sender
        self.base_url = (base_url or settings.pindo_base_url).rstrip("/")
        self.session = session or requests.Session()

    def configured(self) -> bool:
        return bool(self.api_key)

    def send(self, to: str, text: str) -> SmsSendResult:
        target = str(to or "").strip()
        if not target:
            return SmsSendResult(ok=False, detail="recipient phone missing")
        if not str(text or "").strip():
            return SmsSendResult(ok=False, detail="message text missing")
        if not self.configured():
            return SmsSendResult(ok=False, detail="PINDO_API_KEY missing")

        try:
            res = self.session.post(
                f"{self.base_url}/sms/",
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                json={"to": target, "text": text, "sender": self.sender},
                timeout=10,
            )
        except requests.RequestException as exc:
            logger.warning("SMS to %s failed: %s", target, exc)
            return SmsSendResult(ok=False, detail=f"request_error:{exc}")

        if res.status_code < 400:
            return SmsSendResult(ok=True, detail="sent")

        try:
            message = res.json().get("message") or res.text[:200]
        except ValueError:
            message = res.text[:200]
        logger.warning("SMS gateway rejected message to %s: %s %s", target, res.status_code, message)
        return SmsSendResult(ok=False, detail=f"http_error:{res.status_code}:{message}")
