from __future__ import annotations

import logging
from typing import Any

from igire.events.bus import InMemoryEventBus
from igire.infra.repositories import Repository
from igire.services.sms_service import SmsService

logger = logging.getLogger(__name__)

STATUS_MESSAGES = {
    "in-progress": "Igire: your complaint {id} is now being handled.",
    "resolved": "Igire: your complaint {id} has been resolved. Thank you for reporting.",
}


class NotificationService:
    def __init__(self, repo: Repository, sms: SmsService, bus: InMemoryEventBus) -> None:
        self.repo = repo
        self.sms = sms
        self.bus = bus

    def register(self) -> None:
        self.bus.subscribe("complaint.status.changed", self.handle_event)
        self.bus.subscribe("reward.redeemed", self.handle_event)

    def _recipient(self, payload: dict[str, Any], user_id: str | None) -> str | None:
        if payload.get("phone_number"):
            return str(payload["phone_number"])
        if user_id:
            user = self.repo.get_user(user_id)
            return (user or {}).get("phone")
        return None

    def handle_event(self, envelope: dict[str, Any]) -> dict[str, Any] | None:
        event_type = envelope["event_type"]
        payload = envelope.get("payload") or {}

        if event_type == "complaint.status.changed":
            template = STATUS_MESSAGES.get(payload.get("to_status", ""))
            if not template:
                return None
            to = self._recipient(payload, payload.get("user_id"))
            message = template.format(id=envelope["subject_id"])
        elif event_type == "reward.redeemed":
            to = self._recipient({}, envelope["subject_id"])
            message = (
                f"Igire: your {payload['amount']} RWF {payload['type']} reward is being processed "
                f"({payload['coins']} points used)."
            )
        else:
            return None

        if not to:
            return None
        ok = self.sms.notify(to, message)
        self.bus.emit(
            "notification.sent",
            subject_id=envelope["subject_id"],
            payload={"channel": "SMS", "ok": ok, "event": event_type},
        )
        return {"to": to, "ok": ok, "message": message}
