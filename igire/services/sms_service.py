from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from igire.domain.models import Category, Channel
from igire.infra.sms_adapter import PindoSmsAdapter, SmsSendResult
from igire.services.complaint_service import ComplaintService

logger = logging.getLogger(__name__)

SMS_KEYWORD = "IGIRE"
SMS_USAGE = "Format: IGIRE <CATEGORY> <LOCATION> <DESCRIPTION>. Categories: water, sanitation, roads, electricity, other."


class SmsFormatError(ValueError):
    pass


class SmsDeliveryError(RuntimeError):
    pass


@dataclass(frozen=True)
class ParsedSms:
    category: Category
    location: str
    description: str


def parse_sms(text: str) -> ParsedSms:
    parts = str(text or "").strip().split(None, 3)
    if len(parts) < 4 or parts[0].upper() != SMS_KEYWORD:
        raise SmsFormatError(f"Invalid SMS format. {SMS_USAGE}")

    _, raw_category, location, description = parts
    try:
        category = Category(raw_category.lower())
    except ValueError:
        raise SmsFormatError(f"Unknown category '{raw_category}'. {SMS_USAGE}") from None

    if not description.strip():
        raise SmsFormatError(f"Description is required. {SMS_USAGE}")
    return ParsedSms(category=category, location=location, description=description.strip())


class SmsService:
    def __init__(self, complaints: ComplaintService, gateway: PindoSmsAdapter) -> None:
        self.complaints = complaints
        self.gateway = gateway

    def send(self, to: str, text: str) -> SmsSendResult:
        if not str(to or "").strip() or not str(text or "").strip():
            raise ValueError("Both 'to' and 'text' are required")
        result = self.gateway.send(to, text)
        if not result.ok:
            raise SmsDeliveryError(f"Failed to send SMS: {result.detail}")
        return result

    def notify(self, to: str | None, text: str) -> bool:
        if not to:
            return False
        result = self.gateway.send(to, text)
        if not result.ok:
            logger.warning("SMS notification to %s not delivered: %s", to, result.detail)
        return result.ok

    def handle_inbound(self, sender: str, text: str) -> dict[str, Any]:
        phone = str(sender or "").strip()
        if not phone:
            raise ValueError("Sender phone number is required")
        try:
            parsed = parse_sms(text)
        except SmsFormatError:
            self.notify(phone, SMS_USAGE)
            raise

        row = self.complaints.submit(
            description=parsed.description,
            channel=Channel.SMS,
            location={"district": parsed.location},
            category=parsed.category.value,
            phone_number=phone,
        )
        self.notify(phone, f"Igire: complaint {row['id']} received. Track it by dialing the USSD menu, option 2.")
        return row
