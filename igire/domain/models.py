from __future__ import annotations

import re
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import uuid4

from igire.domain.states import ComplaintStatus


POINTS_PER_COMPLAINT = 50


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_complaint_id() -> str:
    return f"C{uuid4().hex[:8].upper()}"


def normalize_phone(value: str | None) -> str | None:
    """Canonical +250 form for Rwandan numbers; other numbers only lose separators."""
    phone = re.sub(r"[\s\-().]", "", str(value or ""))
    if not phone:
        return None
    if phone.startswith("00"):
        phone = "+" + phone[2:]
    if phone.startswith("250") and len(phone) == 12:
        phone = "+" + phone
    elif phone.startswith("07") and len(phone) == 10:
        phone = "+250" + phone[1:]
    return phone


class Category(str, Enum):
    WATER = "water"
    SANITATION = "sanitation"
    ROADS = "roads"
    ELECTRICITY = "electricity"
    OTHER = "other"

    @classmethod
    def coerce(cls, value: Any) -> "Category":
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            return cls.OTHER


class Channel(str, Enum):
    WEB = "web"
    SMS = "sms"
    USSD = "ussd"
    VOICE = "voice"
    VIDEO = "video"


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"
    INSTITUTION = "institution"


class RedemptionStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


@dataclass
class Complaint:
    description: str
    category: str
    submission_method: str
    district: str = ""
    sector: str = ""
    cell: str = ""
    village: str = ""
    user_id: str | None = None
    phone_number: str | None = None
    coordinates: dict[str, float] | None = None
    ai_category: str | None = None
    ai_confidence: int | None = None
    suggested_agency: str | None = None
    assigned_agency: str | None = None
    language: str | None = None
    audio_url: str | None = None
    video_url: str | None = None
    translated_description: str | None = None
    effects: list[str] = field(default_factory=list)
    consequences: list[str] = field(default_factory=list)
    severity: str = "medium"
    suggested_actions: list[str] = field(default_factory=list)
    status: str = ComplaintStatus.SUBMITTED.value
    points_awarded: int = POINTS_PER_COMPLAINT
    id: str = field(default_factory=new_complaint_id)
    created_at: str = field(default_factory=utc_now)
    updated_at: str = field(default_factory=utc_now)
    resolved_at: str | None = None

    def to_row(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class RewardRedemption:
    type: str
    amount: int
    coins: int
    status: str = RedemptionStatus.PENDING.value
    id: str = field(default_factory=lambda: f"rwd-{uuid4().hex[:12]}")
    date: str = field(default_factory=utc_now)


@dataclass
class User:
    name: str
    password_hash: str
    email: str | None = None
    phone: str | None = None
    role: str = UserRole.USER.value
    points: int = 0
    department: str | None = None
    reward_history: list[dict[str, Any]] = field(default_factory=list)
    id: str = field(default_factory=lambda: str(uuid4()))
    created_at: str = field(default_factory=utc_now)
    updated_at: str = field(default_factory=utc_now)
    last_activity: str | None = None

    def to_row(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class Institution:
    name: str
    department: str
    email: str
    phone: str | None = None
    role: str = UserRole.INSTITUTION.value
    staff_user_id: str | None = None
    id: str = field(default_factory=lambda: f"INST{uuid4().hex[:6].upper()}")
    created_at: str = field(default_factory=utc_now)
    updated_at: str = field(default_factory=utc_now)

    def to_row(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class Prediction:
    issue: str
    category: str
    location: str
    probability: int
    timeframe: str
    evidence: list[str] = field(default_factory=list)
    id: str = field(default_factory=lambda: str(uuid4()))
    created_at: str = field(default_factory=utc_now)

    def to_row(self) -> dict[str, Any]:
        return asdict(self)


def public_user(row: dict[str, Any]) -> dict[str, Any]:
    out = dict(row)
    out.pop("password_hash", None)
    out.pop("_id", None)
    return out
