from __future__ import annotations

from typing import Any

from igire.domain.models import utc_now

EVENT_REQUIRED_KEYS: dict[str, set[str]] = {
    "complaint.submitted": {"category", "submission_method", "points_awarded"},
    "complaint.status.changed": {"from_status", "to_status"},
    "complaint.assigned": {"assigned_agency"},
    "reward.redeemed": {"type", "amount", "coins"},
    "institution.changed": {"action"},
    "notification.sent": {"channel", "ok"},
}


def validate_event_payload(event_type: str, payload: dict[str, Any]) -> None:
    required = EVENT_REQUIRED_KEYS.get(event_type)
    if required is None:
        raise ValueError(f"Unsupported event type: {event_type}")

    missing = sorted(k for k in required if k not in payload)
    if missing:
        raise ValueError(f"Event payload missing required keys for {event_type}: {missing}")


def build_event_envelope(
    *,
    event_type: str,
    subject_id: str,
    actor_id: str | None,
    payload: dict[str, Any],
) -> dict[str, Any]:
    validate_event_payload(event_type, payload)
    return {
        "event_type": event_type,
        "subject_id": subject_id,
        "actor_id": actor_id,
        "payload": payload,
        "occurred_at": utc_now(),
    }
