from __future__ import annotations

from enum import Enum


class ComplaintStatus(str, Enum):
    SUBMITTED = "submitted"
    IN_PROGRESS = "in-progress"
    RESOLVED = "resolved"


# Linear lifecycle: a resolved complaint is never re-opened.
ALLOWED_TRANSITIONS: dict[ComplaintStatus, set[ComplaintStatus]] = {
    ComplaintStatus.SUBMITTED: {ComplaintStatus.IN_PROGRESS},
    ComplaintStatus.IN_PROGRESS: {ComplaintStatus.RESOLVED},
    ComplaintStatus.RESOLVED: set(),
}
