from __future__ import annotations

from igire.domain.states import ALLOWED_TRANSITIONS, ComplaintStatus


class InvalidTransitionError(ValueError):
    pass


class StatusMachine:
    def parse(self, value: str) -> ComplaintStatus:
        try:
            return ComplaintStatus(str(value).strip().lower())
        except ValueError:
            allowed = ", ".join(s.value for s in ComplaintStatus)
            raise InvalidTransitionError(f"Unknown status '{value}'. Expected one of: {allowed}") from None

    def transition(self, current: ComplaintStatus, target: ComplaintStatus) -> ComplaintStatus:
        allowed = ALLOWED_TRANSITIONS.get(current, set())
        if target not in allowed:
            raise InvalidTransitionError(f"Invalid transition {current.value} -> {target.value}")
        return target
