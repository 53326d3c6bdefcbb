from __future__ import annotations

from collections import Counter, defaultdict
from datetime import datetime, timedelta, timezone
from typing import Any

from igire.domain.states import ComplaintStatus
from igire.infra.repositories import Repository

TIME_RANGES = {"7d": 7, "30d": 30, "90d": 90}


def _parse_ts(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    try:
        parsed = datetime.fromisoformat(str(value))
    except (TypeError, ValueError):
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


class AnalyticsService:
    def __init__(self, repo: Repository) -> None:
        self.repo = repo

    def snapshot(self, time_range: str | None = "30d") -> dict[str, Any]:
        key = str(time_range or "30d")
        if key not in TIME_RANGES:
            key = "90d"
        since = datetime.now(timezone.utc) - timedelta(days=TIME_RANGES[key])
        complaints = self.repo.list_complaints(since=since.isoformat())

        categories = Counter(str(c.get("category") or "other") for c in complaints)
        statuses = Counter(str(c.get("status") or ComplaintStatus.SUBMITTED.value) for c in complaints)

        per_day: dict[str, list[float]] = defaultdict(list)
        for c in complaints:
            if c.get("status") != ComplaintStatus.RESOLVED.value:
                continue
            created, resolved = _parse_ts(c.get("created_at")), _parse_ts(c.get("resolved_at"))
            if created is None or resolved is None:
                continue
            per_day[resolved.date().isoformat()].append((resolved - created).total_seconds() / 86400)

        unresolved = [c for c in complaints if c.get("status") != ComplaintStatus.RESOLVED.value][:10]

        return {
            "timeRange": key,
            "totalComplaints": len(complaints),
            "categoryDistribution": [{"category": k, "count": v} for k, v in categories.most_common()],
            "statusDistribution": [{"status": k, "count": v} for k, v in statuses.items()],
            "resolutionTimes": [
                {"date": day, "avgDays": round(sum(vals) / len(vals), 2)} for day, vals in sorted(per_day.items())
            ],
            "unresolvedComplaints": unresolved,
            "predictions": self.repo.list_predictions(limit=5),
        }
