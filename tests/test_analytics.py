"""
Tests for the analytics snapshot.
"""
from datetime import datetime, timedelta, timezone

import pytest


def _complaint(cid, category, status, created, resolved=None):
    return {
        "id": cid,
        "category": category,
        "status": status,
        "description": "x",
        "created_at": created.isoformat(),
        "resolved_at": resolved.isoformat() if resolved else None,
    }


class TestAnalytics:
    @pytest.mark.asyncio
    async def test_snapshot(self, client, services):
        now = datetime.now(timezone.utc)
        repo = services.repo
        repo.create_complaint(_complaint("C1", "water", "resolved", now - timedelta(days=3), now - timedelta(days=1)))
        repo.create_complaint(_complaint("C2", "water", "in-progress", now - timedelta(days=2)))
        repo.create_complaint(_complaint("C3", "roads", "submitted", now - timedelta(days=1)))
        repo.create_complaint(_complaint("C4", "roads", "submitted", now - timedelta(days=40)))

        body = (await client.get("/api/analytics", params={"timeRange": "7d"})).json()
        assert body["totalComplaints"] == 3
        assert {"category": "water", "count": 2} in body["categoryDistribution"]
        assert {"status": "submitted", "count": 1} in body["statusDistribution"]
        assert body["resolutionTimes"] == [{"date": (now - timedelta(days=1)).date().isoformat(), "avgDays": 2.0}]
        assert [c["id"] for c in body["unresolvedComplaints"]] == ["C3", "C2"]

    @pytest.mark.asyncio
    async def test_unknown_range_defaults_to_ninety_days(self, client, services):
        now = datetime.now(timezone.utc)
        services.repo.create_complaint(_complaint("C1", "water", "submitted", now - timedelta(days=60)))
        body = (await client.get("/api/analytics", params={"timeRange": "1y"})).json()
        assert body["timeRange"] == "90d"
        assert body["totalComplaints"] == 1
