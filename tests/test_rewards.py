"""
Tests for reward pricing and redemption.
"""
import pytest

from igire.domain.rewards import InsufficientCoinsError, InvalidRewardError, RewardType, coins_required


class TestCoinsRequired:
    def test_rates(self):
        assert coins_required(RewardType.AIRTIME, 1000) == 200
        assert coins_required(RewardType.INTERNET, 1000) == 250
        assert coins_required(RewardType.ELECTRICITY, 5000) == 1000

    def test_rounds_up(self):
        assert coins_required(RewardType.INTERNET, 101) == 26

    @pytest.mark.parametrize("amount", [0, 99, 10001])
    def test_amount_bounds(self, amount):
        with pytest.raises(InvalidRewardError):
            coins_required(RewardType.AIRTIME, amount)


class TestRewardsService:
    def test_redeem_decrements_exactly(self, services, make_user):
        user, _ = make_user(email="a@example.rw", points=500)
        result = services.rewards.redeem(user["id"], "internet", 1000)
        assert result["points"] == 250
        stored = services.repo.get_user(user["id"])
        assert stored["points"] == 250
        assert stored["reward_history"] == [result["redemption"]]
        assert result["redemption"]["coins"] == 250

    def test_redeem_rejected_when_short(self, services, make_user):
        user, _ = make_user(email="b@example.rw", points=199)
        with pytest.raises(InsufficientCoinsError):
            services.rewards.redeem(user["id"], "airtime", 1000)
        assert services.repo.get_user(user["id"])["points"] == 199

    def test_unknown_type(self, services, make_user):
        user, _ = make_user(email="c@example.rw", points=500)
        with pytest.raises(InvalidRewardError):
            services.rewards.redeem(user["id"], "cash", 1000)

    def test_redemption_emits_event(self, services, make_user):
        user, _ = make_user(email="d@example.rw", points=500)
        received = []
        services.bus.subscribe("reward.redeemed", received.append)
        services.rewards.redeem(user["id"], "airtime", 500)
        assert [e["payload"]["coins"] for e in received] == [100]


class TestRedeemEndpoint:
    @pytest.mark.asyncio
    async def test_redeem(self, client, make_user):
        _, headers = make_user(email="e@example.rw", points=300)
        response = await client.post(
            "/api/profile/redeem-reward", json={"type": "airtime", "amount": 1000}, headers=headers
        )
        assert response.status_code == 200
        assert response.json()["points"] == 100

    @pytest.mark.asyncio
    async def test_not_enough_coins_uses_message_key(self, client, make_user):
        _, headers = make_user(email="f@example.rw", points=10)
        response = await client.post(
            "/api/profile/redeem-reward", json={"type": "airtime", "amount": 1000}, headers=headers
        )
        assert response.status_code == 400
        assert response.json() == {"message": "Not enough coins"}

    @pytest.mark.asyncio
    async def test_requires_auth(self, client):
        response = await client.post("/api/profile/redeem-reward", json={"type": "airtime", "amount": 1000})
        assert response.status_code == 401
