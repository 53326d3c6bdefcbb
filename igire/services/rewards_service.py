from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any

from igire.domain.models import RewardRedemption, utc_now
from igire.domain.rewards import InsufficientCoinsError, coins_required, parse_reward_type
from igire.events.bus import InMemoryEventBus
from igire.infra.repositories import Repository
from igire.services.errors import NotFoundError

logger = logging.getLogger(__name__)


class RewardsService:
    def __init__(self, repo: Repository, bus: InMemoryEventBus) -> None:
        self.repo = repo
        self.bus = bus

    def quote(self, reward_type: str, amount: int) -> int:
        return coins_required(parse_reward_type(reward_type), int(amount))

    def balance(self, user_id: str) -> int:
        user = self.repo.get_user(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return int(user.get("points", 0))

    def redeem(self, user_id: str, reward_type: str, amount: int) -> dict[str, Any]:
        kind = parse_reward_type(reward_type)
        coins = coins_required(kind, int(amount))

        if self.balance(user_id) < coins:
            raise InsufficientCoinsError("Not enough coins")

        record = RewardRedemption(type=kind.value, amount=int(amount), coins=coins)
        updated = self.repo.debit_points(user_id, coins, asdict(record))
        if updated is None:
            # Balance changed between the read and the conditional debit.
            raise InsufficientCoinsError("Not enough coins")
        self.repo.update_user(user_id, {"last_activity": utc_now()})

        logger.info("User %s redeemed %s RWF of %s for %s coins", user_id, amount, kind.value, coins)
        self.bus.emit(
            "reward.redeemed",
            subject_id=user_id,
            actor_id=user_id,
            payload={"type": kind.value, "amount": int(amount), "coins": coins},
        )
        return {
            "message": "Reward redeemed successfully",
            "redemption": asdict(record),
            "points": int(updated.get("points", 0)),
            "coins": int(updated.get("points", 0)),
        }
