from __future__ import annotations

from enum import Enum


class RewardType(str, Enum):
    AIRTIME = "airtime"
    INTERNET = "internet"
    ELECTRICITY = "electricity"


# Coins charged per 100 RWF of credit (0.2, 0.25 and 0.2 coins per RWF).
COINS_PER_100_RWF: dict[RewardType, int] = {
    RewardType.AIRTIME: 20,
    RewardType.INTERNET: 25,
    RewardType.ELECTRICITY: 20,
}

MIN_AMOUNT = 100
MAX_AMOUNT = 10000


class InvalidRewardError(ValueError):
    pass


class InsufficientCoinsError(ValueError):
    pass


def parse_reward_type(value: str) -> RewardType:
    try:
        return RewardType(str(value or "").strip().lower())
    except ValueError:
        raise InvalidRewardError("Invalid reward type") from None


def coins_required(reward_type: RewardType, amount: int) -> int:
    if amount < MIN_AMOUNT or amount > MAX_AMOUNT:
        raise InvalidRewardError(f"Amount must be between {MIN_AMOUNT} and {MAX_AMOUNT}")
    # ceil(amount * rate) in integer arithmetic
    return -(-amount * COINS_PER_100_RWF[reward_type] // 100)
