from __future__ import annotations

import logging
from typing import Any, Callable

from igire.domain.models import Category, Channel, normalize_phone
from igire.domain.rewards import InsufficientCoinsError, InvalidRewardError, RewardType
from igire.infra.repositories import Repository, RepositoryError
from igire.services.complaint_service import ComplaintService
from igire.services.rewards_service import RewardsService

logger = logging.getLogger(__name__)

MAIN_MENU = "CON Welcome to Igire\n1. Submit complaint\n2. Track complaint\n3. View points\n4. Redeem reward"
CATEGORY_MENU = "CON Select category\n1. Water\n2. Sanitation\n3. Roads\n4. Electricity\n5. Other"
REWARD_MENU = "CON Select reward\n1. Airtime\n2. Internet\n3. Electricity"

CATEGORY_CHOICES: dict[str, Category] = {
    "1": Category.WATER,
    "2": Category.SANITATION,
    "3": Category.ROADS,
    "4": Category.ELECTRICITY,
    "5": Category.OTHER,
}
REWARD_CHOICES: dict[str, RewardType] = {
    "1": RewardType.AIRTIME,
    "2": RewardType.INTERNET,
    "3": RewardType.ELECTRICITY,
}

INVALID_OPTION = "END Invalid option. Please try again."
SERVICE_ERROR = "END An error occurred. Please try again later."


def con(message: str) -> str:
    return f"CON {message}"


def end(message: str) -> str:
    return f"END {message}"


class UssdService:
    """Stateless menu: the whole session path is replayed from the `*`-joined input on every request."""

    def __init__(self, repo: Repository, complaints: ComplaintService, rewards: RewardsService) -> None:
        self.repo = repo
        self.complaints = complaints
        self.rewards = rewards
        self._routes: dict[tuple[str, int], Callable[[str, list[str]], str]] = {
            ("1", 1): lambda phone, parts: CATEGORY_MENU,
            ("1", 2): self._ask_location,
            ("1", 3): lambda phone, parts: con("Describe the problem"),
            ("1", 4): self._submit_complaint,
            ("2", 1): lambda phone, parts: con("Enter complaint ID"),
            ("2", 2): self._track_complaint,
            ("3", 1): self._view_points,
            ("4", 1): lambda phone, parts: REWARD_MENU,
            ("4", 2): self._ask_amount,
            ("4", 3): self._confirm_redemption,
            ("4", 4): self._redeem,
        }

    def handle(self, session_id: str, phone_number: str, text: str) -> str:
        raw = str(text or "").strip()
        if not raw:
            return MAIN_MENU
        parts = raw.split("*")
        route = self._routes.get((parts[0], len(parts)))
        if route is None:
            return INVALID_OPTION
        logger.debug("USSD session %s path %s", session_id, raw)
        try:
            return route(phone_number, parts)
        except RepositoryError:
            logger.exception("USSD session %s failed on storage", session_id)
            return SERVICE_ERROR

    def _user_for(self, phone: str) -> dict[str, Any] | None:
        phone = normalize_phone(phone)
        return self.repo.find_user_by_phone(phone) if phone else None

    # submit

    def _ask_location(self, phone: str, parts: list[str]) -> str:
        if parts[1] not in CATEGORY_CHOICES:
            return end("Invalid category selected.")
        return con("Enter your location (district)")

    def _submit_complaint(self, phone: str, parts: list[str]) -> str:
        category = CATEGORY_CHOICES.get(parts[1])
        if category is None:
            return end("Invalid category selected.")
        location, description = parts[2].strip(), parts[3].strip()
        if not location or not description:
            return end("Location and description are required.")
        row = self.complaints.submit(
            description=description,
            channel=Channel.USSD,
            location={"district": location},
            category=category.value,
            phone_number=phone,
        )
        return end(f"Complaint submitted. ID: {row['id']}")

    # track

    def _track_complaint(self, phone: str, parts: list[str]) -> str:
        row = self.repo.get_complaint(parts[1].strip())
        if row is None:
            return end("Complaint not found.")
        updated = str(row.get("updated_at") or row.get("created_at") or "")[:10]
        return end(f"Complaint {row['id']}\nStatus: {row.get('status')}\nLast update: {updated}")

    # points

    def _view_points(self, phone: str, parts: list[str]) -> str:
        user = self._user_for(phone)
        if user is None:
            return end("This number is not registered with Igire.")
        return end(f"You have {int(user.get('points', 0))} Igire points.")

    # redeem

    def _parse_redemption(self, parts: list[str]) -> tuple[RewardType, int] | str:
        reward = REWARD_CHOICES.get(parts[1])
        if reward is None:
            return end("Invalid reward selected.")
        if len(parts) < 3:
            return reward, 0
        try:
            return reward, int(parts[2].strip())
        except ValueError:
            return end("Invalid amount.")

    def _ask_amount(self, phone: str, parts: list[str]) -> str:
        parsed = self._parse_redemption(parts)
        if isinstance(parsed, str):
            return parsed
        return con("Enter amount in RWF (100 - 10000)")

    def _confirm_redemption(self, phone: str, parts: list[str]) -> str:
        parsed = self._parse_redemption(parts)
        if isinstance(parsed, str):
            return parsed
        reward, amount = parsed
        try:
            coins = self.rewards.quote(reward.value, amount)
        except InvalidRewardError as exc:
            return end(str(exc))
        return con(f"Redeem {amount} RWF {reward.value} for {coins} points?\n1. Confirm\n2. Cancel")

    def _redeem(self, phone: str, parts: list[str]) -> str:
        parsed = self._parse_redemption(parts)
        if isinstance(parsed, str):
            return parsed
        reward, amount = parsed
        choice = parts[3].strip()
        if choice == "2":
            return end("Redemption cancelled.")
        if choice != "1":
            return INVALID_OPTION

        user = self._user_for(phone)
        if user is None:
            return end("This number is not registered with Igire.")
        try:
            result = self.rewards.redeem(user["id"], reward.value, amount)
        except InsufficientCoinsError:
            return end("Insufficient points for this reward.")
        except InvalidRewardError as exc:
            return end(str(exc))
        return end(f"Success! {amount} RWF {reward.value} is on its way. Balance: {result['points']} points.")
