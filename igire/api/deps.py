from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from fastapi import Depends, Request

from igire.domain.models import UserRole
from igire.events.bus import InMemoryEventBus
from igire.infra.groq_adapter import GroqAdapter
from igire.infra.media_storage import SupabaseMediaStorage
from igire.infra.repositories import Repository, build_repository
from igire.infra.sms_adapter import PindoSmsAdapter
from igire.infra.transcription_adapter import AssemblyAIAdapter
from igire.services.analytics_service import AnalyticsService
from igire.services.auth_service import AuthService
from igire.services.categorization import CategorizationService
from igire.services.complaint_service import ComplaintService
from igire.services.enrichment import EnrichmentService
from igire.services.errors import AuthError
from igire.services.institution_cache import InstitutionCache
from igire.services.institution_service import InstitutionService
from igire.services.notification_service import NotificationService
from igire.services.prediction_service import PredictionService
from igire.services.rewards_service import RewardsService
from igire.services.sms_service import SmsService
from igire.services.ussd_service import UssdService

logger = logging.getLogger(__name__)

AUTH_COOKIE = "auth_token"
USER_ID_COOKIE = "userId"


@dataclass
class Services:
    repo: Repository
    bus: InMemoryEventBus
    using_remote: bool
    persistence_error: str | None
    institution_cache: InstitutionCache
    categorizer: CategorizationService
    auth: AuthService
    complaints: ComplaintService
    sms: SmsService
    rewards: RewardsService
    ussd: UssdService
    institutions: InstitutionService
    predictions: PredictionService
    analytics: AnalyticsService
    notifications: NotificationService


def build_services(
    repo: Repository,
    *,
    using_remote: bool = False,
    persistence_error: str | None = None,
    llm: GroqAdapter | None = None,
    transcriber: AssemblyAIAdapter | None = None,
    storage: SupabaseMediaStorage | None = None,
    sms_gateway: PindoSmsAdapter | None = None,
) -> Services:
    bus = InMemoryEventBus()
    llm = llm or GroqAdapter()
    cache = InstitutionCache(repo)
    categorizer = CategorizationService(llm, cache)
    auth = AuthService(repo)
    complaints = ComplaintService(
        repo,
        categorizer,
        EnrichmentService(llm),
        transcriber or AssemblyAIAdapter(),
        storage or SupabaseMediaStorage(),
        bus,
    )
    sms = SmsService(complaints, sms_gateway or PindoSmsAdapter())
    rewards = RewardsService(repo, bus)
    notifications = NotificationService(repo, sms, bus)
    notifications.register()
    return Services(
        repo=repo,
        bus=bus,
        using_remote=using_remote,
        persistence_error=persistence_error,
        institution_cache=cache,
        categorizer=categorizer,
        auth=auth,
        complaints=complaints,
        sms=sms,
        rewards=rewards,
        ussd=UssdService(repo, complaints, rewards),
        institutions=InstitutionService(repo, auth, cache, sms, bus),
        predictions=PredictionService(repo, llm),
        analytics=AnalyticsService(repo),
        notifications=notifications,
    )


@lru_cache(maxsize=1)
def get_services() -> Services:
    repo, using_remote, err = build_repository()
    services = build_services(repo, using_remote=using_remote, persistence_error=err)
    services.auth.ensure_default_admin()
    return services


def _bearer_token(request: Request) -> str | None:
    header = request.headers.get("authorization", "")
    if header.lower().startswith("bearer "):
        return header[7:].strip() or None
    return request.cookies.get(AUTH_COOKIE) or None


def current_user(request: Request, services: Services = Depends(get_services)) -> dict[str, Any]:
    return services.auth.user_from_token(_bearer_token(request))


def optional_user(request: Request, services: Services = Depends(get_services)) -> dict[str, Any] | None:
    token = _bearer_token(request)
    if not token:
        return None
    try:
        return services.auth.user_from_token(token)
    except AuthError as exc:
        logger.info("Ignoring invalid token on anonymous-capable route: %s", exc)
        return None


def require_admin(user: dict[str, Any] = Depends(current_user)) -> dict[str, Any]:
    if user.get("role") != UserRole.ADMIN.value:
        raise PermissionError("Admin access required")
    return user


def require_staff(user: dict[str, Any] = Depends(current_user)) -> dict[str, Any]:
    if user.get("role") not in {UserRole.ADMIN.value, UserRole.INSTITUTION.value}:
        raise PermissionError("Staff access required")
    return user
